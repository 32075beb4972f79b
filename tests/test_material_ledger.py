from decimal import Decimal

import pytest

from factoryline.extensions import db
from factoryline.models import (
    BatchStatus,
    BottleStockTransaction,
    BottleType,
    ProductionBatch,
    RawMaterial,
    RawMaterialLot,
    StockLotUsage,
    StockTransaction,
)
from factoryline.services.exceptions import (
    InsufficientLotsError,
    InsufficientStockError,
    NotFoundError,
    ValidationError,
)
from factoryline.services.material_ledger import (
    bottle_movements,
    calculate_deduction_plan,
    consume_fifo,
    drift_report,
    ledger_total,
    material_movements,
    receive_bottles,
    receive_material,
    validate_ledger_sync,
    write_off_bottles,
    write_off_material,
)
from tests.helpers import add_lot, make_bottle, make_material, make_product


def _batch(product, code='FIFO-1'):
    batch = ProductionBatch(
        batch_code=code,
        product_id=product.id,
        status=BatchStatus.IN_PROGRESS,
        planned_items=[],
    )
    db.session.add(batch)
    db.session.commit()
    return batch


def test_receive_material_creates_lot_transaction_and_counter(app_context):
    material = make_material('Sugar')

    transaction, lot = receive_material(material.id, '12.5', '2')

    assert transaction.transaction_type == StockTransaction.TYPE_IN
    assert transaction.total_price == Decimal('25.0')
    assert lot.stock_transaction_id == transaction.id
    assert lot.original_quantity == lot.quantity_remaining == Decimal('12.5')
    refreshed = db.session.get(RawMaterial, material.id)
    assert refreshed.current_stock == Decimal('12.5')
    assert ledger_total(material.id) == Decimal('12.5')


def test_receive_material_updates_weighted_average_price(app_context):
    material = make_material('Sugar')

    receive_material(material.id, 10, 2)
    receive_material(material.id, 30, 4)

    refreshed = db.session.get(RawMaterial, material.id)
    assert refreshed.average_price == Decimal('3.5')


@pytest.mark.parametrize('quantity, price', [(0, 1), (-2, 1), ('x', 1), (5, 0), (5, None)])
def test_receive_material_rejects_bad_input(app_context, quantity, price):
    material = make_material('Sugar')
    with pytest.raises(ValidationError):
        receive_material(material.id, quantity, price)
    assert RawMaterialLot.query.count() == 0


def test_receive_material_unknown_material(app_context):
    with pytest.raises(NotFoundError):
        receive_material(404, 1, 1)


def test_receive_bottles_increments_stock_and_logs(app_context):
    bottle = make_bottle(stock=10, price='0.5')

    transaction = receive_bottles(bottle.id, 30, notes='Supplier drop', unit_price='0.7')

    refreshed = db.session.get(BottleType, bottle.id)
    assert refreshed.stock == 40
    assert transaction.transaction_type == 'in'
    assert transaction.quantity == 30
    # (10 * 0.5 + 30 * 0.7) / 40
    assert refreshed.average_price == Decimal('0.65')
    assert BottleStockTransaction.query.count() == 1


def test_receive_bottles_requires_whole_positive_quantity(app_context):
    bottle = make_bottle()
    for quantity in (0, -1, '2.5'):
        with pytest.raises(ValidationError):
            receive_bottles(bottle.id, quantity)


def test_deduction_plan_walks_oldest_lots_first(app_context):
    material = make_material('Sugar')
    newer = add_lot(material, 5, 12, day=2)
    older = add_lot(material, 5, 10, day=1)

    plan, available = calculate_deduction_plan(material.id, 7)

    assert available == Decimal('10')
    assert [(lot.id, take) for lot, take in plan] == [(older.id, Decimal('5')), (newer.id, Decimal('2'))]


def test_consume_fifo_records_usage_at_lot_cost(app_context):
    product = make_product()
    material = make_material('Sugar')
    first = add_lot(material, 5, 10, day=1)
    second = add_lot(material, 5, 12, day=2)
    batch = _batch(product)

    usages = consume_fifo(material.id, 7, batch.id)
    db.session.commit()

    assert [(u.lot_id, u.quantity_consumed) for u in usages] == [(first.id, Decimal('5')), (second.id, Decimal('2'))]
    assert sum(u.cost for u in usages) == Decimal('74')
    assert db.session.get(RawMaterialLot, first.id).quantity_remaining == Decimal('0')
    assert db.session.get(RawMaterialLot, second.id).quantity_remaining == Decimal('3')
    assert StockLotUsage.query.filter_by(production_batch_id=batch.id).count() == 2


def test_consume_fifo_fails_when_ledger_is_short(app_context):
    product = make_product()
    material = make_material('Sugar')
    add_lot(material, 3, 10)
    batch = _batch(product)

    with pytest.raises(InsufficientLotsError) as excinfo:
        consume_fifo(material.id, 5, batch.id)

    assert excinfo.value.available == Decimal('3')
    assert excinfo.value.to_dict()['error'] == 'insufficient_lots'
    db.session.rollback()
    assert StockLotUsage.query.count() == 0
    assert ledger_total(material.id) == Decimal('3')


def test_consume_fifo_rejects_non_positive_quantity(app_context):
    product = make_product()
    material = make_material('Sugar')
    batch = _batch(product)
    with pytest.raises(ValidationError):
        consume_fifo(material.id, 0, batch.id)


def test_ledger_sync_detects_counter_drift(app_context):
    material = make_material('Sugar')
    add_lot(material, 5, 10)

    assert validate_ledger_sync(material.id)[0] is True

    material.current_stock = Decimal('6')
    db.session.commit()

    is_valid, message, counter, total = validate_ledger_sync(material.id)
    assert is_valid is False
    assert counter == Decimal('6')
    assert total == Decimal('5')
    assert 'Ledger sync error' in message


def test_drift_report_flags_only_drifted_materials(app_context):
    good = make_material('Citric acid')
    add_lot(good, 2, 3)
    make_material('Sugar', current_stock=4)

    rows = {row['material_name']: row for row in drift_report()}

    assert rows['Citric acid']['is_valid'] is True
    assert rows['Sugar']['is_valid'] is False
    assert rows['Sugar']['difference'] == 4.0


def test_write_off_material_takes_oldest_lots_and_books_damage(app_context):
    material = make_material('Sugar')
    first = add_lot(material, 5, 10, day=1)
    second = add_lot(material, 5, 12, day=2)

    transaction, usages = write_off_material(material.id, 7, notes='Water damage')

    assert transaction.transaction_type == StockTransaction.TYPE_DAMAGE
    assert transaction.total_price == Decimal('74')
    assert [(u.lot_id, u.quantity_consumed) for u in usages] == [(first.id, Decimal('5')), (second.id, Decimal('2'))]
    assert all(u.production_batch_id is None for u in usages)
    assert all(u.stock_transaction_id == transaction.id for u in usages)
    assert db.session.get(RawMaterial, material.id).current_stock == Decimal('3')
    assert validate_ledger_sync(material.id)[0] is True


def test_write_off_material_beyond_stock_changes_nothing(app_context):
    material = make_material('Sugar')
    add_lot(material, 5, 10)

    with pytest.raises(InsufficientStockError) as excinfo:
        write_off_material(material.id, 6)

    assert excinfo.value.shortages[0]['shortage'] == 1.0
    assert db.session.get(RawMaterial, material.id).current_stock == Decimal('5')
    assert ledger_total(material.id) == Decimal('5')
    assert StockTransaction.query.filter_by(transaction_type=StockTransaction.TYPE_DAMAGE).count() == 0


def test_write_off_material_rolls_back_when_ledger_is_short(app_context):
    # Counter says 8, lots hold 5.
    material = make_material('Sugar')
    add_lot(material, 5, 10)
    material.current_stock = Decimal('8')
    db.session.commit()

    with pytest.raises(InsufficientLotsError):
        write_off_material(material.id, 7)

    assert db.session.get(RawMaterial, material.id).current_stock == Decimal('8')
    assert StockLotUsage.query.count() == 0
    assert StockTransaction.query.filter_by(transaction_type=StockTransaction.TYPE_DAMAGE).count() == 0


def test_write_off_bottles(app_context):
    bottle = make_bottle(stock=10)

    transaction = write_off_bottles(bottle.id, 4, notes='Cracked')

    assert transaction.transaction_type == 'damage'
    assert db.session.get(BottleType, bottle.id).stock == 6
    with pytest.raises(InsufficientStockError):
        write_off_bottles(bottle.id, 7)
    assert db.session.get(BottleType, bottle.id).stock == 6
    for quantity in (0, '1.5', None):
        with pytest.raises(ValidationError):
            write_off_bottles(bottle.id, quantity)
    with pytest.raises(NotFoundError):
        write_off_bottles(999, 1)


def test_movement_history_is_newest_first_and_filterable(app_context):
    sugar = make_material('Sugar')
    water = make_material('Water', unit='l')
    add_lot(sugar, 5, 10, day=1)
    add_lot(water, 9, 1, day=2)
    write_off_material(sugar.id, 1)

    assert [row['transaction_type'] for row in material_movements()] == ['damage', 'in', 'in']
    assert [row['material_name'] for row in material_movements(material_id=water.id)] == ['Water']
    assert len(material_movements(limit=2)) == 2
    assert len(material_movements(limit=-5)) == 1

    bottle = make_bottle(stock=5)
    receive_bottles(bottle.id, 3)
    write_off_bottles(bottle.id, 2)
    assert [row['transaction_type'] for row in bottle_movements(bottle_type_id=bottle.id)] == ['damage', 'in']
