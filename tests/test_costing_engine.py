from decimal import Decimal

import pytest

from factoryline.extensions import db
from factoryline.models import BatchStatus, ProductionBatch
from factoryline.services.costing_engine import (
    BatchCost,
    compute_batch_cost,
    weighted_unit_cost_for_batch_material,
)
from factoryline.services.exceptions import CostingError
from factoryline.services.material_ledger import consume_fifo
from tests.helpers import add_lot, make_bottle, make_material, make_product


@pytest.fixture
def costed_batch(app_context):
    product = make_product()
    sugar = make_material('Sugar')
    add_lot(sugar, 5, 10, day=1)
    add_lot(sugar, 5, 12, day=2)
    bottle = make_bottle('250ml', 250, '0.5', stock=100)
    batch = ProductionBatch(
        batch_code='COST-1', product_id=product.id, status=BatchStatus.IN_PROGRESS, planned_items=[]
    )
    db.session.add(batch)
    db.session.flush()
    consume_fifo(sugar.id, 7, batch.id)
    return batch, sugar, bottle


def test_material_cost_comes_from_consumed_lots(costed_batch):
    batch, sugar, bottle = costed_batch

    cost = compute_batch_cost(batch.id, [{'bottle_type_id': bottle.id, 'quantity': 40}])

    assert cost.material_cost == Decimal('74')
    assert cost.bottle_cost == Decimal('20')
    assert cost.total_cost == Decimal('94')
    assert cost.total_volume_ml == Decimal('10000')
    assert cost.unit_cost_per_ml == Decimal('0.0094')


def test_breakdown_lists_each_lot(costed_batch):
    batch, sugar, bottle = costed_batch

    breakdown = compute_batch_cost(batch.id, [{'bottle_type_id': bottle.id, 'quantity': 40}]).breakdown()

    [material] = breakdown['materials']
    assert material['material_id'] == sugar.id
    assert material['quantity'] == 7.0
    assert [(lot['quantity'], lot['unit_cost']) for lot in material['lots']] == [(5.0, 10.0), (2.0, 12.0)]
    assert breakdown['bottles'][0]['cost'] == 20.0
    assert breakdown['total_cost'] == 94.0


def test_expected_quantities_must_match_consumption(costed_batch):
    batch, sugar, bottle = costed_batch

    compute_batch_cost(batch.id, [], expected_materials={sugar.id: Decimal('7')})
    with pytest.raises(CostingError) as excinfo:
        compute_batch_cost(batch.id, [], expected_materials={sugar.id: Decimal('8')})

    assert excinfo.value.status_code == 500
    assert excinfo.value.details['consumed'] == 7.0


def test_weighted_unit_cost_for_material(costed_batch):
    batch, sugar, _ = costed_batch
    # (5 * 10 + 2 * 12) / 7
    assert weighted_unit_cost_for_batch_material(batch.id, sugar.id) == Decimal('74') / Decimal('7')


def test_zero_volume_does_not_divide():
    cost = BatchCost(material_cost=Decimal('5'))
    assert cost.unit_cost_per_ml == Decimal('0')
    assert cost.material_cost_per_ml == Decimal('0')
