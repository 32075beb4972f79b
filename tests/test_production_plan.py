from datetime import date
from types import SimpleNamespace

import pytest

from factoryline import create_app
from factoryline.extensions import db
from factoryline.services.exceptions import ValidationError
from factoryline.services.production_planning import ProductionPlanService
from tests.helpers import (
    add_lot,
    add_recipe_line,
    add_variation,
    make_bottle,
    make_material,
    make_order,
    make_product,
    make_sellable,
)


def _seed_catalog():
    """JUICE: recipe 0.3 kg/L of matA at an average of 11, so 3.3 per liter."""
    product = make_product('P1')
    material = make_material('matA')
    add_recipe_line(product, material, '0.3')
    add_lot(material, 5, 10, day=1)
    add_lot(material, 5, 12, day=2)
    small = make_bottle('250ml', 250, '0.5', stock=150)
    large = make_bottle('1L', 1000, '1.2', stock=3, average_price='1.0')
    juice = make_sellable('JUICE', product, small, name='Orange juice')
    liter = add_variation(juice, large)
    return SimpleNamespace(product=product, material=material, small=small, large=large, juice=juice, liter=liter)


@pytest.fixture
def catalog(app_context):
    return _seed_catalog()


def _seed_orders(c):
    make_order('O-1', '2024-06-03', [(c.juice, 10, None, None), (c.juice, 4, c.liter, '1L')])
    make_order('O-2', '2024-06-05', [(c.juice, 6, None, None)])
    make_order('O-3', '2024-06-04', [(c.juice, 100, None, None)], status='cancelled')
    make_order('O-4', '2024-07-01', [(c.juice, 50, None, None)])


def test_historical_report_groups_by_product_and_bottle(catalog):
    _seed_orders(catalog)

    report = ProductionPlanService.build_report('2024-06-01', '2024-06-30')

    small, large = report['summary']
    assert (small['bottle_size'], small['total_quantity']) == ('250ml', 16)
    assert small['material_cost_per_bottle'] == 0.825
    assert small['bottle_cost_per_bottle'] == 0.5
    assert small['total_cost'] == 21.2
    assert [o['order_number'] for o in small['orders']] == ['O-1', 'O-2']
    assert (large['bottle_size'], large['total_quantity']) == ('1L', 4)
    assert large['bottle_cost_per_bottle'] == 1.0
    assert large['total_cost'] == 17.2

    assert report['totals'] == {
        'total_bottles': 20,
        'total_volume_liters': 8.0,
        'total_material_cost': 26.4,
        'total_bottle_cost': 12.0,
        'total_cost': 38.4,
    }
    [material] = report['materials_summary']
    assert material['total_quantity'] == 2.4
    assert material['total_cost'] == 26.4
    assert 'is_sufficient' not in material


def test_historical_report_by_date(catalog):
    _seed_orders(catalog)

    report = ProductionPlanService.build_report(date(2024, 6, 1), date(2024, 6, 30))

    assert [group['date'] for group in report['by_date']] == ['2024-06-03', '2024-06-05']
    first = report['by_date'][0]
    assert first['date_totals'] == {'total_bottles': 14, 'total_volume_liters': 6.5, 'total_cost': 30.45}
    assert len(first['products']) == 2


def test_cancelled_and_out_of_range_orders_are_ignored(catalog):
    _seed_orders(catalog)

    report = ProductionPlanService.build_report('2024-06-04', '2024-06-04')

    assert report['summary'] == []
    assert report['totals']['total_bottles'] == 0


def test_unknown_variation_falls_back_to_default_bottle(catalog):
    make_order('O-9', '2024-06-03', [(catalog.juice, 2, SimpleNamespace(id=999), None)])

    report = ProductionPlanService.build_report('2024-06-03', '2024-06-03')

    assert report['summary'][0]['bottle_type_id'] == catalog.small.id


def test_missing_bottle_uses_size_hint_placeholder(catalog):
    loose = make_sellable('SYRUP', catalog.product)
    make_order('O-5', '2024-06-03', [(loose, 3, None, '5L'), (loose, 2, None, '10L')])

    report = ProductionPlanService.build_report('2024-06-03', '2024-06-03')

    sizes = {row['bottle_size']: row for row in report['summary']}
    assert set(sizes) == {'5L', '10L'}
    assert sizes['5L']['bottle_type_id'] is None
    assert sizes['5L']['capacity_ml'] == 0
    assert sizes['5L']['total_cost'] == 0.0


@pytest.mark.parametrize('start, end', [
    ('2024-06-30', '2024-06-01'),
    (None, '2024-06-01'),
    ('June 1st', '2024-06-30'),
])
def test_report_date_validation(catalog, start, end):
    with pytest.raises(ValidationError):
        ProductionPlanService.build_report(start, end)


def test_manual_plan_uses_first_variation(catalog):
    report = ProductionPlanService.calculate([{'sellable_product_id': catalog.juice.id, 'quantity': 8}])

    [row] = report['summary']
    assert row['bottle_type_id'] == catalog.large.id
    assert row['total_cost'] == 34.4
    assert report['by_date'] == []

    [material] = report['materials_summary']
    assert material['total_quantity'] == 2.4
    assert material['current_stock'] == 10.0
    assert material['is_sufficient'] is True

    [bottle] = report['bottle_summary']
    assert bottle['total_quantity'] == 8
    assert bottle['current_stock'] == 3
    assert bottle['is_sufficient'] is False


def test_manual_plan_flags_material_shortage(catalog):
    report = ProductionPlanService.calculate([
        {'sellable_product_id': catalog.juice.id, 'variation_id': catalog.liter.id, 'quantity': 200},
    ])

    [material] = report['materials_summary']
    assert material['total_quantity'] == 60.0
    assert material['is_sufficient'] is False


def test_manual_plan_unknown_variation_is_placeholder(catalog):
    report = ProductionPlanService.calculate([
        {'sellable_product_id': catalog.juice.id, 'variation_id': 999, 'quantity': 5},
        {'sellable_product_id': 4242, 'quantity': 5},
    ])

    [row] = report['summary']
    assert row['bottle_type_id'] is None
    assert row['total_cost'] == 0.0
    assert report['bottle_summary'] == []
    assert report['materials_summary'][0]['total_quantity'] == 0.0


@pytest.mark.parametrize('items', [
    None,
    [],
    [{'sellable_product_id': 1, 'quantity': -1}],
    [{'quantity': 2}],
    [{'sellable_product_id': 1, 'quantity': 2}, {'sellable_product_id': 'x', 'quantity': 2}],
    [{'sellable_product_id': [1], 'quantity': 2}],
    [{'sellable_product_id': {'id': 1}, 'quantity': 2}],
    [{'sellable_product_id': 1, 'variation_id': [2], 'quantity': 2}],
])
def test_manual_plan_validation(catalog, items):
    with pytest.raises(ValidationError):
        ProductionPlanService.calculate(items)


def test_manual_plan_accepts_numeric_string_ids(catalog):
    report = ProductionPlanService.calculate([
        {'sellable_product_id': str(catalog.juice.id), 'variation_id': str(catalog.liter.id), 'quantity': 10},
    ])

    assert report['totals']['total_bottles'] == 10
    assert report['summary'][0]['bottle_type_id'] == catalog.large.id


@pytest.fixture
def cached_app():
    app = create_app({
        'TESTING': True,
        'DATABASE_URL': 'sqlite:///:memory:',
        'CACHE_TYPE': 'SimpleCache',
    })
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


def test_historical_report_is_cached_until_refresh(cached_app):
    catalog = _seed_catalog()
    make_order('O-1', '2024-06-03', [(catalog.juice, 10, None, None)])

    first = ProductionPlanService.build_report('2024-06-01', '2024-06-30')
    make_order('O-2', '2024-06-04', [(catalog.juice, 5, None, None)])

    assert ProductionPlanService.build_report('2024-06-01', '2024-06-30') == first
    refreshed = ProductionPlanService.build_report('2024-06-01', '2024-06-30', force_refresh=True)
    assert refreshed['totals']['total_bottles'] == 15
