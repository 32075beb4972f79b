"""JSON API: bearer auth, success payloads and the error envelope."""

import pytest

from factoryline.extensions import db
from factoryline.models import BottleType, ProductionBatch
from tests.helpers import auth_headers, make_user


@pytest.fixture
def headers(plant):
    return auth_headers(plant.operator_token)


@pytest.fixture
def admin_headers(plant):
    return auth_headers(plant.admin_token)


def _create(client, plant, headers, code='B-001', quantity=100):
    return client.post('/api/production', headers=headers, json={
        'batch_code': code,
        'product_id': plant.product_id,
        'planned_items': [{'bottle_type_id': plant.bottle_id, 'quantity': quantity}],
        'planned_date': '2024-05-01',
        'planned_notes': 'Morning shift',
    })


def _completion(plant):
    return {
        'action': 'complete',
        'actual_items': [{'bottle_type_id': plant.bottle_id, 'quantity': 100, 'defects': 5}],
        'actual_materials': [{'material_id': plant.material_id, 'quantity_used': 8}],
    }


def test_health_is_public(client):
    response = client.get('/health')
    assert response.status_code == 200
    assert response.get_json()['status'] == 'ok'


@pytest.mark.parametrize('header', [None, 'Bearer not-a-token', 'Token abc'])
def test_api_requires_bearer_token(client, plant, header):
    headers = {'Authorization': header} if header else {}
    response = client.get('/api/production', headers=headers)

    assert response.status_code == 401
    body = response.get_json()
    assert body['success'] is False
    assert body['error'] == 'unauthorized'


def test_inactive_user_is_rejected(app, client):
    with app.app_context():
        token = make_user('gone@example.com', is_active=False).api_token
    assert client.get('/api/production', headers=auth_headers(token)).status_code == 401


def test_create_and_list_batches(client, plant, headers):
    response = _create(client, plant, headers)

    assert response.status_code == 201
    body = response.get_json()
    assert body['success'] is True
    assert body['message'] == 'Batch planned'
    assert body['data']['batch']['batch_code'] == 'B-001'
    assert body['data']['batch']['planned_notes'] == 'Morning shift'
    assert body['data']['total_volume_liters'] == 25.0

    listed = client.get('/api/production?status=planned', headers=headers).get_json()['data']
    assert [b['batch_code'] for b in listed] == ['B-001']
    assert client.get('/api/production?status=completed', headers=headers).get_json()['data'] == []

    by_code = client.get('/api/production/B-001', headers=headers)
    assert by_code.status_code == 200
    assert by_code.get_json()['data']['batch']['batch_code'] == 'B-001'
    assert client.get('/api/production/NOPE-1', headers=headers).status_code == 404


def test_create_with_shortage_returns_warning(client, plant, headers):
    body = _create(client, plant, headers, quantity=400).get_json()

    assert body['message'] == 'Batch planned with insufficient materials'
    assert body['data']['has_warning'] is True
    assert body['data']['insufficient_materials'][0]['shortage'] == 20.0


def test_create_errors_use_envelope(client, plant, headers):
    _create(client, plant, headers)

    duplicate = _create(client, plant, headers)
    assert duplicate.status_code == 409
    assert duplicate.get_json()['error'] == 'conflict'

    not_an_object = client.post('/api/production', headers=headers, json=[1, 2])
    assert not_an_object.status_code == 400
    assert not_an_object.get_json()['error'] == 'validation_error'

    unknown_product = client.post('/api/production', headers=headers, json={
        'batch_code': 'B-9', 'product_id': 999, 'planned_items': [{'bottle_type_id': plant.bottle_id, 'quantity': 1}],
    })
    assert unknown_product.status_code == 404
    assert unknown_product.get_json()['details'] == {'entity': 'Product', 'id': 999}


def test_lifecycle_over_http(app, client, plant, headers):
    batch_id = _create(client, plant, headers).get_json()['data']['batch']['id']

    started = client.patch(f'/api/production/{batch_id}', headers=headers, json={'action': 'start'})
    assert started.status_code == 200
    assert started.get_json()['data']['status'] == 'in_progress'

    completed = client.patch(f'/api/production/{batch_id}', headers=headers, json=_completion(plant))
    assert completed.status_code == 200
    data = completed.get_json()['data']
    assert data['status'] == 'completed'
    assert data['total_cost'] == 136.0
    assert data['unit_cost_per_ml'] == 0.00544

    again = client.patch(f'/api/production/{batch_id}', headers=headers, json=_completion(plant))
    assert again.status_code == 409
    assert again.get_json()['details']['current_status'] == 'completed'

    detail = client.get(f'/api/production/{batch_id}', headers=headers).get_json()['data']
    assert detail['finished_goods'][0]['quantity'] == 95

    with app.app_context():
        assert db.session.get(BottleType, plant.bottle_id).stock == 50


def test_patch_validation(client, plant, headers):
    batch_id = _create(client, plant, headers).get_json()['data']['batch']['id']

    missing = client.patch(f'/api/production/{batch_id}', headers=headers, json={})
    assert missing.status_code == 400
    assert missing.get_json()['details']['field'] == 'action'

    unknown = client.patch(f'/api/production/{batch_id}', headers=headers, json={'action': 'pause'})
    assert unknown.status_code == 400

    not_found = client.patch('/api/production/9999', headers=headers, json={'action': 'start'})
    assert not_found.status_code == 404
    assert not_found.get_json()['error'] == 'not_found'


def test_start_shortage_is_conflict(client, plant, headers):
    batch_id = _create(client, plant, headers, quantity=400).get_json()['data']['batch']['id']

    response = client.patch(f'/api/production/{batch_id}', headers=headers, json={'action': 'start'})

    assert response.status_code == 409
    body = response.get_json()
    assert body['error'] == 'insufficient_stock'
    assert body['details']['shortages'][0]['material_name'] == 'matA'


def test_delete_is_admin_only(app, client, plant, headers, admin_headers):
    batch_id = _create(client, plant, headers).get_json()['data']['batch']['id']

    forbidden = client.delete(f'/api/production/{batch_id}', headers=headers)
    assert forbidden.status_code == 403
    assert forbidden.get_json()['error'] == 'permission_denied'

    deleted = client.delete(f'/api/production/{batch_id}', headers=admin_headers)
    assert deleted.status_code == 200
    with app.app_context():
        assert db.session.get(ProductionBatch, batch_id) is None


def test_availability_and_batch_code(client, plant, headers):
    response = client.get(
        f'/api/production/availability?product_id={plant.product_id}&volume_liters=50', headers=headers
    )
    body = response.get_json()['data']
    assert body['is_sufficient'] is False
    assert body['insufficient_materials'][0]['shortage'] == 5.0

    missing = client.get('/api/production/availability?volume_liters=5', headers=headers)
    assert missing.status_code == 400

    code = client.get('/api/production/generate-batch-code?year=2024', headers=headers).get_json()['data']
    assert code['batch_code'].endswith('-2024-0001')


def test_receive_material_and_ledger(client, plant, headers):
    response = client.post(f'/api/raw-materials/{plant.material_id}/receive', headers=headers, json={
        'quantity': 4, 'unit_price': 15, 'acquired_at': '2024-01-03', 'notes': 'Invoice 77',
    })

    assert response.status_code == 201
    data = response.get_json()['data']
    assert data['lot']['quantity_remaining'] == 4.0
    assert data['material']['current_stock'] == 14.0
    assert data['transaction']['created_at'].startswith('2024-01-03')

    ledger = client.get(f'/api/raw-materials/{plant.material_id}/ledger', headers=headers).get_json()['data']
    assert [lot['unit_cost'] for lot in ledger['lots']] == [10.0, 12.0, 15.0]
    assert ledger['sync']['is_valid'] is True
    assert ledger['sync']['ledger_total'] == 14.0


@pytest.mark.parametrize('payload', [
    {'quantity': 0, 'unit_price': 1},
    {'quantity': 2, 'unit_price': 'free'},
    {'quantity': 2, 'unit_price': 1, 'acquired_at': 'yesterday'},
])
def test_receive_material_validation(client, plant, headers, payload):
    response = client.post(f'/api/raw-materials/{plant.material_id}/receive', headers=headers, json=payload)
    assert response.status_code == 400
    assert response.get_json()['error'] == 'validation_error'


def test_receive_bottles(client, plant, headers):
    response = client.post(f'/api/bottle-types/{plant.bottle_id}/receive', headers=headers, json={'quantity': 50})

    assert response.status_code == 201
    assert response.get_json()['data']['bottle_type']['stock'] == 200

    unknown = client.post('/api/bottle-types/999/receive', headers=headers, json={'quantity': 5})
    assert unknown.status_code == 404


def test_damage_write_offs_and_movement_history(client, plant, headers):
    material = client.post(f'/api/raw-materials/{plant.material_id}/damage', headers=headers, json={
        'quantity': 7, 'notes': 'Spoiled in storage',
    })
    assert material.status_code == 201
    data = material.get_json()['data']
    assert data['transaction']['transaction_type'] == 'damage'
    assert data['transaction']['total_price'] == 74.0
    assert [usage['production_batch_id'] for usage in data['lot_usage']] == [None, None]
    assert data['material']['current_stock'] == 3.0

    bottles = client.post(f'/api/bottle-types/{plant.bottle_id}/damage', headers=headers, json={'quantity': 10})
    assert bottles.status_code == 201
    assert bottles.get_json()['data']['bottle_type']['stock'] == 140

    too_many = client.post(f'/api/bottle-types/{plant.bottle_id}/damage', headers=headers, json={'quantity': 500})
    assert too_many.status_code == 409
    assert too_many.get_json()['error'] == 'insufficient_stock'

    history = client.get(
        f'/api/stock-transactions?raw_material_id={plant.material_id}', headers=headers
    ).get_json()['data']
    assert [row['transaction_type'] for row in history] == ['damage', 'in', 'in']
    assert history[0]['material_name'] == 'matA'
    assert len(client.get('/api/stock-transactions?limit=1', headers=headers).get_json()['data']) == 1

    bottle_history = client.get('/api/bottle-stock-transactions', headers=headers).get_json()['data']
    assert [(row['transaction_type'], row['quantity']) for row in bottle_history] == [('damage', 10)]
    assert bottle_history[0]['size'] == '250ml'

    bad_filter = client.get('/api/stock-transactions?raw_material_id=abc', headers=headers)
    assert bad_filter.status_code == 400


def test_production_plan_endpoints(client, plant, headers):
    report = client.get(
        '/api/reports/production-plan?start_date=2024-06-01&end_date=2024-06-30', headers=headers
    ).get_json()['data']['report']
    assert report['summary'] == []
    assert report['totals']['total_bottles'] == 0

    bad_range = client.get(
        '/api/reports/production-plan?start_date=2024-06-30&end_date=2024-06-01', headers=headers
    )
    assert bad_range.status_code == 400

    empty = client.post('/api/reports/production-plan/calculate', headers=headers, json={'items': []})
    assert empty.status_code == 400
    assert empty.get_json()['message'] == 'No items provided'


def test_unknown_route_uses_envelope(client, headers):
    response = client.get('/api/nothing-here', headers=headers)
    assert response.status_code == 404
    assert response.get_json()['success'] is False
