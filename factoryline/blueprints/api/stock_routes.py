import logging

from flask import Blueprint, request
from flask_login import current_user, login_required

from ...extensions import db
from ...models import RawMaterial, RawMaterialLot
from ...services.exceptions import NotFoundError, ValidationError
from ...services.material_ledger import (
    bottle_movements,
    material_movements,
    receive_bottles,
    receive_material,
    validate_ledger_sync,
    write_off_bottles,
    write_off_material,
)
from ...utils.api_responses import APIResponse
from ...utils.quantities import as_float
from ...utils.timezone_utils import TimezoneUtils

logger = logging.getLogger(__name__)

stock_api_bp = Blueprint('stock_api', __name__)


@stock_api_bp.route('/raw-materials/<int:material_id>/receive', methods=['POST'])
@login_required
def receive_raw_material(material_id):
    data = APIResponse.json_body()
    acquired_at = data.get('acquired_at')
    try:
        acquired = TimezoneUtils.parse_iso_timestamp(acquired_at)
    except ValueError:
        raise ValidationError('acquired_at must be an ISO date or datetime', field='acquired_at')
    transaction, lot = receive_material(
        material_id,
        quantity=data.get('quantity'),
        unit_price=data.get('unit_price'),
        acquired_at=acquired,
        notes=data.get('notes'),
        actor_id=current_user.id,
    )
    material = db.session.get(RawMaterial, material_id)
    return APIResponse.success({
        'transaction': transaction.to_dict(),
        'lot': lot.to_dict(),
        'material': material.to_dict(),
    }, message='Material received', status_code=201)


@stock_api_bp.route('/raw-materials/<int:material_id>/ledger', methods=['GET'])
@login_required
def material_ledger(material_id):
    material = db.session.get(RawMaterial, material_id)
    if not material:
        raise NotFoundError('RawMaterial', material_id)
    lots = (
        RawMaterialLot.query.filter_by(raw_material_id=material.id)
        .order_by(RawMaterialLot.acquired_at.asc(), RawMaterialLot.id.asc())
        .all()
    )
    is_valid, message, counter, total = validate_ledger_sync(material.id)
    return APIResponse.success({
        'material': material.to_dict(),
        'lots': [lot.to_dict() for lot in lots],
        'sync': {
            'is_valid': is_valid,
            'message': message,
            'counter': as_float(counter),
            'ledger_total': as_float(total),
        },
    })


@stock_api_bp.route('/bottle-types/<int:bottle_type_id>/receive', methods=['POST'])
@login_required
def receive_bottle_type(bottle_type_id):
    data = APIResponse.json_body()
    transaction = receive_bottles(
        bottle_type_id,
        quantity=data.get('quantity'),
        notes=data.get('notes'),
        unit_price=data.get('unit_price'),
        actor_id=current_user.id,
    )
    return APIResponse.success({
        'transaction': transaction.to_dict(),
        'bottle_type': transaction.bottle_type.to_dict(),
    }, message='Bottles received', status_code=201)


@stock_api_bp.route('/raw-materials/<int:material_id>/damage', methods=['POST'])
@login_required
def write_off_raw_material(material_id):
    data = APIResponse.json_body()
    transaction, usages = write_off_material(
        material_id,
        quantity=data.get('quantity'),
        notes=data.get('notes'),
        actor_id=current_user.id,
    )
    material = db.session.get(RawMaterial, material_id)
    return APIResponse.success({
        'transaction': transaction.to_dict(),
        'lot_usage': [usage.to_dict() for usage in usages],
        'material': material.to_dict(),
    }, message='Damaged material written off', status_code=201)


@stock_api_bp.route('/bottle-types/<int:bottle_type_id>/damage', methods=['POST'])
@login_required
def write_off_bottle_type(bottle_type_id):
    data = APIResponse.json_body()
    transaction = write_off_bottles(
        bottle_type_id,
        quantity=data.get('quantity'),
        notes=data.get('notes'),
        actor_id=current_user.id,
    )
    return APIResponse.success({
        'transaction': transaction.to_dict(),
        'bottle_type': transaction.bottle_type.to_dict(),
    }, message='Damaged bottles written off', status_code=201)


def _int_arg(name: str):
    raw = request.args.get(name)
    if raw in (None, ''):
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f'{name} must be an integer', field=name)


@stock_api_bp.route('/stock-transactions', methods=['GET'])
@login_required
def list_stock_transactions():
    return APIResponse.success(material_movements(
        material_id=_int_arg('raw_material_id'),
        limit=_int_arg('limit'),
    ))


@stock_api_bp.route('/bottle-stock-transactions', methods=['GET'])
@login_required
def list_bottle_stock_transactions():
    return APIResponse.success(bottle_movements(
        bottle_type_id=_int_arg('bottle_type_id'),
        limit=_int_arg('limit'),
    ))
