import logging

from flask import Blueprint, request
from flask_login import current_user, login_required

from ...extensions import limiter
from ...services.batch_service import BatchOperationsService, BatchService
from ...services.exceptions import ValidationError
from ...services.stock_check import MaterialAvailabilityService
from ...utils.api_responses import APIResponse

logger = logging.getLogger(__name__)

production_api_bp = Blueprint('production_api', __name__)


def _actor():
    return current_user._get_current_object()


def _int_arg(name: str):
    raw = request.args.get(name)
    if raw in (None, ''):
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f'{name} must be an integer', field=name)


@production_api_bp.route('/production', methods=['POST'])
@login_required
@limiter.limit("120 per minute")
def create_production_batch():
    """Plan a batch; material shortages come back as a warning, not an error."""
    data = APIResponse.json_body()
    result = BatchOperationsService.create_batch(
        batch_code=data.get('batch_code'),
        product_id=data.get('product_id'),
        planned_items=data.get('planned_items'),
        planned_date=data.get('planned_date'),
        notes=data.get('planned_notes') or data.get('notes'),
        actor=_actor(),
    )
    message = 'Batch planned with insufficient materials' if result['has_warning'] else 'Batch planned'
    return APIResponse.success(result, message=message, status_code=201)


@production_api_bp.route('/production', methods=['GET'])
@login_required
def list_production_batches():
    batches = BatchService.list_batches(
        product_id=_int_arg('product_id'),
        status=request.args.get('status'),
        limit=_int_arg('limit'),
    )
    return APIResponse.success(batches)


@production_api_bp.route('/production/generate-batch-code', methods=['GET'])
@login_required
def generate_batch_code():
    code = BatchService.next_batch_code(request.args.get('year'))
    return APIResponse.success({'batch_code': code})


@production_api_bp.route('/production/availability', methods=['GET'])
@login_required
def check_availability():
    product_id = _int_arg('product_id')
    if product_id is None:
        raise ValidationError('product_id is required', field='product_id')
    volume = request.args.get('volume_liters')
    if volume in (None, ''):
        raise ValidationError('volume_liters is required', field='volume_liters')
    result = MaterialAvailabilityService.check(product_id, volume)
    return APIResponse.success(result.to_dict())


@production_api_bp.route('/production/<batch_identifier>', methods=['GET'])
@login_required
def get_production_batch(batch_identifier):
    """Detail by numeric id or by batch code."""
    batch = BatchService.get_batch_by_identifier(batch_identifier)
    return APIResponse.success(BatchService.get_batch_detail(batch.id))


@production_api_bp.route('/production/<int:batch_id>', methods=['PATCH'])
@login_required
def transition_production_batch(batch_id):
    """Apply a lifecycle action: start, complete or cancel."""
    data = APIResponse.json_body()
    action = data.get('action')
    if not action:
        raise ValidationError('action is required', field='action')
    batch = BatchOperationsService.transition(batch_id, action, data, actor=_actor())
    return APIResponse.success(batch.to_dict(), message=f'Batch {action} succeeded')


@production_api_bp.route('/production/<int:batch_id>', methods=['DELETE'])
@login_required
def delete_production_batch(batch_id):
    BatchOperationsService.delete_batch(batch_id, actor=_actor())
    return APIResponse.success({'id': batch_id}, message='Batch deleted')
