from flask import Blueprint, request
from flask_login import login_required

from ...services.production_planning import ProductionPlanService
from ...utils.api_responses import APIResponse

report_api_bp = Blueprint('report_api', __name__)


@report_api_bp.route('/reports/production-plan', methods=['GET'])
@login_required
def production_plan():
    report = ProductionPlanService.build_report(
        request.args.get('start_date'),
        request.args.get('end_date'),
        force_refresh=request.args.get('refresh') in ('1', 'true'),
    )
    return APIResponse.success({'report': report})


@report_api_bp.route('/reports/production-plan/calculate', methods=['POST'])
@login_required
def calculate_production_plan():
    data = APIResponse.json_body()
    report = ProductionPlanService.calculate(data.get('items'))
    return APIResponse.success({'report': report})
