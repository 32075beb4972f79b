from flask import Blueprint

api_bp = Blueprint('api', __name__)

from .production_routes import production_api_bp
from .stock_routes import stock_api_bp
from .report_routes import report_api_bp

api_bp.register_blueprint(production_api_bp)
api_bp.register_blueprint(stock_api_bp)
api_bp.register_blueprint(report_api_bp)
