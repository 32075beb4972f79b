"""Global resilience and error-handler registration.

Synopsis:
Registers teardown and error handlers for database rollback safety and
renders every failure as the JSON error envelope used by the API.

Glossary:
- Error envelope: ``{"success": false, "error", "message", "details"}``.
"""

from __future__ import annotations

import logging

from flask import jsonify, request
from sqlalchemy.exc import DBAPIError, OperationalError, SQLAlchemyError
from werkzeug.exceptions import HTTPException

from .extensions import db
from .services.exceptions import ProductionError

logger = logging.getLogger(__name__)


def _envelope(error: str, message: str, status: int, details=None):
    return jsonify({
        "success": False,
        "error": error,
        "message": message,
        "details": details or {},
    }), status


def register_resilience_handlers(app) -> None:
    """Install global DB rollback and JSON error handlers."""

    @app.teardown_request
    def _rollback_on_error(exc):
        if exc is not None:
            db.session.rollback()

    @app.errorhandler(ProductionError)
    def _production_error_handler(error: ProductionError):
        if error.status_code >= 500:
            logger.error("%s on %s %s: %s", error.error_code, request.method, request.path, error.message)
        else:
            logger.info("%s on %s %s: %s", error.error_code, request.method, request.path, error.message)
        body = error.to_dict()
        return jsonify(body), error.status_code

    @app.errorhandler(OperationalError)
    @app.errorhandler(DBAPIError)
    def _db_unavailable_handler(_error):
        db.session.rollback()
        logger.exception("Database unavailable during %s %s", request.method, request.path)
        return _envelope("service_unavailable", "Service temporarily unavailable. Please try again shortly.", 503)

    @app.errorhandler(SQLAlchemyError)
    def _storage_error_handler(_error):
        db.session.rollback()
        logger.exception("Storage failure during %s %s", request.method, request.path)
        return _envelope("internal_error", "An unexpected storage error occurred", 500)

    @app.errorhandler(HTTPException)
    def _http_error_handler(error: HTTPException):
        code = (error.name or "error").lower().replace(" ", "_")
        return _envelope(code, error.description or error.name, error.code or 500)
