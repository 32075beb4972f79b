from __future__ import annotations

import logging

from flask import jsonify
from sqlalchemy.exc import SQLAlchemyError

from .extensions import db, login_manager

logger = logging.getLogger(__name__)

BEARER_PREFIX = "bearer "


def configure_login_manager(app):
    """Attach Flask-Login handlers: bearer tokens for the JSON API, JSON 401s."""
    login_manager.init_app(app)

    @login_manager.unauthorized_handler
    def _unauthorized():
        return jsonify({
            "success": False,
            "error": "unauthorized",
            "message": "Authentication required",
            "details": {},
        }), 401

    @login_manager.user_loader
    def load_user(user_id: str):
        from .models import User

        try:
            user = db.session.get(User, int(user_id))
        except (ValueError, TypeError):
            return None
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("User lookup failed for id %s", user_id)
            return None
        return user if user and user.is_active else None

    @login_manager.request_loader
    def load_user_from_request(request):
        token = _bearer_token(request.headers.get("Authorization", ""))
        if not token:
            return None

        from .models import User

        try:
            user = User.query.filter_by(api_token=token).first()
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("Token lookup failed")
            return None
        if not user or not user.is_active:
            return None
        return user


def _bearer_token(header: str) -> str | None:
    if not header or not header.lower().startswith(BEARER_PREFIX):
        return None
    token = header[len(BEARER_PREFIX):].strip()
    return token or None
