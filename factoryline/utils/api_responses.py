from typing import Any, Dict

from flask import jsonify, request

from ..services.exceptions import ValidationError


class APIResponse:
    """Standardized API response handler"""

    @staticmethod
    def success(data: Any = None, message: str = "Success", status_code: int = 200):
        """Standard success response"""
        response_data = {
            'success': True,
            'message': message,
            'data': data
        }
        return jsonify(response_data), status_code

    @staticmethod
    def json_body() -> Dict[str, Any]:
        """Request JSON object; an empty body reads as {}."""
        if not request.data:
            return {}
        payload = request.get_json(silent=True)
        if not isinstance(payload, dict):
            raise ValidationError('Request body must be a JSON object')
        return payload
