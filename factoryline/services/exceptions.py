"""Errors raised by the production services.

Every error carries an HTTP ``status_code``, a machine-readable ``error_code``
and a ``details`` mapping so the API layer can render it without inspecting
the concrete type.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional


class ProductionError(Exception):
    status_code = 500
    error_code = "production_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": False,
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(ProductionError):
    status_code = 400
    error_code = "validation_error"

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        details = dict(details or {})
        if field:
            details.setdefault("field", field)
        super().__init__(message, details)
        self.field = field


class NotFoundError(ProductionError):
    status_code = 404
    error_code = "not_found"

    def __init__(self, entity: str, identifier: Any):
        self.entity = entity
        self.identifier = identifier
        super().__init__(f"{entity} {identifier} not found", {"entity": entity, "id": identifier})


class ConflictError(ProductionError):
    status_code = 409
    error_code = "conflict"

    def __init__(self, message: str, current_status: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        details = dict(details or {})
        if current_status is not None:
            details.setdefault("current_status", current_status)
        super().__init__(message, details)
        self.current_status = current_status


class InsufficientStockError(ProductionError):
    """Raised when counters cannot cover a start or a completion."""

    status_code = 409
    error_code = "insufficient_stock"

    def __init__(self, message: str, shortages: Iterable[Dict[str, Any]]):
        self.shortages: List[Dict[str, Any]] = list(shortages)
        super().__init__(message, {"shortages": self.shortages})


class InsufficientLotsError(ProductionError):
    """Raised when the lot ledger holds less than the counter promised."""

    status_code = 409
    error_code = "insufficient_lots"

    def __init__(self, material_id: int, material_name: str, needed: Decimal, available: Decimal):
        self.material_id = material_id
        self.material_name = material_name
        self.needed = needed
        self.available = available
        super().__init__(
            f"Lot ledger for {material_name} holds {available}, {needed} required",
            {
                "material_id": material_id,
                "material_name": material_name,
                "needed": float(needed),
                "available": float(available),
            },
        )


class PermissionDenied(ProductionError, PermissionError):
    status_code = 403
    error_code = "permission_denied"

    def __init__(self, message: str = "You do not have permission to perform this action"):
        super().__init__(message)


class CostingError(ProductionError):
    """Raised when a completed batch cannot be costed; completion must not proceed."""

    status_code = 500
    error_code = "costing_failed"
