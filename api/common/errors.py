"""
Typed errors raised by the service layer.

Every error carries a ``kind`` so routers (and API clients) can branch on the
category of failure instead of matching message strings.
"""
from typing import Any, Dict, Optional

from starlette import status


class PosError(Exception):
    """Base exception for all application errors."""
    kind = "error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: Optional[int] = None,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        rv = dict(self.details)
        rv["kind"] = self.kind
        return rv


class ValidationFailedError(PosError):
    """Request rejected before any backend call was made."""
    kind = "validation"
    status_code = status.HTTP_400_BAD_REQUEST


class StockLimitExceededError(ValidationFailedError):
    """A cart quantity would exceed the stock known when the product was added."""

    def __init__(self, product_id: str, product_name: str, available: int):
        message = f"Only {available} units of {product_name} available in stock."
        super().__init__(message, details={
            "productId": product_id,
            "productName": product_name,
            "available": available,
        })


class NotFoundError(PosError):
    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class PermissionDeniedError(PosError):
    kind = "permission"
    status_code = status.HTTP_403_FORBIDDEN


class ConflictError(PosError):
    kind = "conflict"
    status_code = status.HTTP_409_CONFLICT


class StockConflictError(ConflictError):
    """Live stock dropped below the requested quantity before checkout committed."""
    kind = "stock_conflict"

    def __init__(self, product_id: str, product_name: str, requested: int, available: int):
        short_by = requested - available
        message = (
            f"Insufficient stock for {product_name}: requested {requested}, "
            f"available {available} (short by {short_by})"
        )
        super().__init__(message, details={
            "productId": product_id,
            "productName": product_name,
            "requested": requested,
            "available": available,
            "shortBy": short_by,
        })


class TransportError(PosError):
    """The backend failed; ``message`` is the vendor's message, unchanged."""
    kind = "transport"
    status_code = status.HTTP_502_BAD_GATEWAY
