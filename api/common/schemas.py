"""
This module defines common Pydantic models used across multiple API modules.
These models represent shared data structures to ensure consistency throughout the application.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional, TypeVar, Generic, List, Any, Dict

from pydantic import BaseModel, field_validator

from api.common.errors import PosError


class TimestampMixin(BaseModel):
    """
    A mixin that adds created and updated timestamp fields to models.
    Firestore returns timezone-aware datetimes; strings are accepted in ISO format.
    """
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    @field_validator('createdAt', 'updatedAt', mode='before')
    @classmethod
    def parse_datetime(cls, value):
        if value is None or isinstance(value, datetime):
            return value

        if isinstance(value, str):
            try:
                return datetime.fromisoformat(value.replace("Z", "+00:00"))
            except ValueError:
                pass

        # Firestore sentinels such as SERVER_TIMESTAMP carry no value until the write is read back
        if not isinstance(value, (str, int, float)):
            return None

        return value


class JSendStatus(str, Enum):
    """
    JSend status options.
    """
    SUCCESS = "success"
    FAIL = "fail"
    ERROR = "error"


T = TypeVar('T')


class PaginationResponse(BaseModel, Generic[T]):
    """
    A generic model for paginated responses.
    """
    items: List[T]
    total: int
    page: int
    size: int
    pages: int


class JSendResponse(BaseModel, Generic[T]):
    """
    Base JSend response format as per https://github.com/omniti-labs/jsend
    """
    status: JSendStatus
    data: Optional[T] = None
    message: Optional[str] = None
    code: Optional[int] = None  # For error responses
    details: Optional[Dict[str, Any]] = None  # Error kind and context for typed errors

    @classmethod
    def success(cls, data: Any = None) -> 'JSendResponse':
        """Create a success response with data"""
        return cls(status=JSendStatus.SUCCESS, data=data)

    @classmethod
    def fail(cls, data: Dict[str, Any]) -> 'JSendResponse':
        """Create a fail response with validation errors or other data-related failures"""
        return cls(status=JSendStatus.FAIL, data=data)

    @classmethod
    def error(cls, message: str, code: Optional[int] = None, data: Any = None) -> 'JSendResponse':
        """Create an error response for system or unexpected errors"""
        return cls(status=JSendStatus.ERROR, message=message, code=code, data=data)

    @classmethod
    def from_error(cls, exc: PosError) -> 'JSendResponse':
        """Create an error response from a typed service error, keeping its kind and details"""
        return cls(
            status=JSendStatus.ERROR,
            message=exc.message,
            code=exc.status_code,
            details=exc.to_dict()
        )


def paginate(items: List[Any], limit: int, offset: int) -> Dict[str, Any]:
    """
    Slice an in-memory list and compute the pagination fields used by PaginationResponse.
    """
    total = len(items)
    page = offset // limit + 1 if limit > 0 else 1
    pages = (total + limit - 1) // limit if limit > 0 else 0
    return {
        "items": items[offset:offset + limit],
        "total": total,
        "page": page,
        "size": limit,
        "pages": pages,
    }
