"""
This module defines the Pydantic models used for authentication.
These models are used for request and response validation and serialization.
"""
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, field_serializer


class UserRole(str, Enum):
    """Roles stored in the user_profiles collection."""
    ADMIN = "admin"
    EMPLOYEE = "employee"


class Session(BaseModel):
    """
    The signed-in user's session, built once per request from the verified ID token
    and the user's profile and handed to routes by dependency injection.
    """
    userId: str
    email: Optional[str] = None
    role: Optional[UserRole] = None
    authTime: Optional[datetime] = None
    expiresAt: Optional[datetime] = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @field_serializer('authTime', 'expiresAt')
    def serialize_datetime(self, value: Optional[datetime]) -> Optional[str]:
        """Serialize datetime to ISO format string."""
        return value.isoformat() if value else None


class SignOutResult(BaseModel):
    """Outcome of a sign-out request."""
    userId: str
    tokensRevoked: bool
    cartDiscarded: bool
