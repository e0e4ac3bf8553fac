"""User schemas."""

from datetime import datetime
from typing import Optional

from tipqr.core.rbac import UserRole
from tipqr.schemas.base import APIModel, RequestModel


class UserResponse(APIModel):
    id: str
    name: str
    email: str
    email_verified: bool
    image: Optional[str] = None
    role: UserRole
    created_at: datetime
    updated_at: datetime


class RoleChange(RequestModel):
    """Self-service role switch. Validated in the service for precise error codes."""

    role: Optional[str] = None


class AdminRoleChange(RequestModel):
    user_id: Optional[str] = None
    role: Optional[str] = None
