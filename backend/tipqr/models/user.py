"""User model."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import Boolean, Enum, String
from sqlalchemy.orm import Mapped, mapped_column, validates

from tipqr.core.rbac import UserRole
from tipqr.db.base import Base, IdMixin, TimestampMixin
from tipqr.models.validators import not_blank


class User(Base, IdMixin, TimestampMixin):
    """Platform account. Credentials live in ``AuthAccount``."""

    __tablename__ = "users"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    email_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    image: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, native_enum=False, length=20, values_callable=lambda e: [m.value for m in e]),
        default=UserRole.OWNER,
        nullable=False,
        index=True,
    )

    @validates("name", "email")
    def _validate_required(self, key, value):
        return not_blank(key, value)
