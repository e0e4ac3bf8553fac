"""Authentication records: credentials, sessions and verification tokens."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tipqr.db.base import Base, IdMixin, TimestampMixin


class AuthAccount(Base, IdMixin, TimestampMixin):
    """A login method for a user. Only the ``credential`` provider is used."""

    __tablename__ = "auth_accounts"

    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    provider_id: Mapped[str] = mapped_column(String(50), default="credential", nullable=False)
    account_id: Mapped[str] = mapped_column(String(255), nullable=False)
    password_hash: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    user = relationship("User")


class AuthSession(Base, IdMixin, TimestampMixin):
    """A server-side session. ``token`` is carried as the JWT ``jti``."""

    __tablename__ = "auth_sessions"

    token: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    ip_address: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)

    user = relationship("User")


class Verification(Base, IdMixin, TimestampMixin):
    """Email verification token."""

    __tablename__ = "verifications"

    identifier: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    value: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
