"""Feature toggle model."""

from __future__ import annotations

import re

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column, validates

from tipqr.db.base import Base, IdMixin, TimestampMixin
from tipqr.models.validators import not_blank

TOGGLE_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


class FeatureToggle(Base, IdMixin, TimestampMixin):
    """Runtime switch, readable by everyone and writable by admins."""

    __tablename__ = "feature_toggles"

    key: Mapped[str] = mapped_column(String(100), unique=True, index=True, nullable=False)
    label: Mapped[str] = mapped_column(String(255), nullable=False)
    enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    audience: Mapped[str] = mapped_column(String(50), default="all", nullable=False)

    @validates("key")
    def _validate_key(self, key, value):
        if value is not None and not TOGGLE_KEY_PATTERN.match(value):
            raise ValueError(f"{key} may only contain letters, digits, '-' and '_'")
        return value

    @validates("label")
    def _validate_label(self, key, value):
        return not_blank(key, value)
