"""Restaurant (tenant) model."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from tipqr.db.base import Base, CreatedAtMixin, IdMixin
from tipqr.models.validators import not_blank


class Restaurant(Base, IdMixin, CreatedAtMixin):
    """A venue owned by exactly one user. ``owner_user_id`` never changes."""

    __tablename__ = "restaurants"

    owner_user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    upi_id: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    state: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    country: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    owner = relationship("User")
    staff_members = relationship(
        "StaffMember",
        back_populates="restaurant",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @validates("name", "upi_id")
    def _validate_required(self, key, value):
        return not_blank(key, value)
