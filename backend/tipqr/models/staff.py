"""Staff member model."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from tipqr.db.base import Base, CreatedAtMixin, IdMixin
from tipqr.models.validators import not_blank, one_of


class StaffRole(str, Enum):
    """Job role inside a restaurant (unrelated to platform roles)."""
    SERVER = "server"
    CHEF = "chef"
    HOST = "host"
    MANAGER = "manager"


class StaffStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class StaffMember(Base, IdMixin, CreatedAtMixin):
    """A tippable person at a restaurant, addressed publicly by ``qr_key``.

    ``user_id`` is null until a worker account claims the slot.
    """

    __tablename__ = "staff_members"

    user_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    restaurant_id: Mapped[str] = mapped_column(
        ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(20), default=StaffRole.SERVER.value, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default=StaffStatus.ACTIVE.value, nullable=False)
    qr_key: Mapped[str] = mapped_column(String(128), unique=True, index=True, nullable=False)
    upi_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    restaurant = relationship("Restaurant", back_populates="staff_members")
    user = relationship("User")
    tips = relationship("Tip", back_populates="staff_member", cascade="all, delete-orphan", passive_deletes=True)
    reviews = relationship("Review", back_populates="staff_member", cascade="all, delete-orphan", passive_deletes=True)

    @property
    def is_active(self) -> bool:
        return self.status == StaffStatus.ACTIVE.value

    @validates("display_name", "qr_key")
    def _validate_required(self, key, value):
        return not_blank(key, value)

    @validates("role")
    def _validate_role(self, key, value):
        return one_of(key, value, StaffRole)

    @validates("status")
    def _validate_status(self, key, value):
        return one_of(key, value, StaffStatus)
