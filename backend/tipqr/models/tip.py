"""Tip ledger model."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from sqlalchemy import ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from tipqr.db.base import Base, CreatedAtMixin, IdMixin
from tipqr.models.validators import one_of, positive_int


class TipSource(str, Enum):
    QR = "qr"
    LINK = "link"
    POS = "pos"


class TipStatus(str, Enum):
    SUCCEEDED = "succeeded"
    PENDING = "pending"
    FAILED = "failed"


class Tip(Base, IdMixin, CreatedAtMixin):
    """A recorded gratuity. Rows are append-only; amounts are minor units."""

    __tablename__ = "tips"

    staff_member_id: Mapped[str] = mapped_column(
        ForeignKey("staff_members.id", ondelete="CASCADE"), nullable=False, index=True
    )
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="INR", nullable=False)
    payer_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    source: Mapped[str] = mapped_column(String(20), default=TipSource.QR.value, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default=TipStatus.SUCCEEDED.value, nullable=False, index=True)

    staff_member = relationship("StaffMember", back_populates="tips")

    @validates("amount_cents")
    def _validate_amount(self, key, value):
        return positive_int(key, value)

    @validates("source")
    def _validate_source(self, key, value):
        return one_of(key, value, TipSource)

    @validates("status")
    def _validate_status(self, key, value):
        return one_of(key, value, TipStatus)
