"""Review model."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import Boolean, ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from tipqr.db.base import Base, IdMixin, TimestampMixin
from tipqr.models.validators import rating_score


class Review(Base, IdMixin, TimestampMixin):
    """A 1-5 star rating for a staff member, optionally tied to a tip.

    ``approved`` can be flipped any number of times by moderation; the last
    moderator is kept in ``approved_by``.
    """

    __tablename__ = "reviews"

    staff_member_id: Mapped[str] = mapped_column(
        ForeignKey("staff_members.id", ondelete="CASCADE"), nullable=False, index=True
    )
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    tip_id: Mapped[Optional[str]] = mapped_column(ForeignKey("tips.id", ondelete="SET NULL"), nullable=True)
    approved: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)
    approved_by: Mapped[Optional[str]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    staff_member = relationship("StaffMember", back_populates="reviews")
    tip = relationship("Tip")

    @validates("rating")
    def _validate_rating(self, key, value):
        return rating_score(key, value)
