"""Review schemas."""

from datetime import datetime
from typing import Any, Optional

from pydantic import Field

from tipqr.schemas.base import APIModel, RequestModel


class ReviewCreate(RequestModel):
    staff_key: Optional[str] = None
    staff_id: Optional[str] = None
    rating: Any = None
    comment: Optional[str] = Field(None, max_length=2000)
    tip_id: Optional[str] = None


class ReviewModerate(RequestModel):
    approved: Any = None


class ReviewResponse(APIModel):
    id: str
    staff_member_id: str
    rating: int
    comment: Optional[str] = None
    tip_id: Optional[str] = None
    approved: bool
    approved_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    staff_display_name: Optional[str] = None
    restaurant_id: Optional[str] = None
    restaurant_name: Optional[str] = None
    tip_amount_cents: Optional[int] = None
