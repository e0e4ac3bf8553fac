"""Tip schemas."""

from datetime import datetime
from typing import Any, Optional

from pydantic import Field

from tipqr.schemas.base import APIModel, RequestModel


class TipCreate(RequestModel):
    staff_key: Optional[str] = None
    staff_id: Optional[str] = None
    # Checked by tip_amount_to_cents so strings and booleans get INVALID_AMOUNT
    amount: Any = None
    currency: Optional[str] = None
    payer_name: Optional[str] = Field(None, max_length=255)
    message: Optional[str] = Field(None, max_length=1000)
    source: Optional[str] = None


class TipResponse(APIModel):
    id: str
    staff_member_id: str
    amount_cents: int
    currency: str
    payer_name: Optional[str] = None
    message: Optional[str] = None
    source: str
    status: str
    created_at: datetime
    staff_display_name: Optional[str] = None
    restaurant_name: Optional[str] = None


class TipSummary(APIModel):
    total_amount: int
    tip_count: int
