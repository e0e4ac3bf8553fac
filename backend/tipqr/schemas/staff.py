"""Staff member schemas."""

from datetime import datetime
from typing import Optional

from pydantic import Field

from tipqr.schemas.base import APIModel, RequestModel


class StaffCreate(RequestModel):
    restaurant_id: str
    display_name: str = Field(max_length=255)
    role: Optional[str] = None
    status: Optional[str] = None
    user_id: Optional[str] = None
    upi_id: Optional[str] = Field(None, max_length=255)


class StaffUpdate(RequestModel):
    display_name: Optional[str] = Field(None, max_length=255)
    role: Optional[str] = None
    status: Optional[str] = None
    user_id: Optional[str] = None
    upi_id: Optional[str] = Field(None, max_length=255)


class StaffClaim(RequestModel):
    qr_key: str = Field(min_length=1)


class StaffResponse(APIModel):
    id: str
    user_id: Optional[str] = None
    restaurant_id: str
    display_name: str
    role: str
    status: str
    qr_key: str
    upi_id: Optional[str] = None
    created_at: datetime
    restaurant_name: Optional[str] = None
