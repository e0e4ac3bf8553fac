"""Restaurant schemas."""

from datetime import datetime
from typing import Optional

from pydantic import Field

from tipqr.schemas.base import APIModel, RequestModel


class RestaurantBase(RequestModel):
    address: Optional[str] = Field(None, max_length=500)
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = Field(None, max_length=100)


class RestaurantCreate(RestaurantBase):
    name: str = Field(max_length=255)
    upi_id: str = Field(max_length=255)
    owner_user_id: Optional[str] = None


class RestaurantUpdate(RestaurantBase):
    # ownerUserId is accepted here only so that sending it is denied explicitly
    name: Optional[str] = Field(None, max_length=255)
    upi_id: Optional[str] = Field(None, max_length=255)
    owner_user_id: Optional[str] = None


class RestaurantResponse(APIModel):
    id: str
    owner_user_id: str
    name: str
    upi_id: str
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    created_at: datetime
