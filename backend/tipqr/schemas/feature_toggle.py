"""Feature toggle schemas."""

from datetime import datetime
from typing import Optional

from pydantic import Field, StrictBool

from tipqr.schemas.base import APIModel, RequestModel


class FeatureToggleCreate(RequestModel):
    key: str = Field(min_length=1, max_length=100)
    label: str = Field(max_length=255)
    enabled: StrictBool = False
    audience: str = Field("all", max_length=50)


class FeatureToggleUpdate(RequestModel):
    label: Optional[str] = Field(None, max_length=255)
    enabled: Optional[StrictBool] = None
    audience: Optional[str] = Field(None, max_length=50)


class FeatureToggleResponse(APIModel):
    id: str
    key: str
    label: str
    enabled: bool
    audience: str
    created_at: datetime
    updated_at: datetime
