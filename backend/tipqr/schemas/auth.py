"""Authentication schemas."""

from typing import Optional

from pydantic import EmailStr, Field

from tipqr.schemas.base import APIModel, RequestModel
from tipqr.schemas.user import UserResponse


class SignUpRequest(RequestModel):
    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)


class SignInRequest(RequestModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=128)


class VerifyEmailRequest(RequestModel):
    token: str = Field(min_length=1)


class SessionResponse(APIModel):
    token: str
    user: UserResponse


class CurrentSession(APIModel):
    user: Optional[UserResponse] = None
