"""Authentication routes: sign-up, sign-in, sign-out, session, email verification."""

import logging

from fastapi import APIRouter, Request, Response, status

from tipqr.core.config import settings
from tipqr.core.rate_limit import limiter
from tipqr.core.security import (
    COOKIE_CSRF_NAME,
    COOKIE_SAMESITE,
    COOKIE_SECURE,
    COOKIE_SESSION_NAME,
    SESSION_MAX_AGE,
    generate_csrf_token,
)
from tipqr.core.sessions import OptionalActor, extract_token
from tipqr.db.session import DbSession
from tipqr.schemas.auth import (
    CurrentSession,
    SessionResponse,
    SignInRequest,
    SignUpRequest,
    VerifyEmailRequest,
)
from tipqr.schemas.user import UserResponse
from tipqr.services import auth_service
from tipqr.services.user_service import get_user

logger = logging.getLogger("auth")

router = APIRouter()


def _client(request: Request) -> tuple:
    ip = request.client.host if request.client else None
    return ip, request.headers.get("User-Agent")


def _set_session_cookies(response: Response, token: str) -> None:
    response.set_cookie(
        key=COOKIE_SESSION_NAME,
        value=token,
        max_age=SESSION_MAX_AGE,
        httponly=True,
        secure=COOKIE_SECURE,
        samesite=COOKIE_SAMESITE,
        path="/",
    )
    # Readable by the browser so it can echo it in X-CSRF-Token
    response.set_cookie(
        key=COOKIE_CSRF_NAME,
        value=generate_csrf_token(),
        max_age=SESSION_MAX_AGE,
        httponly=False,
        secure=COOKIE_SECURE,
        samesite=COOKIE_SAMESITE,
        path="/",
    )


def _clear_session_cookies(response: Response) -> None:
    response.delete_cookie(COOKIE_SESSION_NAME, path="/")
    response.delete_cookie(COOKIE_CSRF_NAME, path="/")


@router.post("/sign-up", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.auth_rate_limit)
def sign_up(request: Request, response: Response, data: SignUpRequest, db: DbSession):
    """Create an account (role owner) and open a session."""
    ip, user_agent = _client(request)
    token, user = auth_service.sign_up(db, data.name, data.email, data.password, ip, user_agent)
    _set_session_cookies(response, token)
    return SessionResponse(token=token, user=UserResponse.model_validate(user))


@router.post("/sign-in", response_model=SessionResponse)
@limiter.limit(settings.auth_rate_limit)
def sign_in(request: Request, response: Response, data: SignInRequest, db: DbSession):
    ip, user_agent = _client(request)
    token, user = auth_service.sign_in(db, data.email, data.password, ip, user_agent)
    _set_session_cookies(response, token)
    return SessionResponse(token=token, user=UserResponse.model_validate(user))


@router.post("/sign-out")
def sign_out(request: Request, response: Response, db: DbSession):
    """End the current session. Succeeds even without one."""
    signed_out = auth_service.sign_out(db, extract_token(request))
    _clear_session_cookies(response)
    return {"success": True, "signedOut": signed_out}


@router.get("/session", response_model=CurrentSession)
def get_session(actor: OptionalActor, db: DbSession):
    """The signed-in user, or ``{"user": null}``. Never 401."""
    if actor is None:
        return CurrentSession(user=None)
    return CurrentSession(user=UserResponse.model_validate(get_user(db, actor.user_id)))


@router.post("/verify-email", response_model=UserResponse)
def verify_email(data: VerifyEmailRequest, db: DbSession):
    return auth_service.verify_email(db, data.token)
