"""Session resolver: turns request credentials into an ``Actor``.

Checks in order:
1. Authorization: Bearer <token> header
2. session cookie (HttpOnly)

Every failure mode (no credentials, bad signature, expired token, revoked or
expired session row, deleted user) resolves to ``None``. The resolver never
creates or extends sessions.
"""

import logging
from datetime import datetime, timezone
from typing import Annotated, Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from tipqr.core.errors import AuthenticationError
from tipqr.core.rbac import Actor, UserRole
from tipqr.core.security import COOKIE_SESSION_NAME, decode_access_token
from tipqr.db.session import DbSession
from tipqr.models.auth import AuthSession
from tipqr.models.user import User

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo on round-trip
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def extract_token(request: Request) -> Optional[str]:
    """Return the raw bearer token from the header or the session cookie."""
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header.split(" ", 1)[1].strip()
        if token:
            return token
    return request.cookies.get(COOKIE_SESSION_NAME) or None


def find_live_session(db: Session, token: str) -> Optional[AuthSession]:
    """Look up the session row behind a JWT, if it is still live."""
    payload = decode_access_token(token)
    if payload is None:
        return None

    session_row = db.query(AuthSession).filter(AuthSession.token == payload["jti"]).first()
    if session_row is None or session_row.user_id != payload["sub"]:
        return None
    if _as_utc(session_row.expires_at) <= datetime.now(timezone.utc):
        return None
    return session_row


def resolve_session(request: Request, db: Session) -> Optional[Actor]:
    token = extract_token(request)
    if not token:
        return None

    session_row = find_live_session(db, token)
    if session_row is None:
        return None

    user = db.query(User).filter(User.id == session_row.user_id).first()
    if user is None or user.role is None:
        return None

    try:
        role = UserRole(user.role)
    except ValueError:
        logger.warning(f"User {user.id} has unknown role {user.role!r}")
        return None

    return Actor(user_id=user.id, role=role, name=user.name, email=user.email)


def get_optional_actor(request: Request, db: DbSession) -> Optional[Actor]:
    """Dependency: the caller, or None for anonymous requests."""
    return resolve_session(request, db)


def get_current_actor(
    actor: Annotated[Optional[Actor], Depends(get_optional_actor)],
) -> Actor:
    """Dependency: the caller; 401 when the request is anonymous."""
    if actor is None:
        raise AuthenticationError()
    return actor


CurrentActor = Annotated[Actor, Depends(get_current_actor)]
OptionalActor = Annotated[Optional[Actor], Depends(get_optional_actor)]
