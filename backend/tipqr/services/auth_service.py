"""Sign-up, sign-in, sign-out and email verification.

Sessions are rows in ``auth_sessions``; the JWT handed to the client only
carries the session token as ``jti`` plus the user id, so signing out or
expiring the row revokes the JWT immediately.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from tipqr.core.config import settings
from tipqr.core.errors import AuthenticationError, ConflictError, ValidationError
from tipqr.core.invariants import translate_integrity_errors
from tipqr.core.rbac import UserRole
from tipqr.core.security import (
    create_access_token,
    generate_session_token,
    generate_verification_token,
    get_password_hash,
    verify_password,
)
from tipqr.core.sessions import find_live_session
from tipqr.models.auth import AuthAccount, AuthSession, Verification
from tipqr.models.user import User

logger = logging.getLogger("auth")

CREDENTIAL_PROVIDER = "credential"

# Compared against when the email is unknown so both failures take equally long
_DUMMY_HASH = get_password_hash("not-a-real-password")


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def create_user(
    db: Session,
    name: str,
    email: str,
    password: str,
    role: UserRole = UserRole.OWNER,
    email_verified: bool = False,
) -> User:
    """Create a user and its credential account. Does not open a session."""
    email = email.strip().lower()
    if db.query(User.id).filter(User.email == email).first() is not None:
        raise ConflictError("An account with this email already exists", "EMAIL_EXISTS")

    user = User(name=name.strip(), email=email, role=role, email_verified=email_verified)
    db.add(user)
    with translate_integrity_errors(db, "An account with this email already exists", "EMAIL_EXISTS"):
        db.flush()
        db.add(AuthAccount(
            user_id=user.id,
            provider_id=CREDENTIAL_PROVIDER,
            account_id=user.id,
            password_hash=get_password_hash(password),
        ))
        db.commit()
    db.refresh(user)
    return user


def start_session(
    db: Session,
    user: User,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> str:
    """Open a session for ``user`` and return the signed token."""
    expires = timedelta(minutes=settings.session_expire_minutes)
    session_row = AuthSession(
        token=generate_session_token(),
        user_id=user.id,
        expires_at=datetime.now(timezone.utc) + expires,
        ip_address=ip_address,
        user_agent=(user_agent or "")[:512] or None,
    )
    db.add(session_row)
    db.commit()
    return create_access_token({"sub": user.id}, expires_delta=expires, jti=session_row.token)


def issue_verification(db: Session, user: User) -> Verification:
    verification = Verification(
        identifier=user.email,
        value=generate_verification_token(),
        expires_at=datetime.now(timezone.utc) + timedelta(minutes=settings.verification_expire_minutes),
    )
    db.add(verification)
    db.commit()
    return verification


def sign_up(
    db: Session,
    name: str,
    email: str,
    password: str,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> Tuple[str, User]:
    if not name.strip():
        raise ValidationError("Name is required", "MISSING_REQUIRED_FIELD")
    user = create_user(db, name, email, password)
    issue_verification(db, user)
    token = start_session(db, user, ip_address, user_agent)
    logger.info(f"New account: {user.email} ({user.id})")
    return token, user


def sign_in(
    db: Session,
    email: str,
    password: str,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> Tuple[str, User]:
    email = email.strip().lower()
    user = db.query(User).filter(User.email == email).first()
    account = None
    if user is not None:
        account = (
            db.query(AuthAccount)
            .filter(AuthAccount.user_id == user.id, AuthAccount.provider_id == CREDENTIAL_PROVIDER)
            .first()
        )

    password_hash = account.password_hash if account and account.password_hash else _DUMMY_HASH
    if not verify_password(password, password_hash) or account is None:
        logger.warning(f"Failed sign-in for {email} from {ip_address or 'unknown'}")
        raise AuthenticationError("Invalid email or password", "INVALID_CREDENTIALS")

    token = start_session(db, user, ip_address, user_agent)
    logger.info(f"Sign-in: {user.email} ({user.id})")
    return token, user


def sign_out(db: Session, token: Optional[str]) -> bool:
    """Delete the session behind ``token``. Returns False if there was none."""
    if not token:
        return False
    session_row = find_live_session(db, token)
    if session_row is None:
        return False
    db.delete(session_row)
    db.commit()
    logger.info(f"Sign-out: user {session_row.user_id}")
    return True


def verify_email(db: Session, token: str) -> User:
    verification = db.query(Verification).filter(Verification.value == token).first()
    if verification is None or _as_utc(verification.expires_at) <= datetime.now(timezone.utc):
        raise ValidationError("Verification token is invalid or expired", "INVALID_TOKEN")

    user = db.query(User).filter(User.email == verification.identifier).first()
    if user is None:
        raise ValidationError("Verification token is invalid or expired", "INVALID_TOKEN")

    user.email_verified = True
    db.delete(verification)
    db.commit()
    db.refresh(user)
    return user
