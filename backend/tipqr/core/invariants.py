"""Business invariants checked before any write.

Every check here raises a domain error and leaves the database untouched
when it fails.
"""

import logging
import math
import re
import secrets
from contextlib import contextmanager
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterator

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, aliased

from tipqr.core.config import settings
from tipqr.core.errors import ConflictError, InvariantViolationError, ValidationError
from tipqr.core.rbac import UserRole
from tipqr.db.base import utcnow
from tipqr.models.restaurant import Restaurant
from tipqr.models.staff import StaffMember
from tipqr.models.user import User

logger = logging.getLogger(__name__)

QR_KEY_ATTEMPTS = 5


def change_user_role(db: Session, user: User, new_role: UserRole) -> User:
    """Set ``user.role``, refusing to demote the last remaining admin.

    The admin count and the update are one conditional statement, and the
    admin rows are locked first on databases that support row locks, so two
    concurrent demotions cannot both succeed.
    """
    if user.role == new_role:
        return user

    if user.role != UserRole.ADMIN:
        user.role = new_role
        db.commit()
        db.refresh(user)
        return user

    db.query(User.id).filter(User.role == UserRole.ADMIN).with_for_update().all()
    # Aliased so the count is not correlated to the row being updated
    admins = aliased(User)
    admin_count = (
        select(func.count(admins.id))
        .where(admins.role == UserRole.ADMIN)
        .scalar_subquery()
    )
    result = db.execute(
        update(User)
        .where(User.id == user.id, User.role == UserRole.ADMIN, admin_count > 1)
        .values(role=new_role, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.rollback()
        logger.warning(f"Refused to demote last admin {user.id}")
        raise InvariantViolationError(
            "Cannot remove the last admin", "LAST_ADMIN_PROTECTION"
        )
    db.commit()
    db.refresh(user)
    logger.info(f"Admin {user.id} demoted to {new_role.value}")
    return user


def ensure_owner_can_become_worker(db: Session, user: User) -> None:
    """An owner still holding restaurants cannot switch to worker."""
    owned = db.query(func.count(Restaurant.id)).filter(Restaurant.owner_user_id == user.id).scalar() or 0
    if owned:
        raise InvariantViolationError(
            f"Cannot switch to worker while owning {owned} restaurant(s)",
            "OWNER_HAS_RESTAURANTS",
        )


def ensure_staff_active(staff: StaffMember) -> None:
    if not staff.is_active:
        raise ValidationError("Staff member is not accepting tips or reviews", "STAFF_INACTIVE")


def tip_amount_to_cents(amount: Any) -> int:
    """Validate a major-unit amount and convert it to integer minor units.

    The amount must be a JSON number (booleans and numeric strings are
    rejected), strictly positive and inside the configured inclusive range.
    Out-of-range values are rejected, never clamped. Rounding is half-up.
    """
    if isinstance(amount, bool) or not isinstance(amount, (int, float, Decimal)):
        raise ValidationError("Amount must be a number", "INVALID_AMOUNT")
    if isinstance(amount, float) and not math.isfinite(amount):
        raise ValidationError("Amount must be a finite number", "INVALID_AMOUNT")

    try:
        value = Decimal(str(amount))
    except InvalidOperation:
        raise ValidationError("Amount must be a number", "INVALID_AMOUNT")
    if not value.is_finite():
        raise ValidationError("Amount must be a finite number", "INVALID_AMOUNT")

    if value <= 0:
        raise ValidationError("Amount must be greater than zero", "INVALID_AMOUNT")

    low = Decimal(str(settings.tip_min_amount))
    high = Decimal(str(settings.tip_max_amount))
    if value < low or value > high:
        raise ValidationError(
            f"Amount must be between {low} and {high}", "AMOUNT_OUT_OF_RANGE"
        )

    return int((value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _slug(text: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")
    return slug[:40].rstrip("-") or "staff"


def generate_qr_key(db: Session, display_name: str) -> str:
    """Unique, unguessable public key for a staff member's tipping page."""
    for _ in range(QR_KEY_ATTEMPTS):
        candidate = f"{_slug(display_name)}-{secrets.token_hex(8)}"
        taken = db.query(StaffMember.id).filter(StaffMember.qr_key == candidate).first()
        if taken is None:
            return candidate
    raise ConflictError("Could not allocate a unique QR key", "QR_KEY_CONFLICT")


@contextmanager
def translate_integrity_errors(db: Session, message: str, code: str) -> Iterator[None]:
    """Roll back and raise ``ConflictError`` when a write hits a constraint.

    The driver's own message is logged but never returned to the client.
    """
    try:
        yield
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"Constraint violation mapped to {code}: {e.orig}")
        raise ConflictError(message, code) from e
