"""User lookups and role changes."""

import logging
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from tipqr.core.errors import AuthorizationError, NotFoundError, ValidationError
from tipqr.core.invariants import change_user_role, ensure_owner_can_become_worker
from tipqr.core.policy import Action, OwnerRef, Resource, authorize
from tipqr.core.rbac import SELF_ASSIGNABLE_ROLES, Actor, UserRole
from tipqr.core.scoping import ListParams, ListQuery, parse_enum_param, scoped_query, search_clause
from tipqr.models.user import User
from tipqr.schemas.pagination import paginate_query

logger = logging.getLogger(__name__)

SORTABLE = {
    "createdAt": User.created_at,
    "email": User.email,
    "name": User.name,
    "role": User.role,
}


def parse_role(raw: Optional[str]) -> UserRole:
    if raw is None or str(raw).strip() == "":
        raise ValidationError("Role is required", "MISSING_ROLE")
    try:
        return UserRole(str(raw).strip().lower())
    except ValueError:
        raise ValidationError(
            f"Invalid role '{raw}'. Allowed: {', '.join(r.value for r in UserRole)}",
            "INVALID_ROLE",
        )


def get_user(db: Session, user_id: str) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise NotFoundError("User not found", "USER_NOT_FOUND")
    return user


def get_me(db: Session, actor: Actor) -> User:
    authorize(actor, Action.READ, Resource.USER_SELF, OwnerRef(subject_user_id=actor.user_id))
    return get_user(db, actor.user_id)


def change_own_role(db: Session, actor: Actor, raw_role: Optional[str]) -> User:
    """Self-service switch between owner and worker.

    Admin cannot be chosen here. Leaving admin is allowed unless the caller
    is the last admin.
    """
    authorize(actor, Action.UPDATE, Resource.USER_SELF, OwnerRef(subject_user_id=actor.user_id))
    role = parse_role(raw_role)
    if role not in SELF_ASSIGNABLE_ROLES:
        raise AuthorizationError("Cannot assign the admin role to yourself", "ADMIN_ROLE_FORBIDDEN")

    user = get_user(db, actor.user_id)
    if user.role == UserRole.OWNER and role == UserRole.WORKER:
        ensure_owner_can_become_worker(db, user)

    user = change_user_role(db, user, role)
    logger.info(f"User {user.id} switched own role to {role.value}")
    return user


def admin_change_role(db: Session, actor: Actor, user_id: Optional[str], raw_role: Optional[str]) -> User:
    authorize(actor, Action.UPDATE, Resource.USER)
    if not user_id:
        raise ValidationError("userId is required", "MISSING_REQUIRED_FIELD")
    role = parse_role(raw_role)
    user = get_user(db, user_id)
    user = change_user_role(db, user, role)
    logger.info(f"Admin {actor.user_id} set role of {user.id} to {role.value}")
    return user


def list_users(
    db: Session,
    actor: Actor,
    list_query: ListQuery,
    role: Optional[str] = None,
) -> Tuple[list, int, ListParams]:
    authorize(actor, Action.LIST, Resource.USER)
    params = list_query.resolve(SORTABLE)
    query = scoped_query(db, actor, Resource.USER)

    match = search_clause(params.search, User.name, User.email)
    if match is not None:
        query = query.filter(match)
    role_value = parse_enum_param(role, "role", UserRole)
    if role_value is not None:
        query = query.filter(User.role == UserRole(role_value))

    rows, total = paginate_query(query, params, params.order_by(SORTABLE, tiebreak=User.id))
    return rows, total, params
