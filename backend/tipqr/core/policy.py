"""Authorization policy.

One declarative table decides who may do what:

    POLICY[(resource, action)] -> {role: scope}

``scope`` says how far an allowed role reaches:

- ``ALL``: every row of the resource.
- ``OWNED``: rows that hang off a restaurant whose ``owner_user_id`` is the actor.
- ``SELF``: rows that point at the actor directly (own staff record, own user).
- ``PUBLIC``: no session needed.

A role missing from a rule has no access at all, and that denial is decided
before any row is read. Row-level checks pass an ``OwnerRef`` describing the
target row; a row outside the actor's scope is reported as not found so its
existence is not leaked.

Partial updates go through ``check_fields`` which holds the per-role field
allow-lists. Any forbidden field denies the whole request.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Iterable, Optional, Tuple

from pydantic.alias_generators import to_camel

from tipqr.core.errors import AuthenticationError, AuthorizationError, NotFoundError
from tipqr.core.rbac import Actor, UserRole

logger = logging.getLogger(__name__)


class Resource(str, Enum):
    USER = "user"  # admin console over all users
    USER_SELF = "user_self"  # self-service role change
    RESTAURANT = "restaurant"
    STAFF = "staff"
    TIP = "tip"
    REVIEW = "review"
    FEATURE_TOGGLE = "feature_toggle"


class Action(str, Enum):
    LIST = "list"
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    MODERATE = "moderate"
    CLAIM = "claim"


class Scope(str, Enum):
    ALL = "all"
    OWNED = "owned"
    SELF = "self"
    PUBLIC = "public"


class DenyReason(str, Enum):
    UNAUTHENTICATED = "UNAUTHENTICATED"
    FORBIDDEN = "FORBIDDEN"
    NOT_OWNER = "NOT_OWNER"


ADMIN = UserRole.ADMIN
OWNER = UserRole.OWNER
WORKER = UserRole.WORKER

# Key for callers without a session
ANONYMOUS = None

PUBLIC_ACCESS = {ANONYMOUS: Scope.PUBLIC, ADMIN: Scope.PUBLIC, OWNER: Scope.PUBLIC, WORKER: Scope.PUBLIC}

POLICY: Dict[Tuple[Resource, Action], Dict[Optional[UserRole], Scope]] = {
    # Users
    (Resource.USER, Action.LIST): {ADMIN: Scope.ALL},
    (Resource.USER, Action.UPDATE): {ADMIN: Scope.ALL},
    (Resource.USER_SELF, Action.READ): {ADMIN: Scope.SELF, OWNER: Scope.SELF, WORKER: Scope.SELF},
    (Resource.USER_SELF, Action.UPDATE): {ADMIN: Scope.SELF, OWNER: Scope.SELF, WORKER: Scope.SELF},
    # Restaurants
    (Resource.RESTAURANT, Action.LIST): {ADMIN: Scope.ALL, OWNER: Scope.OWNED},
    (Resource.RESTAURANT, Action.READ): {ADMIN: Scope.ALL, OWNER: Scope.OWNED},
    (Resource.RESTAURANT, Action.CREATE): {ADMIN: Scope.ALL, OWNER: Scope.OWNED},
    (Resource.RESTAURANT, Action.UPDATE): {ADMIN: Scope.ALL, OWNER: Scope.OWNED},
    (Resource.RESTAURANT, Action.DELETE): {ADMIN: Scope.ALL},
    # Staff
    (Resource.STAFF, Action.LIST): {ADMIN: Scope.ALL, OWNER: Scope.OWNED, WORKER: Scope.SELF},
    (Resource.STAFF, Action.READ): {ADMIN: Scope.ALL, OWNER: Scope.OWNED, WORKER: Scope.SELF},
    (Resource.STAFF, Action.CREATE): {ADMIN: Scope.ALL, OWNER: Scope.OWNED},
    (Resource.STAFF, Action.UPDATE): {ADMIN: Scope.ALL, OWNER: Scope.OWNED, WORKER: Scope.SELF},
    (Resource.STAFF, Action.DELETE): {ADMIN: Scope.ALL, OWNER: Scope.OWNED},
    (Resource.STAFF, Action.CLAIM): {WORKER: Scope.SELF},
    # Tips: the general ledger is admin/owner, workers only via their staff record
    (Resource.TIP, Action.LIST): {ADMIN: Scope.ALL, OWNER: Scope.OWNED},
    (Resource.TIP, Action.READ): {ADMIN: Scope.ALL, OWNER: Scope.OWNED, WORKER: Scope.SELF},
    (Resource.TIP, Action.CREATE): dict(PUBLIC_ACCESS),
    # Reviews
    (Resource.REVIEW, Action.LIST): {ADMIN: Scope.ALL, OWNER: Scope.OWNED},
    (Resource.REVIEW, Action.MODERATE): {ADMIN: Scope.ALL, OWNER: Scope.OWNED},
    (Resource.REVIEW, Action.CREATE): dict(PUBLIC_ACCESS),
    # Feature toggles
    (Resource.FEATURE_TOGGLE, Action.LIST): dict(PUBLIC_ACCESS),
    (Resource.FEATURE_TOGGLE, Action.READ): dict(PUBLIC_ACCESS),
    (Resource.FEATURE_TOGGLE, Action.CREATE): {ADMIN: Scope.ALL},
    (Resource.FEATURE_TOGGLE, Action.UPDATE): {ADMIN: Scope.ALL},
    (Resource.FEATURE_TOGGLE, Action.DELETE): {ADMIN: Scope.ALL},
}


# Writable fields per (resource, action) and role, by model attribute name
_STAFF_ALL_FIELDS = frozenset({"display_name", "role", "status", "user_id", "upi_id"})
_RESTAURANT_FIELDS = frozenset({"name", "upi_id", "address", "city", "state", "country"})

FIELD_RULES: Dict[Tuple[Resource, Action], Dict[UserRole, FrozenSet[str]]] = {
    (Resource.STAFF, Action.UPDATE): {
        ADMIN: _STAFF_ALL_FIELDS,
        OWNER: _STAFF_ALL_FIELDS,
        WORKER: frozenset({"display_name", "upi_id"}),
    },
    (Resource.STAFF, Action.CREATE): {
        ADMIN: _STAFF_ALL_FIELDS | {"restaurant_id"},
        OWNER: (_STAFF_ALL_FIELDS - {"user_id"}) | {"restaurant_id"},
    },
    (Resource.RESTAURANT, Action.CREATE): {
        ADMIN: _RESTAURANT_FIELDS | {"owner_user_id"},
        OWNER: _RESTAURANT_FIELDS,
    },
    (Resource.RESTAURANT, Action.UPDATE): {
        ADMIN: _RESTAURANT_FIELDS,
        OWNER: _RESTAURANT_FIELDS,
    },
    (Resource.FEATURE_TOGGLE, Action.UPDATE): {
        ADMIN: frozenset({"label", "enabled", "audience"}),
    },
}


@dataclass(frozen=True)
class OwnerRef:
    """Who a target row belongs to.

    ``owner_user_id`` is the owner of the restaurant the row hangs off;
    ``subject_user_id`` is the user the row is about (a staff member's
    linked account, or the user row itself).
    """

    owner_user_id: Optional[str] = None
    subject_user_id: Optional[str] = None


@dataclass(frozen=True)
class Decision:
    allowed: bool
    scope: Optional[Scope] = None
    reason: Optional[DenyReason] = None

    def __bool__(self) -> bool:
        return self.allowed


def can_access(
    actor: Optional[Actor],
    action: Action,
    resource: Resource,
    owner: Optional[OwnerRef] = None,
) -> Decision:
    """Decide whether ``actor`` may perform ``action`` on ``resource``.

    Pure function of its arguments. Without ``owner`` the answer is the
    role-level decision plus the scope the caller must still apply; with
    ``owner`` the row-level ownership is checked too.
    """
    rules = POLICY.get((resource, action))
    if rules is None:
        return Decision(False, reason=DenyReason.FORBIDDEN)

    if actor is None:
        if rules.get(ANONYMOUS) == Scope.PUBLIC:
            return Decision(True, scope=Scope.PUBLIC)
        return Decision(False, reason=DenyReason.UNAUTHENTICATED)

    scope = rules.get(actor.role)
    if scope is None:
        return Decision(False, reason=DenyReason.FORBIDDEN)

    if owner is None or scope in (Scope.ALL, Scope.PUBLIC):
        return Decision(True, scope=scope)

    if scope == Scope.OWNED:
        owns = owner.owner_user_id is not None and owner.owner_user_id == actor.user_id
    else:
        owns = owner.subject_user_id is not None and owner.subject_user_id == actor.user_id

    if not owns:
        return Decision(False, scope=scope, reason=DenyReason.NOT_OWNER)
    return Decision(True, scope=scope)


def authorize(
    actor: Optional[Actor],
    action: Action,
    resource: Resource,
    owner: Optional[OwnerRef] = None,
    not_found_code: str = "NOT_FOUND",
) -> Decision:
    """Like ``can_access`` but raises on deny.

    A row outside the actor's scope raises the same ``NotFoundError`` the
    caller uses for a missing row, so both look identical to the client.
    """
    decision = can_access(actor, action, resource, owner)
    if decision.allowed:
        return decision

    who = f"{actor.role.value}:{actor.user_id}" if actor else "anonymous"
    logger.info(f"Policy deny: {who} {action.value} {resource.value} ({decision.reason.value})")

    if decision.reason == DenyReason.UNAUTHENTICATED:
        raise AuthenticationError()
    if decision.reason == DenyReason.NOT_OWNER:
        raise NotFoundError(f"{resource.value.replace('_', ' ').capitalize()} not found", not_found_code)
    raise AuthorizationError("Insufficient permissions", "INSUFFICIENT_PERMISSIONS")


def allowed_fields(actor: Optional[Actor], resource: Resource, action: Action) -> FrozenSet[str]:
    if actor is None:
        return frozenset()
    return FIELD_RULES.get((resource, action), {}).get(actor.role, frozenset())


def check_fields(
    actor: Optional[Actor],
    resource: Resource,
    action: Action,
    fields: Iterable[str],
) -> FrozenSet[str]:
    """Return the requested fields if every one is allowed, else raise 403.

    The whole request is denied when any field is outside the actor's
    allow-list; nothing is silently dropped.
    """
    requested = frozenset(fields)
    forbidden = requested - allowed_fields(actor, resource, action)
    if forbidden:
        names = ", ".join(sorted(to_camel(f) for f in forbidden))
        logger.info(
            f"Restricted fields for {actor.role.value if actor else 'anonymous'} "
            f"on {resource.value} {action.value}: {names}"
        )
        raise AuthorizationError(f"Not allowed to set: {names}", "RESTRICTED_FIELDS")
    return requested
