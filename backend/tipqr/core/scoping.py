"""Query scoping.

Every collection query starts from ``scoped_query`` which applies the row
predicate the policy grants the actor. Caller filters, search, sorting and
paging are only ever ANDed on top, so no query parameter can widen what an
actor sees.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from fastapi import Query
from sqlalchemy import false, or_, select, true
from sqlalchemy.orm import Query as OrmQuery, Session

from tipqr.core.config import settings
from tipqr.core.errors import ValidationError
from tipqr.core.policy import Action, Resource, Scope, can_access
from tipqr.core.rbac import Actor
from tipqr.models.feature_toggle import FeatureToggle
from tipqr.models.restaurant import Restaurant
from tipqr.models.review import Review
from tipqr.models.staff import StaffMember
from tipqr.models.tip import Tip
from tipqr.models.user import User

SORT_DIRECTIONS = ("asc", "desc")
# Largest row offset a list query will issue (fits a 32-bit database integer)
MAX_OFFSET = 2**31 - 1


def _self_predicate(actor: Actor, resource: Resource):
    if resource == Resource.STAFF:
        return StaffMember.user_id == actor.user_id
    if resource == Resource.TIP:
        own_staff = select(StaffMember.id).where(StaffMember.user_id == actor.user_id)
        return Tip.staff_member_id.in_(own_staff)
    if resource == Resource.USER_SELF:
        return User.id == actor.user_id
    return false()


def scope_predicate(actor: Optional[Actor], resource: Resource, action: Action = Action.LIST):
    """Mandatory row filter for ``actor`` on ``resource``.

    Owner predicates reference ``Restaurant`` and rely on the joins that
    ``scoped_query`` adds. Anything the policy does not grant is ``false()``.
    """
    decision = can_access(actor, action, resource)
    if not decision.allowed:
        return false()
    if decision.scope in (Scope.ALL, Scope.PUBLIC):
        return true()
    if decision.scope == Scope.OWNED and resource in (
        Resource.RESTAURANT, Resource.STAFF, Resource.TIP, Resource.REVIEW
    ):
        return Restaurant.owner_user_id == actor.user_id
    if decision.scope == Scope.SELF:
        return _self_predicate(actor, resource)
    return false()


def base_query(db: Session, resource: Resource) -> OrmQuery:
    """Query for ``resource`` joined up to ``Restaurant`` where one exists."""
    if resource == Resource.RESTAURANT:
        return db.query(Restaurant)
    if resource == Resource.STAFF:
        return db.query(StaffMember).join(Restaurant, StaffMember.restaurant_id == Restaurant.id)
    if resource == Resource.TIP:
        return (
            db.query(Tip)
            .join(StaffMember, Tip.staff_member_id == StaffMember.id)
            .join(Restaurant, StaffMember.restaurant_id == Restaurant.id)
        )
    if resource == Resource.REVIEW:
        return (
            db.query(Review)
            .join(StaffMember, Review.staff_member_id == StaffMember.id)
            .join(Restaurant, StaffMember.restaurant_id == Restaurant.id)
        )
    if resource in (Resource.USER, Resource.USER_SELF):
        return db.query(User)
    if resource == Resource.FEATURE_TOGGLE:
        return db.query(FeatureToggle)
    raise ValueError(f"No base query for {resource}")


def scoped_query(
    db: Session,
    actor: Optional[Actor],
    resource: Resource,
    action: Action = Action.LIST,
) -> OrmQuery:
    return base_query(db, resource).filter(scope_predicate(actor, resource, action))


def search_clause(term: Optional[str], *columns):
    """Case-insensitive substring match across ``columns``, or None."""
    if term is None or not term.strip():
        return None
    escaped = term.strip().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    pattern = f"%{escaped}%"
    return or_(*[column.ilike(pattern, escape="\\") for column in columns])


def _lenient_int(value: Optional[str], default: int) -> int:
    if value is None or str(value).strip() == "":
        return default
    try:
        return int(str(value).strip())
    except ValueError:
        return default


@dataclass
class ListParams:
    page: int
    page_size: int
    sort_by: str
    sort_dir: str
    search: Optional[str]

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    def order_by(self, sortable: Dict[str, object], tiebreak=None) -> list:
        column = sortable[self.sort_by]
        clauses = [column.asc() if self.sort_dir == "asc" else column.desc()]
        if tiebreak is not None:
            clauses.append(tiebreak.asc() if self.sort_dir == "asc" else tiebreak.desc())
        return clauses


class ListQuery:
    """Raw paging/sorting query parameters shared by every list endpoint.

    Numbers are lax: ``pageSize`` is clamped into ``[1, max_page_size]`` and
    ``page`` into ``[1, MAX_OFFSET // pageSize + 1]``; unparseable numbers
    fall back to defaults.
    Enumerated values are strict: an explicit ``sortBy`` or ``sortDir`` that
    is not recognised is a 400, never silently replaced.
    """

    def __init__(
        self,
        page: Optional[str] = Query(None),
        page_size: Optional[str] = Query(None, alias="pageSize"),
        sort_by: Optional[str] = Query(None, alias="sortBy"),
        sort_dir: Optional[str] = Query(None, alias="sortDir"),
        search: Optional[str] = Query(None),
    ):
        self.page = page
        self.page_size = page_size
        self.sort_by = sort_by
        self.sort_dir = sort_dir
        self.search = search

    def resolve(
        self,
        sortable: Dict[str, object],
        default_sort: str = "createdAt",
        default_dir: str = "desc",
    ) -> ListParams:
        page_size = _lenient_int(self.page_size, settings.default_page_size)
        page_size = min(max(1, page_size), settings.max_page_size)
        page = max(1, _lenient_int(self.page, 1))
        page = min(page, MAX_OFFSET // page_size + 1)

        sort_by = default_sort
        if self.sort_by is not None and self.sort_by != "":
            if self.sort_by not in sortable:
                raise ValidationError(
                    f"Invalid sortBy '{self.sort_by}'. Allowed: {', '.join(sortable)}",
                    "INVALID_SORT_FIELD",
                )
            sort_by = self.sort_by

        sort_dir = default_dir
        if self.sort_dir is not None and self.sort_dir != "":
            if self.sort_dir.lower() not in SORT_DIRECTIONS:
                raise ValidationError(
                    f"Invalid sortDir '{self.sort_dir}'. Allowed: asc, desc",
                    "INVALID_SORT_DIR",
                )
            sort_dir = self.sort_dir.lower()

        return ListParams(
            page=page,
            page_size=page_size,
            sort_by=sort_by,
            sort_dir=sort_dir,
            search=self.search,
        )


def parse_date_param(value: Optional[str], name: str, end_of_range: bool = False) -> Optional[datetime]:
    """Parse an ISO-8601 date or datetime query parameter into naive UTC.

    A bare date used as the end of a range covers the whole day.
    """
    if value is None or value.strip() == "":
        return None
    raw = value.strip()
    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        raise ValidationError(f"Invalid {name}: expected ISO-8601 date", "INVALID_DATE")
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    if end_of_range and len(raw) == 10:
        parsed = parsed + timedelta(days=1) - timedelta(microseconds=1)
    return parsed


def parse_bool_param(value: Optional[str], name: str) -> Optional[bool]:
    if value is None or value == "":
        return None
    lowered = value.strip().lower()
    if lowered in ("true", "1", "yes"):
        return True
    if lowered in ("false", "0", "no"):
        return False
    raise ValidationError(f"Invalid {name}: expected true or false", f"INVALID_{name.upper()}")


def parse_enum_param(value: Optional[str], name: str, enum_cls) -> Optional[str]:
    if value is None or value == "":
        return None
    allowed = [m.value for m in enum_cls]
    if value not in allowed:
        raise ValidationError(
            f"Invalid {name} '{value}'. Allowed: {', '.join(allowed)}",
            f"INVALID_{name.upper()}",
        )
    return value
