"""Staff member management and the worker claim flow."""

import logging
from typing import Optional, Tuple

from sqlalchemy import update
from sqlalchemy.orm import Session

from tipqr.core.errors import ConflictError, NotFoundError, ValidationError
from tipqr.core.invariants import generate_qr_key, translate_integrity_errors
from tipqr.core.policy import Action, OwnerRef, Resource, authorize, check_fields
from tipqr.core.rbac import Actor
from tipqr.core.scoping import ListParams, ListQuery, parse_enum_param, scoped_query, search_clause
from tipqr.models.restaurant import Restaurant
from tipqr.models.staff import StaffMember, StaffRole, StaffStatus
from tipqr.models.user import User
from tipqr.schemas.pagination import paginate_query
from tipqr.schemas.staff import StaffCreate, StaffResponse, StaffUpdate

logger = logging.getLogger(__name__)

SORTABLE = {
    "createdAt": StaffMember.created_at,
    "displayName": StaffMember.display_name,
    "role": StaffMember.role,
    "status": StaffMember.status,
}


def to_response(staff: StaffMember) -> StaffResponse:
    response = StaffResponse.model_validate(staff)
    response.restaurant_name = staff.restaurant.name if staff.restaurant else None
    return response


def owner_ref(staff: StaffMember) -> OwnerRef:
    return OwnerRef(owner_user_id=staff.restaurant.owner_user_id, subject_user_id=staff.user_id)


def _display_name(value: Optional[str]) -> str:
    if value is None or not value.strip():
        raise ValidationError("displayName is required and must be non-empty", "INVALID_DISPLAY_NAME")
    return value.strip()


def _existing_user_id(db: Session, user_id: Optional[str]) -> Optional[str]:
    if user_id is None:
        return None
    if db.query(User.id).filter(User.id == user_id).first() is None:
        raise NotFoundError("User not found", "USER_NOT_FOUND")
    return user_id


def find_staff(db: Session, staff_id: str) -> StaffMember:
    staff = db.query(StaffMember).filter(StaffMember.id == staff_id).first()
    if staff is None:
        raise NotFoundError("Staff member not found", "STAFF_NOT_FOUND")
    return staff


def resolve_public_staff(db: Session, staff_key: Optional[str], staff_id: Optional[str]) -> StaffMember:
    """Find the staff member a public tip or review is addressed to."""
    if staff_key and staff_key.strip():
        staff = db.query(StaffMember).filter(StaffMember.qr_key == staff_key.strip()).first()
        if staff is None:
            raise NotFoundError("Staff member not found", "STAFF_NOT_FOUND")
        return staff
    if staff_id:
        return find_staff(db, staff_id)
    raise ValidationError("Either staffKey or staffId is required", "MISSING_STAFF_IDENTIFIER")


def get_staff(db: Session, actor: Optional[Actor], staff_id: str, action: Action = Action.READ) -> StaffMember:
    """Fetch a staff member the actor may act on; 404 if absent or not theirs."""
    authorize(actor, action, Resource.STAFF)
    staff = find_staff(db, staff_id)
    authorize(actor, action, Resource.STAFF, owner_ref(staff), not_found_code="STAFF_NOT_FOUND")
    return staff


def list_staff(
    db: Session,
    actor: Optional[Actor],
    list_query: ListQuery,
    restaurant_id: Optional[str] = None,
    status: Optional[str] = None,
    role: Optional[str] = None,
) -> Tuple[list, int, ListParams]:
    authorize(actor, Action.LIST, Resource.STAFF)
    params = list_query.resolve(SORTABLE)
    query = scoped_query(db, actor, Resource.STAFF)

    if restaurant_id:
        query = query.filter(StaffMember.restaurant_id == restaurant_id)
    status_value = parse_enum_param(status, "status", StaffStatus)
    if status_value:
        query = query.filter(StaffMember.status == status_value)
    role_value = parse_enum_param(role, "role", StaffRole)
    if role_value:
        query = query.filter(StaffMember.role == role_value)
    match = search_clause(params.search, StaffMember.display_name, StaffMember.qr_key)
    if match is not None:
        query = query.filter(match)

    rows, total = paginate_query(query, params, params.order_by(SORTABLE, tiebreak=StaffMember.id))
    return rows, total, params


def create_staff(db: Session, actor: Optional[Actor], data: StaffCreate) -> StaffMember:
    authorize(actor, Action.CREATE, Resource.STAFF)
    check_fields(actor, Resource.STAFF, Action.CREATE, data.provided().keys())

    restaurant = db.query(Restaurant).filter(Restaurant.id == data.restaurant_id).first()
    if restaurant is None:
        raise NotFoundError("Restaurant not found", "RESTAURANT_NOT_FOUND")
    authorize(
        actor, Action.CREATE, Resource.STAFF,
        OwnerRef(owner_user_id=restaurant.owner_user_id),
        not_found_code="RESTAURANT_NOT_FOUND",
    )

    display_name = _display_name(data.display_name)
    staff = StaffMember(
        restaurant_id=restaurant.id,
        display_name=display_name,
        role=parse_enum_param(data.role, "role", StaffRole) or StaffRole.SERVER.value,
        status=parse_enum_param(data.status, "status", StaffStatus) or StaffStatus.ACTIVE.value,
        user_id=_existing_user_id(db, data.user_id),
        upi_id=(data.upi_id or "").strip() or None,
        qr_key=generate_qr_key(db, display_name),
    )
    db.add(staff)
    with translate_integrity_errors(db, "QR key already in use", "QR_KEY_CONFLICT"):
        db.commit()
    db.refresh(staff)
    logger.info(f"Staff {staff.id} created in restaurant {restaurant.id} by {actor.user_id}")
    return staff


def update_staff(db: Session, actor: Optional[Actor], staff_id: str, data: StaffUpdate) -> StaffMember:
    """Partial update. Forbidden fields reject the whole body before any write."""
    staff = get_staff(db, actor, staff_id, Action.UPDATE)
    changes = data.provided()
    check_fields(actor, Resource.STAFF, Action.UPDATE, changes.keys())
    if not changes:
        raise ValidationError("No valid fields provided for update", "NO_UPDATE_FIELDS")

    updates = {}
    for field, value in changes.items():
        if field == "display_name":
            updates[field] = _display_name(value)
        elif field == "role":
            if value is None:
                raise ValidationError("role cannot be null", "INVALID_ROLE")
            updates[field] = parse_enum_param(value, "role", StaffRole)
        elif field == "status":
            if value is None:
                raise ValidationError("status cannot be null", "INVALID_STATUS")
            updates[field] = parse_enum_param(value, "status", StaffStatus)
        elif field == "user_id":
            updates[field] = _existing_user_id(db, value)
        elif field == "upi_id":
            updates[field] = (value or "").strip() or None

    for field, value in updates.items():
        setattr(staff, field, value)
    db.commit()
    db.refresh(staff)
    return staff


def delete_staff(db: Session, actor: Optional[Actor], staff_id: str) -> None:
    staff = get_staff(db, actor, staff_id, Action.DELETE)
    db.delete(staff)
    db.commit()
    logger.info(f"Staff {staff_id} deleted by {actor.user_id}")


def claim_staff(db: Session, actor: Optional[Actor], qr_key: str) -> StaffMember:
    """Link an unclaimed staff slot to the calling worker."""
    authorize(actor, Action.CLAIM, Resource.STAFF)
    staff = db.query(StaffMember).filter(StaffMember.qr_key == qr_key.strip()).first()
    if staff is None:
        raise NotFoundError("Staff member not found", "STAFF_NOT_FOUND")
    if staff.user_id == actor.user_id:
        return staff
    if staff.user_id is not None:
        raise ConflictError("This staff profile is already claimed", "STAFF_ALREADY_CLAIMED")

    # Conditional so two workers racing for one slot cannot both win
    result = db.execute(
        update(StaffMember)
        .where(StaffMember.id == staff.id, StaffMember.user_id.is_(None))
        .values(user_id=actor.user_id)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.rollback()
        raise ConflictError("This staff profile is already claimed", "STAFF_ALREADY_CLAIMED")
    db.commit()
    db.refresh(staff)
    logger.info(f"Worker {actor.user_id} claimed staff {staff.id}")
    return staff
