"""Tip creation and ledgers."""

import logging
from typing import Any, Dict, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from tipqr.core.config import settings
from tipqr.core.errors import ValidationError
from tipqr.core.invariants import ensure_staff_active, tip_amount_to_cents
from tipqr.core.policy import Action, Resource, authorize
from tipqr.core.rbac import Actor
from tipqr.core.sanitize import sanitize_text
from tipqr.core.scoping import ListParams, ListQuery, parse_date_param, parse_enum_param, scoped_query
from tipqr.models.restaurant import Restaurant
from tipqr.models.staff import StaffMember
from tipqr.models.tip import Tip, TipSource, TipStatus
from tipqr.schemas.pagination import paginate_query
from tipqr.schemas.tip import TipCreate, TipResponse, TipSummary
from tipqr.services import staff_service

logger = logging.getLogger(__name__)

SORTABLE = {
    "createdAt": Tip.created_at,
    "amountCents": Tip.amount_cents,
}


def to_response(tip: Tip) -> TipResponse:
    response = TipResponse.model_validate(tip)
    staff = tip.staff_member
    if staff is not None:
        response.staff_display_name = staff.display_name
        response.restaurant_name = staff.restaurant.name if staff.restaurant else None
    return response


def _date_filters(query, date_from: Optional[str], date_to: Optional[str]):
    start = parse_date_param(date_from, "dateFrom")
    end = parse_date_param(date_to, "dateTo", end_of_range=True)
    if start is not None and end is not None and start > end:
        raise ValidationError("dateFrom must not be after dateTo", "INVALID_DATE_RANGE")
    if start is not None:
        query = query.filter(Tip.created_at >= start)
    if end is not None:
        query = query.filter(Tip.created_at <= end)
    return query


def create_tip(db: Session, actor: Optional[Actor], data: TipCreate) -> Tip:
    """Record a tip against an active staff member.

    Public: no session is needed. Every check runs before the insert.
    """
    authorize(actor, Action.CREATE, Resource.TIP)
    staff = staff_service.resolve_public_staff(db, data.staff_key, data.staff_id)
    ensure_staff_active(staff)
    amount_cents = tip_amount_to_cents(data.amount)

    currency = (data.currency or settings.default_currency).strip().upper()
    if currency != settings.default_currency:
        raise ValidationError(
            f"Only {settings.default_currency} tips are supported", "INVALID_CURRENCY"
        )
    source = parse_enum_param(data.source, "source", TipSource) or TipSource.QR.value

    tip = Tip(
        staff_member_id=staff.id,
        amount_cents=amount_cents,
        currency=currency,
        payer_name=sanitize_text(data.payer_name, 255),
        message=sanitize_text(data.message, 1000),
        source=source,
        status=TipStatus.SUCCEEDED.value,
    )
    db.add(tip)
    db.commit()
    db.refresh(tip)
    logger.info(f"Tip {tip.id}: {amount_cents} {currency} for staff {staff.id} via {source}")
    return tip


def list_tips(
    db: Session,
    actor: Optional[Actor],
    list_query: ListQuery,
    restaurant_id: Optional[str] = None,
    staff_id: Optional[str] = None,
    status: Optional[str] = None,
    source: Optional[str] = None,
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
) -> Tuple[list, int, ListParams]:
    authorize(actor, Action.LIST, Resource.TIP)
    params = list_query.resolve(SORTABLE)
    query = scoped_query(db, actor, Resource.TIP)

    if restaurant_id:
        query = query.filter(Restaurant.id == restaurant_id)
    if staff_id:
        query = query.filter(Tip.staff_member_id == staff_id)
    status_value = parse_enum_param(status, "status", TipStatus)
    if status_value:
        query = query.filter(Tip.status == status_value)
    source_value = parse_enum_param(source, "source", TipSource)
    if source_value:
        query = query.filter(Tip.source == source_value)
    query = _date_filters(query, date_from, date_to)

    rows, total = paginate_query(query, params, params.order_by(SORTABLE, tiebreak=Tip.id))
    return rows, total, params


def staff_tips(
    db: Session,
    actor: Optional[Actor],
    staff_id: str,
    list_query: ListQuery,
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
) -> Tuple[list, int, ListParams, Dict[str, Any]]:
    """One staff member's tips plus a summary over the same filtered range.

    Admins see anyone, owners their restaurants' staff, workers only their
    own linked record.
    """
    authorize(actor, Action.READ, Resource.TIP)
    params = list_query.resolve(SORTABLE)
    staff = staff_service.find_staff(db, staff_id)
    authorize(
        actor, Action.READ, Resource.TIP,
        staff_service.owner_ref(staff),
        not_found_code="STAFF_NOT_FOUND",
    )

    query = scoped_query(db, actor, Resource.TIP, Action.READ).filter(StaffMember.id == staff.id)
    query = _date_filters(query, date_from, date_to)

    total_amount, tip_count = query.order_by(None).with_entities(
        func.coalesce(func.sum(Tip.amount_cents), 0),
        func.count(Tip.id),
    ).one()
    summary = TipSummary(total_amount=int(total_amount or 0), tip_count=int(tip_count or 0))

    rows, total = paginate_query(query, params, params.order_by(SORTABLE, tiebreak=Tip.id))
    return rows, total, params, summary.model_dump(by_alias=True)
