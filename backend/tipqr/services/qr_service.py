"""Public tipping page data, addressed by a staff member's QR key."""

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from tipqr.core.errors import NotFoundError, ValidationError
from tipqr.core.invariants import tip_amount_to_cents
from tipqr.core.upi import build_upi_link, tip_note
from tipqr.models.review import Review
from tipqr.models.staff import StaffMember
from tipqr.models.tip import Tip, TipStatus

RECENT_LIMIT = 5


def _query_amount(raw: Optional[str]) -> Optional[int]:
    if raw is None or raw.strip() == "":
        return None
    try:
        value = Decimal(raw.strip())
    except InvalidOperation:
        raise ValidationError("Amount must be a number", "INVALID_AMOUNT")
    return tip_amount_to_cents(value)


def public_page(db: Session, key: str, amount: Optional[str] = None) -> Dict[str, Any]:
    staff = db.query(StaffMember).filter(StaffMember.qr_key == key.strip()).first()
    if staff is None:
        raise NotFoundError("Staff member not found with this QR key", "STAFF_NOT_FOUND")
    if not staff.is_active:
        raise NotFoundError("Staff member is not currently accepting tips", "STAFF_INACTIVE")

    restaurant = staff.restaurant
    upi_id = staff.upi_id or restaurant.upi_id
    amount_cents = _query_amount(amount)

    recent_reviews = (
        db.query(Review)
        .filter(Review.staff_member_id == staff.id, Review.approved.is_(True))
        .order_by(Review.created_at.desc(), Review.id.desc())
        .limit(RECENT_LIMIT)
        .all()
    )
    recent_tips = (
        db.query(Tip)
        .filter(Tip.staff_member_id == staff.id, Tip.status == TipStatus.SUCCEEDED.value)
        .order_by(Tip.created_at.desc(), Tip.id.desc())
        .limit(RECENT_LIMIT)
        .all()
    )
    review_count, average_rating = (
        db.query(func.count(Review.id), func.avg(Review.rating))
        .filter(Review.staff_member_id == staff.id, Review.approved.is_(True))
        .one()
    )
    tip_count, tip_total = (
        db.query(func.count(Tip.id), func.coalesce(func.sum(Tip.amount_cents), 0))
        .filter(Tip.staff_member_id == staff.id, Tip.status == TipStatus.SUCCEEDED.value)
        .one()
    )

    return {
        "staff": {
            "id": staff.id,
            "displayName": staff.display_name,
            "role": staff.role,
            "qrKey": staff.qr_key,
            "upiId": staff.upi_id,
        },
        "restaurant": {
            "id": restaurant.id,
            "name": restaurant.name,
            "upiId": restaurant.upi_id,
            "address": restaurant.address,
            "city": restaurant.city,
            "state": restaurant.state,
            "country": restaurant.country,
        },
        "upiIdResolved": upi_id,
        "upiLink": build_upi_link(
            upi_id,
            staff.display_name,
            amount_cents=amount_cents,
            note=tip_note(staff.display_name, restaurant.name),
        ),
        "recentReviews": [
            {
                "id": r.id,
                "rating": r.rating,
                "comment": r.comment,
                "createdAt": r.created_at,
            }
            for r in recent_reviews
        ],
        "recentTips": [
            {
                "id": t.id,
                "amountCents": t.amount_cents,
                "currency": t.currency,
                "payerName": t.payer_name,
                "message": t.message,
                "createdAt": t.created_at,
            }
            for t in recent_tips
        ],
        "stats": {
            "reviewCount": int(review_count or 0),
            "averageRating": round(float(average_rating), 1) if average_rating is not None else None,
            "tipCount": int(tip_count or 0),
            "totalTipsAmount": int(tip_total or 0),
        },
    }
