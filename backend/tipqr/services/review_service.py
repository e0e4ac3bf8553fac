"""Reviews: public submission and moderation."""

import logging
from typing import Any, Optional, Tuple

from sqlalchemy.orm import Session

from tipqr.core.errors import NotFoundError, ValidationError
from tipqr.core.feature_flags import REVIEW_MODERATION, is_enabled
from tipqr.core.invariants import ensure_staff_active
from tipqr.core.policy import Action, OwnerRef, Resource, authorize
from tipqr.core.rbac import Actor
from tipqr.core.sanitize import sanitize_text
from tipqr.core.scoping import ListParams, ListQuery, parse_bool_param, scoped_query, search_clause
from tipqr.models.restaurant import Restaurant
from tipqr.models.review import Review
from tipqr.models.tip import Tip
from tipqr.schemas.pagination import paginate_query
from tipqr.schemas.review import ReviewCreate, ReviewResponse
from tipqr.services import staff_service

logger = logging.getLogger(__name__)

SORTABLE = {
    "createdAt": Review.created_at,
    "rating": Review.rating,
}


def to_response(review: Review) -> ReviewResponse:
    response = ReviewResponse.model_validate(review)
    staff = review.staff_member
    if staff is not None:
        response.staff_display_name = staff.display_name
        response.restaurant_id = staff.restaurant_id
        response.restaurant_name = staff.restaurant.name if staff.restaurant else None
    if review.tip is not None:
        response.tip_amount_cents = review.tip.amount_cents
    return response


def parse_rating(value: Any) -> int:
    """Ratings are whole numbers 1-5; booleans and numeric strings are rejected."""
    if isinstance(value, bool):
        raise ValidationError("Rating must be an integer between 1 and 5", "INVALID_RATING")
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, int) or value < 1 or value > 5:
        raise ValidationError("Rating must be an integer between 1 and 5", "INVALID_RATING")
    return value


def moderation_on(db: Session, moderation: Optional[str]) -> bool:
    """New reviews wait for approval when asked per request or by the toggle."""
    if moderation is not None and moderation.strip().lower() == "on":
        return True
    return is_enabled(db, REVIEW_MODERATION)


def create_review(
    db: Session,
    actor: Optional[Actor],
    data: ReviewCreate,
    moderation: Optional[str] = None,
) -> Review:
    authorize(actor, Action.CREATE, Resource.REVIEW)
    staff = staff_service.resolve_public_staff(db, data.staff_key, data.staff_id)
    ensure_staff_active(staff)
    rating = parse_rating(data.rating)

    if data.tip_id:
        tip = db.query(Tip).filter(Tip.id == data.tip_id, Tip.staff_member_id == staff.id).first()
        if tip is None:
            raise NotFoundError("Tip not found", "TIP_NOT_FOUND")

    review = Review(
        staff_member_id=staff.id,
        rating=rating,
        comment=sanitize_text(data.comment, 2000),
        tip_id=data.tip_id or None,
        approved=not moderation_on(db, moderation),
    )
    db.add(review)
    db.commit()
    db.refresh(review)
    logger.info(f"Review {review.id} for staff {staff.id} (approved={review.approved})")
    return review


def list_reviews(
    db: Session,
    actor: Optional[Actor],
    list_query: ListQuery,
    restaurant_id: Optional[str] = None,
    staff_id: Optional[str] = None,
    approved: Optional[str] = None,
) -> Tuple[list, int, ListParams]:
    authorize(actor, Action.LIST, Resource.REVIEW)
    params = list_query.resolve(SORTABLE)
    query = scoped_query(db, actor, Resource.REVIEW)

    if restaurant_id:
        query = query.filter(Restaurant.id == restaurant_id)
    if staff_id:
        query = query.filter(Review.staff_member_id == staff_id)
    approved_value = parse_bool_param(approved, "approved")
    if approved_value is not None:
        query = query.filter(Review.approved == approved_value)
    match = search_clause(params.search, Review.comment)
    if match is not None:
        query = query.filter(match)

    rows, total = paginate_query(query, params, params.order_by(SORTABLE, tiebreak=Review.id))
    return rows, total, params


def moderate_review(db: Session, actor: Optional[Actor], review_id: str, approved: Any) -> Review:
    """Approve or un-approve a review. Can be repeated in either direction."""
    authorize(actor, Action.MODERATE, Resource.REVIEW)
    if not isinstance(approved, bool):
        raise ValidationError("approved must be true or false", "INVALID_APPROVED_VALUE")

    review = db.query(Review).filter(Review.id == review_id).first()
    if review is None:
        raise NotFoundError("Review not found", "REVIEW_NOT_FOUND")
    authorize(
        actor, Action.MODERATE, Resource.REVIEW,
        OwnerRef(owner_user_id=review.staff_member.restaurant.owner_user_id),
        not_found_code="REVIEW_NOT_FOUND",
    )

    review.approved = approved
    review.approved_by = actor.user_id
    db.commit()
    db.refresh(review)
    logger.info(f"Review {review.id} set approved={approved} by {actor.user_id}")
    return review
