"""Review routes: public submission, scoped listing, moderation."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status

from tipqr.core.config import settings
from tipqr.core.rate_limit import limiter
from tipqr.core.scoping import ListQuery
from tipqr.core.sessions import CurrentActor, OptionalActor
from tipqr.db.session import DbSession
from tipqr.schemas.pagination import envelope
from tipqr.schemas.review import ReviewCreate, ReviewModerate, ReviewResponse
from tipqr.services import review_service

router = APIRouter()


@router.get("")
def list_reviews(
    actor: CurrentActor,
    db: DbSession,
    list_query: ListQuery = Depends(),
    restaurant_id: Optional[str] = Query(None, alias="restaurantId"),
    staff_id: Optional[str] = Query(None, alias="staffId"),
    approved: Optional[str] = Query(None),
):
    rows, total, params = review_service.list_reviews(
        db, actor, list_query, restaurant_id=restaurant_id, staff_id=staff_id, approved=approved
    )
    data = [review_service.to_response(r).model_dump(by_alias=True) for r in rows]
    return envelope(data, total, params)


@router.post("", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.public_write_rate_limit)
def create_review(
    request: Request,
    data: ReviewCreate,
    actor: OptionalActor,
    db: DbSession,
    moderation: Optional[str] = Query(None),
):
    """Submit a review. ``?moderation=on`` holds it for approval."""
    review = review_service.create_review(db, actor, data, moderation=moderation)
    return review_service.to_response(review)


@router.patch("/{review_id}", response_model=ReviewResponse)
def moderate_review(review_id: str, data: ReviewModerate, actor: CurrentActor, db: DbSession):
    review = review_service.moderate_review(db, actor, review_id, data.approved)
    return review_service.to_response(review)
