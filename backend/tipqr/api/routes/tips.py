"""Tip routes. Creating a tip is public; listing is scoped to the caller."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status

from tipqr.core.config import settings
from tipqr.core.rate_limit import limiter
from tipqr.core.scoping import ListQuery
from tipqr.core.sessions import CurrentActor, OptionalActor
from tipqr.db.session import DbSession
from tipqr.schemas.pagination import envelope
from tipqr.schemas.tip import TipCreate, TipResponse
from tipqr.services import tip_service

router = APIRouter()


@router.get("")
def list_tips(
    actor: CurrentActor,
    db: DbSession,
    list_query: ListQuery = Depends(),
    restaurant_id: Optional[str] = Query(None, alias="restaurantId"),
    staff_id: Optional[str] = Query(None, alias="staffId"),
    tip_status: Optional[str] = Query(None, alias="status"),
    source: Optional[str] = Query(None),
    date_from: Optional[str] = Query(None, alias="dateFrom"),
    date_to: Optional[str] = Query(None, alias="dateTo"),
):
    rows, total, params = tip_service.list_tips(
        db, actor, list_query,
        restaurant_id=restaurant_id,
        staff_id=staff_id,
        status=tip_status,
        source=source,
        date_from=date_from,
        date_to=date_to,
    )
    data = [tip_service.to_response(t).model_dump(by_alias=True) for t in rows]
    return envelope(data, total, params)


@router.post("", response_model=TipResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.public_write_rate_limit)
def create_tip(request: Request, data: TipCreate, actor: OptionalActor, db: DbSession):
    return tip_service.to_response(tip_service.create_tip(db, actor, data))
