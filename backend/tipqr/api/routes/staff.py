"""Staff routes, including the worker claim flow and per-staff tip ledger."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from tipqr.core.scoping import ListQuery
from tipqr.core.sessions import CurrentActor
from tipqr.db.session import DbSession
from tipqr.schemas.pagination import envelope
from tipqr.schemas.staff import StaffClaim, StaffCreate, StaffResponse, StaffUpdate
from tipqr.services import staff_service, tip_service

router = APIRouter()


@router.get("")
def list_staff(
    actor: CurrentActor,
    db: DbSession,
    list_query: ListQuery = Depends(),
    restaurant_id: Optional[str] = Query(None, alias="restaurantId"),
    staff_status: Optional[str] = Query(None, alias="status"),
    role: Optional[str] = Query(None),
):
    rows, total, params = staff_service.list_staff(
        db, actor, list_query, restaurant_id=restaurant_id, status=staff_status, role=role
    )
    data = [staff_service.to_response(s).model_dump(by_alias=True) for s in rows]
    return envelope(data, total, params)


@router.post("", response_model=StaffResponse, status_code=status.HTTP_201_CREATED)
def create_staff(data: StaffCreate, actor: CurrentActor, db: DbSession):
    return staff_service.to_response(staff_service.create_staff(db, actor, data))


@router.post("/claim", response_model=StaffResponse)
def claim_staff(data: StaffClaim, actor: CurrentActor, db: DbSession):
    """A worker links themselves to an unclaimed staff slot by its QR key."""
    return staff_service.to_response(staff_service.claim_staff(db, actor, data.qr_key))


@router.get("/{staff_id}", response_model=StaffResponse)
def get_staff(staff_id: str, actor: CurrentActor, db: DbSession):
    return staff_service.to_response(staff_service.get_staff(db, actor, staff_id))


@router.patch("/{staff_id}", response_model=StaffResponse)
def update_staff(staff_id: str, data: StaffUpdate, actor: CurrentActor, db: DbSession):
    return staff_service.to_response(staff_service.update_staff(db, actor, staff_id, data))


@router.delete("/{staff_id}")
def delete_staff(staff_id: str, actor: CurrentActor, db: DbSession):
    staff_service.delete_staff(db, actor, staff_id)
    return {"success": True, "id": staff_id}


@router.get("/{staff_id}/tips")
def staff_tips(
    staff_id: str,
    actor: CurrentActor,
    db: DbSession,
    list_query: ListQuery = Depends(),
    date_from: Optional[str] = Query(None, alias="dateFrom"),
    date_to: Optional[str] = Query(None, alias="dateTo"),
):
    rows, total, params, summary = tip_service.staff_tips(
        db, actor, staff_id, list_query, date_from=date_from, date_to=date_to
    )
    data = [tip_service.to_response(t).model_dump(by_alias=True) for t in rows]
    return envelope(data, total, params, summary=summary)
