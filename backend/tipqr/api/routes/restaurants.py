"""Restaurant routes."""

from fastapi import APIRouter, Depends, status

from tipqr.core.scoping import ListQuery
from tipqr.core.sessions import CurrentActor
from tipqr.db.session import DbSession
from tipqr.schemas.pagination import envelope
from tipqr.schemas.restaurant import RestaurantCreate, RestaurantResponse, RestaurantUpdate
from tipqr.services import restaurant_service

router = APIRouter()


@router.get("")
def list_restaurants(actor: CurrentActor, db: DbSession, list_query: ListQuery = Depends()):
    """Admins see every restaurant, owners their own. Workers are refused."""
    rows, total, params = restaurant_service.list_restaurants(db, actor, list_query)
    data = [RestaurantResponse.model_validate(r).model_dump(by_alias=True) for r in rows]
    return envelope(data, total, params)


@router.post("", response_model=RestaurantResponse, status_code=status.HTTP_201_CREATED)
def create_restaurant(data: RestaurantCreate, actor: CurrentActor, db: DbSession):
    return restaurant_service.create_restaurant(db, actor, data)


@router.get("/{restaurant_id}", response_model=RestaurantResponse)
def get_restaurant(restaurant_id: str, actor: CurrentActor, db: DbSession):
    return restaurant_service.get_restaurant(db, actor, restaurant_id)


@router.patch("/{restaurant_id}", response_model=RestaurantResponse)
def update_restaurant(restaurant_id: str, data: RestaurantUpdate, actor: CurrentActor, db: DbSession):
    return restaurant_service.update_restaurant(db, actor, restaurant_id, data)


@router.delete("/{restaurant_id}")
def delete_restaurant(restaurant_id: str, actor: CurrentActor, db: DbSession):
    restaurant_service.delete_restaurant(db, actor, restaurant_id)
    return {"success": True, "id": restaurant_id}
