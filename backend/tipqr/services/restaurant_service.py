"""Restaurant management."""

import logging
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from tipqr.core.errors import NotFoundError, ValidationError
from tipqr.core.policy import Action, OwnerRef, Resource, authorize, check_fields
from tipqr.core.rbac import Actor, UserRole
from tipqr.core.scoping import ListParams, ListQuery, scoped_query, search_clause
from tipqr.models.restaurant import Restaurant
from tipqr.models.user import User
from tipqr.schemas.pagination import paginate_query
from tipqr.schemas.restaurant import RestaurantCreate, RestaurantUpdate

logger = logging.getLogger(__name__)

SORTABLE = {
    "createdAt": Restaurant.created_at,
    "name": Restaurant.name,
}

REQUIRED_TEXT = {"name": "INVALID_NAME", "upi_id": "INVALID_UPI_ID"}
OPTIONAL_TEXT = ("address", "city", "state", "country")


def _required_text(value: Optional[str], field: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(f"{field} is required and must be non-empty", REQUIRED_TEXT[field])
    return value.strip()


def _optional_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


def owner_ref(restaurant: Restaurant) -> OwnerRef:
    return OwnerRef(owner_user_id=restaurant.owner_user_id)


def get_restaurant(db: Session, actor: Optional[Actor], restaurant_id: str, action: Action = Action.READ) -> Restaurant:
    """Fetch a restaurant the actor may act on; 404 if absent or not theirs."""
    authorize(actor, action, Resource.RESTAURANT)
    restaurant = db.query(Restaurant).filter(Restaurant.id == restaurant_id).first()
    if restaurant is None:
        raise NotFoundError("Restaurant not found", "RESTAURANT_NOT_FOUND")
    authorize(actor, action, Resource.RESTAURANT, owner_ref(restaurant), not_found_code="RESTAURANT_NOT_FOUND")
    return restaurant


def list_restaurants(db: Session, actor: Optional[Actor], list_query: ListQuery) -> Tuple[list, int, ListParams]:
    authorize(actor, Action.LIST, Resource.RESTAURANT)
    params = list_query.resolve(SORTABLE)
    query = scoped_query(db, actor, Resource.RESTAURANT)
    match = search_clause(params.search, Restaurant.name, Restaurant.city)
    if match is not None:
        query = query.filter(match)
    rows, total = paginate_query(query, params, params.order_by(SORTABLE, tiebreak=Restaurant.id))
    return rows, total, params


def create_restaurant(db: Session, actor: Optional[Actor], data: RestaurantCreate) -> Restaurant:
    authorize(actor, Action.CREATE, Resource.RESTAURANT)
    check_fields(actor, Resource.RESTAURANT, Action.CREATE, data.provided().keys())

    owner_user_id = actor.user_id
    if data.owner_user_id is not None:
        owner = db.query(User).filter(User.id == data.owner_user_id).first()
        if owner is None:
            raise ValidationError("ownerUserId does not reference an existing user", "INVALID_OWNER_USER")
        if owner.role != UserRole.OWNER:
            raise ValidationError("ownerUserId must reference a user with role owner", "INVALID_OWNER_ROLE")
        owner_user_id = owner.id

    authorize(actor, Action.CREATE, Resource.RESTAURANT, OwnerRef(owner_user_id=owner_user_id))

    restaurant = Restaurant(
        owner_user_id=owner_user_id,
        name=_required_text(data.name, "name"),
        upi_id=_required_text(data.upi_id, "upi_id"),
        **{field: _optional_text(getattr(data, field)) for field in OPTIONAL_TEXT},
    )
    db.add(restaurant)
    db.commit()
    db.refresh(restaurant)
    logger.info(f"Restaurant {restaurant.id} created by {actor.user_id} for owner {owner_user_id}")
    return restaurant


def update_restaurant(db: Session, actor: Optional[Actor], restaurant_id: str, data: RestaurantUpdate) -> Restaurant:
    restaurant = get_restaurant(db, actor, restaurant_id, Action.UPDATE)
    changes = data.provided()
    check_fields(actor, Resource.RESTAURANT, Action.UPDATE, changes.keys())
    if not changes:
        raise ValidationError("No valid fields provided for update", "NO_UPDATE_FIELDS")

    updates = {}
    for field, value in changes.items():
        if field in REQUIRED_TEXT:
            updates[field] = _required_text(value, field)
        else:
            updates[field] = _optional_text(value)

    for field, value in updates.items():
        setattr(restaurant, field, value)
    db.commit()
    db.refresh(restaurant)
    return restaurant


def delete_restaurant(db: Session, actor: Optional[Actor], restaurant_id: str) -> None:
    """Delete a restaurant together with its staff, their tips and reviews."""
    restaurant = get_restaurant(db, actor, restaurant_id, Action.DELETE)
    db.delete(restaurant)
    db.commit()
    logger.info(f"Restaurant {restaurant_id} deleted by {actor.user_id}")
