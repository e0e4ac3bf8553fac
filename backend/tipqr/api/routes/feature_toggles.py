"""Feature toggle routes. Reading is public, changes are admin-only."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from tipqr.core.policy import Action
from tipqr.core.scoping import ListQuery
from tipqr.core.sessions import CurrentActor, OptionalActor
from tipqr.db.session import DbSession
from tipqr.schemas.feature_toggle import FeatureToggleCreate, FeatureToggleResponse, FeatureToggleUpdate
from tipqr.schemas.pagination import envelope
from tipqr.services import feature_toggle_service

router = APIRouter()


@router.get("")
def list_toggles(
    actor: OptionalActor,
    db: DbSession,
    list_query: ListQuery = Depends(),
    audience: Optional[str] = Query(None),
    enabled: Optional[str] = Query(None),
):
    rows, total, params = feature_toggle_service.list_toggles(
        db, actor, list_query, audience=audience, enabled=enabled
    )
    data = [FeatureToggleResponse.model_validate(t).model_dump(by_alias=True) for t in rows]
    return envelope(data, total, params)


@router.get("/key/{key}", response_model=FeatureToggleResponse)
def get_toggle_by_key(key: str, actor: OptionalActor, db: DbSession):
    return feature_toggle_service.get_toggle_by_key(db, actor, key)


@router.post("", response_model=FeatureToggleResponse, status_code=status.HTTP_201_CREATED)
def create_toggle(data: FeatureToggleCreate, actor: CurrentActor, db: DbSession):
    return feature_toggle_service.create_toggle(db, actor, data)


@router.patch("/key/{key}", response_model=FeatureToggleResponse)
def update_toggle_by_key(key: str, data: FeatureToggleUpdate, actor: CurrentActor, db: DbSession):
    toggle = feature_toggle_service.get_toggle_by_key(db, actor, key, Action.UPDATE)
    return feature_toggle_service.update_toggle(db, actor, toggle, data)


@router.get("/{toggle_id}", response_model=FeatureToggleResponse)
def get_toggle(toggle_id: str, actor: OptionalActor, db: DbSession):
    return feature_toggle_service.get_toggle(db, actor, toggle_id)


@router.patch("/{toggle_id}", response_model=FeatureToggleResponse)
def update_toggle(toggle_id: str, data: FeatureToggleUpdate, actor: CurrentActor, db: DbSession):
    toggle = feature_toggle_service.get_toggle(db, actor, toggle_id, Action.UPDATE)
    return feature_toggle_service.update_toggle(db, actor, toggle, data)


@router.delete("/{toggle_id}")
def delete_toggle(toggle_id: str, actor: CurrentActor, db: DbSession):
    feature_toggle_service.delete_toggle(db, actor, toggle_id)
    return {"success": True, "id": toggle_id}
