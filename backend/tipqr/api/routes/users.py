"""User routes: the caller's own profile and the admin user console."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from tipqr.core.scoping import ListQuery
from tipqr.core.sessions import CurrentActor
from tipqr.db.session import DbSession
from tipqr.schemas.pagination import envelope
from tipqr.schemas.user import AdminRoleChange, RoleChange, UserResponse
from tipqr.services import user_service

me_router = APIRouter()
admin_router = APIRouter()


@me_router.get("", response_model=UserResponse)
def get_me(actor: CurrentActor, db: DbSession):
    return user_service.get_me(db, actor)


@me_router.patch("/role", response_model=UserResponse)
def change_my_role(data: RoleChange, actor: CurrentActor, db: DbSession):
    """Switch between owner and worker."""
    return user_service.change_own_role(db, actor, data.role)


@admin_router.get("/users")
def list_users(
    actor: CurrentActor,
    db: DbSession,
    list_query: ListQuery = Depends(),
    role: Optional[str] = Query(None),
):
    rows, total, params = user_service.list_users(db, actor, list_query, role=role)
    data = [UserResponse.model_validate(u).model_dump(by_alias=True) for u in rows]
    return envelope(data, total, params)


@admin_router.patch("/users", response_model=UserResponse)
def set_user_role(data: AdminRoleChange, actor: CurrentActor, db: DbSession):
    return user_service.admin_change_role(db, actor, data.user_id, data.role)
