"""Roles and the resolved caller identity."""

from dataclasses import dataclass
from enum import Enum


class UserRole(str, Enum):
    """Platform roles. Exactly one per user."""

    ADMIN = "admin"
    OWNER = "owner"
    WORKER = "worker"


# Roles a user may pick for themselves
SELF_ASSIGNABLE_ROLES = (UserRole.OWNER, UserRole.WORKER)


@dataclass(frozen=True)
class Actor:
    """The authenticated caller of one request.

    Built by the session resolver from a live session row and the user it
    points at. Anonymous callers are represented by ``None``, never by an
    Actor with an empty role.
    """

    user_id: str
    role: UserRole
    name: str = ""
    email: str = ""
