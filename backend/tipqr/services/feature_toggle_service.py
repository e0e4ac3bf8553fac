"""Feature toggle administration."""

import logging
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from tipqr.core.errors import ConflictError, NotFoundError, ValidationError
from tipqr.core.invariants import translate_integrity_errors
from tipqr.core.policy import Action, Resource, authorize, check_fields
from tipqr.core.rbac import Actor
from tipqr.core.scoping import ListParams, ListQuery, parse_bool_param, scoped_query, search_clause
from tipqr.models.feature_toggle import TOGGLE_KEY_PATTERN, FeatureToggle
from tipqr.schemas.feature_toggle import FeatureToggleCreate, FeatureToggleUpdate
from tipqr.schemas.pagination import paginate_query

logger = logging.getLogger(__name__)

SORTABLE = {
    "createdAt": FeatureToggle.created_at,
    "updatedAt": FeatureToggle.updated_at,
    "key": FeatureToggle.key,
}


def _label(value: Optional[str]) -> str:
    if value is None or not value.strip():
        raise ValidationError("label is required and must be non-empty", "INVALID_LABEL")
    return value.strip()


def _audience(value: Optional[str]) -> str:
    if value is None or not value.strip():
        raise ValidationError("audience must be a non-empty string", "INVALID_AUDIENCE")
    return value.strip()


def list_toggles(
    db: Session,
    actor: Optional[Actor],
    list_query: ListQuery,
    audience: Optional[str] = None,
    enabled: Optional[str] = None,
) -> Tuple[list, int, ListParams]:
    authorize(actor, Action.LIST, Resource.FEATURE_TOGGLE)
    params = list_query.resolve(SORTABLE)
    query = scoped_query(db, actor, Resource.FEATURE_TOGGLE)

    match = search_clause(params.search, FeatureToggle.key, FeatureToggle.label)
    if match is not None:
        query = query.filter(match)
    if audience:
        query = query.filter(FeatureToggle.audience == audience)
    enabled_value = parse_bool_param(enabled, "enabled")
    if enabled_value is not None:
        query = query.filter(FeatureToggle.enabled == enabled_value)

    rows, total = paginate_query(query, params, params.order_by(SORTABLE, tiebreak=FeatureToggle.id))
    return rows, total, params


def get_toggle(db: Session, actor: Optional[Actor], toggle_id: str, action: Action = Action.READ) -> FeatureToggle:
    authorize(actor, action, Resource.FEATURE_TOGGLE)
    toggle = db.query(FeatureToggle).filter(FeatureToggle.id == toggle_id).first()
    if toggle is None:
        raise NotFoundError("Feature toggle not found", "TOGGLE_NOT_FOUND")
    return toggle


def get_toggle_by_key(db: Session, actor: Optional[Actor], key: str, action: Action = Action.READ) -> FeatureToggle:
    authorize(actor, action, Resource.FEATURE_TOGGLE)
    toggle = db.query(FeatureToggle).filter(FeatureToggle.key == key).first()
    if toggle is None:
        raise NotFoundError("Feature toggle not found", "TOGGLE_NOT_FOUND")
    return toggle


def create_toggle(db: Session, actor: Optional[Actor], data: FeatureToggleCreate) -> FeatureToggle:
    authorize(actor, Action.CREATE, Resource.FEATURE_TOGGLE)
    key = data.key.strip()
    if not TOGGLE_KEY_PATTERN.match(key):
        raise ValidationError(
            "key may only contain letters, digits, '-' and '_'", "INVALID_KEY_FORMAT"
        )
    label = _label(data.label)
    audience = _audience(data.audience)

    if db.query(FeatureToggle.id).filter(FeatureToggle.key == key).first() is not None:
        raise ConflictError(f"Feature toggle '{key}' already exists", "DUPLICATE_KEY")

    toggle = FeatureToggle(key=key, label=label, enabled=data.enabled, audience=audience)
    db.add(toggle)
    with translate_integrity_errors(db, f"Feature toggle '{key}' already exists", "DUPLICATE_KEY"):
        db.commit()
    db.refresh(toggle)
    logger.info(f"Feature toggle {key} created by {actor.user_id} (enabled={toggle.enabled})")
    return toggle


def update_toggle(db: Session, actor: Optional[Actor], toggle: FeatureToggle, data: FeatureToggleUpdate) -> FeatureToggle:
    """Partial update; fields not sent keep their stored values."""
    authorize(actor, Action.UPDATE, Resource.FEATURE_TOGGLE)
    changes = data.provided()
    check_fields(actor, Resource.FEATURE_TOGGLE, Action.UPDATE, changes.keys())
    if not changes:
        raise ValidationError("No valid fields provided for update", "NO_UPDATE_FIELDS")

    updates = {}
    if "label" in changes:
        updates["label"] = _label(changes["label"])
    if "audience" in changes:
        updates["audience"] = _audience(changes["audience"])
    if "enabled" in changes:
        if changes["enabled"] is None:
            raise ValidationError("enabled must be true or false", "INVALID_ENABLED")
        updates["enabled"] = changes["enabled"]

    for field, value in updates.items():
        setattr(toggle, field, value)
    db.commit()
    db.refresh(toggle)
    logger.info(f"Feature toggle {toggle.key} updated by {actor.user_id}: {sorted(updates)}")
    return toggle


def delete_toggle(db: Session, actor: Optional[Actor], toggle_id: str) -> None:
    toggle = get_toggle(db, actor, toggle_id, Action.DELETE)
    db.delete(toggle)
    db.commit()
    logger.info(f"Feature toggle {toggle_id} deleted by {actor.user_id}")
