"""Feature flags.

Toggles live in the ``feature_toggles`` table and are managed by admins at
runtime. An environment variable ``FEATURE_<KEY>`` overrides the stored
value, which is useful for tests and emergency switches:

    FEATURE_REVIEW_MODERATION=true

A key with no row and no override is off.
"""

import os
from typing import Dict, Optional

from sqlalchemy.orm import Session

from tipqr.models.feature_toggle import FeatureToggle

REVIEW_MODERATION = "review_moderation"

# Toggles the seed script creates, with their labels
DEFAULT_TOGGLES: Dict[str, str] = {
    "qr_payments": "QR code payments",
    REVIEW_MODERATION: "Hold new reviews for moderation",
    "analytics_dashboard": "Analytics dashboard",
    "mobile_app": "Mobile app",
    "tip_goals": "Tip goals",
    "multi_restaurant": "Multiple restaurants per owner",
    "admin_panel": "Admin panel",
}


def env_override(key: str) -> Optional[bool]:
    env_key = f"FEATURE_{key.upper().replace('-', '_')}"
    env_value = os.environ.get(env_key, "").strip().lower()
    if env_value in ("true", "1", "yes"):
        return True
    if env_value in ("false", "0", "no"):
        return False
    return None


def is_enabled(db: Session, key: str) -> bool:
    override = env_override(key)
    if override is not None:
        return override
    toggle = db.query(FeatureToggle).filter(FeatureToggle.key == key).first()
    return bool(toggle and toggle.enabled)
