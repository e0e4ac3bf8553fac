"""SQLAlchemy models."""

from tipqr.models.user import User
from tipqr.models.auth import AuthAccount, AuthSession, Verification
from tipqr.models.restaurant import Restaurant
from tipqr.models.staff import StaffMember, StaffRole, StaffStatus
from tipqr.models.tip import Tip, TipSource, TipStatus
from tipqr.models.review import Review
from tipqr.models.feature_toggle import FeatureToggle

__all__ = [
    "User",
    "AuthAccount",
    "AuthSession",
    "Verification",
    "Restaurant",
    "StaffMember",
    "StaffRole",
    "StaffStatus",
    "Tip",
    "TipSource",
    "TipStatus",
    "Review",
    "FeatureToggle",
]
