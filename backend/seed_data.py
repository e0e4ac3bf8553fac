"""Seed a TipQR database with an admin, the default feature toggles and demo data.

Safe to run repeatedly: rows that already exist are left alone.

Usage:
    cd backend
    python seed_data.py
    python seed_data.py --demo --admin-email admin@tipqr.local --admin-password change-me-now
"""

import argparse
import logging
import os
import sys

# Ensure the backend package is importable
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from tipqr.core.feature_flags import DEFAULT_TOGGLES
from tipqr.core.invariants import generate_qr_key
from tipqr.core.rbac import UserRole
from tipqr.db.base import Base
from tipqr.db.session import SessionLocal, engine
from tipqr.models import FeatureToggle, Restaurant, StaffMember, User
from tipqr.services import auth_service

logger = logging.getLogger("seed")


def _ensure_user(db, name: str, email: str, password: str, role: UserRole) -> User:
    user = db.query(User).filter(User.email == email.lower()).first()
    if user is not None:
        logger.info(f"  = User {email} already exists ({user.role.value})")
        return user
    user = auth_service.create_user(db, name, email, password, role=role, email_verified=True)
    logger.info(f"  + User {email} ({role.value})")
    return user


def _seed_toggles(db) -> None:
    for key, label in DEFAULT_TOGGLES.items():
        if db.query(FeatureToggle).filter(FeatureToggle.key == key).first() is None:
            db.add(FeatureToggle(key=key, label=label, enabled=False, audience="all"))
            logger.info(f"  + Feature toggle {key}")
    db.commit()


def _seed_demo(db) -> None:
    owner = _ensure_user(db, "Demo Owner", "owner@tipqr.local", "owner-demo-pass", UserRole.OWNER)
    restaurant = db.query(Restaurant).filter(
        Restaurant.owner_user_id == owner.id, Restaurant.name == "Demo Bistro"
    ).first()
    if restaurant is None:
        restaurant = Restaurant(
            owner_user_id=owner.id,
            name="Demo Bistro",
            upi_id="demobistro@upi",
            city="Bengaluru",
            state="Karnataka",
            country="India",
        )
        db.add(restaurant)
        db.commit()
        logger.info(f"  + Restaurant {restaurant.name}")

    if not db.query(StaffMember).filter(StaffMember.restaurant_id == restaurant.id).first():
        for display_name, role in (("Asha", "server"), ("Ravi", "chef")):
            db.add(StaffMember(
                restaurant_id=restaurant.id,
                display_name=display_name,
                role=role,
                status="active",
                qr_key=generate_qr_key(db, display_name),
            ))
            db.flush()
        db.commit()
        logger.info("  + Staff (2)")


def seed(admin_email: str, admin_password: str, demo: bool = False) -> None:
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        _ensure_user(db, "Administrator", admin_email, admin_password, UserRole.ADMIN)
        _seed_toggles(db)
        if demo:
            _seed_demo(db)
        logger.info("Seed data committed successfully.")
    except Exception:
        db.rollback()
        logger.exception("Error seeding data")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    parser = argparse.ArgumentParser(description="Seed the TipQR database")
    parser.add_argument("--admin-email", default=os.environ.get("SEED_ADMIN_EMAIL", "admin@tipqr.local"))
    parser.add_argument("--admin-password", default=os.environ.get("SEED_ADMIN_PASSWORD", "admin-change-me"))
    parser.add_argument("--demo", action="store_true", help="Also create a demo owner, restaurant and staff")
    args = parser.parse_args()
    seed(args.admin_email, args.admin_password, demo=args.demo)
