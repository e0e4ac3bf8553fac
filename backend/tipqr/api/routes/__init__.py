"""API routes."""

from fastapi import APIRouter

from tipqr.api.routes import auth, feature_toggles, qr, restaurants, reviews, staff, tips, users

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(users.me_router, prefix="/me", tags=["me"])
api_router.include_router(users.admin_router, prefix="/admin", tags=["admin"])
api_router.include_router(restaurants.router, prefix="/restaurants", tags=["restaurants"])
api_router.include_router(staff.router, prefix="/staff", tags=["staff"])
api_router.include_router(tips.router, prefix="/tips", tags=["tips"])
api_router.include_router(reviews.router, prefix="/reviews", tags=["reviews"])
api_router.include_router(feature_toggles.router, prefix="/feature-toggles", tags=["feature-toggles"])
api_router.include_router(qr.router, prefix="/qr", tags=["qr"])
