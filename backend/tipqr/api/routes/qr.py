"""Public QR landing page data."""

from typing import Optional

from fastapi import APIRouter, Query

from tipqr.db.session import DbSession
from tipqr.services import qr_service

router = APIRouter()


@router.get("/{key}")
def get_qr_page(key: str, db: DbSession, amount: Optional[str] = Query(None)):
    """Staff, restaurant, a UPI deep link and recent public activity for one QR key.

    ``amount`` (major units) pre-fills the UPI link.
    """
    return qr_service.public_page(db, key, amount=amount)
