"""UPI deep links.

Payment apps open ``upi://pay?...`` links; this module only formats the
string, nothing here talks to a payment provider.
"""

from decimal import Decimal
from typing import Optional
from urllib.parse import quote

from tipqr.core.config import settings


def format_amount(amount_cents: int) -> str:
    """Minor units to a two-decimal major-unit string (5000 -> "50.00")."""
    return f"{(Decimal(amount_cents) / 100):.2f}"


def tip_note(staff_name: str, restaurant_name: str) -> str:
    return f"Tip for {staff_name} @ {restaurant_name}"


def build_upi_link(
    vpa: str,
    payee_name: str,
    amount_cents: Optional[int] = None,
    note: Optional[str] = None,
    currency: Optional[str] = None,
) -> str:
    params = [
        ("pa", vpa),
        ("pn", payee_name),
        ("cu", currency or settings.default_currency),
    ]
    if amount_cents is not None:
        params.append(("am", format_amount(amount_cents)))
    if note:
        params.append(("tn", note))
    query = "&".join(f"{key}={quote(str(value), safe='@.-_')}" for key, value in params)
    return f"{settings.upi_scheme}://pay?{query}"
