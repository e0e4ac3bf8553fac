"""Text sanitization for free text shown on public pages."""

import html
from typing import Optional


def sanitize_text(value: Optional[str], max_length: Optional[int] = None) -> Optional[str]:
    """Trim and HTML-escape user-supplied text.

    Blank input becomes None. ``max_length`` bounds the escaped result so it
    fits its column; a cut never splits an entity.
    """
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    escaped = html.escape(value, quote=True)
    if max_length is None or len(escaped) <= max_length:
        return escaped
    cut = escaped[:max_length]
    amp = cut.rfind("&")
    if amp != -1 and ";" not in cut[amp:]:
        cut = cut[:amp]
    return cut
