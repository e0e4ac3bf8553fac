"""CSRF protection using the double-submit cookie pattern.

Browsers authenticated by the session cookie must echo the ``csrf_token``
cookie in the ``X-CSRF-Token`` header on unsafe requests. Bearer-token
clients are not exposed to CSRF and are not checked.
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from tipqr.core.config import settings
from tipqr.core.security import COOKIE_CSRF_NAME, COOKIE_SESSION_NAME

logger = logging.getLogger(__name__)

UNSAFE_METHODS = {"POST", "PUT", "PATCH", "DELETE"}

# Sign-in/up issue the cookies in the first place
CSRF_EXEMPT_PATHS = {
    "/health",
    "/health/ready",
    f"{settings.api_v1_prefix}/auth/sign-in",
    f"{settings.api_v1_prefix}/auth/sign-up",
}


class CSRFMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.method not in UNSAFE_METHODS or request.url.path in CSRF_EXEMPT_PATHS:
            return await call_next(request)

        has_cookie_auth = COOKIE_SESSION_NAME in request.cookies
        has_bearer_auth = request.headers.get("Authorization", "").startswith("Bearer ")

        if has_cookie_auth and not has_bearer_auth:
            cookie_csrf = request.cookies.get(COOKIE_CSRF_NAME, "")
            header_csrf = request.headers.get("X-CSRF-Token", "")

            if not cookie_csrf or not header_csrf or cookie_csrf != header_csrf:
                logger.warning(
                    f"CSRF validation failed: path={request.url.path} "
                    f"method={request.method} cookie={'set' if cookie_csrf else 'missing'} "
                    f"header={'set' if header_csrf else 'missing'}"
                )
                return JSONResponse(
                    status_code=403,
                    content={"error": "CSRF validation failed", "code": "CSRF_FAILED"},
                )

        return await call_next(request)
