"""Domain error taxonomy.

Every error the API returns is rendered as ``{"error": message, "code": CODE}``
by the handlers registered in ``tipqr.main``. Services and policy checks raise
these instead of ``HTTPException`` so the status code and the machine-readable
code always travel together.
"""

from typing import Optional


class TipQRError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = 500
    default_code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, code: Optional[str] = None, headers: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.headers = headers

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code}


class ValidationError(TipQRError):
    status_code = 400
    default_code = "VALIDATION_ERROR"


class AuthenticationError(TipQRError):
    status_code = 401
    default_code = "UNAUTHENTICATED"

    def __init__(self, message: str = "Authentication required", code: Optional[str] = None):
        super().__init__(message, code, headers={"WWW-Authenticate": "Bearer"})


class AuthorizationError(TipQRError):
    status_code = 403
    default_code = "FORBIDDEN"


class NotFoundError(TipQRError):
    status_code = 404
    default_code = "NOT_FOUND"


class ConflictError(TipQRError):
    status_code = 409
    default_code = "CONFLICT"


class InvariantViolationError(TipQRError):
    status_code = 422
    default_code = "INVARIANT_VIOLATION"


class InternalError(TipQRError):
    status_code = 500
    default_code = "INTERNAL_ERROR"
