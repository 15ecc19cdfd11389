"""Application error hierarchy.

Every error the API can report derives from AppError, which carries the HTTP
status and the machine-readable error kind sent to clients:
- ValidationError: Malformed or out-of-range input (400)
- AuthenticationError: Missing, expired or invalid credential (401)
- AuthorizationError: Resource belongs to another user (403)
- NotFoundError: Resource does not exist (404)
- ConflictError: Duplicate unique key (409, or 400 for duplicate email)
- TransientOverloadError: Temporary capacity exhaustion, safe to retry (500)
- InternalError: Anything unexpected; message scrubbed for clients (500)
"""


class AppError(Exception):
    """Base exception for all application errors."""

    status_code: int = 500
    error_kind: str = "internal"

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AppError):
    """User-correctable input error (prompt, style, image, credentials format)."""

    status_code = 400
    error_kind = "validation"


class AuthenticationError(AppError):
    """Missing, malformed, expired or invalid bearer credential."""

    status_code = 401
    error_kind = "authentication"


class AuthorizationError(AppError):
    """Valid credential, but the resource belongs to a different principal."""

    status_code = 403
    error_kind = "authorization"


class NotFoundError(AppError):
    """Resource id does not exist."""

    status_code = 404
    error_kind = "not_found"


class ConflictError(AppError):
    """Duplicate unique key (email, generation id)."""

    status_code = 409
    error_kind = "conflict"


class TransientOverloadError(AppError):
    """Temporary capacity exhaustion.

    The only error class clients retry automatically. The message keeps the
    "Model overloaded" marker for clients that match on text instead of
    errorKind.
    """

    status_code = 500
    error_kind = "overloaded"


class InternalError(AppError):
    """Unexpected failure. Detail is logged server-side only."""

    status_code = 500
    error_kind = "internal"
