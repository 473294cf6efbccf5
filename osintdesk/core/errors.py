"""
Domain errors raised by the core services and translated into the JSON error
envelope by the handlers in ``osintdesk.api.v1.helpers.responses``.
"""


class OsintDeskError(Exception):
    """Base class for errors that map onto an HTTP status and error code."""

    status_code: int = 500
    code: str = "INTERNAL"
    default_message: str = "An error occurred"

    def __init__(self, message: str | None = None, details: list[str] | None = None):
        self.message = message or self.default_message
        self.details = details or []
        super().__init__(self.message)


class UnauthorizedError(OsintDeskError):
    status_code = 401
    code = "UNAUTHORIZED"
    default_message = "Authentication required"


class ForbiddenError(OsintDeskError):
    status_code = 403
    code = "FORBIDDEN"
    default_message = "Access forbidden"


class NotFoundError(OsintDeskError):
    status_code = 404
    code = "NOT_FOUND"
    default_message = "Resource not found"


class ValidationError(OsintDeskError):
    status_code = 400
    code = "VALIDATION_ERROR"
    default_message = "Validation failed"


class InvalidStateError(ValidationError):
    """A well-formed request that the current entity state does not allow."""

    code = "INVALID_STATE"
    default_message = "Invalid state"


class ConflictError(OsintDeskError):
    status_code = 409
    code = "CONFLICT"
    default_message = "Resource conflict"


class DuplicateItemError(ConflictError):
    """A job linked into the same investigation twice. Reported as a 400."""

    status_code = 400
    default_message = "Job is already in this investigation"


class InternalError(OsintDeskError):
    status_code = 500
    code = "INTERNAL"
    default_message = "Internal server error"
