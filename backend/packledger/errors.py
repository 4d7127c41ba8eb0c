# Overview: Domain error taxonomy shared by services and routes.

"""
Error taxonomy for the reservation and settlement engine.

- ValidationError: bad input, raised before any transaction is opened.
- NotFoundError: referenced product, packlist, order or template is missing.
- ConflictError: aggregate was not in the expected source state (a
  concurrent transition won the race). Caller reloads and retries.
- AlreadyCompletedError: terminal transition repeated. Not retryable.
- PermissionDeniedError: the capability check said no.

A negative current_stock after a reservation is NOT an error; it is logged.
"""


class DomainError(Exception):
    """Base class for all errors surfaced to the presentation layer."""

    http_status = 400
    code = "error"

    def to_dict(self) -> dict:
        return {"error": str(self), "code": self.code}


class ValidationError(DomainError, ValueError):
    """400-level input problem."""

    http_status = 400
    code = "validation_error"


class NotFoundError(DomainError):
    """Referenced aggregate or product does not exist."""

    http_status = 404
    code = "not_found"


class ConflictError(DomainError):
    """409-level state conflict: the aggregate moved on before we got to it."""

    http_status = 409
    code = "conflict"


class AlreadyCompletedError(ConflictError):
    """Terminal transition requested on an aggregate that is already terminal."""

    code = "already_completed"


class PermissionDeniedError(DomainError):
    """Raised when the actor lacks the required capability."""

    http_status = 403
    code = "permission_denied"
