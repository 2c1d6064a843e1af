"""
errors.py — Exception taxonomy for the enrichment service

Every failure the pipeline can hit maps onto one of these classes. The HTTP
boundary renders them as ErrorResponse JSON; the pipeline turns them into a
short human-readable reason stored on the ledger row.

Business Rules:
- ValidationError / UnauthorizedError / PayloadTooLargeError are synchronous,
  returned to the caller, never retried
- NotFoundError is terminal and not a fault (identity or profile missing)
- ExternalServiceError covers directory, broker and CRM transport or non-2xx
- DatabaseError trips the store circuit breaker; CircuitOpenError is the
  fail-fast variant raised while the breaker is open
- public_message never carries the internal error chain

Called by: connectors, services, routers, main.py exception handlers
"""


class LeadflowError(Exception):
    status_code = 500
    error_code = "internal_error"
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def public_message(self) -> str:
        return self.message


class ValidationError(LeadflowError):
    status_code = 400
    error_code = "validation_error"
    default_message = "Invalid input"


class UnauthorizedError(LeadflowError):
    status_code = 401
    error_code = "unauthorized"
    default_message = "Unauthorized"

    @property
    def public_message(self) -> str:
        return "Unauthorized"


class NotFoundError(LeadflowError):
    status_code = 404
    error_code = "not_found"
    default_message = "Not found"


class PayloadTooLargeError(LeadflowError):
    status_code = 413
    error_code = "payload_too_large"
    default_message = "Payload too large"


class ExternalServiceError(LeadflowError):
    status_code = 502
    error_code = "external_service_error"
    default_message = "External service error"

    def __init__(self, message: str | None = None, service: str = "external"):
        self.service = service
        super().__init__(message)

    @property
    def public_message(self) -> str:
        return f"External service unavailable: {self.service}"


class DatabaseError(LeadflowError):
    status_code = 503
    error_code = "database_error"
    default_message = "Canonical store error"

    @property
    def public_message(self) -> str:
        return "Canonical store error"


class CircuitOpenError(DatabaseError):
    error_code = "service_unavailable"
    default_message = "Circuit open"

    def __init__(self, breaker_name: str = "store"):
        self.breaker_name = breaker_name
        super().__init__(f"Circuit '{breaker_name}' is open")

    @property
    def public_message(self) -> str:
        return "Canonical store temporarily unavailable (circuit open)"


class InternalError(LeadflowError):
    """Our own bug or an unmappable collaborator response; details stay in the log."""

    @property
    def public_message(self) -> str:
        return "Internal error while enriching lead"


def user_facing_reason(exc: BaseException) -> str:
    """Short reason for the ledger row. Never the raw exception chain."""
    if isinstance(exc, LeadflowError):
        return exc.public_message
    return "Internal error while enriching lead"
