class DomainError(Exception):
    """Base exception for business rule violations.

    Every subclass carries a stable ``code`` so callers can translate errors
    into their own presentation messages.
    """

    code = "DOMAIN_ERROR"

    def __init__(self, message: str = "", **details):
        super().__init__(message or self.code)
        self.details = details

    def to_dict(self) -> dict:
        return {"error": self.code, "message": str(self), "details": dict(self.details)}


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    code = "VALIDATION_ERROR"


class InvalidInput(ValidationError):
    """Malformed identifiers, timestamps or paging arguments."""

    code = "INVALID_INPUT"


class InvalidRange(ValidationError):
    """Query range with start after end."""

    code = "INVALID_RANGE"


class InvalidInterval(ValidationError):
    """Clock-out at or before clock-in."""

    code = "INVALID_INTERVAL"


class AlreadyClockedIn(DomainError):
    code = "ALREADY_CLOCKED_IN"


class NotClockedIn(DomainError):
    code = "NOT_CLOCKED_IN"


class EmployeeNotFound(DomainError):
    code = "EMPLOYEE_NOT_FOUND"


class RecordNotFound(DomainError):
    code = "RECORD_NOT_FOUND"


class StoreUnavailable(DomainError):
    """Transient infrastructure failure; the only retryable error."""

    code = "STORE_UNAVAILABLE"


class Cancelled(DomainError):
    """Operation cancelled by the caller or timed out."""

    code = "CANCELLED"
