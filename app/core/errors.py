"""
Failure types raised by the document operations.

Each category stays its own class so the gateway can map it to exactly one
client-facing status. There is deliberately no "forbidden" type: a
resource the caller may not touch is reported as NotFound.
"""
import enum


class ValidationFailure(str, enum.Enum):
    """Why structural validation rejected a payload."""
    TOO_DEEP = "too_deep"
    TOO_LARGE = "too_large"
    MISSING_FIELD = "missing_field"
    INVALID_VALUE = "invalid_value"


class OperationError(Exception):
    """Base class for failures surfaced by the document gateway."""
    message = "Operation failed"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class Unauthenticated(OperationError):
    message = "Not authenticated"


class ValidationFailed(OperationError):
    message = "Invalid request"

    def __init__(self, reason: ValidationFailure, field: str | None = None, message: str | None = None):
        super().__init__(message)
        self.reason = reason
        self.field = field


class RateLimited(OperationError):
    message = "You are going too fast"

    def __init__(self, operation_class: str, message: str | None = None):
        super().__init__(message)
        self.operation_class = operation_class


class NotFound(OperationError):
    # Same text for "absent" and "not yours"; never parameterize it.
    message = "Document not found"

    def __init__(self):
        super().__init__(None)
