# booking_engine/core/exceptions.py
"""
Typed errors raised by the scheduling services.

Services never raise HTTPException; the handler registered in main.py maps
each error class to its status code and a stable machine-readable code.
"""
from typing import Optional


class BookingEngineError(Exception):
    """Base class for all engine errors"""

    status_code: int = 500
    code: str = "internal_error"
    retryable: bool = False

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code

    def to_dict(self) -> dict:
        return {
            "error": self.code,
            "detail": self.message,
            "retryable": self.retryable,
        }


class ValidationError(BookingEngineError):
    """Malformed input: bad duration, time bounds or timezone"""

    status_code = 422
    code = "validation_error"


class ConflictError(BookingEngineError):
    """The requested interval overlaps a booking committed in the meantime"""

    status_code = 409
    code = "slot_unavailable"
    retryable = True


class NotFoundError(BookingEngineError):
    """Unknown event type, booking, schedule or token"""

    status_code = 404
    code = "not_found"


class UnauthorizedError(BookingEngineError):
    """The verified host is not allowed to act on this resource"""

    status_code = 403
    code = "unauthorized"


class InvalidStateError(BookingEngineError):
    """The booking is not in a state that allows the transition"""

    status_code = 409
    code = "invalid_state"


class TransientStoreError(BookingEngineError):
    """Store timeout or lost connection. Safe to retry the whole operation."""

    status_code = 503
    code = "temporarily_unavailable"
    retryable = True


class ConfigurationError(BookingEngineError):
    """Host configuration that cannot be resolved, e.g. an unknown IANA timezone"""

    status_code = 500
    code = "configuration_error"
