"""Booking error taxonomy.

Every expected, user-facing failure of the booking flows is a ``BookingError``.
They are ``HTTPException`` subclasses so routers can let them propagate; the
handler registered in ``app.main`` adds the machine-readable ``code`` so the
front-end can tell a slot conflict apart from a plain validation failure.
"""

from fastapi import HTTPException, status


class BookingError(HTTPException):
    http_status = status.HTTP_400_BAD_REQUEST
    code = "booking_error"

    def __init__(self, detail: str):
        super().__init__(status_code=self.http_status, detail=detail)


class InvalidBookingError(BookingError):
    """Missing or malformed input, unknown service option, wrong role..."""
    code = "validation_error"


class PastDateError(InvalidBookingError):
    code = "past_date"


class InvalidTransitionError(InvalidBookingError):
    code = "invalid_transition"


class PaymentRequiredError(BookingError):
    http_status = status.HTTP_402_PAYMENT_REQUIRED
    code = "payment_required"


class PermissionDeniedError(BookingError):
    http_status = status.HTTP_403_FORBIDDEN
    code = "forbidden"


class NotFoundError(BookingError):
    http_status = status.HTTP_404_NOT_FOUND
    code = "not_found"


class SlotConflictError(BookingError):
    """The practitioner already has an active appointment in that interval."""
    http_status = status.HTTP_409_CONFLICT
    code = "slot_conflict"
