"""
Booking pipeline exceptions.
"""


class BookingError(Exception):
    """Base exception for booking pipeline errors."""
    pass


class BookingValidationError(BookingError):
    """Raised when a booking request is malformed or outside business rules."""

    def __init__(self, reason: str, message: str = "Invalid booking request"):
        super().__init__(message)
        self.reason = reason
        self.message = message


class SlotConflictError(BookingError):
    """Raised when the requested slot is already booked."""

    reason = "slot_taken"

    def __init__(self, message: str = "Time slot is already booked"):
        super().__init__(message)
        self.message = message


class BookingNotFoundError(BookingError):
    """Raised when no booking exists for the given id."""

    def __init__(self, booking_id: str):
        super().__init__(f"Booking not found: {booking_id}")
        self.booking_id = booking_id
        self.message = "Booking not found"


class IntegrationError(BookingError):
    """Raised by a notification sink. Never surfaced to the booking caller."""

    def __init__(self, sink: str, detail: str):
        super().__init__(f"{sink}: {detail}")
        self.sink = sink
        self.detail = detail


class BookingStoreError(BookingError):
    """Raised when the booking store cannot complete an operation."""
    pass
