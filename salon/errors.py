# salon/errors.py


class SalonError(Exception):
    """Base class for domain errors raised by the booking core."""

    detail = "Request could not be completed"

    def __init__(self, detail: str = None):
        super().__init__(detail or self.detail)
        self.detail = detail or self.detail


class SlotUnavailable(SalonError):
    """The slot was already booked, or the reservation lost a race."""

    detail = "Time slot is no longer available"


class BookingFailed(SalonError):
    """Store failure after a successful reservation. The slot was released."""

    detail = "Booking could not be completed, please retry"


class NotFound(SalonError):
    detail = "Not found"


class Forbidden(SalonError):
    detail = "Forbidden"


class NotificationDeliveryFailed(SalonError):
    detail = "Email could not be delivered"
