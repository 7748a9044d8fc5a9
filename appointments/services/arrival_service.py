from appointments.core.exceptions import BookingNotFoundError
from appointments.core.logger import logger
from appointments.models.booking import Booking
from appointments.services.db_service import BookingStore


class ArrivalTracker:
    def __init__(self, store: BookingStore):
        self.store = store

    async def mark_arrived(self, booking_id: str) -> Booking:
        """
        Sets `arrived` on the booking. Calling it again for an arrived booking
        returns the record unchanged. Raises BookingNotFoundError for an
        unknown id.
        """
        booking = await self.store.find_by_id(booking_id)
        if booking is None:
            raise BookingNotFoundError(booking_id)

        if booking.arrived:
            return booking

        updated = await self.store.update(booking_id, {"arrived": True})
        if updated is None:
            # purged between lookup and update
            raise BookingNotFoundError(booking_id)

        logger.info(f"🚪 Booking {booking_id} marked as arrived")
        return updated
