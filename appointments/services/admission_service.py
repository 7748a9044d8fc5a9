from appointments.core.logger import logger
from appointments.models.booking import Admitted, AdmissionResult, Booking, Rejected
from appointments.services.db_service import BookingStore

SLOT_TAKEN = "slot_taken"


class AdmissionController:
    """
    Grants or refuses a slot. The decision is the store's atomic
    insert-if-absent on `scheduled_at`; there is no separate existence check,
    so two concurrent requests for one instant cannot both be admitted.

    Used unchanged for self-service requests and for ingested webhook
    bookings, where a replayed event simply comes back as Rejected.
    """

    def __init__(self, store: BookingStore):
        self.store = store

    async def admit(self, candidate: Booking) -> AdmissionResult:
        stored = await self.store.insert_if_absent(candidate)
        if stored is None:
            logger.info(f"⛔ Slot {candidate.scheduled_at.isoformat()} already taken ({candidate.source})")
            return Rejected(SLOT_TAKEN)

        logger.info(f"✅ Admitted booking {stored.id} for {stored.scheduled_at.isoformat()} ({stored.source})")
        return Admitted(stored)
