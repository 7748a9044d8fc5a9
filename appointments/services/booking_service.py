from typing import List, Optional

from fastapi import BackgroundTasks

from appointments.core.exceptions import BookingValidationError, SlotConflictError
from appointments.core.logger import logger
from appointments.models.booking import Admitted, Booking, BookingRequest, SELF_SERVICE
from appointments.services.admission_service import AdmissionController
from appointments.services.db_service import BookingStore
from appointments.services.notification_service import NotificationFanout
from appointments.services.validation_service import REASON_MESSAGES, SlotValidator


class BookingService:
    """Self-service booking: validate, admit, then hand off to fan-out."""

    def __init__(
        self,
        store: BookingStore,
        validator: SlotValidator,
        admission: AdmissionController,
        fanout: NotificationFanout,
    ):
        self.store = store
        self.validator = validator
        self.admission = admission
        self.fanout = fanout

    async def book_appointment(self, req: BookingRequest, background_tasks: Optional[BackgroundTasks] = None) -> Booking:
        """
        Book an appointment (Async).

        Raises BookingValidationError or SlotConflictError. Notification is
        scheduled after the booking is stored and is never awaited here.
        """
        logger.info(f"📥 Booking Request - Name: {req.name!r}, Time: {req.scheduled_for!r}")

        result = self.validator.validate(req.name, req.phone, req.scheduled_for)
        if not result.ok:
            logger.info(f"🚫 Booking rejected by validation: {result.reason}")
            raise BookingValidationError(result.reason, REASON_MESSAGES[result.reason])

        email = req.email.strip() if req.email else None
        candidate = Booking(
            name=req.name.strip(),
            contact_phone=req.phone,
            contact_email=email or None,
            scheduled_at=result.scheduled_at,
            source=SELF_SERVICE,
        )

        outcome = await self.admission.admit(candidate)
        if not isinstance(outcome, Admitted):
            raise SlotConflictError()

        booking = outcome.booking
        if background_tasks is not None:
            background_tasks.add_task(self.fanout.notify, booking)
        else:
            self.fanout.dispatch(booking)

        return booking

    async def list_bookings(self) -> List[Booking]:
        return await self.store.list_all()

