import re
from typing import Any
from zoneinfo import ZoneInfo

from pydantic import ValidationError

from appointments.core.exceptions import BookingStoreError
from appointments.core.logger import logger
from appointments.models.booking import Admitted, Booking, EXTERNAL, UNKNOWN_NAME, UNKNOWN_PHONE
from appointments.models.webhook import (
    BOOKING_CREATED_TYPES,
    BookingCreated,
    Ignored,
    IngestResult,
    WebhookEnvelope,
    WebhookEvent,
)
from appointments.services.admission_service import AdmissionController
from appointments.services.validation_service import parse_instant


def normalize_event_type(event_type: str) -> str:
    """BOOKING_CREATED, booking.created and booking-created all become booking_created."""
    return re.sub(r"[.\-\s]+", "_", event_type.strip().lower())


def parse_webhook_event(body: Any) -> WebhookEvent:
    """Turns a raw webhook body into BookingCreated or Ignored."""
    if not isinstance(body, dict):
        return Ignored(event_type="")

    try:
        envelope = WebhookEnvelope.model_validate(body)
    except ValidationError as e:
        logger.warning(f"⚠️ Unrecognised webhook shape: {e.error_count()} errors")
        return Ignored(event_type=str(body.get("type") or body.get("event") or ""))

    if normalize_event_type(envelope.event_type) not in BOOKING_CREATED_TYPES:
        return Ignored(event_type=envelope.event_type)

    booking = envelope.booking
    attendee = booking.attendees[0] if booking.attendees else None
    name = (attendee.name or "").strip() if attendee else ""
    email = (attendee.email or "").strip() if attendee else ""

    return BookingCreated(
        name=name or UNKNOWN_NAME,
        email=email,
        start_time=booking.start_time,
    )


class IngestionAdapter:
    """
    Folds bookings made on the external scheduling service into the store.

    Ingested bookings go through the same admission as self-service ones, so
    a replayed event lands on an occupied slot and is treated as already
    applied. Nothing is fanned out: the booking came from the external side
    and echoing it back would loop.
    """

    def __init__(self, admission: AdmissionController, tz: str):
        self.admission = admission
        self.tz = ZoneInfo(tz)

    async def ingest(self, body: Any) -> IngestResult:
        event = parse_webhook_event(body)

        if isinstance(event, Ignored):
            logger.debug(f"Ignoring webhook event type: {event.event_type!r}")
            return IngestResult.IGNORED

        scheduled_at = parse_instant(event.start_time, self.tz)
        if scheduled_at is None:
            logger.error(f"❌ Webhook booking without a usable start time: {event.start_time!r}")
            return IngestResult.INVALID

        candidate = Booking(
            name=event.name,
            contact_phone=UNKNOWN_PHONE,
            contact_email=event.email or None,
            scheduled_at=scheduled_at,
            source=EXTERNAL,
        )

        try:
            result = await self.admission.admit(candidate)
        except BookingStoreError as e:
            logger.error(f"❌ Failed to store webhook booking: {e}")
            return IngestResult.FAILED

        if isinstance(result, Admitted):
            logger.info(f"📥 Ingested external booking {result.booking.id} for {event.name}")
            return IngestResult.CREATED

        logger.info(f"🔁 External booking for {scheduled_at.isoformat()} already applied")
        return IngestResult.DUPLICATE
