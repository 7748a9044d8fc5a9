import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock

from appointments.core.exceptions import BookingStoreError
from appointments.models.booking import EXTERNAL, UNKNOWN_NAME, UNKNOWN_PHONE
from appointments.models.webhook import BookingCreated, Ignored, IngestResult
from appointments.services.admission_service import AdmissionController
from appointments.services.db_service import InMemoryBookingStore
from appointments.services.ingestion_service import IngestionAdapter, normalize_event_type, parse_webhook_event

EVENT = {
    "type": "BOOKING_CREATED",
    "payload": {
        "attendees": [{"name": "Meera", "email": "meera@example.com"}],
        "startTime": "2024-06-11T05:00:00Z",
    },
}


@pytest.fixture
def store():
    return InMemoryBookingStore()


@pytest.fixture
def adapter(store):
    return IngestionAdapter(AdmissionController(store), "Asia/Kolkata")


@pytest.mark.parametrize("raw", ["BOOKING_CREATED", "booking.created", "Booking-Created", "booking_created"])
def test_booking_created_variants(raw):
    assert normalize_event_type(raw) == "booking_created"


def test_parse_nested_payload():
    event = parse_webhook_event(EVENT)
    assert event == BookingCreated(name="Meera", email="meera@example.com", start_time="2024-06-11T05:00:00Z")


def test_parse_flat_payload_with_legacy_event_key():
    event = parse_webhook_event({
        "event": "booking.created",
        "attendees": [{"name": "Meera"}],
        "startTime": "2024-06-11T05:00:00Z",
    })
    assert event == BookingCreated(name="Meera", email="", start_time="2024-06-11T05:00:00Z")


def test_parse_defaults_missing_attendee():
    event = parse_webhook_event({"type": "BOOKING_CREATED", "payload": {"startTime": "2024-06-11T05:00:00Z"}})
    assert event.name == UNKNOWN_NAME
    assert event.email == ""


@pytest.mark.parametrize("body", [
    {"type": "BOOKING_CANCELLED", "payload": {}},
    {"type": "MEETING_ENDED"},
    {},
    ["not", "an", "object"],
    {"type": "BOOKING_CREATED", "payload": "garbage"},
])
def test_other_events_ignored(body):
    assert isinstance(parse_webhook_event(body), Ignored)


@pytest.mark.asyncio
async def test_ingest_creates_external_booking(adapter, store):
    result = await adapter.ingest(EVENT)

    assert result == IngestResult.CREATED
    bookings = await store.list_all()
    assert len(bookings) == 1
    booking = bookings[0]
    assert booking.name == "Meera"
    assert booking.contact_phone == UNKNOWN_PHONE
    assert booking.contact_email == "meera@example.com"
    assert booking.source == EXTERNAL
    assert booking.scheduled_at == datetime(2024, 6, 11, 5, 0, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_replayed_event_is_absorbed(adapter, store):
    assert await adapter.ingest(EVENT) == IngestResult.CREATED
    assert await adapter.ingest(EVENT) == IngestResult.DUPLICATE
    assert len(await store.list_all()) == 1


@pytest.mark.asyncio
async def test_ingest_ignored_type_has_no_side_effects(adapter, store):
    assert await adapter.ingest({"type": "BOOKING_RESCHEDULED", "payload": EVENT["payload"]}) == IngestResult.IGNORED
    assert await store.list_all() == []


@pytest.mark.asyncio
async def test_ingest_without_start_time_is_invalid(adapter, store):
    result = await adapter.ingest({"type": "BOOKING_CREATED", "payload": {"attendees": []}})
    assert result == IngestResult.INVALID
    assert await store.list_all() == []


@pytest.mark.asyncio
async def test_ingest_store_failure_is_reported_not_raised(store):
    store.insert_if_absent = AsyncMock(side_effect=BookingStoreError("connection failure"))
    adapter = IngestionAdapter(AdmissionController(store), "Asia/Kolkata")

    assert await adapter.ingest(EVENT) == IngestResult.FAILED


@pytest.mark.parametrize("attendees", [None, [None]])
def test_parse_null_attendees_defaults_name(attendees):
    event = parse_webhook_event({"type": "BOOKING_CREATED", "attendees": attendees, "startTime": "2024-06-11T05:00:00Z"})
    assert event == BookingCreated(name=UNKNOWN_NAME, email="", start_time="2024-06-11T05:00:00Z")


@pytest.mark.asyncio
@pytest.mark.parametrize("attendees", [None, [None]])
async def test_ingest_null_attendees_still_books(adapter, store, attendees):
    result = await adapter.ingest({
        "type": "BOOKING_CREATED",
        "payload": {"attendees": attendees, "startTime": "2024-06-11T05:00:00Z"},
    })

    assert result == IngestResult.CREATED
    bookings = await store.list_all()
    assert len(bookings) == 1
    assert bookings[0].name == UNKNOWN_NAME
