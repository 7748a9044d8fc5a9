from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Event type spellings used by scheduling providers for a new booking
BOOKING_CREATED_TYPES = {"booking_created"}


class WebhookAttendee(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    email: Optional[str] = None


def _present_attendees(value):
    """null attendees, or null entries in the list, count as no attendee."""
    if value is None:
        return []
    if isinstance(value, list):
        return [a for a in value if a is not None]
    return value


class WebhookBookingPayload(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    attendees: List[WebhookAttendee] = Field(default_factory=list)
    start_time: Optional[str] = Field(default=None, alias="startTime")
    title: Optional[str] = None

    @field_validator("attendees", mode="before")
    @classmethod
    def drop_missing_attendees(cls, value):
        return _present_attendees(value)


class WebhookEnvelope(BaseModel):
    """
    Raw inbound event. Providers send the type as `type` (newer) or `event`
    (older), and the booking either nested under `payload` or at top level.
    """
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    type: Optional[str] = None
    event: Optional[str] = None
    payload: Optional[WebhookBookingPayload] = None
    attendees: List[WebhookAttendee] = Field(default_factory=list)
    start_time: Optional[str] = Field(default=None, alias="startTime")

    @field_validator("attendees", mode="before")
    @classmethod
    def drop_missing_attendees(cls, value):
        return _present_attendees(value)

    @property
    def event_type(self) -> str:
        return self.type or self.event or ""

    @property
    def booking(self) -> WebhookBookingPayload:
        if self.payload is not None:
            return self.payload
        return WebhookBookingPayload(attendees=self.attendees, start_time=self.start_time)


@dataclass(frozen=True)
class BookingCreated:
    name: str
    email: str
    start_time: Optional[str]


@dataclass(frozen=True)
class Ignored:
    event_type: str


WebhookEvent = Union[BookingCreated, Ignored]


class IngestResult(str, Enum):
    CREATED = "created"
    DUPLICATE = "duplicate"
    IGNORED = "ignored"
    INVALID = "invalid"
    FAILED = "failed"
