from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

SELF_SERVICE = "self_service"
EXTERNAL = "external"

UNKNOWN_PHONE = "unknown"
UNKNOWN_NAME = "Unknown"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Booking(BaseModel):
    """
    A reserved slot. `scheduled_at` is the unique scheduling key and is kept
    as a UTC instant, so two bookings collide when they name the same moment
    regardless of the offset they were submitted with.
    """
    id: Optional[str] = None  # assigned by the store
    name: str
    contact_phone: str
    contact_email: Optional[str] = None
    scheduled_at: datetime
    arrived: bool = False
    source: str = SELF_SERVICE
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator("scheduled_at", "created_at")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def to_record(self) -> dict:
        """Store representation (ISO timestamps, no id)."""
        return {
            "name": self.name,
            "contact_phone": self.contact_phone,
            "contact_email": self.contact_email,
            "scheduled_at": self.scheduled_at.isoformat(),
            "arrived": self.arrived,
            "source": self.source,
            "created_at": self.created_at.isoformat(),
        }


class BookingRequest(BaseModel):
    """Inbound self-service request: {name, email?, phone, datetime}."""
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    scheduled_for: Optional[str] = Field(default=None, alias="datetime")


@dataclass(frozen=True)
class ValidationResult:
    ok: bool
    reason: Optional[str] = None
    scheduled_at: Optional[datetime] = None

    @classmethod
    def valid(cls, scheduled_at: datetime) -> "ValidationResult":
        return cls(ok=True, scheduled_at=scheduled_at)

    @classmethod
    def invalid(cls, reason: str) -> "ValidationResult":
        return cls(ok=False, reason=reason)


@dataclass(frozen=True)
class Admitted:
    booking: Booking


@dataclass(frozen=True)
class Rejected:
    reason: str = "slot_taken"


AdmissionResult = Union[Admitted, Rejected]
