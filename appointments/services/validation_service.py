import re
from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from appointments.core.config import settings
from appointments.models.booking import ValidationResult

PHONE_RE = re.compile(r"[0-9]{10}")

MISSING_NAME_OR_TIME = "missing_name_or_time"
INVALID_PHONE = "invalid_phone"
CLOSED_DAY = "closed_day"
OUTSIDE_HOURS = "outside_hours"

REASON_MESSAGES = {
    MISSING_NAME_OR_TIME: "Name, valid phone, and Date/Time are required",
    INVALID_PHONE: "Phone number must be exactly 10 digits",
    CLOSED_DAY: "We are closed on that day",
    OUTSIDE_HOURS: "Appointments are available only during business hours",
}


def parse_instant(value: Optional[str], tz: ZoneInfo) -> Optional[datetime]:
    """
    Parses an ISO-8601 date-time. Naive values are read in `tz`; the result
    is always a UTC instant. Returns None if the value is empty or malformed.
    """
    if not value or not value.strip():
        return None
    try:
        dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=tz)
    return dt.astimezone(timezone.utc)


class SlotValidator:
    """Business rules for a requested slot: closed weekday and opening hours."""

    def __init__(
        self,
        tz: str = settings.BUSINESS_TIMEZONE,
        opening_hour: int = settings.OPENING_HOUR,
        closing_hour: int = settings.CLOSING_HOUR,
        closed_weekday: int = settings.CLOSED_WEEKDAY,
    ):
        self.tz = ZoneInfo(tz)
        self.opening_hour = opening_hour
        self.closing_hour = closing_hour
        self.closed_weekday = closed_weekday

    def validate(self, name: Optional[str], phone: Optional[str], scheduled_at: Optional[str]) -> ValidationResult:
        if not name or not name.strip():
            return ValidationResult.invalid(MISSING_NAME_OR_TIME)

        instant = parse_instant(scheduled_at, self.tz)
        if instant is None:
            return ValidationResult.invalid(MISSING_NAME_OR_TIME)

        if not phone or not PHONE_RE.fullmatch(phone):
            return ValidationResult.invalid(INVALID_PHONE)

        local = instant.astimezone(self.tz)
        if local.weekday() == self.closed_weekday:
            return ValidationResult.invalid(CLOSED_DAY)

        if not (self.opening_hour <= local.hour < self.closing_hour):
            return ValidationResult.invalid(OUTSIDE_HOURS)

        return ValidationResult.valid(instant)
