import asyncio
import html
import smtplib
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import timedelta
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import List, Optional, Sequence, Set
from zoneinfo import ZoneInfo

from appointments.core.exceptions import IntegrationError
from appointments.core.logger import logger
from appointments.models.booking import Booking
from appointments.services.calendar_service import GoogleCalendarClient
from appointments.services.realtime_service import ConnectionManager
from appointments.services.saas_service import SchedulingSaaSClient

BOOKING_CONFIRMED = "bookingConfirmed"

EMAIL_SUBJECT = "Your Appointment Confirmation"
EMAIL_TEMPLATE = """
<p>Hello {name},</p>
<p>Your appointment has been successfully booked.</p>
<p><strong>Date &amp; Time:</strong> {when}</p>
<p><strong>Phone:</strong> {phone}</p>
<p>Thank you!</p>
"""


class EmailClient:
    """SMTP mail delivery (e.g. Gmail with an app password)."""

    def __init__(self, server: str, port: int, username: str, password: str, sender_name: str = "", timeout: float = 10):
        self.server = server
        self.port = port
        self.username = username
        self.password = password
        self.sender_name = sender_name
        self.timeout = timeout

    @property
    def is_configured(self) -> bool:
        return bool(self.username and self.password)

    async def send(self, to: str, subject: str, html_body: str):
        """Sends an HTML email (Async). Raises IntegrationError on failure."""
        def _send():
            msg = MIMEMultipart()
            msg['From'] = formataddr((self.sender_name, self.username))
            msg['To'] = to
            msg['Subject'] = subject
            msg.attach(MIMEText(html_body, 'html'))

            try:
                with smtplib.SMTP(self.server, self.port, timeout=self.timeout) as server:
                    server.starttls()
                    server.login(self.username, self.password)
                    server.sendmail(self.username, to, msg.as_string())
            except (smtplib.SMTPException, OSError) as e:
                raise IntegrationError("email", f"SMTP delivery failed: {e}") from e

            logger.info(f"📧 Confirmation email sent to {to}")

        await asyncio.to_thread(_send)


class NotificationSink(ABC):
    """A downstream system told about an admitted booking."""

    name: str = "sink"

    def applies_to(self, booking: Booking) -> bool:
        return True

    @abstractmethod
    async def deliver(self, booking: Booking):
        ...


class RealtimeSink(NotificationSink):
    name = "realtime"

    def __init__(self, manager: ConnectionManager):
        self.manager = manager

    async def deliver(self, booking: Booking):
        reached = await self.manager.publish(BOOKING_CONFIRMED, {
            "name": booking.name,
            "scheduledAt": booking.scheduled_at.isoformat(),
            "contactPhone": booking.contact_phone,
        })
        logger.debug(f"📡 {BOOKING_CONFIRMED} delivered to {reached} subscribers")


class CalendarSink(NotificationSink):
    name = "calendar"

    def __init__(self, client: GoogleCalendarClient, timezone: str, duration_minutes: int = 30):
        self.client = client
        self.timezone = timezone
        self.duration = timedelta(minutes=duration_minutes)

    async def deliver(self, booking: Booking):
        start = booking.scheduled_at
        await self.client.create_event(
            title=f"Appointment: {booking.name}",
            description=f"Phone: {booking.contact_phone}\nEmail: {booking.contact_email or ''}",
            start=start,
            end=start + self.duration,
            timezone=self.timezone,
        )


class SchedulingSaaSSink(NotificationSink):
    name = "saas"

    def __init__(self, client: SchedulingSaaSClient, event_type_id: str):
        self.client = client
        self.event_type_id = event_type_id

    async def deliver(self, booking: Booking):
        await self.client.create_booking(
            event_id=self.event_type_id,
            title=f"Appointment: {booking.name}",
            start=booking.scheduled_at,
            attendees=[{"name": booking.name, "email": booking.contact_email or ""}],
        )


class EmailSink(NotificationSink):
    name = "email"

    def __init__(self, client: EmailClient, timezone: str):
        self.client = client
        self.tz = ZoneInfo(timezone)

    def applies_to(self, booking: Booking) -> bool:
        return bool(booking.contact_email and booking.contact_email.strip())

    async def deliver(self, booking: Booking):
        when = booking.scheduled_at.astimezone(self.tz).strftime("%d %b %Y, %I:%M %p")
        body = EMAIL_TEMPLATE.format(
            name=html.escape(booking.name), when=when, phone=html.escape(booking.contact_phone)
        )
        await self.client.send(booking.contact_email.strip(), EMAIL_SUBJECT, body)


@dataclass(frozen=True)
class DispatchResult:
    sink: str
    ok: bool
    error: Optional[str] = None


class NotificationFanout:
    """
    Best-effort delivery of an admitted booking to every configured sink.

    Sinks run concurrently, each bounded by `timeout`. A failure or timeout
    in one sink is logged and reported as a DispatchResult; it never reaches
    the other sinks or the caller.
    """

    def __init__(self, sinks: Sequence[NotificationSink], timeout: float = 10.0):
        self.sinks = list(sinks)
        self.timeout = timeout
        self._tasks: Set[asyncio.Task] = set()

    async def _deliver(self, sink: NotificationSink, booking: Booking) -> DispatchResult:
        log = logger.bind(sink=sink.name, booking_id=booking.id)
        try:
            await asyncio.wait_for(sink.deliver(booking), timeout=self.timeout)
        except asyncio.TimeoutError:
            error = IntegrationError(sink.name, f"timed out after {self.timeout}s")
            log.error(f"❌ Sink failed for booking {booking.id}: {error}")
            return DispatchResult(sink.name, False, str(error))
        except Exception as e:
            error = e if isinstance(e, IntegrationError) else IntegrationError(sink.name, str(e))
            log.error(f"❌ Sink failed for booking {booking.id}: {error}")
            return DispatchResult(sink.name, False, str(error))

        log.info(f"✅ Sink '{sink.name}' notified for booking {booking.id}")
        return DispatchResult(sink.name, True)

    async def notify(self, booking: Booking) -> List[DispatchResult]:
        sinks = [s for s in self.sinks if s.applies_to(booking)]
        if not sinks:
            return []
        return list(await asyncio.gather(*(self._deliver(s, booking) for s in sinks)))

    def dispatch(self, booking: Booking) -> asyncio.Task:
        """Schedules `notify` without waiting for it."""
        task = asyncio.create_task(self.notify(booking))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task
