from dataclasses import dataclass
from typing import List, Optional, Sequence

from appointments.core.config import Settings
from appointments.core.logger import logger
from appointments.services.admission_service import AdmissionController
from appointments.services.arrival_service import ArrivalTracker
from appointments.services.booking_service import BookingService
from appointments.services.calendar_service import GoogleCalendarClient
from appointments.services.db_service import BookingStore, InMemoryBookingStore, SupabaseBookingStore
from appointments.services.ingestion_service import IngestionAdapter
from appointments.services.notification_service import (
    CalendarSink,
    EmailClient,
    EmailSink,
    NotificationFanout,
    NotificationSink,
    RealtimeSink,
    SchedulingSaaSSink,
)
from appointments.services.realtime_service import ConnectionManager
from appointments.services.saas_service import SchedulingSaaSClient
from appointments.services.validation_service import SlotValidator


@dataclass
class Services:
    """Process-wide services, built once at startup and shared by handle."""
    store: BookingStore
    realtime: ConnectionManager
    fanout: NotificationFanout
    admission: AdmissionController
    bookings: BookingService
    ingestion: IngestionAdapter
    arrivals: ArrivalTracker


def build_store(settings: Settings) -> BookingStore:
    if settings.SUPABASE_URL and settings.SUPABASE_KEY:
        logger.info("🗄️ Using Supabase booking store")
        return SupabaseBookingStore(settings.SUPABASE_URL, settings.SUPABASE_KEY, settings.BOOKINGS_TABLE)

    logger.warning("⚠️ Supabase credentials missing, bookings are kept in memory")
    return InMemoryBookingStore(retention_days=settings.RETENTION_DAYS)


def build_sinks(settings: Settings, realtime: ConnectionManager) -> List[NotificationSink]:
    """Sinks named in NOTIFICATION_SINKS; those without credentials are skipped."""
    sinks: List[NotificationSink] = []

    for name in settings.notification_sinks:
        if name == "realtime":
            sinks.append(RealtimeSink(realtime))

        elif name == "calendar":
            client = GoogleCalendarClient(
                calendar_id=settings.GOOGLE_CALENDAR_ID,
                credentials_json=settings.GOOGLE_CREDENTIALS_JSON,
                credentials_file=settings.GOOGLE_CREDENTIALS_FILE,
            )
            if not client.is_configured:
                logger.warning("⚠️ No Google credentials found. Calendar sync skipped.")
                continue
            sinks.append(CalendarSink(client, settings.CALENDAR_TIMEZONE, settings.SLOT_DURATION_MINUTES))

        elif name == "saas":
            client = SchedulingSaaSClient(settings.SAAS_API_URL, settings.SAAS_API_KEY, timeout=settings.SINK_TIMEOUT_SECONDS)
            if not client.is_configured or not settings.SAAS_EVENT_TYPE_ID:
                logger.warning("⚠️ Scheduling service credentials missing. SaaS sync skipped.")
                continue
            sinks.append(SchedulingSaaSSink(client, settings.SAAS_EVENT_TYPE_ID))

        elif name == "email":
            client = EmailClient(
                settings.SMTP_SERVER,
                settings.SMTP_PORT,
                settings.SMTP_USERNAME,
                settings.SMTP_PASSWORD,
                sender_name=settings.EMAIL_SENDER_NAME,
                timeout=settings.SINK_TIMEOUT_SECONDS,
            )
            if not client.is_configured:
                logger.warning("⚠️ SMTP credentials missing. Confirmation emails skipped.")
                continue
            sinks.append(EmailSink(client, settings.BUSINESS_TIMEZONE))

        else:
            logger.warning(f"⚠️ Unknown notification sink in config: {name}")

    logger.info(f"🔔 Notification sinks: {[s.name for s in sinks]}")
    return sinks


def build_services(
    settings: Settings,
    store: Optional[BookingStore] = None,
    sinks: Optional[Sequence[NotificationSink]] = None,
    realtime: Optional[ConnectionManager] = None,
) -> Services:
    store = store if store is not None else build_store(settings)
    realtime = realtime if realtime is not None else ConnectionManager()
    if sinks is None:
        sinks = build_sinks(settings, realtime)

    validator = SlotValidator(
        tz=settings.BUSINESS_TIMEZONE,
        opening_hour=settings.OPENING_HOUR,
        closing_hour=settings.CLOSING_HOUR,
        closed_weekday=settings.CLOSED_WEEKDAY,
    )
    admission = AdmissionController(store)
    fanout = NotificationFanout(sinks, timeout=settings.SINK_TIMEOUT_SECONDS)

    return Services(
        store=store,
        realtime=realtime,
        fanout=fanout,
        admission=admission,
        bookings=BookingService(store, validator, admission, fanout),
        ingestion=IngestionAdapter(admission, settings.BUSINESS_TIMEZONE),
        arrivals=ArrivalTracker(store),
    )
