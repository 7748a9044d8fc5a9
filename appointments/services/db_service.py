import asyncio
import logging
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from postgrest.exceptions import APIError
from supabase import AsyncClient, create_async_client

from appointments.core.exceptions import BookingStoreError
from appointments.models.booking import Booking, utc_now

logger = logging.getLogger("appointments")

UNIQUE_VIOLATION = "23505"
INVALID_TEXT_REPRESENTATION = "22P02"


def _key(scheduled_at: datetime) -> datetime:
    if scheduled_at.tzinfo is None:
        scheduled_at = scheduled_at.replace(tzinfo=timezone.utc)
    return scheduled_at.astimezone(timezone.utc)


class BookingStore(ABC):
    """
    Durable store of bookings keyed by `scheduled_at`.

    `insert_if_absent` must be a single atomic conditional write: it either
    stores the booking (returning it with its assigned id) or returns None
    because a booking for that exact instant already exists.
    """

    @abstractmethod
    async def insert_if_absent(self, booking: Booking) -> Optional[Booking]:
        ...

    @abstractmethod
    async def find_by_key(self, scheduled_at: datetime) -> Optional[Booking]:
        ...

    @abstractmethod
    async def find_by_id(self, booking_id: str) -> Optional[Booking]:
        ...

    @abstractmethod
    async def update(self, booking_id: str, patch: dict) -> Optional[Booking]:
        ...

    @abstractmethod
    async def list_all(self) -> List[Booking]:
        """All bookings ordered by `scheduled_at`."""
        ...


class InMemoryBookingStore(BookingStore):
    """
    Process-local store. Every operation runs under one lock, which is the
    single mutual-exclusion point for admissions. Records past the retention
    window are dropped on access.
    """

    def __init__(self, retention_days: int = 30):
        self.retention = timedelta(days=retention_days)
        self._by_key: Dict[datetime, Booking] = {}
        self._lock = asyncio.Lock()

    def _purge_expired(self):
        cutoff = utc_now() - self.retention
        expired = [k for k, b in self._by_key.items() if b.created_at < cutoff]
        for k in expired:
            del self._by_key[k]
        if expired:
            logger.info(f"🧹 Purged {len(expired)} expired bookings")

    def _get_by_id(self, booking_id: str) -> Optional[Booking]:
        for booking in self._by_key.values():
            if booking.id == booking_id:
                return booking
        return None

    async def insert_if_absent(self, booking: Booking) -> Optional[Booking]:
        async with self._lock:
            self._purge_expired()
            key = _key(booking.scheduled_at)
            if key in self._by_key:
                return None
            stored = booking.model_copy(update={"id": uuid.uuid4().hex})
            self._by_key[key] = stored
            return stored.model_copy()

    async def find_by_key(self, scheduled_at: datetime) -> Optional[Booking]:
        async with self._lock:
            self._purge_expired()
            booking = self._by_key.get(_key(scheduled_at))
            return booking.model_copy() if booking else None

    async def find_by_id(self, booking_id: str) -> Optional[Booking]:
        async with self._lock:
            self._purge_expired()
            booking = self._get_by_id(booking_id)
            return booking.model_copy() if booking else None

    async def update(self, booking_id: str, patch: dict) -> Optional[Booking]:
        async with self._lock:
            self._purge_expired()
            booking = self._get_by_id(booking_id)
            if booking is None:
                return None
            # id and slot key are immutable
            patch = {k: v for k, v in patch.items() if k not in ("id", "scheduled_at")}
            updated = booking.model_copy(update=patch)
            self._by_key[_key(updated.scheduled_at)] = updated
            return updated.model_copy()

    async def list_all(self) -> List[Booking]:
        async with self._lock:
            self._purge_expired()
            return [b.model_copy() for b in sorted(self._by_key.values(), key=lambda b: b.scheduled_at)]


class SupabaseBookingStore(BookingStore):
    """
    Bookings table in Supabase. The UNIQUE constraint on `scheduled_at`
    (see supabase/schema.sql) makes a plain insert the atomic conditional
    write; retention is handled by a pg_cron job on the database side.
    """

    def __init__(self, url: str, key: str, table: str = "bookings"):
        self.url = url
        self.key = key
        self.table = table
        self._client: Optional[AsyncClient] = None

    async def get_client(self) -> AsyncClient:
        if not self._client:
            try:
                self._client = await create_async_client(self.url, self.key)
                logger.info("✅ Supabase Async client initialized")
            except Exception as e:
                logger.error(f"❌ Failed to initialize Supabase Async: {e}")
                raise BookingStoreError(f"Supabase unavailable: {e}") from e
        return self._client

    @staticmethod
    def _to_booking(row: dict) -> Booking:
        data = dict(row)
        data["id"] = str(data["id"])
        return Booking.model_validate(data)

    async def insert_if_absent(self, booking: Booking) -> Optional[Booking]:
        client = await self.get_client()
        try:
            response = await client.table(self.table).insert(booking.to_record()).execute()
        except APIError as e:
            if e.code == UNIQUE_VIOLATION:
                return None
            logger.error(f"❌ DB Error (insert_if_absent): {e}")
            raise BookingStoreError(str(e)) from e

        if not response.data:
            raise BookingStoreError("Insert returned no row")
        return self._to_booking(response.data[0])

    async def find_by_key(self, scheduled_at: datetime) -> Optional[Booking]:
        client = await self.get_client()
        try:
            response = await client.table(self.table).select("*").eq("scheduled_at", _key(scheduled_at).isoformat()).execute()
        except APIError as e:
            logger.error(f"❌ DB Error (find_by_key): {e}")
            raise BookingStoreError(str(e)) from e
        return self._to_booking(response.data[0]) if response.data else None

    async def find_by_id(self, booking_id: str) -> Optional[Booking]:
        client = await self.get_client()
        try:
            response = await client.table(self.table).select("*").eq("id", booking_id).execute()
        except APIError as e:
            if e.code == INVALID_TEXT_REPRESENTATION:
                return None  # not a uuid
            logger.error(f"❌ DB Error (find_by_id): {e}")
            raise BookingStoreError(str(e)) from e
        return self._to_booking(response.data[0]) if response.data else None

    async def update(self, booking_id: str, patch: dict) -> Optional[Booking]:
        client = await self.get_client()
        patch = {k: v for k, v in patch.items() if k not in ("id", "scheduled_at")}
        try:
            response = await client.table(self.table).update(patch).eq("id", booking_id).execute()
        except APIError as e:
            if e.code == INVALID_TEXT_REPRESENTATION:
                return None
            logger.error(f"❌ DB Error (update): {e}")
            raise BookingStoreError(str(e)) from e
        return self._to_booking(response.data[0]) if response.data else None

    async def list_all(self) -> List[Booking]:
        client = await self.get_client()
        try:
            response = await client.table(self.table).select("*").order("scheduled_at", desc=False).execute()
        except APIError as e:
            logger.error(f"❌ DB Error (list_all): {e}")
            raise BookingStoreError(str(e)) from e
        return [self._to_booking(row) for row in response.data or []]
