import asyncio
import datetime
from typing import Any, Dict, List

import requests

from appointments.core.exceptions import IntegrationError
from appointments.core.logger import logger


class SchedulingSaaSClient:
    """Forwards bookings to an external scheduling service (Cal.com v1 API)."""

    def __init__(self, api_url: str, api_key: str, timeout: float = 10):
        self.api_url = api_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout

    @property
    def is_configured(self) -> bool:
        return bool(self.api_url and self.api_key)

    async def create_booking(
        self,
        event_id: str,
        title: str,
        start: datetime.datetime,
        attendees: List[Dict[str, str]],
    ) -> Dict[str, Any]:
        """
        Create a booking on the external service (Async).
        Raises IntegrationError if the call fails or is rejected.
        """
        attendee = attendees[0] if attendees else {}
        try:
            event_type_id = int(event_id)
        except ValueError:
            event_type_id = event_id

        payload = {
            "eventTypeId": event_type_id,
            "title": title,
            "start": start.isoformat(),
            "timeZone": "UTC",
            "language": "en",
            "metadata": {},
            "responses": {
                "name": attendee.get("name", ""),
                "email": attendee.get("email", ""),
                "location": {"value": "inPerson", "optionValue": ""},
            },
        }

        def _post() -> Dict[str, Any]:
            url = f"{self.api_url}/bookings"
            try:
                logger.info(f"📤 Forwarding booking to scheduling service: {title}")
                response = requests.post(url, params={"apiKey": self.api_key}, json=payload, timeout=self.timeout)
            except requests.RequestException as e:
                raise IntegrationError("saas", f"Request failed: {e}") from e

            if response.status_code not in (200, 201):
                logger.error(f"❌ Scheduling service error {response.status_code}: {response.text}")
                raise IntegrationError("saas", f"HTTP {response.status_code}")

            try:
                return response.json()
            except ValueError:
                return {}

        return await asyncio.to_thread(_post)
