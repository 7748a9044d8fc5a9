import os
import json
import asyncio
import datetime
import logging
from typing import Optional

from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from appointments.core.exceptions import IntegrationError

SCOPES = ['https://www.googleapis.com/auth/calendar']

logger = logging.getLogger(__name__)


class GoogleCalendarClient:
    """
    Creates events in a Google Calendar using a service account.
    Credentials come from a JSON file (local development) or from the
    GOOGLE_CREDENTIALS_JSON setting (cloud deployment).
    """

    def __init__(self, calendar_id: str = "primary", credentials_json: str = "", credentials_file: str = ""):
        self.calendar_id = calendar_id
        self.credentials_json = credentials_json
        self.credentials_file = credentials_file
        self._creds = None

    @property
    def is_configured(self) -> bool:
        return bool(self.credentials_json) or bool(self.credentials_file and os.path.exists(self.credentials_file))

    def _load_credentials(self):
        if self._creds is not None:
            return self._creds

        if self.credentials_file and os.path.exists(self.credentials_file):
            logger.info(f"🔑 Loading credentials from file: {self.credentials_file}")
            creds = service_account.Credentials.from_service_account_file(
                self.credentials_file, scopes=SCOPES
            )
        elif self.credentials_json:
            logger.info("🔑 Loading credentials from Environment Variable")
            creds = service_account.Credentials.from_service_account_info(
                json.loads(self.credentials_json), scopes=SCOPES
            )
        else:
            logger.warning("⚠️ No Google credentials found (file or env).")
            return None

        logger.info(f'🤖 Service Account Email: {creds.service_account_email}')
        self._creds = creds
        return creds

    def get_calendar_service(self):
        """
        Authenticate and return a new Google Calendar service.
        Returns None if credentials are missing or invalid.

        Each call builds its own service (and HTTP transport), since calls run
        on worker threads and a transport must not be shared between them.
        """
        try:
            creds = self._load_credentials()
            if creds is None:
                return None
            return build('calendar', 'v3', credentials=creds, cache_discovery=False)

        except Exception as e:
            logger.error(f"❌ Error initializing Google Calendar service: {e}")
            return None

            logger.info(f'🤖 Service Account Email: {creds.service_account_email}')
            self._service = build('calendar', 'v3', credentials=creds, cache_discovery=False)
            return self._service

        except Exception as e:
            logger.error(f"❌ Error initializing Google Calendar service: {e}")
            return None

    async def create_event(
        self,
        title: str,
        description: str,
        start: datetime.datetime,
        end: datetime.datetime,
        timezone: str,
    ) -> dict:
        """
        Create an event (Async). Raises IntegrationError on any failure.
        """
        def _create() -> dict:
            service = self.get_calendar_service()
            if not service:
                raise IntegrationError("calendar", "Google Calendar service unavailable")

            event_body = {
                'summary': title,
                'description': description,
                'start': {'dateTime': start.isoformat(), 'timeZone': timezone},
                'end': {'dateTime': end.isoformat(), 'timeZone': timezone},
            }

            try:
                logger.info(f'✏️ Writing event to calendar: {self.calendar_id}')
                event = service.events().insert(calendarId=self.calendar_id, body=event_body).execute()
            except HttpError as error:
                logger.error(f'❌ Google API Error: {error.content}')
                raise IntegrationError("calendar", f"Google API Error: {error.content}") from error

            logger.info(f"📅 Event created: {event.get('htmlLink')}")
            return {'id': event.get('id'), 'htmlLink': event.get('htmlLink')}

        return await asyncio.to_thread(_create)
