import pytest
import requests
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

from googleapiclient.errors import HttpError

from appointments.core.exceptions import IntegrationError
from appointments.services.calendar_service import GoogleCalendarClient
from appointments.services.saas_service import SchedulingSaaSClient

START = datetime(2024, 6, 10, 4, 30, tzinfo=timezone.utc)


# --- Scheduling SaaS ---

@pytest.mark.asyncio
@patch("appointments.services.saas_service.requests.post")
async def test_saas_create_booking_posts_payload(mock_post):
    mock_response = MagicMock()
    mock_response.status_code = 200
    mock_response.json.return_value = {"id": 42}
    mock_post.return_value = mock_response

    client = SchedulingSaaSClient("https://api.cal.com/v1/", "secret", timeout=5)
    result = await client.create_booking("123", "Appointment: Asha", START, [{"name": "Asha", "email": "asha@example.com"}])

    assert result == {"id": 42}
    args, kwargs = mock_post.call_args
    assert args[0] == "https://api.cal.com/v1/bookings"
    assert kwargs["params"] == {"apiKey": "secret"}
    assert kwargs["timeout"] == 5
    assert kwargs["json"]["eventTypeId"] == 123
    assert kwargs["json"]["start"] == START.isoformat()
    assert kwargs["json"]["responses"]["name"] == "Asha"


@pytest.mark.asyncio
@patch("appointments.services.saas_service.requests.post")
async def test_saas_rejection_raises_integration_error(mock_post):
    mock_response = MagicMock()
    mock_response.status_code = 400
    mock_response.text = "no available users"
    mock_post.return_value = mock_response

    client = SchedulingSaaSClient("https://api.cal.com/v1", "secret")
    with pytest.raises(IntegrationError) as exc:
        await client.create_booking("123", "Appointment: Asha", START, [])
    assert exc.value.sink == "saas"


@pytest.mark.asyncio
@patch("appointments.services.saas_service.requests.post", side_effect=requests.ConnectionError("down"))
async def test_saas_network_error_raises_integration_error(mock_post):
    client = SchedulingSaaSClient("https://api.cal.com/v1", "secret")
    with pytest.raises(IntegrationError):
        await client.create_booking("123", "Appointment: Asha", START, [])


# --- Google Calendar ---

def test_calendar_not_configured_without_credentials(tmp_path):
    client = GoogleCalendarClient(credentials_json="", credentials_file=str(tmp_path / "missing.json"))
    assert client.is_configured is False
    assert client.get_calendar_service() is None


@pytest.mark.asyncio
async def test_calendar_create_event_without_service_fails():
    client = GoogleCalendarClient()
    with patch.object(GoogleCalendarClient, "get_calendar_service", return_value=None):
        with pytest.raises(IntegrationError):
            await client.create_event("t", "d", START, START + timedelta(minutes=30), "Asia/Kolkata")


@pytest.mark.asyncio
async def test_calendar_create_event_inserts_body():
    service = MagicMock()
    service.events.return_value.insert.return_value.execute.return_value = {"id": "evt1", "htmlLink": "http://cal"}
    client = GoogleCalendarClient(calendar_id="clinic@example.com")

    with patch.object(GoogleCalendarClient, "get_calendar_service", return_value=service):
        result = await client.create_event("Appointment: Asha", "Phone: 9876543210", START, START + timedelta(minutes=30), "Asia/Kolkata")

    assert result == {"id": "evt1", "htmlLink": "http://cal"}
    kwargs = service.events.return_value.insert.call_args.kwargs
    assert kwargs["calendarId"] == "clinic@example.com"
    assert kwargs["body"]["summary"] == "Appointment: Asha"
    assert kwargs["body"]["start"] == {"dateTime": START.isoformat(), "timeZone": "Asia/Kolkata"}
    assert kwargs["body"]["end"]["dateTime"] == (START + timedelta(minutes=30)).isoformat()


@pytest.mark.asyncio
async def test_calendar_http_error_raises_integration_error():
    service = MagicMock()
    service.events.return_value.insert.return_value.execute.side_effect = HttpError(MagicMock(status=500), b"backend error")
    client = GoogleCalendarClient()

    with patch.object(GoogleCalendarClient, "get_calendar_service", return_value=service):
        with pytest.raises(IntegrationError):
            await client.create_event("t", "d", START, START + timedelta(minutes=30), "Asia/Kolkata")


@pytest.mark.asyncio
@patch("appointments.services.calendar_service.build")
@patch("appointments.services.calendar_service.service_account.Credentials.from_service_account_info")
async def test_calendar_builds_a_service_per_event(mock_creds, mock_build):
    mock_build.side_effect = lambda *args, **kwargs: MagicMock()
    client = GoogleCalendarClient(credentials_json='{"type": "service_account"}')

    await client.create_event("a", "d", START, START + timedelta(minutes=30), "Asia/Kolkata")
    await client.create_event("b", "d", START, START + timedelta(minutes=30), "Asia/Kolkata")

    # credentials are loaded once, each event gets its own service and transport
    assert mock_creds.call_count == 1
    assert mock_build.call_count == 2
    first, second = (call.kwargs["credentials"] for call in mock_build.call_args_list)
    assert first is second is mock_creds.return_value
