"""
Google Calendar Service
Handles calendar event creation, updates, deletion and listing
"""
import logging
from datetime import date, datetime, time, timedelta
from typing import Any, Optional
from zoneinfo import ZoneInfo

import httpx

from ..exceptions import AuthenticationError, RemoteApiError, ValidationError
from ..models_google_calendar import PRIMARY_CALENDAR_ID, CalendarEvent, SyncStatus
from .google_oauth_service import GoogleOAuthService

logger = logging.getLogger(__name__)

GOOGLE_CALENDAR_API = "https://www.googleapis.com/calendar/v3"
LIST_PAGE_SIZE = 100
END_OF_DAY = time(23, 59)
NO_TITLE = "No Title"


def to_event_datetime(value: datetime, all_day: bool, zone: ZoneInfo, is_end: bool = False) -> dict:
    """
    Local wall-clock time -> Google start/end object.
    All-day events carry a date only; Google's end date is exclusive.
    """
    if all_day:
        day = value.date() + timedelta(days=1) if is_end else value.date()
        return {"date": day.isoformat()}
    return {"dateTime": value.replace(tzinfo=zone).isoformat(), "timeZone": zone.key}


def parse_event_datetime(info: dict, zone: ZoneInfo, is_end: bool = False) -> Optional[datetime]:
    """Google start/end object -> local wall-clock time"""
    if info.get("date"):
        day = date.fromisoformat(info["date"])
        if is_end:
            return datetime.combine(day - timedelta(days=1), END_OF_DAY)
        return datetime.combine(day, time.min)
    if info.get("dateTime"):
        instant = datetime.fromisoformat(info["dateTime"].replace("Z", "+00:00"))
        return instant.astimezone(zone).replace(tzinfo=None)
    return None


class GoogleCalendarClient:
    """Adapter between local CalendarEvent rows and the Google Calendar v3 API"""

    def __init__(
        self,
        oauth_service: GoogleOAuthService,
        http_client: httpx.AsyncClient,
        timezone_name: str = "UTC",
        calendar_id: str = PRIMARY_CALENDAR_ID,
    ):
        self.oauth_service = oauth_service
        self.http_client = http_client
        self.zone = ZoneInfo(timezone_name)
        self.calendar_id = calendar_id

    @property
    def events_url(self) -> str:
        return f"{GOOGLE_CALENDAR_API}/calendars/{self.calendar_id}/events"

    async def create_event(self, event: CalendarEvent) -> str:
        """Create the event in Google and return its id"""
        body = self.to_google_event(event)
        if event.sync_key:
            body["id"] = event.sync_key

        response = await self._request("POST", self.events_url, json=body)
        if response.status_code == 409 and event.sync_key:
            # A previous create went through but its result was never recorded locally
            logger.info(f"♻️ Google Calendar event already exists: {event.sync_key}")
            return event.sync_key
        self._raise_for_status(response, "create", expected=(200, 201))

        remote_event_id = response.json().get("id")
        if not remote_event_id:
            raise RemoteApiError("Google Calendar create returned no event id")
        logger.info(f"✅ Google Calendar event created: {remote_event_id}")
        return remote_event_id

    async def update_event(self, event: CalendarEvent) -> None:
        """Overwrite the Google copy of an already-linked event"""
        if not event.remote_event_id:
            raise ValidationError(f"Event {event.id} has no Google event id")

        response = await self._request(
            "PUT",
            f"{self.events_url}/{event.remote_event_id}",
            json=self.to_google_event(event),
        )
        self._raise_for_status(response, "update")
        logger.info(f"✅ Google Calendar event updated: {event.remote_event_id}")

    async def delete_event(self, remote_event_id: str) -> None:
        """Delete a Google event; an already-missing event counts as deleted"""
        response = await self._request("DELETE", f"{self.events_url}/{remote_event_id}")
        if response.status_code in (404, 410):
            logger.info(f"ℹ️ Google Calendar event already gone: {remote_event_id}")
            return
        self._raise_for_status(response, "delete", expected=(200, 204))
        logger.info(f"✅ Google Calendar event deleted: {remote_event_id}")

    async def list_events_since(self, cutoff: datetime) -> list[CalendarEvent]:
        """
        Fetch event occurrences starting at or after ``cutoff`` (local time),
        ordered by start, as unsaved CalendarEvent instances.
        """
        params = {
            "timeMin": cutoff.replace(tzinfo=self.zone).isoformat(),
            "orderBy": "startTime",
            "singleEvents": "true",
            "maxResults": LIST_PAGE_SIZE,
        }
        response = await self._request("GET", self.events_url, params=params)
        self._raise_for_status(response, "list")

        events = []
        for item in response.json().get("items", []):
            event = self.from_google_event(item)
            if event is not None:
                events.append(event)

        logger.info(f"📥 Fetched {len(events)} events from Google Calendar")
        return events

    def to_google_event(self, event: CalendarEvent) -> dict[str, Any]:
        return {
            "summary": event.title,
            "description": event.description or "",
            "location": event.location or "",
            "start": to_event_datetime(event.start_at, event.all_day, self.zone),
            "end": to_event_datetime(event.end_at, event.all_day, self.zone, is_end=True),
        }

    def from_google_event(self, data: dict[str, Any]) -> Optional[CalendarEvent]:
        if not data.get("id"):
            logger.warning(f"⚠️ Skipping event without id: {data.get('summary')}")
            return None

        start_info = data.get("start") or {}
        end_info = data.get("end") or {}
        try:
            start_at = parse_event_datetime(start_info, self.zone)
            end_at = parse_event_datetime(end_info, self.zone, is_end=True)
        except ValueError as e:
            logger.warning(f"⚠️ Skipping event with unparseable time {data.get('id')}: {e}")
            return None

        if start_at is None or end_at is None:
            logger.warning(f"⚠️ Skipping event without start/end time: {data.get('id')}")
            return None

        # Single-day all-day events read back as 00:00 - 23:59 of the same day
        end_at = max(end_at, start_at)

        return CalendarEvent(
            title=data.get("summary") or NO_TITLE,
            description=data.get("description"),
            location=data.get("location"),
            start_at=start_at,
            end_at=end_at,
            all_day="date" in start_info,
            remote_event_id=data.get("id"),
            remote_calendar_id=self.calendar_id,
            sync_status=SyncStatus.SYNCED,
            deleted=False,
        )

    async def _authorization_header(self) -> dict[str, str]:
        credential = await self.oauth_service.get_credential()
        if isinstance(credential, AuthenticationError):
            raise credential
        return credential.authorization_header

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        headers = await self._authorization_header()
        try:
            return await self.http_client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            raise RemoteApiError(f"Google Calendar {method} {url} failed: {e}") from e

    @staticmethod
    def _raise_for_status(response: httpx.Response, operation: str, expected=(200,)) -> None:
        if response.status_code in expected:
            return
        logger.error(
            f"❌ Failed to {operation} calendar event ({response.status_code}): {response.text}"
        )
        raise RemoteApiError(
            f"Google Calendar {operation} returned {response.status_code}",
            status_code=response.status_code,
        )
