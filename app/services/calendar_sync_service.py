"""
Calendar Sync Service
Bidirectional sync between local calendar events and Google Calendar:
push local changes first, then pull Google's copy back (Google wins on pull).
"""
import logging
from datetime import datetime, timedelta
from functools import lru_cache
from typing import Callable, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import httpx
from sqlalchemy.orm import Session

from ..config import (
    CALENDAR_SYNC_ENABLED,
    CALENDAR_SYNC_LOOKBACK_DAYS,
    CALENDAR_TIMEZONE,
    GOOGLE_CLIENT_ID,
    GOOGLE_CLIENT_SECRET,
    GOOGLE_REDIRECT_URI,
)
from ..domain.calendar.repository import CalendarEventRepository
from ..domain.calendar.schemas import PullResult, PushResult, SyncReport
from ..exceptions import ConfigurationError
from ..models_google_calendar import CalendarEvent, SyncStatus
from .google_calendar_service import GoogleCalendarClient
from .google_oauth_service import GoogleOAuthService
from .token_encryption import get_token_cipher

logger = logging.getLogger(__name__)

# Fields Google's copy overwrites on pull
CONTENT_FIELDS = ("title", "description", "location", "start_at", "end_at", "all_day")


class CalendarSyncService:
    """Runs push then pull; each event carries its own sync status"""

    def __init__(
        self,
        db: Session,
        calendar_client: GoogleCalendarClient,
        oauth_service: GoogleOAuthService,
        sync_enabled: bool,
        lookback_days: int = 30,
        now: Callable[[], datetime] = datetime.now,
    ):
        self.db = db
        self.calendar_client = calendar_client
        self.oauth_service = oauth_service
        self.sync_enabled = sync_enabled
        self.lookback_days = lookback_days
        self.now = now
        self.repo = CalendarEventRepository()

    async def run(self) -> SyncReport:
        """Never raises; catastrophic failures are reported as failed=1"""
        report = SyncReport()

        if not self.sync_enabled:
            logger.info("ℹ️ Calendar sync is disabled")
            report.skipped_reason = "disabled"
            return report

        try:
            if not self.oauth_service.is_authenticated():
                logger.warning("⚠️ Not authenticated with Google Calendar. Skipping sync.")
                report.skipped_reason = "not_authenticated"
                return report

            report.push = await self.push_local_changes()
            report.pull = await self.pull_remote_changes()
            logger.info(f"✅ Calendar sync completed: {report.summary()}")
        except Exception as e:
            logger.error(f"❌ Calendar sync failed: {e}", exc_info=True)
            self.db.rollback()
            report.failed = 1

        return report

    async def push_local_changes(self) -> PushResult:
        """Send every PENDING/FAILED/LOCAL_ONLY event to Google, one at a time"""
        result = PushResult()
        events = self.repo.get_events_needing_sync(self.db)
        logger.info(f"📤 Found {len(events)} events pending sync to Google")

        for event in events:
            try:
                outcome = await self._push_event(event)
            except Exception as e:
                logger.error(f"❌ Failed to sync event {event.id} ({event.title}): {e}")
                self.db.rollback()
                event.sync_status = SyncStatus.FAILED
                self.repo.save(self.db, event)
                result.failed += 1
                continue

            if outcome == "created":
                result.created += 1
            elif outcome == "updated":
                result.updated += 1
            elif outcome == "deleted":
                result.deleted += 1

        return result

    async def _push_event(self, event: CalendarEvent) -> Optional[str]:
        if event.deleted:
            # Deleted rows keep their status; only physical cleanup follows
            if event.remote_event_id:
                await self.calendar_client.delete_event(event.remote_event_id)
                logger.info(f"🗑️ Deleted event from Google: {event.title}")
                return "deleted"
            return None

        if not event.remote_event_id:
            event.remote_event_id = await self.calendar_client.create_event(event)
            event.remote_calendar_id = self.calendar_client.calendar_id
            self._mark_synced(event)
            logger.info(f"✅ Created event in Google: {event.title}")
            return "created"

        await self.calendar_client.update_event(event)
        self._mark_synced(event)
        logger.info(f"✅ Updated event in Google: {event.title}")
        return "updated"

    async def pull_remote_changes(self) -> PullResult:
        """
        Copy Google events from the lookback window into the local store.
        Any failure propagates; a partial pull has no safe interpretation.
        """
        result = PullResult()
        since = self.now() - timedelta(days=self.lookback_days)
        remote_events = await self.calendar_client.list_events_since(since)

        for remote_event in remote_events:
            existing = self.repo.find_by_remote_id(self.db, remote_event.remote_event_id)

            if existing is None:
                remote_event.last_synced_at = self.now()
                self.repo.save(self.db, remote_event)
                result.created += 1
                logger.info(f"📥 Created local event from Google: {remote_event.title}")
                continue

            if existing.deleted:
                # Remote delete is still pending; do not resurrect
                if not existing.remote_event_id:
                    # Matched by sync key; link it so the next push deletes the Google copy
                    existing.remote_event_id = remote_event.remote_event_id
                    existing.remote_calendar_id = remote_event.remote_calendar_id
                    self.repo.save(self.db, existing)
                    logger.info(f"🔗 Linked deleted local event {existing.id} for remote delete")
                else:
                    logger.debug(f"Skipping deleted local event {existing.id}")
                continue

            for name in CONTENT_FIELDS:
                setattr(existing, name, getattr(remote_event, name))
            existing.remote_event_id = remote_event.remote_event_id
            existing.remote_calendar_id = remote_event.remote_calendar_id
            self._mark_synced(existing)
            result.updated += 1
            logger.info(f"📥 Updated local event from Google: {existing.title}")

        return result

    def _mark_synced(self, event: CalendarEvent) -> None:
        event.sync_status = SyncStatus.SYNCED
        event.last_synced_at = self.now()
        self.repo.save(self.db, event)


def load_zone(name: str) -> ZoneInfo:
    """IANA zone for naive local event times; unknown keys are a configuration error"""
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError) as e:
        raise ConfigurationError(f"CALENDAR_TIMEZONE is not a valid IANA zone: {name!r}") from e


@lru_cache(maxsize=1)
def get_calendar_zone() -> ZoneInfo:
    return load_zone(CALENDAR_TIMEZONE)


def local_now() -> datetime:
    """Current wall-clock time in the configured calendar zone"""
    return datetime.now(get_calendar_zone()).replace(tzinfo=None)


def create_oauth_service(db: Session, http_client: httpx.AsyncClient) -> GoogleOAuthService:
    return GoogleOAuthService(
        db=db,
        cipher=get_token_cipher(),
        http_client=http_client,
        client_id=GOOGLE_CLIENT_ID,
        client_secret=GOOGLE_CLIENT_SECRET,
        redirect_uri=GOOGLE_REDIRECT_URI,
    )


def create_sync_service(
    db: Session,
    http_client: httpx.AsyncClient,
    oauth_service: Optional[GoogleOAuthService] = None,
) -> CalendarSyncService:
    """Wire the sync service from application configuration"""
    oauth_service = oauth_service or create_oauth_service(db, http_client)
    calendar_client = GoogleCalendarClient(
        oauth_service=oauth_service,
        http_client=http_client,
        timezone_name=get_calendar_zone().key,
    )
    return CalendarSyncService(
        db=db,
        calendar_client=calendar_client,
        oauth_service=oauth_service,
        sync_enabled=CALENDAR_SYNC_ENABLED,
        lookback_days=CALENDAR_SYNC_LOOKBACK_DAYS,
        now=local_now,
    )
