"""Calendar service - Business logic for local calendar events"""

import logging
from datetime import date, datetime, time, timedelta

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models_google_calendar import CalendarEvent, SyncStatus
from .repository import CalendarEventRepository
from .schemas import CalendarEventCreate, CalendarEventUpdate

logger = logging.getLogger(__name__)

END_OF_DAY = time(23, 59)


def normalize_all_day(start_at: datetime, end_at: datetime) -> tuple[datetime, datetime]:
    """All-day events span start-of-day of the first date to end-of-day of the last"""
    return datetime.combine(start_at.date(), time.min), datetime.combine(end_at.date(), END_OF_DAY)


class CalendarEventService:
    """Service layer for calendar event business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = CalendarEventRepository()

    def get_events(self) -> list[CalendarEvent]:
        return self.repo.get_events(self.db)

    def get_events_for_month(self, year: int, month: int) -> list[CalendarEvent]:
        if not 1 <= month <= 12:
            raise HTTPException(status_code=400, detail="Month must be between 1 and 12")
        month_start = datetime(year, month, 1)
        next_month = datetime(year + 1, 1, 1) if month == 12 else datetime(year, month + 1, 1)
        return self.repo.get_events_between(
            self.db, month_start, next_month - timedelta(microseconds=1)
        )

    def get_events_for_day(self, day: date) -> list[CalendarEvent]:
        return self.repo.get_events_between(
            self.db, datetime.combine(day, time.min), datetime.combine(day, time.max)
        )

    def get_event(self, event_id: int) -> CalendarEvent:
        """Get a specific event"""
        event = self.repo.get_event_by_id(self.db, event_id)
        if not event:
            raise HTTPException(status_code=404, detail="Event not found")
        return event

    def create_event(self, data: CalendarEventCreate) -> CalendarEvent:
        """Create an event and mark it for sync to Google"""
        start_at, end_at = data.startAt, data.endAt
        if data.allDay:
            start_at, end_at = normalize_all_day(start_at, end_at)

        event = self.repo.create_event(
            self.db,
            title=data.title,
            description=data.description,
            location=data.location,
            start_at=start_at,
            end_at=end_at,
            all_day=data.allDay,
            sync_status=SyncStatus.PENDING,
            deleted=False,
        )
        logger.info(f"📅 Created calendar event {event.id}: {event.title}")
        return event

    def update_event(self, event_id: int, data: CalendarEventUpdate) -> CalendarEvent:
        """Replace an event's content and mark it for sync"""
        event = self.get_event(event_id)

        start_at, end_at = data.startAt, data.endAt
        if data.allDay:
            start_at, end_at = normalize_all_day(start_at, end_at)

        event.title = data.title
        event.description = data.description
        event.location = data.location
        event.start_at = start_at
        event.end_at = end_at
        event.all_day = data.allDay
        event.sync_status = SyncStatus.PENDING
        return self.repo.save(self.db, event)

    def delete_event(self, event_id: int) -> dict:
        """Soft delete; the row is kept so the delete can be pushed to Google"""
        event = self.get_event(event_id)
        event.deleted = True
        event.sync_status = SyncStatus.PENDING
        self.repo.save(self.db, event)
        logger.info(f"🗑️ Soft-deleted calendar event {event_id}")
        return {"message": "Event deleted"}
