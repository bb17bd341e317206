"""Calendar repository - Database operations for events and the OAuth token"""

from datetime import datetime
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ...models_google_calendar import (
    DEFAULT_USER_IDENTIFIER,
    DIRTY_STATUSES,
    CalendarEvent,
    GoogleOAuthToken,
)


class CalendarEventRepository:
    """Repository for calendar event database operations"""

    @staticmethod
    def get_events(db: Session) -> list[CalendarEvent]:
        """Get all non-deleted events ordered by start"""
        return (
            db.query(CalendarEvent)
            .filter(CalendarEvent.deleted.is_(False))
            .order_by(CalendarEvent.start_at.asc())
            .all()
        )

    @staticmethod
    def get_events_between(db: Session, start: datetime, end: datetime) -> list[CalendarEvent]:
        """Get non-deleted events starting within [start, end]"""
        return (
            db.query(CalendarEvent)
            .filter(
                CalendarEvent.deleted.is_(False),
                CalendarEvent.start_at >= start,
                CalendarEvent.start_at <= end,
            )
            .order_by(CalendarEvent.start_at.asc())
            .all()
        )

    @staticmethod
    def get_event_by_id(db: Session, event_id: int) -> Optional[CalendarEvent]:
        """Get a non-deleted event by ID"""
        return (
            db.query(CalendarEvent)
            .filter(CalendarEvent.id == event_id, CalendarEvent.deleted.is_(False))
            .first()
        )

    @staticmethod
    def get_events_needing_sync(db: Session) -> list[CalendarEvent]:
        """Get events the push phase must process, soft-deleted rows included"""
        return (
            db.query(CalendarEvent)
            .filter(CalendarEvent.sync_status.in_(DIRTY_STATUSES))
            .order_by(CalendarEvent.id.asc())
            .all()
        )

    @staticmethod
    def find_by_remote_id(db: Session, remote_event_id: str) -> Optional[CalendarEvent]:
        """
        Find the local row linked to a Google event, soft-deleted rows included.
        Matches the stored remote id or the sync key a create was sent with.
        """
        if not remote_event_id:
            return None
        return (
            db.query(CalendarEvent)
            .filter(
                or_(
                    CalendarEvent.remote_event_id == remote_event_id,
                    CalendarEvent.sync_key == remote_event_id,
                )
            )
            .first()
        )

    @staticmethod
    def create_event(db: Session, **event_data) -> CalendarEvent:
        """Create a new event"""
        event = CalendarEvent(**event_data)
        db.add(event)
        db.commit()
        db.refresh(event)
        return event

    @staticmethod
    def save(db: Session, event: CalendarEvent) -> CalendarEvent:
        """Persist changes to an event"""
        db.add(event)
        db.commit()
        db.refresh(event)
        return event


class OAuthTokenRepository:
    """Repository for the single Google OAuth token row"""

    @staticmethod
    def get_token(
        db: Session, user_identifier: str = DEFAULT_USER_IDENTIFIER
    ) -> Optional[GoogleOAuthToken]:
        return (
            db.query(GoogleOAuthToken)
            .filter(GoogleOAuthToken.user_identifier == user_identifier)
            .first()
        )

    @staticmethod
    def save(db: Session, token: GoogleOAuthToken) -> GoogleOAuthToken:
        db.add(token)
        db.commit()
        db.refresh(token)
        return token

    @staticmethod
    def delete_token(db: Session, user_identifier: str = DEFAULT_USER_IDENTIFIER) -> int:
        """Delete the token row, returning the number of rows removed"""
        deleted = (
            db.query(GoogleOAuthToken)
            .filter(GoogleOAuthToken.user_identifier == user_identifier)
            .delete()
        )
        db.commit()
        return deleted
