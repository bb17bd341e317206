"""
Google Calendar Integration Models
"""
import enum
import uuid

from sqlalchemy import Boolean, Column, DateTime, Enum, Integer, String, Text
from sqlalchemy.sql import func

from .database import Base

DEFAULT_USER_IDENTIFIER = "default"
PRIMARY_CALENDAR_ID = "primary"


def generate_sync_key():
    """Client-side event id, valid as a Google Calendar event id (base32hex subset)"""
    return uuid.uuid4().hex


class SyncStatus(str, enum.Enum):
    PENDING = "PENDING"
    SYNCED = "SYNCED"
    FAILED = "FAILED"
    LOCAL_ONLY = "LOCAL_ONLY"


# Statuses the push phase picks up
DIRTY_STATUSES = (SyncStatus.PENDING, SyncStatus.FAILED, SyncStatus.LOCAL_ONLY)


class GoogleOAuthToken(Base):
    __tablename__ = "google_oauth_tokens"

    id = Column(Integer, primary_key=True, index=True)
    user_identifier = Column(
        String(50), nullable=False, unique=True, default=DEFAULT_USER_IDENTIFIER
    )

    # OAuth tokens (encrypted)
    access_token = Column(Text, nullable=False)
    refresh_token = Column(Text, nullable=True)
    expires_at = Column(DateTime, nullable=False)
    scope = Column(String(500), nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class CalendarEvent(Base):
    __tablename__ = "calendar_events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    location = Column(String(255), nullable=True)
    start_at = Column(DateTime, nullable=False, index=True)
    end_at = Column(DateTime, nullable=False)
    all_day = Column(Boolean, default=False, nullable=False)

    # Google Calendar linkage
    remote_event_id = Column(String(1024), unique=True, nullable=True, index=True)
    remote_calendar_id = Column(String(500), nullable=True)
    sync_key = Column(String(64), unique=True, nullable=True, default=generate_sync_key)
    sync_status = Column(
        Enum(SyncStatus, native_enum=False, length=20),
        default=SyncStatus.LOCAL_ONLY,
        nullable=False,
    )
    last_synced_at = Column(DateTime, nullable=True)

    # Soft delete - row stays until the remote delete has been pushed
    deleted = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<CalendarEvent id={self.id} title={self.title!r} status={self.sync_status}>"
