"""Calendar domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ...models_google_calendar import SyncStatus


class CalendarEventCreate(BaseModel):
    """Schema for creating a new event"""

    title: str
    description: Optional[str] = None
    location: Optional[str] = None
    startAt: datetime
    endAt: datetime
    allDay: bool = False

    @model_validator(mode="after")
    def check_range(self):
        if not self.title.strip():
            raise ValueError("Title is required")
        if self.endAt < self.startAt:
            raise ValueError("End must not be before start")
        return self


class CalendarEventUpdate(CalendarEventCreate):
    """Schema for updating an event; all content fields are replaced"""


class CalendarEventResponse(BaseModel):
    """Schema for event response"""

    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: Optional[str]
    location: Optional[str]
    start_at: datetime
    end_at: datetime
    all_day: bool
    remote_event_id: Optional[str]
    sync_status: SyncStatus
    last_synced_at: Optional[datetime]


class PushResult(BaseModel):
    created: int = 0
    updated: int = 0
    deleted: int = 0
    failed: int = 0


class PullResult(BaseModel):
    created: int = 0
    updated: int = 0


class SyncReport(BaseModel):
    """Outcome of one sync run"""

    push: PushResult = Field(default_factory=PushResult)
    pull: PullResult = Field(default_factory=PullResult)
    # 1 when the run aborted outside the per-event push loop
    failed: int = 0
    skipped_reason: Optional[str] = None

    @property
    def skipped(self) -> bool:
        return self.skipped_reason is not None

    def summary(self) -> str:
        if self.skipped:
            return f"Sync skipped: {self.skipped_reason}"
        return (
            f"Push: {self.push.created} created, {self.push.updated} updated, "
            f"{self.push.deleted} deleted, {self.push.failed} failed. "
            f"Pull: {self.pull.created} created, {self.pull.updated} updated."
            + (" Sync failed." if self.failed else "")
        )


class ConnectionStatus(BaseModel):
    connected: bool
    sync_enabled: bool
