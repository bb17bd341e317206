"""Calendar router - FastAPI endpoints for local calendar events"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...database import get_db
from .schemas import CalendarEventCreate, CalendarEventResponse, CalendarEventUpdate
from .service import CalendarEventService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/calendar/events", tags=["Calendar"])


def get_calendar_event_service(db: Session = Depends(get_db)) -> CalendarEventService:
    """Dependency injection for CalendarEventService"""
    return CalendarEventService(db)


@router.get("", response_model=list[CalendarEventResponse])
async def get_events(
    year: Optional[int] = Query(None),
    month: Optional[int] = Query(None),
    service: CalendarEventService = Depends(get_calendar_event_service),
):
    """Get all events, or the events of one month when year and month are given"""
    if year is not None and month is not None:
        return service.get_events_for_month(year, month)
    return service.get_events()


@router.get("/day", response_model=list[CalendarEventResponse])
async def get_events_for_day(
    day: date = Query(..., alias="date"),
    service: CalendarEventService = Depends(get_calendar_event_service),
):
    return service.get_events_for_day(day)


@router.post("", response_model=CalendarEventResponse, status_code=201)
async def create_event(
    data: CalendarEventCreate,
    service: CalendarEventService = Depends(get_calendar_event_service),
):
    return service.create_event(data)


@router.get("/{event_id}", response_model=CalendarEventResponse)
async def get_event(
    event_id: int,
    service: CalendarEventService = Depends(get_calendar_event_service),
):
    return service.get_event(event_id)


@router.put("/{event_id}", response_model=CalendarEventResponse)
async def update_event(
    event_id: int,
    data: CalendarEventUpdate,
    service: CalendarEventService = Depends(get_calendar_event_service),
):
    return service.update_event(event_id, data)


@router.delete("/{event_id}")
async def delete_event(
    event_id: int,
    service: CalendarEventService = Depends(get_calendar_event_service),
):
    return service.delete_event(event_id)
