"""
Google Calendar Integration Routes
Handles OAuth connection and calendar syncing
"""

import logging
from typing import Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..config import CALENDAR_SYNC_ENABLED, GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET, GOOGLE_HTTP_TIMEOUT
from ..database import get_db
from ..domain.calendar.schemas import ConnectionStatus
from ..exceptions import RemoteApiError
from ..services.calendar_sync_service import (
    CalendarSyncService,
    create_oauth_service,
    create_sync_service,
)
from ..services.google_oauth_service import GoogleOAuthService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/calendar/oauth2", tags=["google-calendar"])


async def get_http_client():
    async with httpx.AsyncClient(timeout=GOOGLE_HTTP_TIMEOUT) as client:
        yield client


def get_oauth_service(
    db: Session = Depends(get_db), http_client: httpx.AsyncClient = Depends(get_http_client)
) -> GoogleOAuthService:
    return create_oauth_service(db, http_client)


def get_sync_service(
    db: Session = Depends(get_db),
    http_client: httpx.AsyncClient = Depends(get_http_client),
    oauth_service: GoogleOAuthService = Depends(get_oauth_service),
) -> CalendarSyncService:
    return create_sync_service(db, http_client, oauth_service)


@router.get("/status", response_model=ConnectionStatus)
async def get_google_calendar_status(
    oauth_service: GoogleOAuthService = Depends(get_oauth_service),
):
    """Get Google Calendar connection status"""
    return ConnectionStatus(
        connected=oauth_service.is_authenticated(), sync_enabled=CALENDAR_SYNC_ENABLED
    )


@router.get("/connect")
async def initiate_google_calendar_oauth(
    oauth_service: GoogleOAuthService = Depends(get_oauth_service),
):
    """Initiate Google Calendar OAuth flow"""
    if not GOOGLE_CLIENT_ID or not GOOGLE_CLIENT_SECRET:
        raise HTTPException(status_code=500, detail="Google Calendar not configured")

    logger.info("Google Calendar OAuth initiated")
    return {"authorization_url": oauth_service.build_authorization_url()}


@router.get("/callback")
async def handle_google_calendar_callback(
    code: Optional[str] = None,
    error: Optional[str] = None,
    oauth_service: GoogleOAuthService = Depends(get_oauth_service),
    sync_service: CalendarSyncService = Depends(get_sync_service),
):
    """Handle Google Calendar OAuth callback, then run an initial sync"""
    if error:
        logger.error(f"OAuth error: {error}")
        raise HTTPException(status_code=400, detail=f"Failed to connect Google Calendar: {error}")
    if not code:
        raise HTTPException(status_code=400, detail="No authorization code provided")

    try:
        await oauth_service.exchange_code(code)
    except RemoteApiError as e:
        logger.error(f"❌ Google Calendar callback error: {e}")
        raise HTTPException(status_code=400, detail="Failed to exchange authorization code") from e

    logger.info("Performing initial sync after OAuth connection...")
    report = await sync_service.run()

    return {
        "success": True,
        "message": (
            "Successfully connected to Google Calendar! "
            f"Synced {report.pull.created} events from Google, "
            f"created {report.push.created} events in Google."
        ),
        "sync": report.model_dump(),
    }


@router.post("/disconnect")
async def disconnect_google_calendar(
    oauth_service: GoogleOAuthService = Depends(get_oauth_service),
):
    """Disconnect Google Calendar integration"""
    if not oauth_service.is_authenticated():
        raise HTTPException(status_code=404, detail="Google Calendar not connected")

    oauth_service.disconnect()
    return {"success": True, "message": "Google Calendar disconnected"}


@router.post("/sync")
async def manual_sync(
    oauth_service: GoogleOAuthService = Depends(get_oauth_service),
    sync_service: CalendarSyncService = Depends(get_sync_service),
):
    """Trigger a sync run by hand"""
    if not oauth_service.is_authenticated():
        raise HTTPException(status_code=401, detail="Not connected to Google Calendar")

    report = await sync_service.run()
    return {"success": report.failed == 0, "message": report.summary(), "sync": report.model_dump()}

