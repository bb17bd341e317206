import json
import os
from datetime import datetime

# Configuration is read at import time, so it must be in place before app is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CALENDAR_ENCRYPTION_KEY"] = "test-encryption-key"
os.environ["CALENDAR_SYNC_ENABLED"] = "true"
os.environ["CALENDAR_TIMEZONE"] = "UTC"
os.environ["GOOGLE_CLIENT_ID"] = "test-client-id"
os.environ["GOOGLE_CLIENT_SECRET"] = "test-client-secret"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"

import httpx
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base
from app.models_google_calendar import GoogleOAuthToken
from app.services.google_calendar_service import GoogleCalendarClient
from app.services.google_oauth_service import GOOGLE_TOKEN_URL, GoogleOAuthService
from app.services.calendar_sync_service import CalendarSyncService
from app.services.token_encryption import get_token_cipher

FIXED_NOW = datetime(2024, 6, 15, 12, 0, 0)
EVENTS_PATH = "/calendar/v3/calendars/primary/events"


class FakeGoogle:
    """In-memory stand-in for the Google token endpoint and Calendar v3 events API"""

    def __init__(self):
        self.events: dict[str, dict] = {}
        self.requests: list[httpx.Request] = []
        self.token_responses: list[httpx.Response] = []
        self.fail_titles: set[str] = set()
        self.fail_methods: set[str] = set()
        self._next_id = 1

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if str(request.url) == GOOGLE_TOKEN_URL:
            if self.token_responses:
                return self.token_responses.pop(0)
            return httpx.Response(200, json={"access_token": "fresh-access", "expires_in": 3600})

        if request.method in self.fail_methods:
            return httpx.Response(500, json={"error": {"message": "backend error"}})

        path = request.url.path
        if request.method == "GET" and path == EVENTS_PATH:
            return httpx.Response(200, json={"items": list(self.events.values())})

        if request.method == "POST" and path == EVENTS_PATH:
            body = json.loads(request.content)
            if body.get("summary") in self.fail_titles:
                return httpx.Response(500, json={"error": {"message": "backend error"}})
            event_id = body.get("id") or self._new_id()
            if event_id in self.events:
                return httpx.Response(409, json={"error": {"message": "duplicate"}})
            self.events[event_id] = {**body, "id": event_id}
            return httpx.Response(200, json=self.events[event_id])

        event_id = path.rsplit("/", 1)[-1]
        if event_id not in self.events:
            return httpx.Response(404, json={"error": {"message": "not found"}})
        if request.method == "PUT":
            body = json.loads(request.content)
            if body.get("summary") in self.fail_titles:
                return httpx.Response(500, json={"error": {"message": "backend error"}})
            self.events[event_id] = {**body, "id": event_id}
            return httpx.Response(200, json=self.events[event_id])
        if request.method == "DELETE":
            del self.events[event_id]
            return httpx.Response(204)
        return httpx.Response(405)

    def _new_id(self) -> str:
        event_id = f"g{self._next_id}"
        self._next_id += 1
        return event_id

    def add_remote_event(self, event_id: str, summary: str, start: dict, end: dict, **extra):
        self.events[event_id] = {"id": event_id, "summary": summary, "start": start, "end": end, **extra}

    def calls(self, method: str) -> list[httpx.Request]:
        return [
            r for r in self.requests if r.method == method and str(r.url) != GOOGLE_TOKEN_URL
        ]

    @property
    def token_calls(self) -> list[httpx.Request]:
        return [r for r in self.requests if str(r.url) == GOOGLE_TOKEN_URL]


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def cipher():
    return get_token_cipher()


@pytest.fixture
def google():
    return FakeGoogle()


@pytest.fixture
async def http_client(google):
    async with httpx.AsyncClient(transport=httpx.MockTransport(google)) as client:
        yield client


@pytest.fixture
def store_credential(db, cipher):
    def _store(expires_at=datetime(2024, 6, 15, 13, 0), refresh_token="refresh-1"):
        token = GoogleOAuthToken(
            access_token=cipher.encrypt("access-1"),
            refresh_token=cipher.encrypt(refresh_token),
            expires_at=expires_at,
            scope="https://www.googleapis.com/auth/calendar",
        )
        db.add(token)
        db.commit()
        return token

    return _store


@pytest.fixture
def oauth_service(db, cipher, http_client):
    return GoogleOAuthService(
        db=db,
        cipher=cipher,
        http_client=http_client,
        client_id="test-client-id",
        client_secret="test-client-secret",
        redirect_uri="http://localhost:8000/calendar/oauth2/callback",
        now=lambda: FIXED_NOW,
    )


@pytest.fixture
def calendar_client(oauth_service, http_client):
    return GoogleCalendarClient(oauth_service=oauth_service, http_client=http_client)


@pytest.fixture
def sync_service(db, calendar_client, oauth_service):
    return CalendarSyncService(
        db=db,
        calendar_client=calendar_client,
        oauth_service=oauth_service,
        sync_enabled=True,
        now=lambda: FIXED_NOW,
    )
