import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./calendar_sync.db")

# Google Calendar OAuth Configuration
GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID")
GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET")
GOOGLE_REDIRECT_URI = os.getenv(
    "GOOGLE_REDIRECT_URI", "http://localhost:8000/calendar/oauth2/callback"
)

# Token encryption key - required, the app refuses to start without it
CALENDAR_ENCRYPTION_KEY = os.getenv("CALENDAR_ENCRYPTION_KEY")

# Sync is opt-in; when false the sync run is a no-op
CALENDAR_SYNC_ENABLED = os.getenv("CALENDAR_SYNC_ENABLED", "false").lower() == "true"

# IANA zone that local (naive) event times are expressed in
CALENDAR_TIMEZONE = os.getenv("CALENDAR_TIMEZONE", os.getenv("TZ", "UTC"))

CALENDAR_SYNC_LOOKBACK_DAYS = int(os.getenv("CALENDAR_SYNC_LOOKBACK_DAYS", "30"))

# Network timeout for provider calls (seconds)
GOOGLE_HTTP_TIMEOUT = float(os.getenv("GOOGLE_HTTP_TIMEOUT", "30"))

# Minutes past each hour at which the worker triggers a sync
CALENDAR_SYNC_CRON_MINUTES = {
    int(minute)
    for minute in os.getenv("CALENDAR_SYNC_CRON_MINUTES", "0,15,30,45").split(",")
    if minute.strip()
}
