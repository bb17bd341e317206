import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

# Import all models to ensure they're registered with SQLAlchemy Base
from . import models_google_calendar  # noqa: F401
from .database import Base, engine
from .domain.calendar.router import router as calendar_events_router
from .exceptions import AuthenticationError, RemoteApiError, ValidationError
from .routes.google_calendar import router as google_calendar_router
from .services.calendar_sync_service import get_calendar_zone
from .services.token_encryption import get_token_cipher

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    # Fails fast when CALENDAR_ENCRYPTION_KEY is missing or CALENDAR_TIMEZONE is unknown
    get_token_cipher()
    get_calendar_zone()

    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Database tables created successfully")
    except Exception as e:
        error_msg = str(e)
        if "already exists" in error_msg:
            logger.info("Database tables already exist (created by another worker)")
        else:
            logger.error(f"Failed to create database tables: {e}")
            raise

    yield
    logger.info("Application shutting down...")


app = FastAPI(title="Calendar Sync API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(AuthenticationError)
async def authentication_exception_handler(request: Request, exc: AuthenticationError):
    logger.warning(f"Google Calendar authentication failed for {request.url.path}: {exc}")
    return JSONResponse(status_code=401, content={"detail": str(exc)})


@app.exception_handler(RemoteApiError)
async def remote_api_exception_handler(request: Request, exc: RemoteApiError):
    logger.error(f"Google Calendar API error for {request.url.path}: {exc}")
    return JSONResponse(status_code=502, content={"detail": str(exc)})


@app.exception_handler(ValidationError)
async def validation_exception_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


app.include_router(calendar_events_router)
app.include_router(google_calendar_router)


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
