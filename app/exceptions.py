"""
Calendar sync exceptions
"""
from typing import Optional


class CalendarSyncError(Exception):
    """Base class for calendar sync failures"""


class ConfigurationError(CalendarSyncError):
    """Required configuration is missing or unusable; raised at startup"""


class AuthenticationError(CalendarSyncError):
    """No usable Google credential is on file; the user must re-authorize"""


class TokenRefreshError(AuthenticationError):
    """The access token expired and could not be refreshed"""


class RemoteApiError(CalendarSyncError):
    """Network failure or non-success response from the calendar provider"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ValidationError(CalendarSyncError):
    """A caller precondition was violated"""
