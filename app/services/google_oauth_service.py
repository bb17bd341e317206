"""
Google OAuth Service
Handles the authorization-code flow, token storage and transparent refresh
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Union

import httpx
from cryptography.fernet import InvalidToken
from sqlalchemy.orm import Session

from ..domain.calendar.repository import OAuthTokenRepository
from ..exceptions import AuthenticationError, RemoteApiError, TokenRefreshError
from ..models_google_calendar import DEFAULT_USER_IDENTIFIER, GoogleOAuthToken
from .token_encryption import TokenCipher

logger = logging.getLogger(__name__)

# Google OAuth URLs
GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"  # noqa: S105 - OAuth endpoint URL
GOOGLE_CALENDAR_SCOPES = [
    "https://www.googleapis.com/auth/calendar",
    "https://www.googleapis.com/auth/calendar.events",
]
DEFAULT_TOKEN_LIFETIME = 3600


def utcnow() -> datetime:
    """Naive UTC timestamp, the form token expiry is stored in"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


@dataclass
class Credential:
    """Decrypted, in-memory credential; never persisted or logged"""

    access_token: str = field(repr=False)
    refresh_token: Optional[str] = field(repr=False)
    expires_at: datetime
    scope: Optional[str] = None

    @property
    def authorization_header(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.access_token}"}


CredentialResult = Union[Credential, AuthenticationError]


class GoogleOAuthService:
    """Owns the single stored Google credential"""

    def __init__(
        self,
        db: Session,
        cipher: TokenCipher,
        http_client: httpx.AsyncClient,
        client_id: Optional[str],
        client_secret: Optional[str],
        redirect_uri: str,
        now: Callable[[], datetime] = utcnow,
        user_identifier: str = DEFAULT_USER_IDENTIFIER,
    ):
        self.db = db
        self.cipher = cipher
        self.http_client = http_client
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.now = now
        self.user_identifier = user_identifier
        self.repo = OAuthTokenRepository()

    def build_authorization_url(self, state: Optional[str] = None) -> str:
        """Consent URL requesting offline access; prompt=consent forces a refresh token"""
        params = {
            "client_id": self.client_id or "",
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(GOOGLE_CALENDAR_SCOPES),
            "access_type": "offline",
            "prompt": "consent",
        }
        if state:
            params["state"] = state
        return str(httpx.URL(GOOGLE_AUTH_URL, params=params))

    async def exchange_code(self, code: str) -> None:
        """Exchange an authorization code for tokens and upsert the credential row"""
        tokens = await self._request_tokens(
            {
                "code": code,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "redirect_uri": self.redirect_uri,
                "grant_type": "authorization_code",
            }
        )
        access_token = tokens.get("access_token")
        if not access_token:
            raise RemoteApiError("No access token in token response")

        refresh_token = tokens.get("refresh_token")
        expires_at = self.now() + timedelta(
            seconds=int(tokens.get("expires_in", DEFAULT_TOKEN_LIFETIME))
        )
        scope = tokens.get("scope") or " ".join(GOOGLE_CALENDAR_SCOPES)

        token = self.repo.get_token(self.db, self.user_identifier)
        if token is None:
            token = GoogleOAuthToken(user_identifier=self.user_identifier)
        token.access_token = self.cipher.encrypt(access_token)
        # Keep the stored refresh token when Google does not issue a new one
        if refresh_token:
            token.refresh_token = self.cipher.encrypt(refresh_token)
        token.expires_at = expires_at
        token.scope = scope
        self.repo.save(self.db, token)

        logger.info(f"✅ Google Calendar connected for user: {self.user_identifier}")
        if not refresh_token:
            logger.warning("⚠️ Google did not issue a refresh token on this authorization")

    def is_authenticated(self) -> bool:
        """True when a credential row exists; validity is checked lazily on use"""
        return self.repo.get_token(self.db, self.user_identifier) is not None

    async def get_credential(self) -> CredentialResult:
        """
        Return a ready-to-use credential, refreshing the access token first if it
        has expired. Missing or unrefreshable credentials come back as an
        AuthenticationError value; transport failures raise RemoteApiError.
        """
        token = self.repo.get_token(self.db, self.user_identifier)
        if token is None:
            return AuthenticationError("Not authenticated with Google Calendar")

        if self.now() > token.expires_at:
            refresh_error = await self._refresh_access_token(token)
            if refresh_error is not None:
                return refresh_error

        try:
            access_token = self.cipher.decrypt(token.access_token)
            refresh_token = self.cipher.decrypt(token.refresh_token)
        except InvalidToken:
            logger.error("❌ Stored Google credential cannot be decrypted with the current key")
            return AuthenticationError("Stored credential is unreadable, reconnect Google Calendar")

        return Credential(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=token.expires_at,
            scope=token.scope,
        )

    def disconnect(self) -> None:
        """Forget the stored credential"""
        self.repo.delete_token(self.db, self.user_identifier)
        logger.info(f"✅ Google Calendar disconnected for user: {self.user_identifier}")

    async def _refresh_access_token(self, token: GoogleOAuthToken) -> Optional[TokenRefreshError]:
        if not token.refresh_token:
            return TokenRefreshError("Access token expired and no refresh token is available")

        logger.info("🔄 Google Calendar token expired, refreshing...")
        try:
            refresh_token = self.cipher.decrypt(token.refresh_token)
        except InvalidToken:
            return TokenRefreshError("Stored refresh token cannot be decrypted")

        try:
            tokens = await self._request_tokens(
                {
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "refresh_token": refresh_token,
                    "grant_type": "refresh_token",
                }
            )
        except RemoteApiError as e:
            if e.status_code is None:
                raise
            logger.error(f"❌ Token refresh rejected by Google ({e.status_code})")
            return TokenRefreshError(f"Token refresh rejected: {e}")

        new_access_token = tokens.get("access_token")
        if not new_access_token:
            logger.error("❌ No access token in refresh response")
            return TokenRefreshError("No access token in refresh response")

        token.access_token = self.cipher.encrypt(new_access_token)
        token.expires_at = self.now() + timedelta(
            seconds=int(tokens.get("expires_in", DEFAULT_TOKEN_LIFETIME))
        )
        if tokens.get("refresh_token"):
            token.refresh_token = self.cipher.encrypt(tokens["refresh_token"])
        self.repo.save(self.db, token)

        logger.info("✅ Google Calendar token refreshed successfully")
        return None

    async def _request_tokens(self, data: dict) -> dict:
        try:
            response = await self.http_client.post(GOOGLE_TOKEN_URL, data=data)
        except httpx.HTTPError as e:
            raise RemoteApiError(f"Token endpoint unreachable: {e}") from e

        if response.status_code != 200:
            # Error body carries no secrets, only an error code and description
            logger.error(f"❌ Token request failed ({response.status_code}): {response.text}")
            raise RemoteApiError(
                f"Token endpoint returned {response.status_code}", status_code=response.status_code
            )
        return response.json()
