"""Tests for the Google OAuth credential service."""

from datetime import datetime, timedelta
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from app.exceptions import AuthenticationError, RemoteApiError, TokenRefreshError
from app.models_google_calendar import GoogleOAuthToken
from app.services.google_oauth_service import GOOGLE_AUTH_URL, Credential, GoogleOAuthService
from tests.conftest import FIXED_NOW


async def test_build_authorization_url(oauth_service):
    url = oauth_service.build_authorization_url()
    parsed = urlparse(url)
    query = parse_qs(parsed.query)

    assert url.startswith(GOOGLE_AUTH_URL)
    assert query["client_id"] == ["test-client-id"]
    assert query["redirect_uri"] == ["http://localhost:8000/calendar/oauth2/callback"]
    assert query["response_type"] == ["code"]
    assert query["access_type"] == ["offline"]
    assert query["prompt"] == ["consent"]
    assert query["scope"] == [
        "https://www.googleapis.com/auth/calendar https://www.googleapis.com/auth/calendar.events"
    ]
    # Deterministic
    assert oauth_service.build_authorization_url() == url


async def test_exchange_code_stores_encrypted_tokens(oauth_service, google, db, cipher):
    google.token_responses.append(
        httpx.Response(
            200,
            json={"access_token": "access-new", "refresh_token": "refresh-new", "expires_in": 3599},
        )
    )

    await oauth_service.exchange_code("auth-code")

    token = db.query(GoogleOAuthToken).one()
    assert token.access_token != "access-new"
    assert token.refresh_token != "refresh-new"
    assert cipher.decrypt(token.access_token) == "access-new"
    assert cipher.decrypt(token.refresh_token) == "refresh-new"
    assert token.expires_at == FIXED_NOW + timedelta(seconds=3599)
    assert oauth_service.is_authenticated()

    form = dict(httpx.QueryParams(google.token_calls[0].content.decode()))
    assert form["grant_type"] == "authorization_code"
    assert form["code"] == "auth-code"


async def test_exchange_code_replaces_row_and_keeps_refresh_token(
    oauth_service, google, db, cipher, store_credential
):
    store_credential(refresh_token="refresh-old")
    google.token_responses.append(
        httpx.Response(200, json={"access_token": "access-new", "expires_in": 3600})
    )

    await oauth_service.exchange_code("auth-code")

    token = db.query(GoogleOAuthToken).one()
    assert cipher.decrypt(token.access_token) == "access-new"
    assert cipher.decrypt(token.refresh_token) == "refresh-old"


async def test_exchange_code_rejected(oauth_service, google, db):
    google.token_responses.append(httpx.Response(400, json={"error": "invalid_grant"}))

    with pytest.raises(RemoteApiError):
        await oauth_service.exchange_code("bad-code")
    assert db.query(GoogleOAuthToken).count() == 0


async def test_get_credential_without_row_returns_error(oauth_service):
    result = await oauth_service.get_credential()
    assert isinstance(result, AuthenticationError)
    assert not oauth_service.is_authenticated()


async def test_get_credential_valid_token_no_refresh(oauth_service, google, store_credential):
    store_credential()

    credential = await oauth_service.get_credential()

    assert isinstance(credential, Credential)
    assert credential.access_token == "access-1"
    assert credential.refresh_token == "refresh-1"
    assert credential.authorization_header == {"Authorization": "Bearer access-1"}
    assert google.token_calls == []


async def test_get_credential_refreshes_expired_token(
    oauth_service, google, db, cipher, store_credential
):
    old_expiry = datetime(2024, 6, 15, 11, 0)
    store_credential(expires_at=old_expiry)

    credential = await oauth_service.get_credential()

    assert len(google.token_calls) == 1
    form = dict(httpx.QueryParams(google.token_calls[0].content.decode()))
    assert form["grant_type"] == "refresh_token"
    assert form["refresh_token"] == "refresh-1"

    assert credential.access_token == "fresh-access"
    assert credential.expires_at > old_expiry
    token = db.query(GoogleOAuthToken).one()
    assert cipher.decrypt(token.access_token) == "fresh-access"
    assert cipher.decrypt(token.refresh_token) == "refresh-1"
    assert token.expires_at == FIXED_NOW + timedelta(seconds=3600)


async def test_get_credential_expired_without_refresh_token(oauth_service, db, cipher):
    db.add(
        GoogleOAuthToken(
            access_token=cipher.encrypt("access-1"),
            refresh_token=None,
            expires_at=datetime(2024, 6, 1),
        )
    )
    db.commit()

    result = await oauth_service.get_credential()

    assert isinstance(result, TokenRefreshError)
    assert isinstance(result, AuthenticationError)


async def test_get_credential_refresh_rejected(oauth_service, google, store_credential):
    store_credential(expires_at=datetime(2024, 6, 1))
    google.token_responses.append(httpx.Response(400, json={"error": "invalid_grant"}))

    result = await oauth_service.get_credential()

    assert isinstance(result, TokenRefreshError)


async def test_get_credential_refresh_network_failure_raises(db, cipher, store_credential):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    store_credential(expires_at=datetime(2024, 6, 1))
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        service = GoogleOAuthService(
            db=db,
            cipher=cipher,
            http_client=client,
            client_id="cid",
            client_secret="secret",
            redirect_uri="http://localhost/cb",
            now=lambda: FIXED_NOW,
        )
        with pytest.raises(RemoteApiError):
            await service.get_credential()


async def test_disconnect_removes_credential(oauth_service, store_credential):
    store_credential()
    assert oauth_service.is_authenticated()

    oauth_service.disconnect()

    assert not oauth_service.is_authenticated()
    assert isinstance(await oauth_service.get_credential(), AuthenticationError)


def test_credential_repr_hides_tokens():
    credential = Credential(
        access_token="secret-access", refresh_token="secret-refresh", expires_at=FIXED_NOW
    )
    assert "secret" not in repr(credential)
