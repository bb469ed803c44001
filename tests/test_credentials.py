"""
Tests for CredentialStore — expiry margin, refresh grant, persistence order.
"""

import asyncio
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from connectors.credentials import Credential, CredentialStore
from connectors.errors import AuthError

TOKEN_ENDPOINT = "https://accounts.test/o/oauth2/token"
NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


class _TokenEndpoint:
    def __init__(self, status=200, body=None):
        self.status = status
        self.body = body if body is not None else {"access_token": "new-token", "expires_in": 3600}
        self.calls = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request.content.decode())
        return httpx.Response(self.status, json=self.body)


def _store(endpoint, expires_at, *, refresh_token="refresh-1", persisted=None):
    persisted = persisted if persisted is not None else []

    async def persist(credential):
        persisted.append(credential)

    return CredentialStore(
        Credential(access_token="old-token", refresh_token=refresh_token, expires_at=expires_at),
        token_endpoint=TOKEN_ENDPOINT,
        client_id="client-id",
        client_secret="client-secret",
        persist=persist,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(endpoint)),
        clock=lambda: NOW,
    )


class TestValidToken:
    @pytest.mark.asyncio
    async def test_fresh_token_returned_without_refresh(self):
        endpoint = _TokenEndpoint()
        store = _store(endpoint, NOW + timedelta(minutes=30))

        assert await store.valid_token() == "old-token"
        assert endpoint.calls == []

    @pytest.mark.asyncio
    async def test_expired_token_refreshed_once(self):
        endpoint = _TokenEndpoint()
        original_expiry = NOW - timedelta(minutes=1)
        store = _store(endpoint, original_expiry)

        assert await store.valid_token() == "new-token"
        assert len(endpoint.calls) == 1
        assert "grant_type=refresh_token" in endpoint.calls[0]
        assert "refresh_token=refresh-1" in endpoint.calls[0]
        assert store.credential.expires_at > original_expiry
        assert store.credential.expires_at == NOW + timedelta(seconds=3600)

    @pytest.mark.asyncio
    async def test_token_within_margin_is_refreshed(self):
        endpoint = _TokenEndpoint()
        store = _store(endpoint, NOW + timedelta(minutes=4))

        assert await store.valid_token() == "new-token"
        assert len(endpoint.calls) == 1

    @pytest.mark.asyncio
    async def test_missing_expiry_forces_refresh(self):
        endpoint = _TokenEndpoint()
        store = _store(endpoint, None)

        assert await store.valid_token() == "new-token"
        assert len(endpoint.calls) == 1

    @pytest.mark.asyncio
    async def test_refresh_persisted_before_return(self):
        persisted = []
        store = _store(_TokenEndpoint(), NOW - timedelta(hours=1), persisted=persisted)

        token = await store.valid_token()

        assert len(persisted) == 1
        assert persisted[0].access_token == token
        # Google does not rotate the refresh token here; the old one is kept
        assert persisted[0].refresh_token == "refresh-1"

    @pytest.mark.asyncio
    async def test_rotated_refresh_token_replaces_old(self):
        endpoint = _TokenEndpoint(body={"access_token": "new-token", "refresh_token": "refresh-2"})
        store = _store(endpoint, NOW - timedelta(hours=1))

        await store.valid_token()

        assert store.credential.refresh_token == "refresh-2"

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_refresh(self):
        endpoint = _TokenEndpoint()
        store = _store(endpoint, NOW - timedelta(hours=1))

        tokens = await asyncio.gather(store.valid_token(), store.valid_token(), store.valid_token())

        assert tokens == ["new-token"] * 3
        assert len(endpoint.calls) == 1


class TestRefreshFailures:
    @pytest.mark.asyncio
    async def test_missing_refresh_token_raises(self):
        endpoint = _TokenEndpoint()
        store = _store(endpoint, NOW - timedelta(hours=1), refresh_token=None)

        with pytest.raises(AuthError, match="refresh_token"):
            await store.valid_token()
        assert endpoint.calls == []

    @pytest.mark.asyncio
    async def test_rejected_grant_raises_and_persists_nothing(self):
        persisted = []
        endpoint = _TokenEndpoint(status=400, body={"error": "invalid_grant"})
        store = _store(endpoint, NOW - timedelta(hours=1), persisted=persisted)

        with pytest.raises(AuthError, match="invalid_grant"):
            await store.valid_token()
        assert persisted == []
        assert store.credential.access_token == "old-token"

    @pytest.mark.asyncio
    async def test_response_without_access_token_raises(self):
        store = _store(_TokenEndpoint(body={"token_type": "Bearer"}), NOW - timedelta(hours=1))

        with pytest.raises(AuthError):
            await store.valid_token()
