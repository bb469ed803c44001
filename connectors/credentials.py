"""
CredentialStore — holds and refreshes the OAuth2 token of one linked account.

The store is the only place that knows whether the bearer token is still
usable.  Callers ask for ``valid_token()`` on every request; when the token
is expired (or about to expire) the store runs a refresh-token grant,
persists the new credential and only then hands out the new token.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx
from pydantic import BaseModel

from connectors.errors import AuthError

logger = logging.getLogger(__name__)

DEFAULT_EXPIRES_IN = 3600
DEFAULT_REFRESH_MARGIN = timedelta(minutes=5)

PersistCallback = Callable[["Credential"], Awaitable[None]]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Credential(BaseModel):
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_at: Optional[datetime] = None

    @classmethod
    def from_token_response(
        cls,
        data: Dict[str, Any],
        *,
        previous_refresh_token: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> "Credential":
        """Build a credential from an OAuth2 token endpoint response."""
        now = now or _utcnow()
        return cls(
            access_token=data["access_token"],
            # Google only returns a refresh token on the first grant
            refresh_token=data.get("refresh_token") or previous_refresh_token,
            expires_at=now + timedelta(seconds=data.get("expires_in", DEFAULT_EXPIRES_IN)),
        )

    def to_settings(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


async def request_token(
    client: httpx.AsyncClient,
    token_endpoint: str,
    form: Dict[str, str],
) -> Dict[str, Any]:
    """
    POST a grant to the token endpoint and return the decoded response.

    Raises AuthError if the identity provider rejects the grant.
    """
    resp = await client.post(token_endpoint, data=form, headers={"Accept": "application/json"})
    try:
        data = resp.json()
    except ValueError:
        data = {}
    if resp.status_code >= 400 or "error" in data or "access_token" not in data:
        detail = data.get("error_description") or data.get("error") or resp.text[:200]
        logger.warning(
            "%s grant rejected by %s (HTTP %d): %s",
            form.get("grant_type"), token_endpoint, resp.status_code, detail,
        )
        raise AuthError(f"Token grant rejected (HTTP {resp.status_code}): {detail}")
    return data


class CredentialStore:
    """Keeps one Credential valid, refreshing and persisting it on demand."""

    def __init__(
        self,
        credential: Credential,
        *,
        token_endpoint: str,
        client_id: str,
        client_secret: str,
        persist: PersistCallback,
        http_client: httpx.AsyncClient,
        refresh_margin: timedelta = DEFAULT_REFRESH_MARGIN,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._credential = credential
        self._token_endpoint = token_endpoint
        self._client_id = client_id
        self._client_secret = client_secret
        self._persist = persist
        self._http = http_client
        self._margin = refresh_margin
        self._clock = clock
        self._lock = asyncio.Lock()

    @property
    def credential(self) -> Credential:
        return self._credential

    def is_expired(self) -> bool:
        """True when the token is past (or within the margin of) its expiry."""
        expires_at = self._credential.expires_at
        if expires_at is None:
            return True
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return self._clock() > expires_at - self._margin

    async def valid_token(self) -> str:
        """Return a usable access token, refreshing it first if needed."""
        if not self.is_expired() and self._credential.access_token:
            return self._credential.access_token

        async with self._lock:
            # another caller may have refreshed while we waited
            if self.is_expired() or not self._credential.access_token:
                await self._refresh()
        return self._credential.access_token

    async def _refresh(self) -> None:
        refresh_token = self._credential.refresh_token
        if not refresh_token:
            raise AuthError("Credential has no refresh_token; the account must be re-linked")

        data = await request_token(
            self._http,
            self._token_endpoint,
            {
                "client_id": self._client_id,
                "client_secret": self._client_secret,
                "refresh_token": refresh_token,
                "grant_type": "refresh_token",
            },
        )
        refreshed = Credential.from_token_response(
            data, previous_refresh_token=refresh_token, now=self._clock()
        )
        await self._persist(refreshed)
        self._credential = refreshed
        logger.info("Refreshed access token (expires %s)", refreshed.expires_at.isoformat())
