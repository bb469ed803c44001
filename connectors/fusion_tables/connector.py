"""
FusionTablesConnector — composition root of the Fusion Tables connector.

Owns the CredentialStore and the HTTP client, and exposes the table
catalog as its only child entity::

    connector = FusionTablesConnector(connector_id, settings, config=config, persist=save)
    table = await connector.tables.find("1AbC...")
    rows = await table.query({"name": "Alice"})
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Callable, Dict, Optional, Union
from urllib.parse import urlencode

import httpx

from config.settings import Settings
from connectors.base import BaseConnector
from connectors.credentials import Credential, CredentialStore, PersistCallback, request_token
from connectors.errors import ValidationError
from connectors.fusion_tables.catalog import TableCatalog
from connectors.fusion_tables.statements import QuotingMode
from connectors.http_client import RemoteHttpClient

logger = logging.getLogger(__name__)

_REQUIRED_SETTINGS = ("access_token", "refresh_token", "expires_at")


class FusionTablesConnector(BaseConnector):
    provider_name = "fusiontables"
    display_name = "Google Fusion Tables"
    scopes = ["https://www.googleapis.com/auth/fusiontables"]
    authorization_text = "Save and authenticate with Google"

    def __init__(
        self,
        connector_id: Any,
        settings: Union[Credential, Dict[str, Any]],
        *,
        config: Settings,
        persist: PersistCallback,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Optional[Callable] = None,
    ) -> None:
        raw = settings.model_dump() if isinstance(settings, Credential) else dict(settings or {})
        missing = [key for key in _REQUIRED_SETTINGS if not raw.get(key)]
        if missing:
            raise ValidationError(missing)

        self.id = connector_id
        self._http = httpx.AsyncClient(
            transport=transport,
            timeout=config.fusiontables_timeout_seconds,
        )
        store_kwargs = {"clock": clock} if clock is not None else {}
        self._credentials = CredentialStore(
            Credential.model_validate(raw),
            token_endpoint=config.google_token_endpoint,
            client_id=config.google_client_id,
            client_secret=config.google_client_secret,
            persist=persist,
            http_client=self._http,
            refresh_margin=timedelta(seconds=config.token_refresh_margin_seconds),
            **store_kwargs,
        )
        self.client = RemoteHttpClient(self._credentials, self._http)
        self.tables = TableCatalog(
            self.client,
            config.fusiontables_api_base,
            quoting=QuotingMode(config.fusiontables_quoting),
            missing_row_policy=config.fusiontables_missing_row_policy,
        )

    @property
    def settings(self) -> Credential:
        """Current credential (replaced in place on every refresh)."""
        return self._credentials.credential

    @property
    def credentials(self) -> CredentialStore:
        return self._credentials

    def properties(self) -> Dict[str, Any]:
        return {"tables": self.tables}

    async def aclose(self) -> None:
        await self._http.aclose()

    # ── OAuth linking ──────────────────────────────────────────────────

    @classmethod
    def authorization_uri(cls, settings: Settings, redirect_uri: str, state: str) -> str:
        params = {
            "client_id": settings.google_client_id,
            "redirect_uri": redirect_uri,
            "response_type": "code",
            "scope": " ".join(cls.scopes),
            "access_type": "offline",       # gets refresh_token
            "approval_prompt": "force",     # always re-issue refresh_token
            "state": state,
        }
        return f"{settings.google_authorize_endpoint}?{urlencode(params)}"

    @classmethod
    async def exchange_code(
        cls,
        settings: Settings,
        code: str,
        redirect_uri: str,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> Credential:
        form = {
            "code": code,
            "client_id": settings.google_client_id,
            "client_secret": settings.google_client_secret,
            "redirect_uri": redirect_uri,
            "grant_type": "authorization_code",
        }
        if http_client is not None:
            data = await request_token(http_client, settings.google_token_endpoint, form)
        else:
            async with httpx.AsyncClient(timeout=settings.fusiontables_timeout_seconds) as client:
                data = await request_token(client, settings.google_token_endpoint, form)

        credential = Credential.from_token_response(data)
        if not credential.refresh_token:
            logger.warning("Authorization-code grant returned no refresh_token")
        return credential
