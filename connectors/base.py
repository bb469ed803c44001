"""
BaseConnector — abstract root entity for all OAuth2-linked connectors.

A connector is the node the host application links to a user's remote
account.  Linking happens before any credential exists, so the OAuth
handshake (authorization URL, code exchange) lives on the class; an
instance always carries a complete credential.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import ClassVar, List, Optional

import httpx

from config.settings import Settings
from connectors.credentials import Credential
from connectors.entity import Entity


class BaseConnector(Entity):
    """Abstract base for all OAuth2 connectors."""

    # ── Identity ────────────────────────────────────────────────────────
    provider_name: ClassVar[str] = ""      # unique slug, e.g. 'fusiontables'
    display_name: ClassVar[str] = ""       # human-readable, e.g. 'Google Fusion Tables'
    scopes: ClassVar[List[str]] = []

    needs_authorization: ClassVar[bool] = True
    authorization_text: ClassVar[str] = "Save and authenticate"

    @property
    def path(self) -> str:
        return ""

    @property
    def label(self) -> str:
        return self.display_name

    # ── OAuth flow ──────────────────────────────────────────────────────

    @classmethod
    @abstractmethod
    def authorization_uri(cls, settings: Settings, redirect_uri: str, state: str) -> str:
        """
        Build the provider's OAuth2 authorization URL.

        Parameters
        ----------
        redirect_uri : str
            Where the provider sends the user back with ``code``.
        state : str
            Opaque state string (encodes user_id + CSRF token).
        """
        ...

    @classmethod
    @abstractmethod
    async def exchange_code(
        cls,
        settings: Settings,
        code: str,
        redirect_uri: str,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> Credential:
        """Exchange the authorization code for a complete Credential."""
        ...

    @classmethod
    def is_configured(cls, settings: Settings) -> bool:
        """True if the client id / secret needed for OAuth are present."""
        return bool(settings.google_client_id and settings.google_client_secret)

    # ── Lifecycle ───────────────────────────────────────────────────────

    async def aclose(self) -> None:
        """Release network resources held by the connector."""
        return None

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
