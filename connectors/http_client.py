"""
RemoteHttpClient — bearer-authenticated JSON requests.

The token is pulled from the CredentialStore on every call, never cached
here, so a refresh performed by one request is seen by the next.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from connectors.credentials import CredentialStore
from connectors.errors import RemoteApiError

logger = logging.getLogger(__name__)


class RemoteHttpClient:
    def __init__(self, credentials: CredentialStore, http_client: httpx.AsyncClient) -> None:
        self._credentials = credentials
        self._http = http_client

    async def _headers(self) -> Dict[str, str]:
        token = await self._credentials.valid_token()
        return {"Authorization": f"Bearer {token}", "Accept": "application/json"}

    async def get(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        resp = await self._http.get(url, params=params, headers=await self._headers())
        return self._decode(resp)

    async def post(self, url: str, data: Dict[str, Any]) -> Any:
        resp = await self._http.post(url, data=data, headers=await self._headers())
        return self._decode(resp)

    @staticmethod
    def _decode(resp: httpx.Response) -> Any:
        if not resp.is_success:
            body = resp.text[:500]
            logger.error(
                "%s %s → HTTP %d — body=%s",
                resp.request.method, resp.request.url, resp.status_code, body,
            )
            raise RemoteApiError(
                f"Remote service returned HTTP {resp.status_code}",
                status_code=resp.status_code,
                body=body,
            )
        try:
            return resp.json()
        except ValueError as exc:
            raise RemoteApiError(
                f"Response is not valid JSON: {exc}",
                status_code=resp.status_code,
                body=resp.text[:500],
            ) from exc
