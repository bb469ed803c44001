"""
TableCatalog — the "tables" entity set of a Fusion Tables connector.

``list()`` returns identity-only tables (schema unresolved); ``find()``
returns a table with its full column metadata.  These are the only two
ways to obtain a ``RemoteTable``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, FrozenSet, List, Mapping, Optional

from connectors.entity import EntitySet
from connectors.errors import NotFoundError, RemoteApiError
from connectors.fusion_tables.statements import QuotingMode
from connectors.fusion_tables.table import MissingRowPolicy, RemoteTable
from connectors.http_client import RemoteHttpClient

logger = logging.getLogger(__name__)


class TableCatalog(EntitySet):
    protocol: FrozenSet[str] = frozenset()

    def __init__(
        self,
        client: RemoteHttpClient,
        api_base: str,
        *,
        quoting: QuotingMode = QuotingMode.LEGACY,
        missing_row_policy: MissingRowPolicy = "error",
    ) -> None:
        self.client = client
        self.api_base = api_base.rstrip("/")
        self._quoting = quoting
        self._missing_row_policy = missing_row_policy

    @property
    def path(self) -> str:
        return "tables"

    @property
    def label(self) -> str:
        return "Tables"

    def properties(self) -> Dict[str, Any]:
        return {}

    @property
    def query_url(self) -> str:
        return f"{self.api_base}/query"

    def _table(self, table_id: str, name: str, columns=None) -> RemoteTable:
        return RemoteTable(
            self,
            table_id,
            name,
            columns,
            quoting=self._quoting,
            missing_row_policy=self._missing_row_policy,
        )

    async def list(self) -> List[RemoteTable]:
        data = await self.client.get(
            f"{self.api_base}/tables", params={"fields": "items(name,tableId)"}
        )
        items = (data or {}).get("items") or []
        logger.debug("Listed %d tables", len(items))
        return [self._table(item["tableId"], item.get("name", "")) for item in items]

    async def find(self, table_id: str) -> RemoteTable:
        try:
            data = await self.client.get(f"{self.api_base}/tables/{table_id}")
        except RemoteApiError as exc:
            if exc.status_code == 404:
                raise NotFoundError(f"Table {table_id} not found") from exc
            raise
        if not isinstance(data, dict):
            raise RemoteApiError(
                f"Unexpected metadata for table {table_id}",
                status_code=200,
                body=repr(data)[:500],
            )
        return self._table(table_id, data.get("name", ""), data.get("columns") or [])

    # ── EntitySet aliases ──────────────────────────────────────────────

    async def query(self, filters: Optional[Mapping[str, Any]] = None) -> List[RemoteTable]:
        return await self.list()

    async def find_entity(self, key: str) -> Optional[RemoteTable]:
        return await self.find(key)
