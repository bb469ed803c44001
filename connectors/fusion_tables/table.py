"""
RemoteTable — translates entity-set operations into Fusion Tables SQL.

Fusion Tables cannot update or delete by filter: a mutation must address a
synthetic ``ROWID``.  ``update`` and ``delete`` therefore resolve the row id
with a ``SELECT ROWID`` first and then mutate that single row
(resolve-then-mutate).  The two round trips are not atomic.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, FrozenSet, List, Literal, Mapping, Optional, Sequence, TYPE_CHECKING

from connectors.entity import EntitySet, SimpleProperty
from connectors.errors import NotFoundError, SchemaNotResolvedError
from connectors.fusion_tables.row import RemoteRow
from connectors.fusion_tables.statements import QuotingMode, ROWID, StatementBuilder

if TYPE_CHECKING:
    from connectors.fusion_tables.catalog import TableCatalog

logger = logging.getLogger(__name__)

MissingRowPolicy = Literal["error", "ignore"]

# Remote column type → property factory
_PROPERTY_FACTORIES = {
    "DATETIME": SimpleProperty.datetime,
    "LOCATION": SimpleProperty.location,
    "NUMBER": SimpleProperty.numeric,
    "STRING": SimpleProperty.string,
}


def column_property(column: Mapping[str, Any]) -> SimpleProperty:
    """Map one remote column description to a property description."""
    label = column["name"]
    remote_type = str(column.get("type", ""))
    factory = _PROPERTY_FACTORIES.get(remote_type.upper())
    if factory is None:
        return SimpleProperty.unsupported(label, remote_type)
    return factory(label)


class RemoteTable(EntitySet):
    protocol: FrozenSet[str] = frozenset({"insert", "update", "delete"})

    def __init__(
        self,
        catalog: "TableCatalog",
        table_id: str,
        name: str,
        columns: Optional[Sequence[Mapping[str, Any]]] = None,
        *,
        quoting: QuotingMode = QuotingMode.LEGACY,
        missing_row_policy: MissingRowPolicy = "error",
    ) -> None:
        self._catalog = catalog
        self.id = table_id
        self.name = name
        # None until resolved; memoized once, never refreshed
        self._columns: Optional[tuple] = tuple(dict(c) for c in columns) if columns is not None else None
        self._statements = StatementBuilder(table_id, quoting)
        self._missing_row_policy = missing_row_policy

    # ── Entity capability ───────────────────────────────────────────────

    @property
    def path(self) -> str:
        return f"tables/{self.id}"

    @property
    def label(self) -> str:
        return self.name

    def properties(self) -> Dict[str, SimpleProperty]:
        return {
            "id": SimpleProperty.string("id", self.id),
            "name": SimpleProperty.name(self.name),
        }

    # ── Schema ──────────────────────────────────────────────────────────

    @property
    def schema_resolved(self) -> bool:
        return self._columns is not None

    @property
    def columns(self) -> tuple:
        if self._columns is None:
            raise SchemaNotResolvedError(f"Schema of table {self.id} is not resolved; await resolve_schema()")
        return self._columns

    @property
    def column_names(self) -> List[str]:
        return [c["name"] for c in self.columns]

    async def resolve_schema(self) -> tuple:
        if self._columns is None:
            resolved = await self._catalog.find(self.id)
            self._columns = resolved.columns
        return self._columns

    def entity_properties(self) -> Dict[str, SimpleProperty]:
        return {c["name"]: column_property(c) for c in self.columns}

    def unsupported_columns(self) -> List[SimpleProperty]:
        return [p for p in self.entity_properties().values() if not p.supported]

    # ── Queries ─────────────────────────────────────────────────────────

    async def _select(self, filters: Optional[Mapping[str, Any]], fields: str) -> Dict[str, Any]:
        sql = self._statements.select(filters, fields)
        logger.debug("Querying table %s (%d filters, fields=%s)", self.id, len(filters or {}), fields)
        results = await self._catalog.client.get(self._catalog.query_url, params={"sql": sql})
        return results if isinstance(results, dict) else {}

    async def query(
        self, filters: Optional[Mapping[str, Any]] = None, fields: str = "*"
    ) -> List[RemoteRow]:
        await self.resolve_schema()
        response = await self._select(filters, fields)
        if fields in ("*", "all"):
            column_names = self.column_names
        else:
            # Projected: values follow the requested columns, not the schema
            column_names = response.get("columns") or [f.strip() for f in fields.split(",")]
        return [RemoteRow(column_names, data, table=self) for data in response.get("rows") or []]

    async def find_entity(self, filters: Mapping[str, Any]) -> Optional[RemoteRow]:
        rows = await self.query(filters)
        return rows[0] if rows else None

    async def resolve_row_id(self, filters: Optional[Mapping[str, Any]]) -> Optional[str]:
        # Google responds: {"kind": "fusiontables#sqlresponse", "columns": ["rowid"], "rows": [["2701"]]}
        rows = (await self._select(filters, ROWID)).get("rows") or []
        if not rows or not rows[0]:
            return None
        return str(rows[0][0])

    # ── Mutations (at most one row per call) ───────────────────────────

    async def _mutate(self, sql: str) -> Any:
        return await self._catalog.client.post(self._catalog.query_url, {"sql": sql})

    async def insert(self, properties: Mapping[str, Any]) -> Any:
        logger.debug("Inserting into table %s columns=%s", self.id, list(properties))
        return await self._mutate(self._statements.insert(properties))

    async def _target_row(self, filters: Mapping[str, Any], action: str) -> Optional[str]:
        row_id = await self.resolve_row_id(filters)
        if row_id is not None:
            return row_id
        if self._missing_row_policy == "error":
            raise NotFoundError(f"No row in table {self.id} matches {action} filters {dict(filters)!r}")
        logger.warning("%s on table %s matched no row; skipped", action, self.id)
        return None

    async def update(self, filters: Mapping[str, Any], properties: Mapping[str, Any]) -> Any:
        row_id = await self._target_row(filters, "update")
        if row_id is None:
            return None
        return await self._mutate(self._statements.update(properties, row_id))

    async def delete(self, filters: Mapping[str, Any]) -> Any:
        row_id = await self._target_row(filters, "delete")
        if row_id is None:
            return None
        return await self._mutate(self._statements.delete(row_id))

    def __repr__(self) -> str:
        return f"RemoteTable(id={self.id!r}, name={self.name!r}, resolved={self.schema_resolved})"
