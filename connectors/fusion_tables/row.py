"""
RemoteRow — read-only, column-ordered view over one query result row.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Dict, Iterator, Optional, Sequence, TYPE_CHECKING

from connectors.entity import Entity

if TYPE_CHECKING:
    from connectors.fusion_tables.table import RemoteTable


class RemoteRow(Entity, Mapping):
    """
    Zips the table's column names with the positional values returned by a
    query.  Missing trailing values read as ``None``; extra values are dropped.
    All writes go through ``RemoteTable`` with filters, never through a row.
    """

    def __init__(
        self,
        column_names: Sequence[str],
        values: Sequence[Any],
        *,
        table: Optional["RemoteTable"] = None,
    ) -> None:
        self._table = table
        self._columns = tuple(column_names)
        self._values: Dict[str, Any] = {
            name: values[index] if index < len(values) else None
            for index, name in enumerate(self._columns)
        }

    @property
    def path(self) -> str:
        prefix = self._table.path if self._table else "tables"
        return f"{prefix}/rows"

    @property
    def label(self) -> str:
        if not self._columns:
            return ""
        first = self._values[self._columns[0]]
        return "" if first is None else str(first)

    @property
    def column_names(self) -> tuple:
        return self._columns

    def properties(self) -> Dict[str, Any]:
        return {name: self._values[name] for name in self._columns}

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._columns)

    def __len__(self) -> int:
        return len(self._columns)

    def __repr__(self) -> str:
        return f"RemoteRow({self.properties()!r})"
