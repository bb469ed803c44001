"""
Fusion Tables SQL statement builder.

Supported subset::

    SELECT <fields> FROM <id> [WHERE col='v' AND ...]
    INSERT INTO <id> (cols) VALUES ('v', ...)
    UPDATE <id> SET col='v', ... WHERE ROWID='id'
    DELETE FROM <id> WHERE ROWID='id'

Quoting modes
-------------
``legacy``
    Filter values are percent-encoded (URI-escape safe set, which keeps
    ``'``) and wrapped in single quotes; insert/update values are wrapped
    as-is.  Embedded single quotes are NOT escaped: a value containing
    ``'`` can break out of its literal.  Kept as the default for wire
    compatibility with rows written by earlier clients.
``strict``
    No percent-encoding; backslashes and single quotes inside values are
    backslash-escaped, and column names that are not plain identifiers are
    quoted.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Any, Mapping, Optional
from urllib.parse import quote

ROWID = "ROWID"

# Characters Ruby's URI.escape leaves alone (unreserved + reserved).
_URI_SAFE = "-_.!~*'();/?:@&=+$,[]"
_PLAIN_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class QuotingMode(str, Enum):
    LEGACY = "legacy"
    STRICT = "strict"


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


class StatementBuilder:
    """Builds statements against one table id."""

    def __init__(self, table_id: str, quoting: QuotingMode = QuotingMode.LEGACY) -> None:
        self.table_id = table_id
        self.quoting = QuotingMode(quoting)

    # ── Literals ────────────────────────────────────────────────────────

    def filter_literal(self, value: Any) -> str:
        text = "" if value is None else str(value)
        if self.quoting is QuotingMode.LEGACY:
            return f"'{quote(text, safe=_URI_SAFE)}'"
        return f"'{_escape(text)}'"

    def value_literal(self, value: Any) -> str:
        text = "" if value is None else str(value)
        if self.quoting is QuotingMode.LEGACY:
            return f"'{text}'"
        return f"'{_escape(text)}'"

    def column(self, name: str) -> str:
        if self.quoting is QuotingMode.LEGACY or _PLAIN_IDENTIFIER.match(name):
            return name
        return f"'{_escape(name)}'"

    # ── Statements ──────────────────────────────────────────────────────

    def where(self, filters: Optional[Mapping[str, Any]]) -> str:
        if not filters:
            return ""
        conditions = [f"{self.column(k)}={self.filter_literal(v)}" for k, v in filters.items()]
        return " WHERE " + " AND ".join(conditions)

    def select(self, filters: Optional[Mapping[str, Any]] = None, fields: str = "*") -> str:
        if fields == "all":
            fields = "*"
        return f"SELECT {fields} FROM {self.table_id}{self.where(filters)}"

    def insert(self, properties: Mapping[str, Any]) -> str:
        if not properties:
            raise ValueError("INSERT requires at least one column")
        columns = ", ".join(self.column(k) for k in properties)
        values = ", ".join(self.value_literal(v) for v in properties.values())
        return f"INSERT INTO {self.table_id} ({columns}) VALUES ({values})"

    def update(self, properties: Mapping[str, Any], row_id: str) -> str:
        if not properties:
            raise ValueError("UPDATE requires at least one column")
        assignments = ", ".join(
            f"{self.column(k)}={self.value_literal(v)}" for k, v in properties.items()
        )
        return f"UPDATE {self.table_id} SET {assignments} WHERE {ROWID}={self.value_literal(row_id)}"

    def delete(self, row_id: str) -> str:
        return f"DELETE FROM {self.table_id} WHERE {ROWID}={self.value_literal(row_id)}"
