"""
Shared fixtures: an in-memory Fusion Tables service behind httpx.MockTransport.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List
from urllib.parse import parse_qs, unquote

import httpx
import pytest

from config.settings import Settings
from connectors.credentials import Credential
from connectors.fusion_tables.connector import FusionTablesConnector

API_BASE = "https://ft.test/fusiontables/v2"
TOKEN_ENDPOINT = "https://accounts.test/o/oauth2/token"

_LITERAL = r"'((?:[^'\\]|\\.)*)'"
_SELECT = re.compile(r"^SELECT (.+?) FROM (\S+)(?: WHERE (.*))?$")
_INSERT = re.compile(r"^INSERT INTO (\S+) \((.*)\) VALUES \((.*)\)$")
_UPDATE = re.compile(r"^UPDATE (\S+) SET (.*) WHERE ROWID=" + _LITERAL + "$")
_DELETE = re.compile(r"^DELETE FROM (\S+) WHERE ROWID=" + _LITERAL + "$")
_ASSIGNMENT = re.compile(r"(\w+)=" + _LITERAL)
_UNESCAPE = re.compile(r"\\(.)")


def _form(request: httpx.Request) -> Dict[str, str]:
    return {k: v[0] for k, v in parse_qs(request.content.decode(), keep_blank_values=True).items()}


def _sql_response(columns: List[str], rows: List[list]) -> httpx.Response:
    body: Dict[str, Any] = {"kind": "fusiontables#sqlresponse", "columns": columns}
    if rows:
        body["rows"] = rows
    return httpx.Response(200, json=body)


class FakeFusionTables:
    """Just enough of the Fusion Tables REST API and Google token endpoint."""

    def __init__(self) -> None:
        self.tables: Dict[str, Dict[str, Any]] = {}
        self.requests: List[httpx.Request] = []
        self.statements: List[str] = []
        self.token_requests: List[Dict[str, str]] = []
        self.token_response = (200, {"access_token": "fresh-token", "expires_in": 3600})
        self._next_rowid = 1

    def add_table(self, table_id: str, name: str, columns: List[dict], rows=()) -> None:
        self.tables[table_id] = {"name": name, "columns": columns, "rows": []}
        for values in rows:
            self._append(table_id, list(values))

    def _append(self, table_id: str, values: list) -> str:
        rowid = str(self._next_rowid)
        self._next_rowid += 1
        self.tables[table_id]["rows"].append([rowid] + values)
        return rowid

    def _column_names(self, table_id: str) -> List[str]:
        return [c["name"] for c in self.tables[table_id]["columns"]]

    @property
    def mutations(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == "POST" and r.url.path.endswith("/query")]

    # ── Transport ───────────────────────────────────────────────────────

    def handler(self, request: httpx.Request) -> httpx.Response:
        if str(request.url).startswith(TOKEN_ENDPOINT):
            self.token_requests.append(_form(request))
            status, body = self.token_response
            return httpx.Response(status, json=body)

        self.requests.append(request)
        if not request.headers.get("Authorization", "").startswith("Bearer "):
            return httpx.Response(401, json={"error": {"message": "Login Required"}})

        path = request.url.path.removeprefix("/fusiontables/v2")
        if path == "/tables":
            items = [{"tableId": tid, "name": t["name"]} for tid, t in self.tables.items()]
            return httpx.Response(200, json={"items": items} if items else {})
        if path.startswith("/tables/"):
            table_id = path.split("/", 2)[2]
            if table_id not in self.tables:
                return httpx.Response(404, json={"error": {"message": "Table not found"}})
            table = self.tables[table_id]
            return httpx.Response(
                200, json={"tableId": table_id, "name": table["name"], "columns": table["columns"]}
            )
        if path == "/query":
            sql = request.url.params["sql"] if request.method == "GET" else _form(request)["sql"]
            self.statements.append(sql)
            return self._execute(sql)
        return httpx.Response(404, json={"error": {"message": "Not found"}})

    def _execute(self, sql: str) -> httpx.Response:
        match = _SELECT.match(sql)
        if match:
            fields, table_id, where = match.groups()
            conditions = {}
            for clause in (where.split(" AND ") if where else []):
                key, _, literal = clause.partition("=")
                conditions[key] = _UNESCAPE.sub(r"\1", unquote(literal[1:-1]))
            names = self._column_names(table_id)
            hits = [
                row for row in self.tables[table_id]["rows"]
                if all(row[1 + names.index(k)] == v for k, v in conditions.items())
            ]
            if fields == "ROWID":
                return _sql_response(["rowid"], [[row[0]] for row in hits])
            if fields == "*":
                return _sql_response(names, [row[1:] for row in hits])
            selected = [f.strip() for f in fields.split(",")]
            return _sql_response(
                selected, [[row[1 + names.index(f)] for f in selected] for row in hits]
            )

        match = _INSERT.match(sql)
        if match:
            table_id, columns, values = match.groups()
            given = dict(zip(columns.split(", "), re.findall(_LITERAL, values)))
            rowid = self._append(table_id, [given.get(n) for n in self._column_names(table_id)])
            return _sql_response(["rowid"], [[rowid]])

        match = _UPDATE.match(sql)
        if match:
            table_id, assignments, rowid = match.groups()
            names = self._column_names(table_id)
            for row in self.tables[table_id]["rows"]:
                if row[0] == rowid:
                    for key, value in _ASSIGNMENT.findall(assignments):
                        row[1 + names.index(key)] = value
            return _sql_response(["affected_rows"], [["1"]])

        match = _DELETE.match(sql)
        if match:
            table_id, rowid = match.groups()
            rows = self.tables[table_id]["rows"]
            self.tables[table_id]["rows"] = [r for r in rows if r[0] != rowid]
            return _sql_response(["affected_rows"], [[str(len(rows) - len(self.tables[table_id]["rows"]))]])

        return httpx.Response(400, json={"error": {"message": f"Parse error near {sql!r}"}})


@pytest.fixture
def fake_service() -> FakeFusionTables:
    return FakeFusionTables()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        google_client_id="client-id",
        google_client_secret="client-secret",
        google_site="https://accounts.test",
        fusiontables_api_base=API_BASE,
    )


@pytest.fixture
def persisted() -> List[Credential]:
    return []


@pytest.fixture
def make_connector(fake_service, settings, persisted):
    """Factory: a connector wired to the fake service."""

    def _make(expires_in: timedelta = timedelta(hours=1), config: Settings | None = None, **overrides):
        credential = {
            "access_token": "stored-token",
            "refresh_token": "refresh-1",
            "expires_at": datetime.now(timezone.utc) + expires_in,
        }
        credential.update(overrides)

        async def persist(new_credential: Credential) -> None:
            persisted.append(new_credential)

        return FusionTablesConnector(
            "connector-1",
            credential,
            config=config or settings,
            persist=persist,
            transport=httpx.MockTransport(fake_service.handler),
        )

    return _make
