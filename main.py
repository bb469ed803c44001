"""
Fusion Tables connector — admin entry point.

    python main.py init-db
    python main.py auth-url <user_id>
    python main.py link <state> <code>
    python main.py tables <connector_id>
    python main.py schema <connector_id> <table_id>
    python main.py query <connector_id> <table_id> [col=value ...]
    python main.py insert <connector_id> <table_id> col=value [...]
    python main.py update <connector_id> <table_id> col=value [...] --set col=value [...]
    python main.py delete <connector_id> <table_id> col=value [...]
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Dict, List

from config.settings import config
from connectors.errors import ConnectorError
from connectors.fusion_tables.connector import FusionTablesConnector
from connectors.oauth_state import create_state, verify_state
from connectors.token_manager import load_connector, store_connection
from database.session import init_models

logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
    stream=sys.stdout,
)
for _noisy in ("httpcore", "httpx", "sqlalchemy.engine"):
    logging.getLogger(_noisy).setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


def _redirect_uri() -> str:
    return f"{config.oauth_redirect_base}/connectors/fusiontables/callback"


def _pairs(items: List[str]) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for item in items or []:
        key, sep, value = item.partition("=")
        if not sep:
            raise SystemExit(f"expected col=value, got {item!r}")
        out[key] = value
    return out


def _print(data) -> None:
    print(json.dumps(data, indent=2, default=str))


async def _run(args: argparse.Namespace) -> None:
    if args.command == "init-db":
        await init_models()
        logger.info("Database initialised")
        return

    if args.command == "auth-url":
        state = create_state(config.oauth_state_secret, args.user_id)
        print(FusionTablesConnector.authorization_uri(config, _redirect_uri(), state))
        return

    if args.command == "link":
        user_id = verify_state(config.oauth_state_secret, args.state)
        credential = await FusionTablesConnector.exchange_code(config, args.code, _redirect_uri())
        connector_id = await store_connection(user_id, credential)
        print(connector_id)
        return

    async with await load_connector(args.connector_id) as connector:
        if args.command == "tables":
            tables = await connector.tables.list()
            _print([{"id": t.id, "name": t.label} for t in tables])
            return

        table = await connector.tables.find(args.table_id)
        if args.command == "schema":
            _print({name: p.model_dump(mode="json") for name, p in table.entity_properties().items()})
        elif args.command == "query":
            rows = await table.query(_pairs(args.filters))
            _print([row.properties() for row in rows])
        elif args.command == "insert":
            _print(await table.insert(_pairs(args.filters)))
        elif args.command == "update":
            _print(await table.update(_pairs(args.filters), _pairs(args.set)))
        elif args.command == "delete":
            _print(await table.delete(_pairs(args.filters)))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Google Fusion Tables connector")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db")
    auth_url = sub.add_parser("auth-url")
    auth_url.add_argument("user_id")
    link = sub.add_parser("link")
    link.add_argument("state")
    link.add_argument("code")

    tables = sub.add_parser("tables")
    tables.add_argument("connector_id")

    for name in ("schema", "query", "insert", "update", "delete"):
        cmd = sub.add_parser(name)
        cmd.add_argument("connector_id")
        cmd.add_argument("table_id")
        cmd.add_argument("filters", nargs="*", metavar="col=value")
        if name == "update":
            cmd.add_argument("--set", nargs="+", required=True, metavar="col=value")
    return parser


def main(argv: List[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        asyncio.run(_run(args))
    except ConnectorError as exc:
        logger.error("%s: %s", type(exc).__name__, exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
