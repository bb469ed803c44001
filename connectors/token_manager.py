"""
Token manager — store / load / refresh-persist linked Fusion Tables connectors.

This is the host-facing boundary: it turns a ``connectors`` row into a live
``FusionTablesConnector`` whose refreshed credentials are written back to
the same row before the new token is used.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import Settings, config
from connectors.credentials import Credential, PersistCallback
from connectors.encryption import SettingsCipher
from connectors.errors import NotFoundError
from connectors.fusion_tables.connector import FusionTablesConnector
from database.models import ConnectorRecord
from database.session import async_session_factory

logger = logging.getLogger(__name__)

_cipher: Optional[SettingsCipher] = None


def _get_cipher() -> SettingsCipher:
    """Lazy-initialise the settings cipher once."""
    global _cipher
    if _cipher is None:
        _cipher = SettingsCipher(config.token_encryption_key)
    return _cipher


def _to_uuid(value: str | uuid.UUID) -> uuid.UUID:
    return uuid.UUID(value) if isinstance(value, str) else value


async def _get_record(session: AsyncSession, connector_id: str | uuid.UUID) -> ConnectorRecord:
    record = await session.get(ConnectorRecord, _to_uuid(connector_id))
    if record is None:
        raise NotFoundError(f"Connector {connector_id} not found")
    return record


async def store_connection(
    user_id: str,
    credential: Credential,
    *,
    name: str = "",
    db_session: Optional[AsyncSession] = None,
) -> str:
    """
    Store a newly linked account.

    Parameters
    ----------
    credential : Credential
        Output of ``FusionTablesConnector.exchange_code()``.

    Returns
    -------
    connector_id as string
    """
    own_session = db_session is None
    session = db_session or async_session_factory()
    try:
        record = ConnectorRecord(
            connector_id=uuid.uuid4(),
            user_id=_to_uuid(user_id),
            provider=FusionTablesConnector.provider_name,
            name=name or FusionTablesConnector.display_name,
            settings=_get_cipher().encrypt_settings(credential.to_settings()),
        )
        session.add(record)
        if own_session:
            await session.commit()
        else:
            await session.flush()
        logger.info("Linked %s connector %s for user %s", record.provider, record.connector_id, user_id)
        return str(record.connector_id)
    except Exception:
        if own_session:
            await session.rollback()
        raise
    finally:
        if own_session:
            await session.close()


async def save_settings(
    connector_id: str | uuid.UUID,
    credential: Credential,
    *,
    db_session: Optional[AsyncSession] = None,
) -> None:
    """Write a (refreshed) credential back to the connector row."""
    own_session = db_session is None
    session = db_session or async_session_factory()
    try:
        record = await _get_record(session, connector_id)
        record.settings = _get_cipher().encrypt_settings(credential.to_settings())
        if own_session:
            await session.commit()
        else:
            await session.flush()
    except Exception:
        if own_session:
            await session.rollback()
        raise
    finally:
        if own_session:
            await session.close()


def persist_callback(connector_id: str | uuid.UUID) -> PersistCallback:
    async def _persist(credential: Credential) -> None:
        await save_settings(connector_id, credential)

    return _persist


async def load_connector(
    connector_id: str | uuid.UUID,
    *,
    settings: Optional[Settings] = None,
    db_session: Optional[AsyncSession] = None,
    **connector_kwargs: Any,
) -> FusionTablesConnector:
    """
    Build a live connector from its stored row.

    Refreshes are persisted through fresh sessions, so the returned
    connector outlives ``db_session``.
    """
    own_session = db_session is None
    session = db_session or async_session_factory()
    try:
        record = await _get_record(session, connector_id)
        stored = _get_cipher().decrypt_settings(record.settings or {})
    finally:
        if own_session:
            await session.close()

    return FusionTablesConnector(
        record.connector_id,
        stored,
        config=settings or config,
        persist=persist_callback(record.connector_id),
        **connector_kwargs,
    )


async def list_user_connectors(
    user_id: str,
    *,
    db_session: Optional[AsyncSession] = None,
) -> List[Dict[str, Any]]:
    """Return all connectors for a user (no tokens exposed)."""
    own_session = db_session is None
    session = db_session or async_session_factory()
    try:
        result = await session.execute(
            select(ConnectorRecord).where(ConnectorRecord.user_id == _to_uuid(user_id))
        )
        return [
            {
                "connector_id": str(r.connector_id),
                "provider": r.provider,
                "name": r.name,
                "expires_at": (r.settings or {}).get("expires_at"),
                "created_at": r.created_at.isoformat() if r.created_at else None,
            }
            for r in result.scalars().all()
        ]
    finally:
        if own_session:
            await session.close()


async def disconnect(
    user_id: str,
    connector_id: str,
    *,
    db_session: Optional[AsyncSession] = None,
) -> bool:
    """
    Delete a linked connector.
    Returns True if deleted, False if not found.
    """
    own_session = db_session is None
    session = db_session or async_session_factory()
    try:
        result = await session.execute(
            select(ConnectorRecord).where(
                ConnectorRecord.connector_id == _to_uuid(connector_id),
                ConnectorRecord.user_id == _to_uuid(user_id),
            )
        )
        record = result.scalar_one_or_none()
        if not record:
            return False
        await session.delete(record)
        if own_session:
            await session.commit()
        else:
            await session.flush()
        logger.info("Unlinked %s connector %s for user %s", record.provider, connector_id, user_id)
        return True
    except Exception:
        if own_session:
            await session.rollback()
        raise
    finally:
        if own_session:
            await session.close()
