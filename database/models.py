"""
SQLAlchemy ORM models for linked connectors.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Index, String
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ConnectorRecord(Base):
    """A user's linked remote account; ``settings`` holds its credential."""

    __tablename__ = "connectors"

    connector_id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), nullable=False)   # owned by the host app
    provider = Column(String(32), nullable=False)
    name = Column(String(128))
    settings = Column(JSONB, nullable=False, default=dict)   # access_token, refresh_token, expires_at
    created_at = Column(DateTime(timezone=True), default=_now)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now)

    __table_args__ = (
        Index("ix_connectors_user_provider", "user_id", "provider"),
    )
