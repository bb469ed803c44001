"""
Connector error taxonomy.

Every failure raised by the connector stack derives from ``ConnectorError``
so hosts can catch the whole family in one place.
"""

from __future__ import annotations

from typing import Iterable, Optional


class ConnectorError(Exception):
    """Base class for all connector failures."""


class AuthError(ConnectorError):
    """Missing/invalid credential, or the refresh grant was rejected."""


class RemoteApiError(ConnectorError):
    """Non-success HTTP status or an undecodable body from the remote service."""

    def __init__(self, message: str, *, status_code: Optional[int] = None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ValidationError(ConnectorError):
    """Connector created without its required credential fields."""

    def __init__(self, missing_fields: Iterable[str]) -> None:
        self.missing_fields = list(missing_fields)
        super().__init__(
            "Connector settings missing required fields: " + ", ".join(self.missing_fields)
        )


class NotFoundError(ConnectorError):
    """A table or row could not be found."""


class SchemaNotResolvedError(ConnectorError, RuntimeError):
    """Column metadata was read before ``resolve_schema()`` ran."""
