"""
Entity-tree capability — the interface the host application browses.

Every connector exposes its data as a tree of entities:

  • ``Entity``     — a node with a ``path``, a ``label`` and a property bag.
  • ``EntitySet``  — an entity that can also be queried for child entities,
                     describes the properties of its children, and declares
                     which mutations it supports (``protocol``).

Schema is rendered by the host from ``SimpleProperty`` descriptions.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional

from pydantic import BaseModel


class PropertyKind(str, Enum):
    STRING = "string"
    NUMERIC = "numeric"
    DATETIME = "datetime"
    LOCATION = "location"   # (latitude, longitude) pair
    NAME = "name"
    UNSUPPORTED = "unsupported"


class SimpleProperty(BaseModel):
    """Description (and optionally the value) of one property."""

    kind: PropertyKind
    label: str
    value: Any = None
    raw_type: Optional[str] = None   # remote type, kept for UNSUPPORTED properties

    @classmethod
    def string(cls, label: str, value: Any = None) -> "SimpleProperty":
        return cls(kind=PropertyKind.STRING, label=label, value=value)

    @classmethod
    def numeric(cls, label: str, value: Any = None) -> "SimpleProperty":
        return cls(kind=PropertyKind.NUMERIC, label=label, value=value)

    @classmethod
    def datetime(cls, label: str, value: Any = None) -> "SimpleProperty":
        return cls(kind=PropertyKind.DATETIME, label=label, value=value)

    @classmethod
    def location(cls, label: str, value: Any = None) -> "SimpleProperty":
        return cls(kind=PropertyKind.LOCATION, label=label, value=value)

    @classmethod
    def name(cls, value: str) -> "SimpleProperty":
        return cls(kind=PropertyKind.NAME, label="Name", value=value)

    @classmethod
    def unsupported(cls, label: str, raw_type: str) -> "SimpleProperty":
        return cls(kind=PropertyKind.UNSUPPORTED, label=label, raw_type=raw_type)

    @property
    def supported(self) -> bool:
        return self.kind is not PropertyKind.UNSUPPORTED


class Entity(ABC):
    """A node of the entity tree."""

    @property
    @abstractmethod
    def path(self) -> str:
        """Path of this node relative to the connector root."""
        ...

    @property
    @abstractmethod
    def label(self) -> str:
        """Human-readable label."""
        ...

    @abstractmethod
    def properties(self) -> Dict[str, Any]:
        """Property bag of this node."""
        ...


class EntitySet(Entity):
    """An entity whose children can be queried and (optionally) mutated."""

    # Mutations supported on children: any of "insert", "update", "delete".
    protocol: FrozenSet[str] = frozenset()

    @abstractmethod
    async def query(self, filters: Optional[Dict[str, Any]] = None) -> List[Entity]:
        ...

    @abstractmethod
    async def find_entity(self, key: Any) -> Optional[Entity]:
        ...

    def entity_properties(self) -> Dict[str, SimpleProperty]:
        """Describe the properties of child entities (empty when unknown)."""
        return {}

    def reflect_entities(self) -> List[Entity]:
        """Children shown during reflection. None by default."""
        return []

    def supports(self, action: str) -> bool:
        return action in self.protocol
