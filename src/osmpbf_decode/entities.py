"""Decoded OSM entity records handed to a sink."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from .codec import nanodegrees


@dataclass(frozen=True)
class Metadata:
    """Edit metadata attached to an entity."""

    version: int = -1
    timestamp: datetime | None = None
    changeset: int = 0
    uid: int = 0
    user: str | None = None
    visible: bool | None = None


@dataclass(frozen=True)
class Node:
    id: int
    lat: float
    lon: float
    tags: dict[str, str] = field(default_factory=dict)
    metadata: Metadata | None = None


@dataclass(frozen=True)
class Way:
    id: int
    refs: tuple[int, ...] = ()
    tags: dict[str, str] = field(default_factory=dict)
    metadata: Metadata | None = None
    # (lat, lon) per ref; only filled for LocationsOnWays files
    locations: tuple[tuple[float, float], ...] = ()


@dataclass(frozen=True)
class Member:
    ref: int
    type: str  # "node", "way" or "relation"
    role: str | None = None


@dataclass(frozen=True)
class Relation:
    id: int
    members: tuple[Member, ...] = ()
    tags: dict[str, str] = field(default_factory=dict)
    metadata: Metadata | None = None


@dataclass(frozen=True)
class BBox:
    """Header bounding box in raw nanodegrees."""

    left: int
    right: int
    top: int
    bottom: int

    @property
    def min_lon(self) -> float:
        return nanodegrees(self.left)

    @property
    def max_lon(self) -> float:
        return nanodegrees(self.right)

    @property
    def max_lat(self) -> float:
        return nanodegrees(self.top)

    @property
    def min_lat(self) -> float:
        return nanodegrees(self.bottom)


@dataclass(frozen=True)
class Header:
    """File header: extent, feature flags and writer identification."""

    bbox: BBox | None = None
    required_features: tuple[str, ...] = ()
    optional_features: tuple[str, ...] = ()
    writing_program: str | None = None
    source: str | None = None
    replication_timestamp: datetime | None = None
    replication_sequence_number: int | None = None
    replication_base_url: str | None = None
