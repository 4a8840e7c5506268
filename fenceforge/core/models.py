"""Geofence records.

A :class:`GeofenceRecord` carries both the shape the user drew
(``original_path``) and the effective shape derived by the engine
(``clipped_path``). Records are immutable; the engine produces replacements
with :func:`dataclasses.replace` instead of mutating in place.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional

from shapely.geometry import Polygon

from .errors import StructureError
from .geometry_utils import to_polygon
from .types import GeofenceType
from .validation_utils import Path, close_path


def new_geofence_id() -> str:
    """Return a fresh globally unique geofence id."""
    return uuid.uuid4().hex


def coerce_type(value: Any) -> GeofenceType:
    """Accept a :class:`GeofenceType` or its string value."""
    if isinstance(value, GeofenceType):
        return value
    try:
        return GeofenceType(value)
    except ValueError:
        raise StructureError(f"Unknown geofence type: {value!r}") from None


@dataclass(frozen=True)
class GeofenceData:
    """User-editable attributes of a geofence.

    Attributes:
        name: Display label
        type: Hierarchy level, immutable once the geofence exists
        priority: Lower value wins overlaps between siblings
        parent_id: Id of the containing geofence (None only for countries)
        metadata: Free-form string key/value pairs
        country_iso: ISO 3166-1 alpha-3 code for imported country boundaries
    """

    name: str
    type: GeofenceType
    priority: int = 0
    parent_id: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)
    country_iso: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, 'type', coerce_type(self.type))
        object.__setattr__(self, 'priority', int(self.priority))
        object.__setattr__(
            self,
            'metadata',
            {str(k): str(v) for k, v in (self.metadata or {}).items()},
        )

    def evolve(self, **changes: Any) -> "GeofenceData":
        """Return a copy with ``changes`` applied."""
        return replace(self, **changes)


@dataclass(frozen=True)
class GeofenceRecord:
    """A geofence with its drawn and effective boundaries."""

    id: str
    original_path: Path
    clipped_path: Path
    data: GeofenceData

    def __post_init__(self):
        object.__setattr__(self, 'original_path', close_path(self.original_path))
        object.__setattr__(self, 'clipped_path', close_path(self.clipped_path))

    @property
    def name(self) -> str:
        return self.data.name

    @property
    def type(self) -> GeofenceType:
        return self.data.type

    @property
    def priority(self) -> int:
        return self.data.priority

    @property
    def parent_id(self) -> Optional[str]:
        return self.data.parent_id

    @property
    def metadata(self) -> Mapping[str, str]:
        return self.data.metadata

    @property
    def country_iso(self) -> Optional[str]:
        return self.data.country_iso

    @property
    def is_empty(self) -> bool:
        """True when the effective area has been fully consumed."""
        return len(self.clipped_path) == 0

    def original_polygon(self) -> Polygon:
        return to_polygon(self.original_path)

    def clipped_polygon(self) -> Optional[Polygon]:
        """Effective area as a polygon, or None if it is empty."""
        if self.is_empty:
            return None
        return to_polygon(self.clipped_path)

    def with_clipped(self, path: Path) -> "GeofenceRecord":
        return replace(self, clipped_path=path)

    def with_data(self, data: GeofenceData) -> "GeofenceRecord":
        return replace(self, data=data)

    def __repr__(self) -> str:
        return (
            f"GeofenceRecord(id={self.id!r}, name={self.name!r}, "
            f"type={self.type.value}, priority={self.priority}, "
            f"parent_id={self.parent_id!r})"
        )


__all__ = [
    'GeofenceData',
    'GeofenceRecord',
    'coerce_type',
    'new_geofence_id',
]
