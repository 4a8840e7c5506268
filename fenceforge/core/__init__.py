"""Core types and utilities for fenceforge.

This module provides type definitions, enums, exceptions, records and the
planar geometry primitives used throughout the library.
"""

from .types import (
    GeofenceType,
    ParentRule,
)

from .errors import (
    FenceforgeError,
    StructureError,
    PriorityConflictError,
    ContainmentError,
    GeometryError,
    PersistenceError,
    ConfigurationError,
    GeofenceNotFoundError,
    DownstreamClipWarning,
)

from .config import (
    HierarchyRules,
    EngineConfig,
)

from .models import (
    GeofenceData,
    GeofenceRecord,
    new_geofence_id,
)

from .geometry_utils import (
    to_polygon,
    polygon_to_path,
    contains,
    intersects,
    intersection,
    difference,
)

__all__ = [
    # Enums
    'GeofenceType',
    'ParentRule',

    # Exceptions
    'FenceforgeError',
    'StructureError',
    'PriorityConflictError',
    'ContainmentError',
    'GeometryError',
    'PersistenceError',
    'ConfigurationError',
    'GeofenceNotFoundError',
    'DownstreamClipWarning',

    # Configuration
    'HierarchyRules',
    'EngineConfig',

    # Records
    'GeofenceData',
    'GeofenceRecord',
    'new_geofence_id',

    # Geometry primitives
    'to_polygon',
    'polygon_to_path',
    'contains',
    'intersects',
    'intersection',
    'difference',
]
