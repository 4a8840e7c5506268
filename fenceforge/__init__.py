"""Fenceforge - Geofence hierarchy resolution and clipping.

This library keeps a tree of nested, prioritized geofences consistent:
children stay inside their parent's effective area, lower-priority siblings
give way to higher-priority ones, and every edit re-derives the effective
shapes that depend on it. Geometry is handled with Shapely.
"""


# Core types (enums)
from .core import (
    GeofenceType,
    ParentRule,
)

# Configuration and records
from .core import (
    HierarchyRules,
    EngineConfig,
    GeofenceData,
    GeofenceRecord,
    new_geofence_id,
)

# Geometry primitives
from .core import (
    to_polygon,
    polygon_to_path,
    contains,
    intersects,
    intersection,
    difference,
)

# Core exceptions
from .core import (
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

# Validation
from .hierarchy import HierarchyIndex, validate_structure, validate_collection
from .priority import has_same_priority_overlap, find_priority_conflicts

# Clipping and resolution
from .clip import clip_to_parent, clip_to_higher_priority_siblings
from .resolve import Resolution, resolve_downstream, resolve_all

# Mutations
from .engine import (
    MutationResult,
    create_geofence,
    reshape_geofence,
    update_geofence_data,
    delete_geofence,
)

# Consistency checks
from .consistency import ConstraintType, ConstraintStatus, check_consistency

# Import / export
from .geojson import to_feature_collection, from_feature_collection
from .countries import BoundaryProvider, StaticBoundaryProvider, import_country

# Persistence
from .store import GeofenceStore, InMemoryGeofenceStore
from .service import GeofenceService

__all__ = [

    # Types
    'GeofenceType',
    'ParentRule',

    # Configuration and records
    'HierarchyRules',
    'EngineConfig',
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

    # Validation
    'HierarchyIndex',
    'validate_structure',
    'validate_collection',
    'has_same_priority_overlap',
    'find_priority_conflicts',

    # Clipping and resolution
    'clip_to_parent',
    'clip_to_higher_priority_siblings',
    'Resolution',
    'resolve_downstream',
    'resolve_all',

    # Mutations
    'MutationResult',
    'create_geofence',
    'reshape_geofence',
    'update_geofence_data',
    'delete_geofence',

    # Consistency checks
    'ConstraintType',
    'ConstraintStatus',
    'check_consistency',

    # Import / export
    'to_feature_collection',
    'from_feature_collection',
    'BoundaryProvider',
    'StaticBoundaryProvider',
    'import_country',

    # Persistence
    'GeofenceStore',
    'InMemoryGeofenceStore',
    'GeofenceService',
]
