"""GeoJSON export and import of geofence collections.

Exported geometry is always the drawn (original) shape, so an
export/import round trip is lossless; clipped shapes are derived again on
import.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List, Mapping, Optional

from shapely.geometry import mapping, shape

from .core.config import EngineConfig
from .core.errors import GeometryError, PriorityConflictError, StructureError
from .core.geometry_utils import polygon_to_path, to_polygon
from .core.models import GeofenceData, GeofenceRecord, new_geofence_id
from .hierarchy import HierarchyIndex, validate_collection
from .pipeline import PRIORITY_CONFLICT_MESSAGE
from .priority import find_priority_conflicts
from .resolve import resolve_all


def record_to_feature(record: GeofenceRecord) -> Dict[str, Any]:
    """GeoJSON Feature for one geofence, geometry in ``[lng, lat]`` order."""
    properties: Dict[str, Any] = {
        'id': record.id,
        'name': record.name,
        'type': record.type.value,
        'parentId': record.parent_id,
        'priority': record.priority,
        'metadata': dict(record.metadata),
    }
    if record.country_iso is not None:
        properties['countryISO'] = record.country_iso

    return {
        'type': 'Feature',
        'geometry': mapping(to_polygon(record.original_path)),
        'properties': properties,
    }


def to_feature_collection(records: Iterable[GeofenceRecord]) -> Dict[str, Any]:
    """Export geofences as a GeoJSON FeatureCollection.

    Examples:
        >>> fc = to_feature_collection(records)
        >>> fc['features'][0]['properties']['type']
        'country'
    """
    return {
        'type': 'FeatureCollection',
        'features': [record_to_feature(r) for r in records],
    }


def _priority(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise StructureError(f"Invalid priority {value!r}.") from None


def feature_to_record(feature: Mapping[str, Any]) -> GeofenceRecord:
    """Build a geofence from a Feature; the clipped path starts out empty.

    Raises:
        GeometryError: Geometry missing or not a single Polygon
        StructureError: Unknown type or non-integer priority
    """
    geometry = feature.get('geometry')
    if not geometry:
        raise GeometryError("Feature has no geometry.")

    try:
        geom = shape(geometry)
    except (ValueError, TypeError, AttributeError) as e:
        raise GeometryError(f"Invalid geometry: {e}") from e

    if geom.geom_type != 'Polygon':
        raise GeometryError(f"Expected a Polygon geometry, got {geom.geom_type}.")

    properties = feature.get('properties') or {}
    geofence_id = str(properties.get('id') or feature.get('id') or '').strip()

    data = GeofenceData(
        name=properties.get('name') or '',
        type=properties.get('type'),
        priority=_priority(properties.get('priority', 0)),
        parent_id=properties.get('parentId'),
        metadata=properties.get('metadata') or {},
        country_iso=properties.get('countryISO'),
    )
    original = polygon_to_path(geom)
    to_polygon(original)
    return GeofenceRecord(geofence_id or new_geofence_id(), original, (), data)


def from_feature_collection(
    feature_collection: Mapping[str, Any],
    config: Optional[EngineConfig] = None,
) -> List[GeofenceRecord]:
    """Import geofences exported by :func:`to_feature_collection`.

    The whole collection is validated (parents present and legal, no
    cycles, no overlapping equal-priority siblings) and clipped paths are
    derived from the roots down.

    Raises:
        GeometryError: A feature's geometry is unusable
        StructureError: The hierarchy is inconsistent
        PriorityConflictError: Equal-priority siblings intersect
    """
    config = config or EngineConfig()

    if feature_collection.get('type') != 'FeatureCollection':
        raise GeometryError("Expected a GeoJSON FeatureCollection.")

    records = [feature_to_record(f) for f in feature_collection.get('features', [])]

    problems = validate_collection(HierarchyIndex(records), config.rules)
    if problems:
        geofence_id, message = problems[0]
        raise StructureError(f"{message} (geofence {geofence_id!r})")

    conflicts = find_priority_conflicts(records)
    if conflicts:
        first, second = conflicts[0]
        raise PriorityConflictError(
            f"{PRIORITY_CONFLICT_MESSAGE} (geofences {first!r} and {second!r})"
        )

    return resolve_all(records, config).records


def dumps(records: Iterable[GeofenceRecord], **kwargs: Any) -> str:
    """Serialize geofences to a GeoJSON string."""
    return json.dumps(to_feature_collection(records), **kwargs)


def loads(text: str, config: Optional[EngineConfig] = None) -> List[GeofenceRecord]:
    """Parse geofences from a GeoJSON string."""
    try:
        feature_collection = json.loads(text)
    except json.JSONDecodeError as e:
        raise GeometryError(f"Invalid JSON: {e}") from e
    return from_feature_collection(feature_collection, config)


__all__ = [
    'record_to_feature',
    'to_feature_collection',
    'feature_to_record',
    'from_feature_collection',
    'dumps',
    'loads',
]
