"""Country geofences from external boundary data.

Boundaries come from a :class:`BoundaryProvider` as GeoJSON Polygon or
MultiPolygon geometries. A MultiPolygon (a country with islands or
exclaves) becomes one country geofence per part, largest part first.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Tuple

from shapely.geometry import MultiPolygon, Polygon, shape

from .core.config import EngineConfig
from .core.errors import GeometryError
from .core.geometry_utils import polygon_to_path
from .core.models import GeofenceData, GeofenceRecord
from .core.types import GeofenceType
from .engine import MutationResult, create_geofence

BOUNDARY_MISSING_MESSAGE = "Could not load country boundary."


class BoundaryProvider(Protocol):
    """Source of country boundaries keyed by ISO 3166-1 alpha-3 code."""

    def fetch_boundary(self, iso3: str) -> Optional[Mapping[str, Any]]:
        """GeoJSON Polygon/MultiPolygon geometry, or None if unknown."""
        ...


class StaticBoundaryProvider:
    """Boundary provider backed by an in-memory countries FeatureCollection.

    Features are keyed by their ``iso3_code`` property and labelled by
    ``label_en``.

    Examples:
        >>> provider = StaticBoundaryProvider(countries_fc)
        >>> provider.country_options()[0]
        ('Kenya', 'KEN')
    """

    def __init__(self, feature_collection: Mapping[str, Any]):
        self._features: Dict[str, Mapping[str, Any]] = {}
        self._labels: Dict[str, str] = {}
        for feature in feature_collection.get('features', []):
            properties = feature.get('properties') or {}
            iso = properties.get('iso3_code')
            if not iso:
                continue
            self._features[iso.upper()] = feature
            self._labels[iso.upper()] = properties.get('label_en') or iso

    def country_options(self) -> List[Tuple[str, str]]:
        """``(label, iso)`` pairs sorted by label."""
        return sorted((label, iso) for iso, label in self._labels.items())

    def fetch_boundary(self, iso3: str) -> Optional[Mapping[str, Any]]:
        feature = self._features.get(iso3.upper())
        if feature is None:
            return None
        geometry = feature.get('geometry')
        if not geometry or geometry.get('type') not in ('Polygon', 'MultiPolygon'):
            return None
        return geometry


def boundary_parts(geometry: Mapping[str, Any]) -> List[Polygon]:
    """Polygon parts of a boundary, largest planar area first.

    Holes are dropped; only the outer ring of each part is kept.

    Raises:
        GeometryError: Geometry is not a Polygon or MultiPolygon
    """
    try:
        geom = shape(geometry)
    except (ValueError, TypeError, AttributeError) as e:
        raise GeometryError(f"Invalid boundary geometry: {e}") from e

    if isinstance(geom, Polygon):
        parts = [geom]
    elif isinstance(geom, MultiPolygon):
        parts = list(geom.geoms)
    else:
        raise GeometryError(f"Unsupported boundary geometry: {geom.geom_type}.")

    parts = [Polygon(p.exterior) for p in parts if not p.is_empty]
    return sorted(parts, key=lambda p: p.area, reverse=True)


def part_name(name: str, index: int, count: int) -> str:
    """Display name for part ``index`` of a ``count``-part country."""
    if count == 1:
        return name
    if index == 0:
        return f"{name} - Mainland"
    return f"{name} - Region {index}"


def import_country(
    iso3: str,
    data: GeofenceData,
    records: Iterable[GeofenceRecord],
    provider: BoundaryProvider,
    config: Optional[EngineConfig] = None,
) -> MutationResult:
    """Create country geofences from the boundary of ``iso3``.

    Each part is created through :func:`create_geofence`, so the usual
    priority checks apply between the new parts and existing countries.

    Args:
        iso3: ISO 3166-1 alpha-3 country code
        data: Attributes shared by all parts (type must be country)
        records: Current collection
        provider: Boundary source
        config: Engine settings

    Returns:
        :class:`MutationResult` whose ``changed`` lists the new geofences,
        mainland first; ``record`` is the mainland

    Raises:
        GeometryError: No boundary available for ``iso3``
    """
    geometry = provider.fetch_boundary(iso3)
    if not geometry:
        raise GeometryError(BOUNDARY_MISSING_MESSAGE)

    parts = boundary_parts(geometry)
    if not parts:
        raise GeometryError(BOUNDARY_MISSING_MESSAGE)

    base = data.evolve(type=GeofenceType.COUNTRY, parent_id=None, country_iso=iso3.upper())
    current = list(records)
    created: List[GeofenceRecord] = []
    changed: List[str] = []

    for i, part in enumerate(parts):
        part_data = base.evolve(name=part_name(data.name, i, len(parts)))
        result = create_geofence(polygon_to_path(part), part_data, current, config)
        current = result.records
        created.append(result.record)
        changed.extend(result.changed)

    return MutationResult(
        records=current,
        record=created[0],
        changed=list(dict.fromkeys([r.id for r in created] + changed)),
    )


__all__ = [
    'BOUNDARY_MISSING_MESSAGE',
    'BoundaryProvider',
    'StaticBoundaryProvider',
    'boundary_parts',
    'part_name',
    'import_country',
]
