"""Planar geometry primitives over geofence paths.

Paths are ``(lat, lng)`` sequences; shapely polygons use ``x = lng`` and
``y = lat``. Every operation that can yield something other than a single
hole-free polygon returns ``None`` (fail-closed) instead of guessing which
piece to keep.
"""

from typing import Optional, Sequence

from shapely.geometry import Polygon, MultiPolygon, GeometryCollection
from shapely.geometry.base import BaseGeometry
from shapely.validation import explain_validity

from .errors import GeometryError
from .validation_utils import Path, path_to_array, validate_path


def to_polygon(path: Sequence[Sequence[float]]) -> Polygon:
    """Build a closed planar polygon from a ``(lat, lng)`` path.

    The path is closed automatically if the last point differs from the first.

    Args:
        path: Sequence of ``(lat, lng)`` pairs

    Returns:
        Valid shapely Polygon with ``(lng, lat)`` vertices

    Raises:
        GeometryError: If the path has fewer than 3 distinct points or does
            not describe a simple polygon

    Examples:
        >>> poly = to_polygon([(0, 0), (0, 10), (10, 10), (10, 0)])
        >>> poly.area
        100.0
    """
    closed = validate_path(path)
    coords = path_to_array(closed)
    polygon = Polygon(coords[:, ::-1])

    if not polygon.is_valid:
        raise GeometryError(
            f"The path is not a simple polygon: {explain_validity(polygon)}"
        )

    return polygon


def polygon_to_path(polygon: Optional[Polygon]) -> Path:
    """Convert a polygon's exterior ring back to a closed ``(lat, lng)`` path.

    ``None`` and empty polygons map to the empty path.
    """
    if polygon is None or polygon.is_empty:
        return ()
    return tuple((float(y), float(x)) for x, y in polygon.exterior.coords)


def as_single_polygon(
    geometry: Optional[BaseGeometry],
    min_area: float = 0.0
) -> Optional[Polygon]:
    """Return ``geometry`` as one hole-free polygon, or None.

    Polygonal pieces with area <= ``min_area`` and lower-dimensional pieces
    (shared edges or points) are ignored. Anything that still has more than
    one polygonal piece, or a piece with holes, is not representable as a
    single path and yields None.

    Examples:
        >>> multi = MultiPolygon([poly1, poly2])
        >>> as_single_polygon(multi) is None
        True
    """
    if geometry is None or geometry.is_empty:
        return None

    if isinstance(geometry, Polygon):
        pieces = [geometry]
    elif isinstance(geometry, MultiPolygon):
        pieces = list(geometry.geoms)
    elif isinstance(geometry, GeometryCollection):
        pieces = []
        for part in geometry.geoms:
            if isinstance(part, Polygon):
                pieces.append(part)
            elif isinstance(part, MultiPolygon):
                pieces.extend(part.geoms)
    else:
        return None

    pieces = [p for p in pieces if not p.is_empty and p.area > min_area]
    if len(pieces) != 1:
        return None

    polygon = pieces[0]
    if polygon.interiors:
        return None
    return polygon


def contains(outer: Optional[Polygon], inner: Optional[Polygon]) -> bool:
    """True iff ``inner`` lies entirely within ``outer`` (boundary inclusive)."""
    if outer is None or inner is None or outer.is_empty or inner.is_empty:
        return False
    return outer.covers(inner)


def intersects(a: Optional[Polygon], b: Optional[Polygon]) -> bool:
    """True iff ``a`` and ``b`` share any interior or boundary point."""
    if a is None or b is None or a.is_empty or b.is_empty:
        return False
    return a.intersects(b)


def intersection(
    a: Optional[Polygon],
    b: Optional[Polygon],
    min_area: float = 0.0
) -> Optional[Polygon]:
    """Overlapping region of ``a`` and ``b`` as a single polygon.

    When ``a`` already covers ``b``, ``b`` is returned unchanged so its
    vertices stay exactly as drawn.

    Returns:
        The overlap, or None if disjoint, degenerate or multi-part
    """
    if not intersects(a, b):
        return None
    if a.covers(b):
        return b if b.area > min_area else None
    return as_single_polygon(a.intersection(b), min_area=min_area)


def difference(
    a: Optional[Polygon],
    b: Optional[Polygon],
    min_area: float = 0.0
) -> Optional[Polygon]:
    """``a`` minus the region covered by ``b``.

    If ``b`` does not overlap ``a`` by more than ``min_area``, ``a`` is
    returned unchanged.

    Returns:
        The remaining polygon, or None if empty, degenerate or multi-part
    """
    if a is None or a.is_empty:
        return None
    if not intersects(a, b):
        return a
    if a.intersection(b).area <= min_area:
        return a
    return as_single_polygon(a.difference(b), min_area=min_area)


def path_area(path: Sequence[Sequence[float]]) -> float:
    """Planar area of a path in squared degrees (0 for empty paths)."""
    if len(path) == 0:
        return 0.0
    return to_polygon(path).area


__all__ = [
    'to_polygon',
    'polygon_to_path',
    'as_single_polygon',
    'contains',
    'intersects',
    'intersection',
    'difference',
    'path_area',
]
