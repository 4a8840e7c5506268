"""Parent-containment and sibling-priority clipping.

A geofence's effective (clipped) shape is its drawn shape intersected with
the parent's effective shape, minus the effective shapes of higher-precedence
siblings. Clipping always starts again from the drawn shape, never from a
previously clipped one.
"""

from typing import Iterable, Optional

from shapely.geometry import Polygon

from .core.errors import ContainmentError
from .core.geometry_utils import difference, intersection, polygon_to_path
from .core.models import GeofenceRecord
from .priority import is_sibling

CONTAINMENT_MESSAGE = "The drawn polygon must be completely within its parent geofence."


def clip_polygon_to_parent(
    container: Optional[Polygon],
    polygon: Polygon,
    min_area: float = 0.0,
) -> Optional[Polygon]:
    """Intersect ``polygon`` with ``container``; None if that fails."""
    return intersection(container, polygon, min_area=min_area)


def subtract_higher_priority(
    polygon: Optional[Polygon],
    record: GeofenceRecord,
    siblings: Iterable[GeofenceRecord],
    min_area: float = 0.0,
) -> Optional[Polygon]:
    """Remove the effective area of every higher-precedence sibling.

    Only siblings with a strictly lower priority number are subtracted.
    Returns None as soon as a difference leaves nothing usable (empty or
    split into several parts).
    """
    if polygon is None:
        return None

    for sibling in siblings:
        if not is_sibling(record, sibling) or sibling.priority >= record.priority:
            continue
        other = sibling.clipped_polygon()
        if other is None:
            continue
        polygon = difference(polygon, other, min_area=min_area)
        if polygon is None:
            return None

    return polygon


def clip_to_parent(
    child: GeofenceRecord,
    parent: Optional[GeofenceRecord],
    min_area: float = 0.0,
    message: str = CONTAINMENT_MESSAGE,
) -> GeofenceRecord:
    """Set ``child.clipped_path`` to its drawn shape inside ``parent``.

    The containing region is the parent's clipped path, not its drawn path.
    For children of a country this is the country's boundary.

    Args:
        child: Geofence whose drawn shape is clipped
        parent: Containing geofence
        min_area: Overlaps with area <= min_area count as no overlap
        message: Error message when clipping fails

    Returns:
        Copy of ``child`` with the new clipped path

    Raises:
        ContainmentError: If the shapes are disjoint or the overlap is not a
            single polygon

    Examples:
        >>> branch = clip_to_parent(branch, country)
        >>> branch.clipped_path == branch.original_path  # fully inside
        True
    """
    original = child.original_polygon()
    container = parent.clipped_polygon() if parent is not None else None

    clipped = clip_polygon_to_parent(container, original, min_area=min_area)
    if clipped is None:
        raise ContainmentError(message)

    if clipped is original:
        return child.with_clipped(child.original_path)
    return child.with_clipped(polygon_to_path(clipped))


def clip_to_higher_priority_siblings(
    record: GeofenceRecord,
    siblings: Iterable[GeofenceRecord],
    min_area: float = 0.0,
) -> GeofenceRecord:
    """Subtract higher-precedence siblings from ``record.clipped_path``.

    ``record`` must already be clipped to its parent. A geofence whose area is
    fully consumed keeps existing with an empty clipped path.

    Examples:
        >>> b2 = clip_to_higher_priority_siblings(b2, [b1])
        >>> b2.is_empty
        False
    """
    polygon = record.clipped_polygon()
    if polygon is None:
        return record

    result = subtract_higher_priority(polygon, record, siblings, min_area=min_area)
    if result is None:
        return record.with_clipped(())
    if result is polygon:
        return record
    return record.with_clipped(polygon_to_path(result))


__all__ = [
    'CONTAINMENT_MESSAGE',
    'clip_polygon_to_parent',
    'subtract_higher_priority',
    'clip_to_parent',
    'clip_to_higher_priority_siblings',
]
