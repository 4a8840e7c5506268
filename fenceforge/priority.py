"""Same-priority overlap detection between sibling geofences.

Two siblings (same parent, same type) with equal priority may not overlap at
all: there is no rule to decide which of them owns the shared area, so the
overlap is rejected instead of arbitrated.
"""

from typing import Iterable, List, Optional, Sequence, Tuple

from shapely.geometry import Polygon

from .core.errors import GeometryError
from .core.geometry_utils import intersects, to_polygon
from .core.models import GeofenceRecord
from .core.spatial_utils import find_polygon_pairs


def _original_polygon(record: GeofenceRecord) -> Optional[Polygon]:
    try:
        return record.original_polygon()
    except GeometryError:
        return None


def is_sibling(a: GeofenceRecord, b: GeofenceRecord) -> bool:
    """True if ``a`` and ``b`` are distinct geofences in the same sibling group."""
    return a.id != b.id and a.parent_id == b.parent_id and a.type == b.type


def has_same_priority_overlap(
    candidate: GeofenceRecord,
    siblings: Iterable[GeofenceRecord],
) -> bool:
    """Check whether ``candidate`` touches an equal-priority sibling.

    The test uses the drawn (original) shapes, not the clipped ones. Entries
    of ``siblings`` that are not actually siblings of ``candidate`` are
    ignored.

    Args:
        candidate: Geofence being created or edited
        siblings: Geofences to compare against

    Returns:
        True on the first equal-priority sibling that intersects

    Examples:
        >>> has_same_priority_overlap(new_branch, index.children(country.id))
        False
    """
    candidate_poly = to_polygon(candidate.original_path)

    for sibling in siblings:
        if not is_sibling(candidate, sibling):
            continue
        if sibling.priority != candidate.priority:
            continue
        if intersects(candidate_poly, _original_polygon(sibling)):
            return True

    return False


def find_priority_conflicts(
    records: Sequence[GeofenceRecord],
    use_clipped: bool = False,
) -> List[Tuple[str, str]]:
    """Find every equal-priority sibling pair that intersects.

    Args:
        records: Whole collection to audit
        use_clipped: Compare effective shapes instead of drawn shapes

    Returns:
        List of ``(id_a, id_b)`` pairs in collection order
    """
    if use_clipped:
        polygons = [r.clipped_polygon() for r in records]
    else:
        polygons = [_original_polygon(r) for r in records]

    def same_priority_siblings(i: int, j: int) -> bool:
        a, b = records[i], records[j]
        return is_sibling(a, b) and a.priority == b.priority

    pairs = find_polygon_pairs(polygons, validate_func=same_priority_siblings)
    return [(records[i].id, records[j].id) for i, j in pairs]


__all__ = [
    'is_sibling',
    'has_same_priority_overlap',
    'find_priority_conflicts',
]
