"""Spatial indexing utilities.

Uses STRtree so pairwise checks over a collection stay close to O(n log n)
instead of comparing every polygon with every other one.
"""

from typing import Callable, List, Optional, Sequence, Set, Tuple

from shapely.geometry import Polygon
from shapely.strtree import STRtree


def find_polygon_pairs(
    polygons: Sequence[Optional[Polygon]],
    predicate: str = 'intersects',
    validate_func: Optional[Callable[[int, int], bool]] = None
) -> List[Tuple[int, int]]:
    """Find index pairs of polygons that satisfy a spatial predicate.

    ``None`` or empty entries are skipped but keep their position, so the
    returned indices line up with the input sequence. Returns unique pairs
    ``(i, j)`` with ``i < j``.

    Args:
        polygons: Polygons to search (None entries allowed)
        predicate: Shapely spatial predicate ('intersects', 'overlaps', ...)
        validate_func: Optional ``(i, j) -> bool`` filter for candidate pairs

    Returns:
        List of (index_i, index_j) tuples

    Examples:
        >>> pairs = find_polygon_pairs([poly1, poly2, None, poly3])
        >>> # Only keep pairs whose records share a parent
        >>> pairs = find_polygon_pairs(polys, validate_func=lambda i, j: same[i] == same[j])
    """
    present = [i for i, p in enumerate(polygons) if p is not None and not p.is_empty]
    if len(present) < 2:
        return []

    tree = STRtree([polygons[i] for i in present])

    pairs = []
    checked: Set[Tuple[int, int]] = set()

    for i in present:
        candidate_indices = tree.query(polygons[i], predicate=predicate)

        for local_j in candidate_indices:
            j = present[int(local_j)]
            if j <= i:
                continue
            pair = (i, j)
            if pair in checked:
                continue
            checked.add(pair)

            if validate_func is None or validate_func(i, j):
                pairs.append(pair)

    return sorted(pairs)


__all__ = [
    'find_polygon_pairs',
]
