"""Path validation utilities.

Paths are sequences of ``(lat, lng)`` pairs. Every path stored on a record is
closed (first point equals last point); closure is applied here rather than
assumed from input.
"""

from typing import Sequence, Tuple

import numpy as np

from .errors import GeometryError

Coordinate = Tuple[float, float]
Path = Tuple[Coordinate, ...]


def path_to_array(path: Sequence[Sequence[float]]) -> np.ndarray:
    """Convert a path to an ``N x 2`` float array of ``(lat, lng)`` rows.

    Args:
        path: Sequence of ``(lat, lng)`` pairs

    Returns:
        Float array with one row per coordinate

    Raises:
        GeometryError: If coordinates are not pairs or are not finite
    """
    if len(path) == 0:
        return np.empty((0, 2), dtype=float)

    try:
        coords = np.asarray(path, dtype=float)
    except (TypeError, ValueError) as e:
        raise GeometryError(f"Invalid coordinates: {e}") from e

    if coords.ndim != 2 or coords.shape[1] != 2:
        raise GeometryError("Each coordinate must be a (lat, lng) pair.")

    if not np.all(np.isfinite(coords)):
        raise GeometryError("Coordinates must be finite numbers.")

    return coords


def is_ring_closed(
    coords: np.ndarray,
    tolerance: float = 0.0
) -> bool:
    """Check if coordinate ring is closed (first == last).

    Args:
        coords: Coordinate array (Nx2)
        tolerance: Tolerance for coordinate comparison (default: exact)

    Returns:
        True if ring is closed (first point equals last point within tolerance)

    Examples:
        >>> coords = np.array([[0, 0], [1, 0], [1, 1], [0, 0]])
        >>> is_ring_closed(coords)
        True
    """
    if len(coords) < 2:
        return False
    return bool(np.allclose(coords[0], coords[-1], rtol=0.0, atol=tolerance))


def count_distinct_vertices(coords: np.ndarray) -> int:
    """Count distinct coordinates in a (possibly closed) ring."""
    if len(coords) == 0:
        return 0
    return len(np.unique(coords, axis=0))


def close_path(path: Sequence[Sequence[float]]) -> Path:
    """Return ``path`` as a tuple of ``(lat, lng)`` pairs with closure applied.

    Examples:
        >>> close_path([(0, 0), (0, 1), (1, 1)])
        ((0.0, 0.0), (0.0, 1.0), (1.0, 1.0), (0.0, 0.0))
    """
    coords = path_to_array(path)
    if len(coords) == 0:
        return ()
    if not is_ring_closed(coords):
        coords = np.vstack([coords, coords[:1]])
    return tuple((float(lat), float(lng)) for lat, lng in coords)


def validate_path(path: Sequence[Sequence[float]]) -> Path:
    """Validate a user supplied path and return its closed form.

    Raises:
        GeometryError: If the path has fewer than 3 distinct points
    """
    closed = close_path(path)
    distinct = count_distinct_vertices(path_to_array(closed))
    if distinct < 3:
        raise GeometryError(
            f"A geofence needs at least 3 distinct points, got {distinct}."
        )
    return closed


__all__ = [
    'Coordinate',
    'Path',
    'path_to_array',
    'is_ring_closed',
    'count_distinct_vertices',
    'close_path',
    'validate_path',
]
