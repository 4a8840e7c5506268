"""Consistency checks over a whole geofence collection.

Reports every broken invariant instead of stopping at the first one, so it
can be used to audit stored data before or after a batch of edits.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Iterable, List, Optional

from .core.config import EngineConfig
from .core.errors import GeometryError
from .core.models import GeofenceRecord
from .core.spatial_utils import find_polygon_pairs
from .hierarchy import HierarchyIndex, validate_collection
from .priority import is_sibling


class ConstraintType(Enum):
    STRUCTURE = auto()
    DEGENERATE = auto()
    CONTAINMENT = auto()
    PRIORITY_OVERLAP = auto()
    OVERLAP = auto()


@dataclass
class ConstraintViolation:
    constraint_type: ConstraintType
    geofence_id: str
    message: str
    other_id: Optional[str] = None
    severity: float = 1.0


@dataclass
class ConstraintStatus:
    violations: List[ConstraintViolation] = field(default_factory=list)

    def all_satisfied(self) -> bool:
        return not self.violations

    def get_violations_by_type(self, constraint_type: ConstraintType) -> List[ConstraintViolation]:
        return [v for v in self.violations if v.constraint_type == constraint_type]

    def worst_violation(self) -> Optional[ConstraintViolation]:
        if not self.violations:
            return None
        return max(self.violations, key=lambda v: v.severity)

    def __repr__(self) -> str:
        if self.all_satisfied():
            return "ConstraintStatus(all satisfied)"
        violations_str = "; ".join(v.message for v in self.violations)
        return f"ConstraintStatus({len(self.violations)} violation(s): {violations_str})"


@dataclass
class HierarchyConstraints:
    """Invariants every resolved collection must satisfy.

    Attributes:
        config: Engine settings (parent rules)
        area_tolerance: Overlap or overhang area below this is ignored, to
            absorb floating point noise from clipping
    """

    config: EngineConfig = field(default_factory=EngineConfig)
    area_tolerance: float = 1e-9

    def check(self, records: Iterable[GeofenceRecord]) -> ConstraintStatus:
        records = list(records)
        index = HierarchyIndex(records)
        violations: List[ConstraintViolation] = []

        for geofence_id, message in validate_collection(index, self.config.rules):
            violations.append(
                ConstraintViolation(ConstraintType.STRUCTURE, geofence_id, message)
            )

        clipped = []
        for record in records:
            try:
                record.original_polygon()
                clipped.append(record.clipped_polygon())
            except GeometryError as e:
                violations.append(
                    ConstraintViolation(ConstraintType.DEGENERATE, record.id, str(e))
                )
                clipped.append(None)

        by_id = {r.id: poly for r, poly in zip(records, clipped)}
        for record, polygon in zip(records, clipped):
            if polygon is None or record.parent_id is None:
                continue
            container = by_id.get(record.parent_id)
            overhang = polygon.area if container is None else polygon.difference(container).area
            if overhang > self.area_tolerance:
                violations.append(
                    ConstraintViolation(
                        ConstraintType.CONTAINMENT,
                        record.id,
                        f'Geofence "{record.name}" extends outside its parent.',
                        other_id=record.parent_id,
                        severity=overhang,
                    )
                )

        for i, j in find_polygon_pairs(
            clipped, validate_func=lambda i, j: is_sibling(records[i], records[j])
        ):
            a, b = records[i], records[j]
            overlap = clipped[i].intersection(clipped[j]).area
            if a.priority == b.priority:
                violations.append(
                    ConstraintViolation(
                        ConstraintType.PRIORITY_OVERLAP,
                        a.id,
                        f'Geofences "{a.name}" and "{b.name}" share priority {a.priority} and intersect.',
                        other_id=b.id,
                        severity=max(overlap, self.area_tolerance),
                    )
                )
            elif overlap > self.area_tolerance:
                violations.append(
                    ConstraintViolation(
                        ConstraintType.OVERLAP,
                        a.id,
                        f'Geofences "{a.name}" and "{b.name}" overlap.',
                        other_id=b.id,
                        severity=overlap,
                    )
                )

        return ConstraintStatus(violations)


def check_consistency(
    records: Iterable[GeofenceRecord],
    config: Optional[EngineConfig] = None,
    area_tolerance: float = 1e-9,
) -> ConstraintStatus:
    """Check structure, containment and sibling overlap of a collection.

    Examples:
        >>> status = check_consistency(result.records)
        >>> status.all_satisfied()
        True
    """
    constraints = HierarchyConstraints(config or EngineConfig(), area_tolerance)
    return constraints.check(records)


__all__ = [
    'ConstraintType',
    'ConstraintViolation',
    'ConstraintStatus',
    'HierarchyConstraints',
    'check_consistency',
]
