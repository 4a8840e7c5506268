"""Engine configuration.

Configuration is passed explicitly to every engine entry point; there is no
module level state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Tuple

from .errors import ConfigurationError
from .types import GeofenceType, ParentRule


_STRICT_PARENTS: Dict[GeofenceType, Tuple[GeofenceType, ...]] = {
    GeofenceType.COUNTRY: (),
    GeofenceType.BRANCH: (GeofenceType.COUNTRY,),
    GeofenceType.SUB_BRANCH: (GeofenceType.BRANCH,),
    GeofenceType.FIELD_OFFICER: (GeofenceType.SUB_BRANCH,),
}


def _ancestor_parents() -> Dict[GeofenceType, Tuple[GeofenceType, ...]]:
    # Any strictly higher level, nearest first.
    return {
        t: tuple(p for p in reversed(list(GeofenceType)) if p.level < t.level)
        for t in GeofenceType
    }


@dataclass(frozen=True)
class HierarchyRules:
    """Legal parent types per geofence type.

    Attributes:
        allowed_parents: Map from a type to the parent types it may be nested
            under. Root types map to an empty tuple.

    Examples:
        >>> rules = HierarchyRules.from_rule(ParentRule.STRICT)
        >>> rules.parents_for(GeofenceType.BRANCH)
        (<GeofenceType.COUNTRY: 'country'>,)
    """

    allowed_parents: Mapping[GeofenceType, Tuple[GeofenceType, ...]] = field(
        default_factory=lambda: dict(_STRICT_PARENTS)
    )

    def __post_init__(self):
        if self.allowed_parents.get(GeofenceType.COUNTRY):
            raise ConfigurationError("Country geofences cannot have a parent type.")
        for geofence_type, parents in self.allowed_parents.items():
            if geofence_type in parents:
                raise ConfigurationError(
                    f"{geofence_type.label} cannot be its own parent type."
                )

    @classmethod
    def from_rule(cls, rule: ParentRule) -> "HierarchyRules":
        if rule == ParentRule.STRICT:
            return cls(dict(_STRICT_PARENTS))
        if rule == ParentRule.ANCESTORS:
            return cls(_ancestor_parents())
        raise ValueError(f"Unknown parent rule: {rule}")

    def parents_for(self, geofence_type: GeofenceType) -> Optional[Tuple[GeofenceType, ...]]:
        """Legal parent types, or None if no rule is defined for the type."""
        return self.allowed_parents.get(geofence_type)

    def is_root(self, geofence_type: GeofenceType) -> bool:
        return geofence_type == GeofenceType.COUNTRY


@dataclass(frozen=True)
class EngineConfig:
    """Settings shared by validation, clipping and resolution.

    Attributes:
        rules: Parent legality rules (default: strict single parent type)
        min_area: Clip results with area <= min_area count as empty
        warn_on_drop: Emit :class:`DownstreamClipWarning` for each dependent
            geofence whose effective area is dropped during resolution
    """

    rules: HierarchyRules = field(default_factory=HierarchyRules)
    min_area: float = 1e-12
    warn_on_drop: bool = True


__all__ = [
    'HierarchyRules',
    'EngineConfig',
]
