"""Type definitions for fenceforge.

This module defines the geofence level enum and the parent-rule presets
used throughout the library.
"""

from enum import Enum


class GeofenceType(Enum):
    """Level of a geofence in the organizational hierarchy.

    Attributes:
        COUNTRY: Root level, usually imported from a country boundary
        BRANCH: Branch service area, child of a country
        SUB_BRANCH: Sub-branch service area, child of a branch
        FIELD_OFFICER: Area of a single field officer, child of a sub-branch

    Examples:
        >>> from fenceforge import GeofenceType
        >>> GeofenceType('branch')
        <GeofenceType.BRANCH: 'branch'>
        >>> GeofenceType.BRANCH.label
        'Branch'
    """
    COUNTRY = 'country'
    BRANCH = 'branch'
    SUB_BRANCH = 'sub_branch'
    FIELD_OFFICER = 'field_officer'

    @property
    def label(self) -> str:
        """Human readable label used in user-facing messages."""
        return _LABELS[self]

    @property
    def level(self) -> int:
        """Depth of this type in the hierarchy (country is 0)."""
        return _LEVELS[self]


_LABELS = {
    GeofenceType.COUNTRY: 'Country',
    GeofenceType.BRANCH: 'Branch',
    GeofenceType.SUB_BRANCH: 'Sub-branch',
    GeofenceType.FIELD_OFFICER: 'Field Officer',
}

_LEVELS = {geofence_type: i for i, geofence_type in enumerate(GeofenceType)}


class ParentRule(Enum):
    """Preset for which parent types are legal for each geofence type.

    Attributes:
        STRICT: Exactly one legal parent type, the level directly above
            (default)
        ANCESTORS: Any strictly higher level is a legal parent

    Examples:
        >>> from fenceforge import HierarchyRules, ParentRule
        >>> rules = HierarchyRules.from_rule(ParentRule.ANCESTORS)
    """
    STRICT = 'strict'
    ANCESTORS = 'ancestors'


__all__ = [
    'GeofenceType',
    'ParentRule',
]
