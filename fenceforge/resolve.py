"""Downstream resolution of effective geofence shapes.

When a geofence's effective shape changes, everything that depends on it is
re-derived: its children (clipped to the new shape), their children in turn,
and lower-precedence siblings (which subtract the new shape). Dependents that
no longer fit inside their parent do not abort the triggering edit; they are
left with an empty effective area and reported as dropped.

Traversal walks actual parent/child links, so any hierarchy depth works.
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from shapely.geometry import Polygon

from .clip import clip_polygon_to_parent, subtract_higher_priority
from .core.config import EngineConfig
from .core.errors import DownstreamClipWarning, GeometryError
from .core.geometry_utils import polygon_to_path
from .core.models import GeofenceRecord
from .core.types import GeofenceType
from .core.validation_utils import Path
from .hierarchy import HierarchyIndex


@dataclass
class Resolution:
    """Outcome of a resolution pass.

    Attributes:
        records: Full collection in its original order, unchanged records
            included
        changed: Ids whose clipped path was rewritten
        dropped: Ids left empty because they no longer fit their parent
        warnings: One warning per dropped geofence
    """

    records: List[GeofenceRecord]
    changed: List[str] = field(default_factory=list)
    dropped: List[str] = field(default_factory=list)
    warnings: List[DownstreamClipWarning] = field(default_factory=list)

    def by_id(self) -> Dict[str, GeofenceRecord]:
        return {r.id: r for r in self.records}


class _Resolver:
    """Working state for one resolution pass."""

    def __init__(self, records: Iterable[GeofenceRecord], config: EngineConfig):
        self.index = HierarchyIndex(records)
        self.config = config
        self.state: Dict[str, GeofenceRecord] = {r.id: r for r in self.index}
        self.changed: List[str] = []
        self.dropped: List[str] = []
        self.warnings: List[DownstreamClipWarning] = []

    def container(self, parent_id: str) -> Optional[Polygon]:
        parent = self.state.get(parent_id)
        if parent is None:
            return None
        return parent.clipped_polygon()

    def derive(self, record: GeofenceRecord) -> Path:
        """Compute the clipped path of ``record`` from its drawn shape."""
        try:
            original = record.original_polygon()
        except GeometryError:
            return self.drop(record, "has an invalid shape")

        if record.parent_id is None:
            base = original
        else:
            base = clip_polygon_to_parent(
                self.container(record.parent_id),
                original,
                min_area=self.config.min_area,
            )
            if base is None:
                return self.drop(record, "no longer fits inside its parent")

        siblings = [
            self.state[s.id]
            for s in self.index.siblings(record.parent_id, record.type, exclude_id=record.id)
        ]
        result = subtract_higher_priority(
            base, record, siblings, min_area=self.config.min_area
        )

        if result is None:
            return ()
        if result is original:
            return record.original_path
        return polygon_to_path(result)

    def drop(self, record: GeofenceRecord, reason: str) -> Path:
        self.dropped.append(record.id)
        self.warnings.append(
            DownstreamClipWarning(
                record.id,
                f'Geofence "{record.name}" {reason} and was left without an effective area.',
            )
        )
        return ()

    def apply(self, record: GeofenceRecord) -> bool:
        """Re-derive ``record``; True if its clipped path changed."""
        current = self.state[record.id]
        path = self.derive(current)
        if path == current.clipped_path:
            return False
        self.state[record.id] = current.with_clipped(path)
        self.changed.append(record.id)
        return True

    def resolve_group(
        self,
        members: Sequence[GeofenceRecord],
        force: bool = False,
    ) -> None:
        # Members arrive in precedence order, so every higher-precedence
        # sibling is already re-derived when a member subtracts it.
        for member in members:
            if self.apply(member) or force:
                self.resolve_children(member.id, force=force)

    def resolve_children(self, parent_id: Optional[str], force: bool = False) -> None:
        children = self.index.children(parent_id)
        seen_types = []
        for child in children:
            if child.type not in seen_types:
                seen_types.append(child.type)
        for geofence_type in seen_types:
            self.resolve_group(
                self.index.sibling_group(parent_id, geofence_type),
                force=force,
            )

    def result(self) -> Resolution:
        if self.config.warn_on_drop:
            for warning in self.warnings:
                warnings.warn(warning, stacklevel=4)
        return Resolution(
            records=[self.state[r.id] for r in self.index],
            changed=list(dict.fromkeys(self.changed)),
            dropped=list(dict.fromkeys(self.dropped)),
            warnings=list(self.warnings),
        )


def _replace_or_append(
    records: Iterable[GeofenceRecord],
    updated: GeofenceRecord,
) -> List[GeofenceRecord]:
    result = []
    found = False
    for record in records:
        if record.id == updated.id:
            result.append(updated)
            found = True
        else:
            result.append(record)
    if not found:
        result.append(updated)
    return result


def resolve_downstream(
    updated: GeofenceRecord,
    records: Iterable[GeofenceRecord],
    config: Optional[EngineConfig] = None,
) -> Resolution:
    """Re-derive everything that depends on ``updated``'s effective shape.

    ``updated`` already carries its new clipped path and is taken as is. Its
    lower-precedence siblings are re-clipped against it, then its descendants
    are re-clipped depth-first starting from its drawn children's original
    shapes. A dependent that changes propagates further down; an unchanged one
    stops the walk for its subtree.

    Args:
        updated: The directly edited geofence, already resolved
        records: Current collection (``updated`` replaces the record with the
            same id, or is appended if new)
        config: Engine settings

    Returns:
        :class:`Resolution` with the full updated collection

    Examples:
        >>> resolution = resolve_downstream(reshaped_branch, records)
        >>> resolution.dropped
        []
    """
    config = config or EngineConfig()
    resolver = _Resolver(_replace_or_append(records, updated), config)

    lower = [
        member
        for member in resolver.index.sibling_group(updated.parent_id, updated.type)
        if member.id != updated.id and member.priority > updated.priority
    ]
    resolver.resolve_group(lower)
    resolver.resolve_children(updated.id)

    return resolver.result()


def resolve_siblings_after(
    parent_id: Optional[str],
    geofence_type: GeofenceType,
    priority: int,
    records: Iterable[GeofenceRecord],
    config: Optional[EngineConfig] = None,
) -> Resolution:
    """Re-derive siblings ranked below ``priority`` in one sibling group.

    Used when a geofence leaves a group (deletion or re-parenting) so that
    lower-precedence siblings can take back the area it held.
    """
    config = config or EngineConfig()
    resolver = _Resolver(records, config)
    lower = [
        member
        for member in resolver.index.sibling_group(parent_id, geofence_type)
        if member.priority > priority
    ]
    resolver.resolve_group(lower)
    return resolver.result()


def resolve_all(
    records: Iterable[GeofenceRecord],
    config: Optional[EngineConfig] = None,
) -> Resolution:
    """Re-derive every clipped path from the roots down.

    Geofences whose parent is missing are dropped. Running this on a resolved
    collection returns identical clipped paths.
    """
    config = config or EngineConfig()
    resolver = _Resolver(records, config)

    head_ids: List[Optional[str]] = [None]
    for record in resolver.index:
        if record.parent_id is not None and record.parent_id not in resolver.index:
            if record.parent_id not in head_ids:
                head_ids.append(record.parent_id)

    for parent_id in head_ids:
        resolver.resolve_children(parent_id, force=True)

    return resolver.result()


__all__ = [
    'Resolution',
    'resolve_downstream',
    'resolve_siblings_after',
    'resolve_all',
]
