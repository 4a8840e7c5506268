"""Geofence mutations.

Each mutation takes the full current collection and returns a new full
collection, or raises without touching its input. The directly edited
geofence is validated strictly (any failure rejects the mutation);
geofences that merely depend on it are re-derived leniently by
:mod:`fenceforge.resolve`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from .core.config import EngineConfig
from .core.errors import StructureError
from .core.geometry_utils import to_polygon
from .core.models import GeofenceData, GeofenceRecord, coerce_type, new_geofence_id
from .core.validation_utils import validate_path
from .hierarchy import HierarchyIndex
from .pipeline import MutationContext, StepResult, run_steps
from .resolve import Resolution, resolve_downstream, resolve_siblings_after

UPDATE_CONTAINMENT_MESSAGE = "The updated polygon must be completely within its parent geofence."


@dataclass
class MutationResult:
    """Outcome of an accepted mutation.

    Attributes:
        records: Full collection after the mutation
        record: The directly edited geofence (None for deletions)
        changed: Ids whose stored row must be written (the edited geofence
            and every re-derived dependent)
        removed: Ids deleted by the mutation
        dropped: Dependents left without an effective area
        warnings: User-facing messages for the dropped dependents
        history: Steps applied to the edited geofence
    """

    records: List[GeofenceRecord]
    record: Optional[GeofenceRecord] = None
    changed: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    dropped: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    history: List[StepResult] = field(default_factory=list)


def _normalize_data(data: GeofenceData, config: EngineConfig) -> GeofenceData:
    if config.rules.is_root(data.type) and data.parent_id is not None:
        return data.evolve(parent_id=None)
    return data


def _prepare_path(path) -> tuple:
    closed = validate_path(path)
    to_polygon(closed)
    return closed


def _merge(*resolutions: Resolution) -> dict:
    changed: List[str] = []
    dropped: List[str] = []
    messages: List[str] = []
    for resolution in resolutions:
        changed.extend(resolution.changed)
        dropped.extend(resolution.dropped)
        messages.extend(str(w) for w in resolution.warnings)
    return {
        'changed': list(dict.fromkeys(changed)),
        'dropped': list(dict.fromkeys(dropped)),
        'warnings': messages,
    }


def _commit(
    resolved: GeofenceRecord,
    records: Sequence[GeofenceRecord],
    config: EngineConfig,
    history: List[StepResult],
    *earlier: Resolution,
) -> MutationResult:
    resolution = resolve_downstream(resolved, records, config)
    merged = _merge(*earlier, resolution)
    merged['changed'] = list(dict.fromkeys([resolved.id] + merged['changed']))
    return MutationResult(
        records=resolution.records,
        record=resolution.by_id()[resolved.id],
        history=history,
        **merged,
    )


def create_geofence(
    path,
    data: GeofenceData,
    records: Iterable[GeofenceRecord],
    config: Optional[EngineConfig] = None,
    geofence_id: Optional[str] = None,
) -> MutationResult:
    """Add a new geofence drawn as ``path``.

    Steps: path check, structure, same-priority overlap, parent clip,
    higher-priority sibling clip, then downstream resolution of
    lower-priority siblings.

    Args:
        path: Drawn boundary as ``(lat, lng)`` pairs (closed automatically)
        data: Attributes of the new geofence
        records: Current collection
        config: Engine settings
        geofence_id: Id to use instead of a generated one

    Returns:
        :class:`MutationResult` with the new geofence in ``record``

    Raises:
        GeometryError: Path is not a usable polygon
        StructureError: Parent missing or illegal
        PriorityConflictError: Overlaps an equal-priority sibling
        ContainmentError: Does not overlap its parent as a single polygon

    Examples:
        >>> result = create_geofence(square, GeofenceData('A', 'country'), [])
        >>> result.record.clipped_path == result.record.original_path
        True
    """
    config = config or EngineConfig()
    records = list(records)
    index = HierarchyIndex(records)

    geofence_id = geofence_id or new_geofence_id()
    if geofence_id in index:
        raise StructureError(f"A geofence with id {geofence_id!r} already exists.")

    data = _normalize_data(data, config)
    original = _prepare_path(path)
    candidate = GeofenceRecord(geofence_id, original, original, data)

    context = MutationContext(index=index, config=config)
    resolved, history = run_steps(candidate, context)

    return _commit(resolved, records, config, history)


def reshape_geofence(
    geofence_id: str,
    path,
    records: Iterable[GeofenceRecord],
    config: Optional[EngineConfig] = None,
) -> MutationResult:
    """Replace the drawn shape of an existing geofence.

    The new shape goes through the same checks as a new geofence (against
    siblings other than itself). Its descendants and lower-priority siblings
    are then re-derived.

    Raises:
        GeofenceNotFoundError: Unknown ``geofence_id``
        GeometryError, StructureError, PriorityConflictError,
        ContainmentError: As for :func:`create_geofence`
    """
    config = config or EngineConfig()
    records = list(records)
    index = HierarchyIndex(records)
    target = index.require(geofence_id)

    original = _prepare_path(path)
    candidate = GeofenceRecord(geofence_id, original, original, target.data)

    context = MutationContext(
        index=index,
        config=config,
        existing=True,
        containment_message=UPDATE_CONTAINMENT_MESSAGE,
    )
    resolved, history = run_steps(candidate, context)

    return _commit(resolved, records, config, history)


def update_geofence_data(
    geofence_id: str,
    data: GeofenceData,
    records: Iterable[GeofenceRecord],
    config: Optional[EngineConfig] = None,
) -> MutationResult:
    """Edit the attributes of an existing geofence.

    Name, metadata and country code edits keep all geometry as is. A new
    priority or parent moves the geofence: it is taken out of its old sibling
    group (lower-priority siblings there reclaim its area), then validated
    and clipped in its new position like a reshape.

    Raises:
        GeofenceNotFoundError: Unknown ``geofence_id``
        StructureError: Type change, illegal parent or parent cycle
        PriorityConflictError, ContainmentError: As for a reshape
    """
    config = config or EngineConfig()
    records = list(records)
    index = HierarchyIndex(records)
    target = index.require(geofence_id)

    if coerce_type(data.type) != target.type:
        raise StructureError("The type of an existing geofence cannot be changed.")
    data = _normalize_data(data, config)

    if data.priority == target.priority and data.parent_id == target.parent_id:
        updated = target.with_data(data)
        return MutationResult(
            records=[updated if r.id == geofence_id else r for r in records],
            record=updated,
            changed=[geofence_id],
        )

    position = index.position(geofence_id)
    remaining = [r for r in records if r.id != geofence_id]
    detached = resolve_siblings_after(
        target.parent_id, target.type, target.priority, remaining, config
    )

    reattached = list(detached.records)
    reattached.insert(position, target)

    candidate = GeofenceRecord(
        geofence_id, target.original_path, target.original_path, data
    )
    context = MutationContext(
        index=HierarchyIndex(reattached),
        config=config,
        existing=True,
        containment_message=UPDATE_CONTAINMENT_MESSAGE,
    )
    resolved, history = run_steps(candidate, context)

    return _commit(resolved, reattached, config, history, detached)


def delete_geofence(
    geofence_id: str,
    records: Iterable[GeofenceRecord],
    config: Optional[EngineConfig] = None,
) -> MutationResult:
    """Delete a geofence together with all of its descendants.

    Lower-priority siblings of the deleted geofence are re-derived so they
    reclaim the area it held.

    Examples:
        >>> result = delete_geofence(branch.id, records)
        >>> result.removed
        ['b1', 's1', 'f1']
    """
    config = config or EngineConfig()
    records = list(records)
    index = HierarchyIndex(records)
    target = index.require(geofence_id)

    removed = [geofence_id] + index.descendants(geofence_id)
    removed_set = set(removed)
    remaining = [r for r in records if r.id not in removed_set]

    resolution = resolve_siblings_after(
        target.parent_id, target.type, target.priority, remaining, config
    )

    return MutationResult(
        records=resolution.records,
        removed=removed,
        **_merge(resolution),
    )


__all__ = [
    'UPDATE_CONTAINMENT_MESSAGE',
    'MutationResult',
    'create_geofence',
    'reshape_geofence',
    'update_geofence_data',
    'delete_geofence',
]
