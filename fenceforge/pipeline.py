"""Validation and clipping steps applied to the directly edited geofence.

Every step either returns the (possibly re-clipped) candidate or raises the
error that rejects the whole mutation. Steps run in order: structure,
same-priority overlap, parent containment, sibling priority.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from .clip import CONTAINMENT_MESSAGE, clip_to_higher_priority_siblings, clip_to_parent
from .core.config import EngineConfig
from .core.errors import PriorityConflictError, StructureError
from .core.models import GeofenceRecord
from .hierarchy import HierarchyIndex, validate_structure
from .priority import has_same_priority_overlap

PRIORITY_CONFLICT_MESSAGE = (
    "Polygons with the same priority cannot overlap. "
    "Please adjust the priority or shape."
)

MutationStep = Callable[[GeofenceRecord, "MutationContext"], "StepResult"]


@dataclass
class MutationContext:
    """State shared by the steps of one mutation.

    Attributes:
        index: Index over the collection as it was before the mutation
        config: Engine settings
        existing: True when the candidate replaces a geofence with the same id
        containment_message: Error text used when parent clipping fails
    """

    index: HierarchyIndex
    config: EngineConfig
    existing: bool = False
    containment_message: str = CONTAINMENT_MESSAGE

    def siblings(self, candidate: GeofenceRecord) -> List[GeofenceRecord]:
        return self.index.siblings(
            candidate.parent_id, candidate.type, exclude_id=candidate.id
        )


@dataclass
class StepResult:
    """Outcome of running a single step."""

    name: str
    record: GeofenceRecord
    changed: bool
    message: str = ""


def structure_step(candidate: GeofenceRecord, context: MutationContext) -> StepResult:
    message = validate_structure(
        candidate.data,
        context.index,
        context.config.rules,
        geofence_id=candidate.id if context.existing else None,
    )
    if message is not None:
        raise StructureError(message)
    return StepResult("structure", candidate, False)


def priority_step(candidate: GeofenceRecord, context: MutationContext) -> StepResult:
    if has_same_priority_overlap(candidate, context.siblings(candidate)):
        raise PriorityConflictError(PRIORITY_CONFLICT_MESSAGE)
    return StepResult("priority", candidate, False)


def parent_clip_step(candidate: GeofenceRecord, context: MutationContext) -> StepResult:
    parent = context.index.get(candidate.parent_id)
    if parent is None:
        return StepResult("parent_clip", candidate, False, "no parent")

    clipped = clip_to_parent(
        candidate,
        parent,
        min_area=context.config.min_area,
        message=context.containment_message,
    )
    changed = clipped.clipped_path != candidate.clipped_path
    return StepResult("parent_clip", clipped, changed)


def sibling_clip_step(candidate: GeofenceRecord, context: MutationContext) -> StepResult:
    clipped = clip_to_higher_priority_siblings(
        candidate,
        context.siblings(candidate),
        min_area=context.config.min_area,
    )
    changed = clipped.clipped_path != candidate.clipped_path
    message = "fully covered by higher-priority siblings" if clipped.is_empty else ""
    return StepResult("sibling_clip", clipped, changed, message)


DEFAULT_STEPS: List[MutationStep] = [
    structure_step,
    priority_step,
    parent_clip_step,
    sibling_clip_step,
]


def run_steps(
    candidate: GeofenceRecord,
    context: MutationContext,
    steps: Optional[List[MutationStep]] = None,
) -> Tuple[GeofenceRecord, List[StepResult]]:
    """Run ``steps`` in order; the first failing step raises."""
    record = candidate
    history: List[StepResult] = []

    for step in steps if steps is not None else DEFAULT_STEPS:
        result = step(record, context)
        record = result.record
        history.append(result)

    return record, history


__all__ = [
    "PRIORITY_CONFLICT_MESSAGE",
    "MutationContext",
    "MutationStep",
    "StepResult",
    "structure_step",
    "priority_step",
    "parent_clip_step",
    "sibling_clip_step",
    "DEFAULT_STEPS",
    "run_steps",
]
