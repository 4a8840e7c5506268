"""Hierarchy index and structural validation.

Parent/child links are stored as ``parent_id`` references on flat records.
:class:`HierarchyIndex` materializes them once per mutation (id -> record,
parent id -> child ids) so tree walks do not re-filter the whole collection
at every level.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, Iterable, Iterator, List, Optional, Tuple, Union

from .core.config import HierarchyRules
from .core.errors import GeofenceNotFoundError, StructureError
from .core.models import GeofenceData, GeofenceRecord
from .core.types import GeofenceType


class HierarchyIndex:
    """Read-only index over a geofence collection.

    Collection order is preserved and used to break priority ties, which
    keeps every traversal deterministic.

    Examples:
        >>> index = HierarchyIndex(records)
        >>> [child.name for child in index.children(country.id)]
        ['North', 'South']
        >>> index.descendants(country.id)
        ['a1', 'a2', 'b1']
    """

    def __init__(self, records: Iterable[GeofenceRecord]):
        self._records: Dict[str, GeofenceRecord] = {}
        self._order: Dict[str, int] = {}
        self._children: Dict[Optional[str], List[str]] = defaultdict(list)

        for position, record in enumerate(records):
            if record.id in self._records:
                raise StructureError(f"Duplicate geofence id {record.id!r}.")
            self._records[record.id] = record
            self._order[record.id] = position
            self._children[record.parent_id].append(record.id)

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, geofence_id: object) -> bool:
        return geofence_id in self._records

    def __iter__(self) -> Iterator[GeofenceRecord]:
        return iter(self._records.values())

    def get(self, geofence_id: Optional[str]) -> Optional[GeofenceRecord]:
        if geofence_id is None:
            return None
        return self._records.get(geofence_id)

    def require(self, geofence_id: str) -> GeofenceRecord:
        record = self._records.get(geofence_id)
        if record is None:
            raise GeofenceNotFoundError(geofence_id)
        return record

    def position(self, geofence_id: str) -> int:
        return self._order[geofence_id]

    def sort_key(self, record: GeofenceRecord) -> Tuple[int, int]:
        """Precedence order: priority first, then collection order."""
        return record.priority, self._order.get(record.id, len(self._order))

    def parent(self, record: GeofenceRecord) -> Optional[GeofenceRecord]:
        return self.get(record.parent_id)

    def children(self, parent_id: Optional[str]) -> List[GeofenceRecord]:
        """Direct children of ``parent_id`` (None selects root geofences)."""
        return [self._records[i] for i in self._children.get(parent_id, ())]

    def sibling_group(
        self,
        parent_id: Optional[str],
        geofence_type: GeofenceType,
    ) -> List[GeofenceRecord]:
        """Children of ``parent_id`` of one type, in precedence order."""
        group = [c for c in self.children(parent_id) if c.type == geofence_type]
        return sorted(group, key=self.sort_key)

    def siblings(
        self,
        parent_id: Optional[str],
        geofence_type: GeofenceType,
        exclude_id: Optional[str] = None,
    ) -> List[GeofenceRecord]:
        """Geofences sharing ``parent_id`` and ``geofence_type``."""
        return [
            r for r in self.children(parent_id)
            if r.type == geofence_type and r.id != exclude_id
        ]

    def descendants(self, geofence_id: str) -> List[str]:
        """Ids of all transitive children of ``geofence_id`` (depth-first)."""
        result: List[str] = []
        seen = {geofence_id}
        stack = list(reversed(self._children.get(geofence_id, ())))
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            result.append(current)
            stack.extend(reversed(self._children.get(current, ())))
        return result

    def ancestors(self, geofence_id: str) -> List[str]:
        """Ids from the direct parent up to the root.

        Raises:
            StructureError: If the parent chain loops
        """
        result: List[str] = []
        seen = {geofence_id}
        record = self.get(geofence_id)
        while record is not None and record.parent_id is not None:
            if record.parent_id in seen:
                raise StructureError(
                    f"Geofence {geofence_id!r} is part of a parent cycle."
                )
            seen.add(record.parent_id)
            result.append(record.parent_id)
            record = self.get(record.parent_id)
        return result

    def would_create_cycle(self, geofence_id: str, parent_id: Optional[str]) -> bool:
        """True if making ``parent_id`` the parent of ``geofence_id`` loops."""
        if parent_id is None:
            return False
        if parent_id == geofence_id:
            return True
        return parent_id in self.descendants(geofence_id)


def _as_index(records: Union[HierarchyIndex, Iterable[GeofenceRecord]]) -> HierarchyIndex:
    if isinstance(records, HierarchyIndex):
        return records
    return HierarchyIndex(records)


def validate_structure(
    data: GeofenceData,
    records: Union[HierarchyIndex, Iterable[GeofenceRecord]],
    rules: Optional[HierarchyRules] = None,
    geofence_id: Optional[str] = None,
) -> Optional[str]:
    """Check the parent/type legality of ``data`` against a collection.

    Countries need no parent; any ``parent_id`` they carry is ignored (the
    engine clears it). Every other type needs an existing parent whose type
    is legal under ``rules``. When ``geofence_id`` is given the candidate is
    an existing geofence, and parents inside its own subtree are rejected.

    Args:
        data: Candidate attributes
        records: Current collection or an index built over it
        rules: Parent legality rules (default: strict single parent type)
        geofence_id: Id of the geofence being edited, if any

    Returns:
        A user-facing error message, or None if the structure is legal

    Examples:
        >>> validate_structure(GeofenceData('B1', GeofenceType.BRANCH), [])
        'Please select a parent geofence for Branch.'
    """
    rules = rules or HierarchyRules()

    if rules.is_root(data.type):
        return None

    allowed = rules.parents_for(data.type)
    if not allowed:
        return f"No hierarchy rule defined for {data.type.label}."

    if not data.parent_id:
        return f"Please select a parent geofence for {data.type.label}."

    index = _as_index(records)
    parent = index.get(data.parent_id)
    if parent is None:
        return "The selected parent geofence does not exist."

    if parent.type not in allowed:
        expected = " or ".join(f'"{t.label}"' for t in allowed)
        return (
            f"The selected parent must be of type {expected}, "
            f'but is a "{parent.type.label}".'
        )

    if geofence_id is not None and index.would_create_cycle(geofence_id, data.parent_id):
        return "A geofence cannot be placed inside itself or one of its descendants."

    return None


def validate_collection(
    records: Union[HierarchyIndex, Iterable[GeofenceRecord]],
    rules: Optional[HierarchyRules] = None,
) -> List[Tuple[str, str]]:
    """Structural problems of a whole collection as ``(id, message)`` pairs."""
    rules = rules or HierarchyRules()
    index = _as_index(records)
    problems: List[Tuple[str, str]] = []

    for record in index:
        if rules.is_root(record.type) and record.parent_id is not None:
            problems.append((record.id, "Country geofences cannot have a parent."))
            continue
        message = validate_structure(record.data, index, rules)
        if message is None:
            try:
                index.ancestors(record.id)
            except StructureError as e:
                message = str(e)
        if message is not None:
            problems.append((record.id, message))

    return problems


__all__ = [
    'HierarchyIndex',
    'validate_structure',
    'validate_collection',
]
