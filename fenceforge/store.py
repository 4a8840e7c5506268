"""Persistence interface for geofence collections.

The engine only needs a scoped record store: fetch everything for a scope,
insert, update and delete single rows. Batches of writes produced by one
mutation run inside :meth:`GeofenceStore.transaction`, which must be atomic:
either every row is written or none is.
"""

from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Callable, Dict, Iterator, List, Optional, Set, Tuple

from .core.errors import GeofenceNotFoundError, PersistenceError
from .core.models import GeofenceRecord

Scope = Tuple[str, ...]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class GeofenceRow:
    """A stored geofence with its scoping key and timestamps."""

    record: GeofenceRecord
    scope: Scope
    created_at: datetime
    updated_at: datetime


class GeofenceStore(ABC):
    """Scoped record store used by :class:`fenceforge.service.GeofenceService`."""

    @abstractmethod
    def fetch_all(self, scope: Scope) -> List[GeofenceRow]:
        """All rows of ``scope`` in insertion order."""

    @abstractmethod
    def insert(self, scope: Scope, record: GeofenceRecord) -> GeofenceRow:
        """Store a new geofence."""

    @abstractmethod
    def update(self, scope: Scope, record: GeofenceRecord) -> GeofenceRow:
        """Overwrite the row with ``record.id``."""

    @abstractmethod
    def delete(self, scope: Scope, geofence_id: str) -> None:
        """Remove the row with ``geofence_id``."""

    @abstractmethod
    def transaction(self, scope: Scope):
        """Context manager making the writes inside it atomic."""


class InMemoryGeofenceStore(GeofenceStore):
    """Dictionary backed store with snapshot/rollback transactions.

    Attributes:
        fail_on: Geofence ids whose writes raise :class:`PersistenceError`,
            to simulate a backend failing halfway through a batch

    Examples:
        >>> store = InMemoryGeofenceStore()
        >>> with store.transaction(scope):
        ...     store.insert(scope, record)
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._rows: Dict[Scope, Dict[str, GeofenceRow]] = {}
        self._clock = clock or utcnow
        self.fail_on: Set[str] = set()

    def _scope_rows(self, scope: Scope) -> Dict[str, GeofenceRow]:
        return self._rows.setdefault(tuple(scope), {})

    def _check(self, geofence_id: str) -> None:
        if geofence_id in self.fail_on:
            raise PersistenceError(f"Write rejected for geofence {geofence_id!r}.")

    def fetch_all(self, scope: Scope) -> List[GeofenceRow]:
        return list(self._scope_rows(scope).values())

    def insert(self, scope: Scope, record: GeofenceRecord) -> GeofenceRow:
        self._check(record.id)
        rows = self._scope_rows(scope)
        if record.id in rows:
            raise PersistenceError(f"Geofence {record.id!r} already exists.")
        now = self._clock()
        row = GeofenceRow(record, tuple(scope), now, now)
        rows[record.id] = row
        return row

    def update(self, scope: Scope, record: GeofenceRecord) -> GeofenceRow:
        self._check(record.id)
        rows = self._scope_rows(scope)
        if record.id not in rows:
            raise GeofenceNotFoundError(record.id)
        row = replace(rows[record.id], record=record, updated_at=self._clock())
        rows[record.id] = row
        return row

    def delete(self, scope: Scope, geofence_id: str) -> None:
        self._check(geofence_id)
        rows = self._scope_rows(scope)
        if geofence_id not in rows:
            raise GeofenceNotFoundError(geofence_id)
        del rows[geofence_id]

    @contextmanager
    def transaction(self, scope: Scope) -> Iterator["InMemoryGeofenceStore"]:
        # Rows are immutable, a shallow copy of the mapping is a full snapshot.
        snapshot = copy.copy(self._scope_rows(scope))
        try:
            yield self
        except BaseException:
            self._rows[tuple(scope)] = snapshot
            raise


__all__ = [
    'Scope',
    'GeofenceRow',
    'GeofenceStore',
    'InMemoryGeofenceStore',
    'utcnow',
]
