"""Stateful facade binding the engine to a store for one scope.

The service keeps the last committed collection of a scope. Each mutation is
computed by the pure engine functions against that snapshot, then written to
the store in a single transaction. The snapshot is only replaced once the
store has accepted every write.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from .consistency import ConstraintStatus, check_consistency
from .core.config import EngineConfig
from .core.errors import FenceforgeError, GeofenceNotFoundError, PersistenceError
from .core.models import GeofenceData, GeofenceRecord, coerce_type
from .countries import BoundaryProvider, import_country
from .engine import (
    MutationResult,
    create_geofence,
    delete_geofence,
    reshape_geofence,
    update_geofence_data,
)
from .geojson import to_feature_collection
from .store import GeofenceStore, Scope

SAVE_ERROR_MESSAGE = "There was an error when saving the geofences."


class GeofenceService:
    """Geofence editing session for one organizational scope.

    Args:
        store: Backing record store
        scope: Scoping key, e.g. ``(fsp_id, ngo_id)``
        config: Engine settings

    Examples:
        >>> service = GeofenceService(InMemoryGeofenceStore(), ('fsp-1', 'ngo-1'))
        >>> result = service.create(path, GeofenceData('Kenya', 'country'))
        >>> len(service.records)
        1
    """

    def __init__(
        self,
        store: GeofenceStore,
        scope: Scope,
        config: Optional[EngineConfig] = None,
    ):
        self.store = store
        self.scope = tuple(scope)
        self.config = config or EngineConfig()
        self._records: List[GeofenceRecord] = []
        self.refresh()

    @property
    def records(self) -> List[GeofenceRecord]:
        return list(self._records)

    def refresh(self) -> None:
        """Reload the scope from the store."""
        try:
            rows = self.store.fetch_all(self.scope)
        except FenceforgeError:
            raise
        except Exception as e:
            raise PersistenceError("Error fetching geofences.") from e
        self._records = [row.record for row in rows]

    def get(self, geofence_id: str) -> GeofenceRecord:
        for record in self._records:
            if record.id == geofence_id:
                return record
        raise GeofenceNotFoundError(geofence_id)

    def create(self, path, data: GeofenceData) -> MutationResult:
        return self._commit(create_geofence(path, data, self._records, self.config))

    def reshape(self, geofence_id: str, path) -> MutationResult:
        return self._commit(reshape_geofence(geofence_id, path, self._records, self.config))

    def update_data(self, geofence_id: str, data: GeofenceData) -> MutationResult:
        return self._commit(
            update_geofence_data(geofence_id, data, self._records, self.config)
        )

    def delete(self, geofence_id: str) -> MutationResult:
        return self._commit(delete_geofence(geofence_id, self._records, self.config))

    def import_country(
        self,
        iso3: str,
        data: GeofenceData,
        provider: BoundaryProvider,
    ) -> MutationResult:
        return self._commit(
            import_country(iso3, data, self._records, provider, self.config)
        )

    def search(self, term: str = "", geofence_type: Any = None) -> List[GeofenceRecord]:
        """Geofences whose name contains ``term`` (case-insensitive), optionally of one type."""
        wanted = coerce_type(geofence_type) if geofence_type is not None else None
        needle = term.casefold()
        return [
            r for r in self._records
            if needle in r.name.casefold() and (wanted is None or r.type == wanted)
        ]

    def export(self) -> Dict[str, Any]:
        return to_feature_collection(self._records)

    def check(self) -> ConstraintStatus:
        return check_consistency(self._records, self.config)

    def _commit(self, result: MutationResult) -> MutationResult:
        previous = {r.id for r in self._records}
        by_id = {r.id: r for r in result.records}

        try:
            with self.store.transaction(self.scope):
                for geofence_id in result.removed:
                    self.store.delete(self.scope, geofence_id)
                for geofence_id in result.changed:
                    record = by_id.get(geofence_id)
                    if record is None:
                        continue
                    if geofence_id in previous:
                        self.store.update(self.scope, record)
                    else:
                        self.store.insert(self.scope, record)
        except Exception as e:
            raise PersistenceError(SAVE_ERROR_MESSAGE) from e

        self._records = list(result.records)
        return result


__all__ = [
    'SAVE_ERROR_MESSAGE',
    'GeofenceService',
]
