"""Exception hierarchy for fenceforge.

Every rejection of a mutation surfaces as a subclass of
:class:`FenceforgeError` carrying a user-facing message. A rejected mutation
never changes the collection it was given.
"""


class FenceforgeError(Exception):
    """Base class for all fenceforge errors."""


class StructureError(FenceforgeError):
    """Illegal or missing parent/type relationship."""


class PriorityConflictError(FenceforgeError):
    """Same-priority sibling geofences overlap."""


class ContainmentError(FenceforgeError):
    """Shape is not inside the resolved area of its parent."""


class GeometryError(FenceforgeError):
    """Path or geometry cannot be turned into a single simple polygon."""


class PersistenceError(FenceforgeError):
    """The backing store rejected an operation."""


class ConfigurationError(FenceforgeError):
    """Engine or hierarchy configuration is inconsistent."""


class GeofenceNotFoundError(FenceforgeError, KeyError):
    """No geofence with the requested id exists."""

    def __init__(self, geofence_id: str):
        super().__init__(geofence_id)
        self.geofence_id = geofence_id

    def __str__(self) -> str:
        return "Geofence not found."


class DownstreamClipWarning(UserWarning):
    """A dependent geofence lost its whole effective area during resolution."""

    def __init__(self, geofence_id: str, message: str):
        super().__init__(message)
        self.geofence_id = geofence_id
        self.message = message

    def __str__(self) -> str:
        return self.message


__all__ = [
    'FenceforgeError',
    'StructureError',
    'PriorityConflictError',
    'ContainmentError',
    'GeometryError',
    'PersistenceError',
    'ConfigurationError',
    'GeofenceNotFoundError',
    'DownstreamClipWarning',
]
