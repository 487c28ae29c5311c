"""Error taxonomy for sync, tagging, reconciliation and rollover jobs."""
from togglsync.connectors.base import CalendarRequestError, TogglRequestError


class TogglSyncError(Exception):
    """Base class for errors raised by the sync services."""


class ConfigurationError(TogglSyncError):
    """Required configuration is missing or invalid (e.g. a workspace with no calendar)."""


class InconsistentRemoteStateError(TogglSyncError):
    """The remote time entry does not look like a recorded row expects (e.g. missing workspace)."""

    def __init__(self, message: str, time_entry_id: int):
        super().__init__(message)
        self.time_entry_id = time_entry_id


class NoTagConfiguredError(TogglSyncError):
    """Auto-tagging was requested without any tag to apply."""


class NoTagTargetsError(TogglSyncError):
    """No time entry is eligible for auto-tagging."""


class SyncLockBusyError(TogglSyncError):
    """Another run currently holds the lock for the record table."""

    def __init__(self, key: str, owner: str = None):
        super().__init__(f"Lock '{key}' is held by {owner or 'another run'}")
        self.key = key
        self.owner = owner


class RecordTableNotFoundError(TogglSyncError):
    """No record table is registered for the requested year or location."""


__all__ = [
    "CalendarRequestError",
    "ConfigurationError",
    "InconsistentRemoteStateError",
    "NoTagConfiguredError",
    "NoTagTargetsError",
    "RecordTableNotFoundError",
    "SyncLockBusyError",
    "TogglRequestError",
    "TogglSyncError",
]
