"""Database models."""

from togglsync.models.audit_log import AuditLog
from togglsync.models.property import Property
from togglsync.models.record_row import RecordRow
from togglsync.models.record_table import RecordTable
from togglsync.models.sync_lock import SyncLock
from togglsync.models.sync_run import SyncRun

__all__ = [
    "AuditLog",
    "Property",
    "RecordRow",
    "RecordTable",
    "SyncLock",
    "SyncRun",
]
