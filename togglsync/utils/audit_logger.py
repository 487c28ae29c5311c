"""Audit logging helper: the append-only log sink of job outcomes."""

import logging
from typing import Optional, Dict, Any
from sqlalchemy.orm import Session

from togglsync.models.audit_log import AuditLog

log = logging.getLogger(__name__)


def create_audit_log(
    db: Session,
    action: str,
    message: str,
    table_location: Optional[str] = None,
    time_entry_id: Optional[int] = None,
    user: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None
) -> AuditLog:
    """
    Append a log sink entry and commit it immediately.

    Args:
        db: Database session
        action: Action being logged (e.g., 'sync_completed', 'entry_updated', 'login_success')
        message: Human-readable message, as shown in the table's log
        table_location: Record table the action touched
        time_entry_id: Toggl time entry concerned, if any
        user: User name performing the action
        details: Additional context as JSON (old/new remote snapshots, counts, errors)

    Returns:
        Created AuditLog instance

    Usage:
        ```python
        create_audit_log(
            db, "sync_completed", "New records added: 3",
            table_location=table.location,
            user=settings.user_name,
            details={"watermark": 101}
        )
        ```
    """
    audit_log = AuditLog(
        action=action,
        message=message,
        table_location=table_location,
        time_entry_id=time_entry_id,
        user=user,
        details=details
    )

    db.add(audit_log)
    db.commit()
    db.refresh(audit_log)
    log.debug(f"Audit log [{action}] {message}")

    return audit_log
