from datetime import datetime
from typing import Annotated, Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session

from togglsync.auth import get_current_active_user
from togglsync.database import get_db
from togglsync.models.audit_log import AuditLog
from togglsync.schemas.audit import AuditLogInDB, PaginatedAuditLogs
from togglsync.schemas.auth import User

router = APIRouter(
    tags=["audit-logs"]
)

@router.get("/", response_model=PaginatedAuditLogs)
async def read_audit_logs(
    skip: int = 0,
    limit: int = 100,
    action: Optional[str] = Query(None, description="Filter by specific action"),
    table_location: Optional[str] = Query(None, description="Filter by record table"),
    time_entry_id: Optional[int] = Query(None, description="Filter by Toggl time entry ID"),
    start_date: Optional[str] = Query(None, description="Filter created_at >= YYYY-MM-DD"),
    end_date: Optional[str] = Query(None, description="Filter created_at <= YYYY-MM-DD"),
    user: Optional[str] = Query(None, description="Filter by user name"),
    current_user: Annotated[User, Depends(get_current_active_user)] = None,
    db: Session = Depends(get_db)
):
    """Retrieve the log sink, newest first, with optional filters."""
    query = db.query(AuditLog)

    if action:
        query = query.filter(AuditLog.action == action)
    if table_location:
        query = query.filter(AuditLog.table_location == table_location)
    if time_entry_id is not None:
        query = query.filter(AuditLog.time_entry_id == time_entry_id)
    if start_date:
        query = query.filter(AuditLog.created_at >= datetime.fromisoformat(f"{start_date}T00:00:00"))
    if end_date:
        query = query.filter(AuditLog.created_at <= datetime.fromisoformat(f"{end_date}T23:59:59"))
    if user:
        query = query.filter(AuditLog.user == user)

    total = query.count()
    logs = query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).offset(skip).limit(limit).all()
    return PaginatedAuditLogs(data=[AuditLogInDB.model_validate(entry) for entry in logs], total=total)

@router.get("/{log_id}", response_model=AuditLogInDB)
async def read_audit_log(
    log_id: int,
    current_user: Annotated[User, Depends(get_current_active_user)] = None,
    db: Session = Depends(get_db)
):
    """Retrieve a single audit log by ID."""
    db_log = db.query(AuditLog).filter(AuditLog.id == log_id).first()
    if db_log is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Audit log not found")
    return db_log
