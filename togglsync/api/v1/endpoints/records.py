from typing import Annotated, List, Optional
import logging
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session

from togglsync.auth import get_current_active_user
from togglsync.database import get_db
from togglsync.models.record_row import RecordRow
from togglsync.schemas.auth import User
from togglsync.schemas.record import PaginatedRecordRows, RecordRowEdit, RecordRowOut, RecordTableOut
from togglsync.services.normalizer import parse_timestamp
from togglsync.services.record_table import RecordTableStore
from togglsync.services.update_flag import UpdateFlag
from togglsync.utils.audit_logger import create_audit_log

log = logging.getLogger(__name__)
router = APIRouter()

# Columns a row cannot be saved without
REQUIRED_EDIT_FIELDS = ("workspace_id", "tags", "start", "stop")

@router.get("/tables", response_model=List[RecordTableOut])
async def list_record_tables(
    db: Session = Depends(get_db),
    current_user: Annotated[User, Depends(get_current_active_user)] = None
):
    """List the registered record tables, oldest year first."""
    return RecordTableStore(db).list_tables()

@router.get("/rows", response_model=PaginatedRecordRows)
async def list_record_rows(
    table_location: str = Query(..., description="Record table location"),
    pending_only: bool = Query(False, description="Only rows flagged for update"),
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    current_user: Annotated[User, Depends(get_current_active_user)] = None
):
    """Rows of one record table in append order."""
    rows = RecordTableStore(db).get_rows(table_location)
    if pending_only:
        rows = [r for r in rows if UpdateFlag.parse(r.update_flag).pending]
    return PaginatedRecordRows(
        data=[RecordRowOut.model_validate(r) for r in rows[skip:skip + limit]],
        total=len(rows)
    )

@router.put("/rows/{row_id}", response_model=RecordRowOut)
async def edit_record_row(
    row_id: int,
    edit: RecordRowEdit,
    db: Session = Depends(get_db),
    current_user: Annotated[User, Depends(get_current_active_user)] = None
):
    """Edit a recorded row and flag it for the next reconciliation run."""
    row: Optional[RecordRow] = db.query(RecordRow).filter(RecordRow.id == row_id).first()
    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Record row not found")

    changes = edit.model_dump(exclude_unset=True)
    cleared = [field for field in REQUIRED_EDIT_FIELDS if field in changes and changes[field] is None]
    if cleared:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{', '.join(cleared)} must not be null"
        )
    start = changes.get("start", row.start)
    stop = changes.get("stop", row.stop)
    try:
        if parse_timestamp(stop) < parse_timestamp(start):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="stop must not be before start")
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="start/stop must be ISO 8601 timestamps")

    for attr, value in changes.items():
        setattr(row, attr, value)
    row.update_flag = UpdateFlag.parse(row.update_flag).request_update().value
    db.commit()
    db.refresh(row)

    create_audit_log(
        db,
        action="row_flagged",
        message=f"Time entry {row.time_entry_id} edited and flagged for update",
        table_location=row.table_location,
        time_entry_id=row.time_entry_id,
        user=current_user.username if current_user else None,
        details=changes
    )
    return row
