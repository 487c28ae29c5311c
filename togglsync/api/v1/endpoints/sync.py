from datetime import datetime
from typing import Annotated, Optional
import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from togglsync.api.deps import get_job_context
from togglsync.auth import get_current_active_user
from togglsync.database import get_db
from togglsync.models.sync_run import SyncRun
from togglsync.schemas.auth import User
from togglsync.schemas.sync import JobReport, PaginatedSyncRuns, SyncRunResponse
from togglsync.services.jobs import JobContext, record_time_entries
from togglsync.utils.audit_logger import create_audit_log

log = logging.getLogger(__name__)
router = APIRouter()

@router.post("/run", response_model=JobReport)
async def run_sync(
    ctx: JobContext = Depends(get_job_context),
    current_user: Annotated[User, Depends(get_current_active_user)] = None
):
    """Record new Toggl time entries into the current record table."""
    create_audit_log(
        ctx.db,
        action="sync_triggered",
        message="Manual record run requested",
        user=current_user.username if current_user else None,
        details={"trigger_type": "manual"}
    )
    report = await record_time_entries(ctx, trigger_type='manual')
    log.info(f"Manual record run finished: {report.status} ({report.message})")
    return report

@router.get("/runs", response_model=PaginatedSyncRuns)
async def get_sync_runs(
    skip: int = 0,
    limit: int = 20,
    job: Optional[str] = None,
    status: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: Annotated[User, Depends(get_current_active_user)] = None
):
    """Retrieve history of job runs, newest first."""
    q = db.query(SyncRun)
    if job:
        q = q.filter(SyncRun.job == job)
    if status and status != "all":
        q = q.filter(SyncRun.status == status)
    if start_date:
        q = q.filter(SyncRun.start_time >= datetime.fromisoformat(start_date))
    if end_date:
        q = q.filter(SyncRun.start_time <= datetime.fromisoformat(end_date + 'T23:59:59'))
    total = q.count()
    sync_runs = q.order_by(SyncRun.start_time.desc(), SyncRun.id.desc()).offset(skip).limit(limit).all()
    return PaginatedSyncRuns(
        data=[
            SyncRunResponse(
                id=sr.id,
                job=sr.job,
                trigger_type=sr.trigger_type,
                table_location=sr.table_location,
                started_at=sr.start_time.isoformat() if sr.start_time else None,
                ended_at=sr.end_time.isoformat() if sr.end_time else None,
                status=sr.status,
                outcome=sr.outcome,
                entries_fetched=sr.entries_fetched,
                entries_synced=sr.entries_synced,
                entries_failed=sr.entries_failed,
                watermark_before=sr.watermark_before,
                watermark_after=sr.watermark_after,
                error_message=sr.error_message
            )
            for sr in sync_runs
        ],
        total=total
    )
