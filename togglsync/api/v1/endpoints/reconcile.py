from typing import Annotated, Optional
from fastapi import APIRouter, Depends, Query

from togglsync.api.deps import get_job_context
from togglsync.auth import get_current_active_user
from togglsync.schemas.auth import User
from togglsync.schemas.sync import JobReport, UpdateTogglReport
from togglsync.services.jobs import JobContext, update_time_entries, update_toggl

router = APIRouter()

@router.post("/run", response_model=JobReport)
async def run_reconcile(
    table_location: Optional[str] = Query(None, description="Record table to reconcile; defaults to the current one"),
    ctx: JobContext = Depends(get_job_context),
    current_user: Annotated[User, Depends(get_current_active_user)] = None
):
    """Push flagged rows (updateFlag ones digit 1) back to Toggl and the calendar."""
    return await update_time_entries(ctx, table_location=table_location, trigger_type='manual')

@router.post("/update-toggl", response_model=UpdateTogglReport)
async def run_update_toggl(
    table_location: Optional[str] = Query(None, description="Record table to reconcile; defaults to the current one"),
    ctx: JobContext = Depends(get_job_context),
    current_user: Annotated[User, Depends(get_current_active_user)] = None
):
    """Stop the running entry, record new entries, then reconcile flagged rows."""
    return await update_toggl(ctx, table_location=table_location, trigger_type='manual')
