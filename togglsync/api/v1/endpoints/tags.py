from typing import Annotated
from fastapi import APIRouter, Depends

from togglsync.api.deps import get_job_context
from togglsync.auth import get_current_active_user
from togglsync.schemas.auth import User
from togglsync.schemas.sync import JobReport
from togglsync.scheduler import schedule_auto_tag_retry
from togglsync.services.jobs import JobContext, auto_tag

router = APIRouter()

@router.post("/run", response_model=JobReport)
async def run_auto_tag(
    ctx: JobContext = Depends(get_job_context),
    current_user: Annotated[User, Depends(get_current_active_user)] = None
):
    """Add the configured tags to finished time entries that are not recorded yet."""
    return await auto_tag(ctx, trigger_type='manual', on_failure=schedule_auto_tag_retry)
