from typing import Annotated
from fastapi import APIRouter, Depends

from togglsync.api.deps import get_job_context
from togglsync.auth import get_current_active_user
from togglsync.schemas.auth import User
from togglsync.schemas.sync import JobReport
from togglsync.services.jobs import JobContext, check_rollover

router = APIRouter()

@router.post("/check", response_model=JobReport)
async def run_rollover_check(
    ctx: JobContext = Depends(get_job_context),
    current_user: Annotated[User, Depends(get_current_active_user)] = None
):
    """Create this year's record table if the year changed."""
    return await check_rollover(ctx, trigger_type='manual')
