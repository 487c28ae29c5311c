"""Shared FastAPI dependencies."""
from typing import AsyncIterator

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from togglsync.config import settings
from togglsync.database import get_db
from togglsync.exceptions import ConfigurationError
from togglsync.services.jobs import JobContext, build_context


async def get_job_context(db: Session = Depends(get_db)) -> AsyncIterator[JobContext]:
    """A job context for one request; connectors are closed afterwards."""
    try:
        ctx = build_context(db, settings)
    except ConfigurationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    try:
        yield ctx
    finally:
        await ctx.close()
