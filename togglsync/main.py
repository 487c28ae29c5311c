"""Main FastAPI application."""

import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Annotated

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from togglsync import __version__
from togglsync.api.v1.api import api_router
from togglsync.auth import authenticate_user, create_access_token, get_current_active_user
from togglsync.config import settings
from togglsync.database import get_db, init_db
from togglsync.schemas.auth import Token, User
from togglsync.scheduler import shutdown_scheduler, start_scheduler
from togglsync.utils.audit_logger import create_audit_log
from togglsync.utils.log_setup import configure_logging

configure_logging(settings)
log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    if settings.scheduler_enabled:
        start_scheduler()
    else:
        log.info("Scheduler disabled (SCHEDULER_ENABLED=false); jobs run only on demand")
    yield
    shutdown_scheduler()


app = FastAPI(
    title="Toggl Time Entry Sync",
    description="Records Toggl time entries into yearly record tables, mirrors them to Google Calendar and pushes edits back",
    version=__version__,
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.post("/token", response_model=Token)
async def login_for_access_token(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    db: Session = Depends(get_db)
):
    user = authenticate_user(form_data.username, form_data.password)
    if not user:
        create_audit_log(db, action="login_failed", message=f"Failed login for '{form_data.username}'",
                         user=form_data.username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    access_token_expires = timedelta(minutes=settings.access_token_expire_minutes)
    access_token = create_access_token(
        data={"sub": user.username}, expires_delta=access_token_expires
    )
    create_audit_log(db, action="login_success", message="Login", user=user.username)
    return {"access_token": access_token, "token_type": "bearer"}

@app.get("/users/me/", response_model=User)
async def read_users_me(current_user: Annotated[User, Depends(get_current_active_user)]):
    return current_user

@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": __version__
    }

@app.get("/")
async def root():
    """Root endpoint - redirect to docs."""
    return {
        "message": "Toggl Time Entry Sync API",
        "version": __version__,
        "docs": "/docs"
    }

app.include_router(api_router, prefix=settings.api_v1_str)

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    log.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"}
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000, log_level=settings.log_level.lower() if settings.log_level.upper() in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL") else "info")
