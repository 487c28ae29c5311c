from typing import Annotated
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from togglsync.auth import get_current_active_user
from togglsync.config import settings
from togglsync.connectors.toggl_connector import TogglConnector
from togglsync.database import get_db
from togglsync.schemas.auth import User
from togglsync.schemas.sync import TokenSaveRequest, TokenStatus
from togglsync.services.properties import TokenStore
from togglsync.utils.audit_logger import create_audit_log

log = logging.getLogger(__name__)
router = APIRouter()

@router.get("/toggl", response_model=TokenStatus)
async def check_toggl_token(
    db: Session = Depends(get_db),
    current_user: Annotated[User, Depends(get_current_active_user)] = None
):
    """Report whether a Toggl API token is available, masked."""
    saved = TokenStore(db, settings).get()
    if saved:
        return TokenStatus(configured=True, source="saved", masked_token=TokenStore.mask(saved))
    if settings.toggl_api_token:
        return TokenStatus(configured=True, source="environment", masked_token=TokenStore.mask(settings.toggl_api_token))
    return TokenStatus(configured=False)

@router.put("/toggl", response_model=TokenStatus)
async def save_toggl_token(
    request: TokenSaveRequest,
    db: Session = Depends(get_db),
    current_user: Annotated[User, Depends(get_current_active_user)] = None
):
    """Save (encrypted) the Toggl API token, optionally validating it against the API first."""
    token = request.api_token.strip()
    if not token:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="API token must not be empty")

    if request.validate_token:
        connector = TogglConnector({"base_url": settings.toggl_base_url, "api_token": token})
        try:
            valid = await connector.validate_connection()
        finally:
            await connector.close()
        if not valid:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Toggl rejected the API token")

    TokenStore(db, settings).save(token)
    create_audit_log(db, action="api_token_saved", message="Toggl API token saved",
                     user=current_user.username if current_user else None)
    return TokenStatus(configured=True, source="saved", masked_token=TokenStore.mask(token))

@router.delete("/toggl", status_code=status.HTTP_204_NO_CONTENT)
async def delete_toggl_token(
    db: Session = Depends(get_db),
    current_user: Annotated[User, Depends(get_current_active_user)] = None
):
    """Delete the saved Toggl API token."""
    if not TokenStore(db, settings).delete():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No saved API token")
    create_audit_log(db, action="api_token_deleted", message="Toggl API token deleted",
                     user=current_user.username if current_user else None)
