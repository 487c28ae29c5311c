"""OAuth2 password login for the single operator whose Toggl account is recorded."""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Annotated
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext

from togglsync.config import settings
from togglsync.schemas.auth import TokenData, User, UserInDB

log = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ALGORITHM = "HS256"

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token")

def verify_password(plain_password, hashed_password):
    return pwd_context.verify(plain_password, hashed_password)

def get_password_hash(password):
    return pwd_context.hash(password)

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    claims = dict(data)
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    claims["exp"] = datetime.now(timezone.utc) + lifetime
    return jwt.encode(claims, settings.secret_key, algorithm=ALGORITHM)

# The operator account comes from settings; the password is hashed on first use
_OPERATOR = None

def get_admin_user() -> UserInDB:
    global _OPERATOR
    if _OPERATOR is None:
        _OPERATOR = UserInDB(
            username=settings.admin_username,
            email=settings.user_email,
            full_name=settings.user_name,
            disabled=False,
            hashed_password=get_password_hash(settings.admin_password)
        )
    return _OPERATOR

def get_user(username: str) -> Optional[UserInDB]:
    """The operator, looked up by login name or by the recorded user's e-mail."""
    operator = get_admin_user()
    if username in (operator.username, operator.email):
        return operator
    return None

def authenticate_user(username: str, password: str):
    user = get_user(username)
    if user is None or not verify_password(password, user.hashed_password):
        log.warning(f"Rejected login for '{username}'")
        return False
    return user

def get_current_user(token: Annotated[str, Depends(oauth2_scheme)]) -> UserInDB:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError as e:
        log.debug(f"Bearer token rejected: {e}")
        raise credentials_exception
    token_data = TokenData(username=payload.get("sub"))
    user = get_user(token_data.username) if token_data.username else None
    if user is None:
        raise credentials_exception
    return user

def get_current_active_user(current_user: Annotated[User, Depends(get_current_user)]):
    if current_user.disabled:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Inactive user")
    return current_user
