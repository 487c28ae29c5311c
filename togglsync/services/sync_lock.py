import logging
import uuid
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Iterator, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from togglsync.exceptions import SyncLockBusyError
from togglsync.models.sync_lock import SyncLock

log = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SyncLockManager:
    """
    Database-backed mutual exclusion between jobs touching the same record table.
    A lock older than timeout_minutes is considered abandoned and taken over.
    """

    def __init__(self, db: Session, timeout_minutes: int = 30):
        self.db = db
        self.timeout = timedelta(minutes=timeout_minutes)

    def acquire(self, key: str, owner: Optional[str] = None) -> str:
        owner = owner or uuid.uuid4().hex[:12]
        now = datetime.now(timezone.utc)
        existing = self.db.query(SyncLock).filter(SyncLock.key == key).first()
        if existing is not None:
            if now - _as_utc(existing.acquired_at) < self.timeout:
                raise SyncLockBusyError(key, existing.owner)
            log.warning(f"Taking over stale lock '{key}' held by {existing.owner} since {existing.acquired_at}")
            existing.owner = owner
            existing.acquired_at = now
            self.db.commit()
            return owner

        self.db.add(SyncLock(key=key, owner=owner, acquired_at=now))
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise SyncLockBusyError(key)
        log.debug(f"Lock '{key}' acquired by {owner}")
        return owner

    def release(self, key: str, owner: str) -> None:
        deleted = self.db.query(SyncLock).filter(SyncLock.key == key, SyncLock.owner == owner).delete()
        self.db.commit()
        if deleted:
            log.debug(f"Lock '{key}' released by {owner}")
        else:
            log.warning(f"Lock '{key}' was no longer held by {owner} at release")

    @contextmanager
    def hold(self, key: str, owner: Optional[str] = None) -> Iterator[str]:
        owner = self.acquire(key, owner)
        try:
            yield owner
        finally:
            self.db.rollback()
            self.release(key, owner)
