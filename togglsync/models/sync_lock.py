"""Lock rows guarding a record table against overlapping jobs."""

from sqlalchemy import Column, Integer, String, DateTime
from togglsync.database import Base


class SyncLock(Base):
    """A held lock; the unique key makes a second INSERT fail while it exists."""

    __tablename__ = "sync_locks"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String(255), nullable=False, unique=True)
    owner = Column(String(100), nullable=False)
    acquired_at = Column(DateTime(timezone=True), nullable=False)

    def __repr__(self):
        return f"<SyncLock(key='{self.key}', owner='{self.owner}')>"
