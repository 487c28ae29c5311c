"""Sync run model for tracking job executions."""

from sqlalchemy import BigInteger, Column, Integer, String, DateTime, Text
from sqlalchemy.sql import func
from togglsync.database import Base


class SyncRun(Base):
    """Job execution history and status tracking."""

    __tablename__ = "sync_runs"

    id = Column(Integer, primary_key=True, index=True)

    # Execution details
    job = Column(String(50), nullable=False, default='record')  # 'record', 'auto_tag', 'reconcile', 'rollover'
    trigger_type = Column(String(50), nullable=False, default='manual')  # 'scheduled', 'manual', 'retry'
    table_location = Column(String(255), nullable=True)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=True)
    status = Column(String(50), nullable=False)  # 'running', 'completed', 'noop', 'locked', 'failed'
    outcome = Column(String(50), nullable=True)

    # Statistics
    entries_fetched = Column(Integer, default=0, nullable=False)
    entries_synced = Column(Integer, default=0, nullable=False)
    entries_failed = Column(Integer, default=0, nullable=False)
    watermark_before = Column(BigInteger, nullable=True)
    watermark_after = Column(BigInteger, nullable=True)

    # Error information
    error_message = Column(Text, nullable=True)

    # Timestamp
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<SyncRun(id={self.id}, job='{self.job}', status='{self.status}', synced={self.entries_synced})>"
