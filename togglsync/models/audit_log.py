"""Audit log model: the append-only log sink of every job outcome."""

from sqlalchemy import BigInteger, Column, Integer, String, DateTime, Text, Index, JSON
from sqlalchemy.sql import func
from togglsync.database import Base


class AuditLog(Base):
    """Audit trail for all system operations."""

    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)

    # Action details
    action = Column(String(100), nullable=False)  # 'sync_completed', 'tag_failed', 'entry_created', ...
    table_location = Column(String(255), nullable=True)  # Record table the action touched
    time_entry_id = Column(BigInteger, nullable=True)

    # Actor and message
    user = Column(String(100), nullable=True)
    message = Column(Text, nullable=False)
    details = Column(JSON, nullable=True)  # Snapshots of remote entries, counts, error info

    # Timestamp
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    __table_args__ = (
        Index('idx_audit_logs_action', 'action'),
        Index('idx_audit_logs_table_created', 'table_location', 'created_at'),
    )

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', table='{self.table_location}')>"
