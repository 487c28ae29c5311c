"""Key/value properties: watermark, recording year and saved API token."""

from sqlalchemy import Column, Integer, String, DateTime, Text, UniqueConstraint
from sqlalchemy.sql import func
from togglsync.database import Base


class Property(Base):
    """A scoped property, e.g. scope='user:me@example.com', key='lastTimeEntryId'."""

    __tablename__ = "properties"

    id = Column(Integer, primary_key=True, index=True)
    scope = Column(String(255), nullable=False)  # 'global' or 'user:<email>'
    key = Column(String(100), nullable=False)
    value = Column(Text, nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint('scope', 'key', name='uq_properties_scope_key'),
    )

    def __repr__(self):
        return f"<Property(scope='{self.scope}', key='{self.key}')>"
