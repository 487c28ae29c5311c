"""Registry of record tables, one per recording year."""

from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from togglsync.database import Base


class RecordTable(Base):
    """Maps a recording period (calendar year) to the location of its record table."""

    __tablename__ = "record_tables"

    id = Column(Integer, primary_key=True, index=True)
    year = Column(Integer, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    location = Column(String(255), nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<RecordTable(year={self.year}, location='{self.location}')>"
