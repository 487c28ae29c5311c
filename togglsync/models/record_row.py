"""Record row model: one flattened Toggl time entry per row of a record table."""

from sqlalchemy import BigInteger, Boolean, Column, Index, Integer, String, Text
from togglsync.database import Base

# Fixed column layout of a record table: (header, attribute).
COLUMNS = [
    ("TIME_ENTRY_ID", "time_entry_id"),
    ("WORKSPACE_ID", "workspace_id"),
    ("WORKSPACE", "workspace"),
    ("PROJECT_ID", "project_id"),
    ("PROJECT", "project"),
    ("DESCRIPTION", "description"),
    ("TAGS", "tags"),
    ("START", "start"),
    ("STOP", "stop"),
    ("DURATION_SEC", "duration_sec"),
    ("USER_ID", "user_id"),
    ("GUID", "guid"),
    ("BILLABLE", "billable"),
    ("DURONLY", "duronly"),
    ("LAST_MODIFIED", "last_modified"),
    ("iCalID", "ical_id"),
    ("TIMESTAMP", "timestamp"),
    ("CALENDAR_ID", "calendar_id"),
    ("updateFlag", "update_flag"),
]

ATTRIBUTES = [attr for _, attr in COLUMNS]


class RecordRow(Base):
    """A persisted, denormalized projection of a Toggl time entry."""

    __tablename__ = "record_rows"

    # Append order within the whole store; row order inside a table follows it
    id = Column(Integer, primary_key=True, autoincrement=True)
    table_location = Column(String(255), nullable=False, index=True)

    time_entry_id = Column(BigInteger, nullable=False)
    workspace_id = Column(BigInteger, nullable=False)
    workspace = Column(String(255), nullable=True)
    project_id = Column(BigInteger, nullable=True)
    project = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    tags = Column(Text, nullable=False, default="")
    start = Column(String(40), nullable=False)
    stop = Column(String(40), nullable=False)
    duration_sec = Column(Integer, nullable=False)
    user_id = Column(BigInteger, nullable=True)
    guid = Column(String(64), nullable=True)
    billable = Column(Boolean, nullable=False, default=False)
    duronly = Column(Boolean, nullable=False, default=False)
    last_modified = Column(String(40), nullable=True)
    ical_id = Column(String(255), nullable=True)
    timestamp = Column(String(40), nullable=True)
    calendar_id = Column(String(255), nullable=True)
    update_flag = Column(Integer, nullable=True)  # NULL == empty cell == 0

    __table_args__ = (
        Index('idx_record_rows_table_entry', 'table_location', 'time_entry_id'),
    )

    def as_dict(self) -> dict:
        """Column values keyed by attribute, in the fixed column order."""
        return {attr: getattr(self, attr) for attr in ATTRIBUTES}

    def __repr__(self):
        return f"<RecordRow(id={self.id}, table='{self.table_location}', time_entry_id={self.time_entry_id}, flag={self.update_flag})>"
