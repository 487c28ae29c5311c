from typing import Optional, List
from pydantic import BaseModel, ConfigDict


class RecordRowData(BaseModel):
    """One record table row in the fixed column order, before it is persisted."""
    time_entry_id: int
    workspace_id: int
    workspace: str
    project_id: Optional[int] = None
    project: str = "NA"
    description: str = ""
    tags: str = ""  # comma-separated tag names
    start: str  # localized, yyyy-MM-dd'T'HH:mm:ssXXX
    stop: str
    duration_sec: int
    user_id: Optional[int] = None
    guid: Optional[str] = None
    billable: bool = False
    duronly: bool = False
    last_modified: Optional[str] = None
    ical_id: Optional[str] = None
    timestamp: Optional[str] = None  # local time the row was written
    calendar_id: Optional[str] = None
    update_flag: Optional[int] = None  # empty on append


class RecordRowOut(RecordRowData):
    id: int
    table_location: str

    model_config = ConfigDict(from_attributes=True)


class RecordTableOut(BaseModel):
    id: int
    year: int
    name: str
    location: str

    model_config = ConfigDict(from_attributes=True)


class PaginatedRecordRows(BaseModel):
    data: List[RecordRowOut]
    total: int


class RecordRowEdit(BaseModel):
    """User edits of a recorded row; saving them flags the row for reconciliation."""
    workspace_id: Optional[int] = None
    workspace: Optional[str] = None
    project_id: Optional[int] = None
    project: Optional[str] = None
    description: Optional[str] = None
    tags: Optional[str] = None
    start: Optional[str] = None
    stop: Optional[str] = None
