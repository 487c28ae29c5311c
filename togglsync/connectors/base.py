from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class TogglTimeEntry(BaseModel):
    """Time entry as returned by the Toggl API (v8)."""
    model_config = ConfigDict(extra="ignore")

    id: int = Field(..., description="Toggl time entry ID; strictly increasing")
    wid: Optional[int] = Field(None, description="Workspace ID")
    pid: Optional[int] = Field(None, description="Project ID, absent for entries without project")
    description: str = Field("", description="Free-text description")
    tags: Optional[List[str]] = Field(None, description="Tag names")
    start: str = Field(..., description="ISO 8601 start time")
    stop: Optional[str] = Field(None, description="ISO 8601 stop time, absent while running")
    duration: int = Field(..., description="Duration in seconds; negative while the entry is running")
    uid: Optional[int] = Field(None, description="Owning user ID")
    guid: Optional[str] = Field(None, description="Client-generated GUID")
    billable: bool = False
    duronly: bool = False
    at: Optional[str] = Field(None, description="ISO 8601 last-modified timestamp")

    @property
    def is_running(self) -> bool:
        return self.duration < 0


class TogglWorkspace(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    name: str


class TogglProject(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    wid: Optional[int] = None
    name: str


class TimeEntrySpec(BaseModel):
    """Body of a create/update request: {"time_entry": {...}}."""
    wid: int
    pid: Optional[int] = None
    description: str = ""
    tags: List[str] = []
    start: str = Field(..., description="UTC, yyyy-MM-dd'T'HH:mm:ss.SSS'Z'")
    stop: str = Field(..., description="UTC, yyyy-MM-dd'T'HH:mm:ss.SSS'Z'")
    duration: int
    created_with: str

    def to_payload(self) -> Dict[str, Any]:
        return {"time_entry": self.model_dump()}


class CalendarEvent(BaseModel):
    """A calendar event mirrored from a time entry."""
    id: str
    calendar_id: str
    title: str
    description: str = ""
    start: datetime
    end: datetime


class TogglRequestError(Exception):
    """A Toggl API call failed (non-2xx response or transport error). Never retried by the client."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None, url: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body
        self.url = url


class CalendarRequestError(Exception):
    """A calendar API call failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class BaseTimeTrackingConnector(ABC):
    """Abstract Base Class for time tracking connectors."""

    def __init__(self, config: Dict[str, Any]):
        self.config = config

    @abstractmethod
    async def list_workspaces(self) -> List[TogglWorkspace]:
        pass

    @abstractmethod
    async def list_workspace_projects(self, workspace_id: int) -> List[TogglProject]:
        pass

    @abstractmethod
    async def list_time_entries(self, start_date: Optional[str] = None, end_date: Optional[str] = None) -> List[TogglTimeEntry]:
        """Fetches time entries started in the range, or the recent window when no range is given."""
        pass

    @abstractmethod
    async def get_time_entry(self, time_entry_id: int) -> TogglTimeEntry:
        pass

    @abstractmethod
    async def create_time_entry(self, spec: TimeEntrySpec) -> TogglTimeEntry:
        pass

    @abstractmethod
    async def update_time_entry(self, time_entry_id: int, spec: TimeEntrySpec) -> TogglTimeEntry:
        pass

    @abstractmethod
    async def delete_time_entry(self, time_entry_id: int) -> bool:
        pass

    @abstractmethod
    async def bulk_add_tags(self, time_entry_ids: List[int], tags: List[str]) -> List[TogglTimeEntry]:
        pass

    @abstractmethod
    async def stop_running_time_entry(self) -> Optional[TogglTimeEntry]:
        pass


class BaseCalendarConnector(ABC):
    """Abstract Base Class for calendar connectors: create and delete events by ID."""

    @abstractmethod
    async def create_event(
        self,
        calendar_id: str,
        title: str,
        start: datetime,
        end: datetime,
        description: str = ""
    ) -> CalendarEvent:
        pass

    @abstractmethod
    async def delete_event(self, calendar_id: str, event_id: str) -> None:
        pass
