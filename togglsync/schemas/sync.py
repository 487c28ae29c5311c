from typing import Any, Dict, Optional, List
from pydantic import BaseModel


class JobReport(BaseModel):
    """Outcome of one job invocation, as returned by the trigger endpoints."""
    job: str  # 'record', 'auto_tag', 'reconcile', 'rollover', 'update_toggl'
    status: str  # 'completed', 'noop', 'locked', 'failed'
    outcome: str
    message: str
    table_location: Optional[str] = None
    sync_run_id: Optional[int] = None
    entries_fetched: int = 0
    entries_synced: int = 0
    entries_failed: int = 0
    watermark: Optional[int] = None
    time_entry_ids: List[int] = []
    errors: List[Dict[str, Any]] = []
    error_detail: Optional[str] = None  # Detailed error message when status is 'failed'


class UpdateTogglReport(BaseModel):
    stopped_time_entry_id: Optional[int] = None
    record: JobReport
    reconcile: JobReport


class SyncRunResponse(BaseModel):
    id: int
    job: str
    trigger_type: str
    table_location: Optional[str] = None
    started_at: Optional[str] = None
    ended_at: Optional[str] = None
    status: str
    outcome: Optional[str] = None
    entries_fetched: Optional[int] = None
    entries_synced: Optional[int] = None
    entries_failed: Optional[int] = None
    watermark_before: Optional[int] = None
    watermark_after: Optional[int] = None
    error_message: Optional[str] = None


class PaginatedSyncRuns(BaseModel):
    data: List[SyncRunResponse]
    total: int


class TokenStatus(BaseModel):
    configured: bool
    source: Optional[str] = None  # 'saved' | 'environment'
    masked_token: Optional[str] = None


class TokenSaveRequest(BaseModel):
    api_token: str
    validate_token: bool = True
