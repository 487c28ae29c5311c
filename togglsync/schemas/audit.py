from typing import Optional, Dict, Any, List
from datetime import datetime
from pydantic import BaseModel, ConfigDict


class AuditLogBase(BaseModel):
    action: str
    message: str
    table_location: Optional[str] = None
    time_entry_id: Optional[int] = None
    user: Optional[str] = None
    details: Optional[Dict[str, Any]] = None


class AuditLogInDB(AuditLogBase):
    id: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PaginatedAuditLogs(BaseModel):
    data: List[AuditLogInDB]
    total: int
