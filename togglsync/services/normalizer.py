from datetime import datetime, timedelta, timezone
from typing import List, Optional
from zoneinfo import ZoneInfo

from togglsync.connectors.base import TogglTimeEntry
from togglsync.schemas.record import RecordRowData
from togglsync.services.name_index import NameIndex


def parse_timestamp(value: str) -> datetime:
    """Parses an ISO 8601 timestamp; a trailing 'Z' means UTC. Naive values are taken as UTC."""
    parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_local(value, time_zone: str) -> str:
    """
    Formats a timestamp in the deployment time zone as yyyy-MM-dd'T'HH:mm:ssXXX,
    e.g. 2024-03-01T09:30:00+09:00. A zero offset is written as 'Z'.
    """
    moment = parse_timestamp(value) if isinstance(value, str) else value
    local = moment.astimezone(ZoneInfo(time_zone))
    offset = local.utcoffset()
    if not offset:
        return local.strftime("%Y-%m-%dT%H:%M:%SZ")
    text = local.strftime("%Y-%m-%dT%H:%M:%S%z")
    return f"{text[:-2]}:{text[-2:]}"


def format_for_update(value) -> str:
    """Write-path format for the Toggl API: UTC, yyyy-MM-dd'T'HH:mm:ss.SSS'Z'."""
    moment = parse_timestamp(value) if isinstance(value, str) else value
    utc = moment.astimezone(timezone.utc)
    return f"{utc.strftime('%Y-%m-%dT%H:%M:%S')}.{utc.microsecond // 1000:03d}Z"


def tag_string(tags: Optional[List[str]]) -> str:
    return ",".join(tags) if tags else ""


def parse_tags(value: Optional[str]) -> List[str]:
    """Splits a comma-separated tag cell; empty pieces are dropped."""
    if not value:
        return []
    return [piece.strip() for piece in value.split(",") if piece.strip()]


def calendar_title(project_name: str, description: str) -> str:
    return f"[{project_name}] {description or ''}"


def calendar_description(time_entry_id: int, workspace_name: str, tags: str) -> str:
    return f"Time Entry ID: {time_entry_id}\nWorkspace: {workspace_name}\nTags: {tags}"


class NormalizerService:
    """
    Flattens Toggl time entries into record rows: names resolved through the name index,
    timestamps localized to the configured time zone.
    """

    def __init__(self, time_zone: str):
        self.time_zone = time_zone

    def localize(self, value) -> str:
        return format_local(value, self.time_zone)

    def now_local(self) -> str:
        return format_local(datetime.now(timezone.utc), self.time_zone)

    @staticmethod
    def stop_time(entry: TogglTimeEntry) -> datetime:
        """Stop time of a finished entry; derived from start + duration when Toggl omits it."""
        if entry.stop:
            return parse_timestamp(entry.stop)
        return parse_timestamp(entry.start) + timedelta(seconds=entry.duration)

    def to_record_row(
        self,
        entry: TogglTimeEntry,
        name_index: NameIndex,
        ical_id: Optional[str],
        calendar_id: Optional[str],
        timestamp: Optional[str] = None
    ) -> RecordRowData:
        """Builds a row for a finished entry; the update flag cell stays empty."""
        return RecordRowData(
            time_entry_id=entry.id,
            workspace_id=entry.wid,
            workspace=name_index.workspace_name(entry.wid),
            project_id=entry.pid,
            project=name_index.project_name(entry.pid),
            description=entry.description or "",
            tags=tag_string(entry.tags),
            start=self.localize(entry.start),
            stop=self.localize(self.stop_time(entry)),
            duration_sec=entry.duration,
            user_id=entry.uid,
            guid=entry.guid,
            billable=entry.billable,
            duronly=entry.duronly,
            last_modified=self.localize(entry.at) if entry.at else None,
            ical_id=ical_id,
            timestamp=timestamp or self.now_local(),
            calendar_id=calendar_id,
            update_flag=None
        )
