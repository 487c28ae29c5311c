import logging
from typing import Dict, List, Optional

from pydantic import BaseModel

from togglsync.connectors.base import BaseCalendarConnector, BaseTimeTrackingConnector, TogglTimeEntry
from togglsync.constants.outcomes import OutcomeCode
from togglsync.exceptions import ConfigurationError
from togglsync.schemas.record import RecordRowData
from togglsync.services.name_index import NameIndex
from togglsync.services.normalizer import (
    NormalizerService,
    calendar_description,
    calendar_title,
    parse_timestamp,
    tag_string,
)
from togglsync.services.properties import WatermarkStore
from togglsync.services.record_table import RecordTableStore

log = logging.getLogger(__name__)


class SyncResult(BaseModel):
    appended_rows: List[RecordRowData] = []
    new_watermark: int
    fetched: int = 0
    outcome: OutcomeCode


def admit(entries: List[TogglTimeEntry], watermark: int) -> List[TogglTimeEntry]:
    """Entries newer than the watermark that are not running, in fetch order."""
    return [e for e in entries if e.id > watermark and e.duration >= 0]


class SyncService:
    """
    Records new Toggl time entries: one calendar event and one record row per entry,
    then advances the watermark.
    """

    def __init__(
        self,
        connector: BaseTimeTrackingConnector,
        calendar: BaseCalendarConnector,
        store: RecordTableStore,
        watermarks: WatermarkStore,
        normalizer: NormalizerService,
        calendar_ids: Dict[str, str]
    ):
        self.connector = connector
        self.calendar = calendar
        self.store = store
        self.watermarks = watermarks
        self.normalizer = normalizer
        self.calendar_ids = dict(calendar_ids)

    def _check_calendars(self, entries: List[TogglTimeEntry], name_index: NameIndex) -> None:
        missing = sorted({
            name_index.workspace_name(e.wid) or str(e.wid)
            for e in entries
            if name_index.workspace_name(e.wid) not in self.calendar_ids
        })
        if missing:
            raise ConfigurationError(f"No calendar configured for workspace(s): {', '.join(missing)}")

    async def sync(
        self,
        table_location: str,
        name_index: NameIndex,
        watermark: Optional[int] = None
    ) -> SyncResult:
        """
        Appends every finished entry with an ID above the watermark to the table.
        Calendar events are created before the batch append; a failure in between leaves
        events without rows, and the entries are picked up again on the next run.
        """
        if watermark is None:
            watermark = self.watermarks.get()

        entries = await self.connector.list_time_entries()
        new_entries = admit(entries, watermark)
        log.info(f"Sync: {len(entries)} fetched, {len(new_entries)} newer than ID {watermark} and finished")

        if not new_entries:
            return SyncResult(new_watermark=watermark, fetched=len(entries), outcome=OutcomeCode.NO_NEW_ENTRIES)

        self._check_calendars(new_entries, name_index)

        timestamp = self.normalizer.now_local()
        rows: List[RecordRowData] = []
        for entry in new_entries:
            workspace_name = name_index.workspace_name(entry.wid)
            project_name = name_index.project_name(entry.pid)
            calendar_id = self.calendar_ids[workspace_name]
            event = await self.calendar.create_event(
                calendar_id,
                calendar_title(project_name, entry.description),
                parse_timestamp(entry.start),
                self.normalizer.stop_time(entry),
                description=calendar_description(entry.id, workspace_name, tag_string(entry.tags))
            )
            log.debug(f"Time entry {entry.id} mirrored as event {event.id} in {calendar_id}")
            rows.append(self.normalizer.to_record_row(entry, name_index, event.id, calendar_id, timestamp))

        self.store.append_rows(table_location, rows)
        new_watermark = self.watermarks.advance(self.store.max_time_entry_id(table_location, watermark))
        log.info(f"Recorded {len(rows)} Toggl time entries in '{table_location}', watermark {new_watermark}")

        return SyncResult(
            appended_rows=rows,
            new_watermark=new_watermark,
            fetched=len(entries),
            outcome=OutcomeCode.SYNCED
        )
