import logging
from typing import Any, Dict, List

from pydantic import BaseModel

from togglsync.connectors.base import (
    BaseCalendarConnector,
    BaseTimeTrackingConnector,
    TimeEntrySpec,
    TogglTimeEntry,
)
from togglsync.constants.outcomes import OutcomeCode
from togglsync.exceptions import ConfigurationError, InconsistentRemoteStateError
from togglsync.models.record_row import RecordRow
from togglsync.services.normalizer import (
    NormalizerService,
    calendar_description,
    calendar_title,
    format_for_update,
    parse_tags,
    parse_timestamp,
)
from togglsync.services.properties import WatermarkStore
from togglsync.services.record_table import RecordTableStore
from togglsync.services.update_flag import UpdateFlag

log = logging.getLogger(__name__)


class RowError(BaseModel):
    time_entry_id: int
    error: str
    snapshot: Dict[str, Any] = {}  # {"row": ..., "old": ..., "new": ...} as far as the update got


class ReconcileResult(BaseModel):
    updated_count: int = 0
    updated_ids: List[int] = []
    errors: List[RowError] = []
    snapshots: List[Dict[str, Any]] = []  # {"row": ..., "old": ..., "new": ...} per updated entry
    outcome: OutcomeCode


class ReconciliationService:
    """
    Pushes user edits of flagged record rows back to Toggl and the calendar.

    A row is flagged when the ones digit of its updateFlag is 1. If the row's workspace
    still matches the remote entry, the entry is updated in place; otherwise a new entry
    is created in the row's workspace, the old one is deleted and the row takes the new ID.
    The calendar event is always replaced.
    """

    def __init__(
        self,
        connector: BaseTimeTrackingConnector,
        calendar: BaseCalendarConnector,
        store: RecordTableStore,
        watermarks: WatermarkStore,
        normalizer: NormalizerService,
        calendar_ids: Dict[str, str],
        created_with: str
    ):
        self.connector = connector
        self.calendar = calendar
        self.store = store
        self.watermarks = watermarks
        self.normalizer = normalizer
        self.calendar_ids = dict(calendar_ids)
        self.created_with = created_with

    def build_spec(self, row: RecordRow) -> TimeEntrySpec:
        start = parse_timestamp(row.start)
        stop = parse_timestamp(row.stop)
        return TimeEntrySpec(
            wid=row.workspace_id,
            pid=row.project_id,
            description=row.description or "",
            tags=parse_tags(row.tags),
            start=format_for_update(start),
            stop=format_for_update(stop),
            duration=int((stop - start).total_seconds()),
            created_with=self.created_with
        )

    async def _reconcile_row(self, row: RecordRow, snapshot: Dict[str, Any]) -> None:
        """Applies one flagged row, filling snapshot with the remote entry before and after."""
        flag = UpdateFlag.parse(row.update_flag)
        target_calendar = self.calendar_ids.get(row.workspace)
        if not target_calendar:
            raise ConfigurationError(f"No calendar configured for workspace '{row.workspace}'")

        spec = self.build_spec(row)
        time_entry_id = row.time_entry_id
        old_entry = await self.connector.get_time_entry(time_entry_id)
        snapshot["old"] = old_entry.model_dump()
        if old_entry.wid is None:
            raise InconsistentRemoteStateError(
                f"Workspace ID of time entry {time_entry_id} not available; could not complete update",
                time_entry_id
            )

        new_entry: TogglTimeEntry
        if old_entry.wid == row.workspace_id:
            new_entry = await self.connector.update_time_entry(time_entry_id, spec)
            snapshot["new"] = new_entry.model_dump()
        else:
            log.info(f"Time entry {time_entry_id} moves workspace {old_entry.wid} -> {row.workspace_id}; recreating")
            new_entry = await self.connector.create_time_entry(spec)
            await self.connector.delete_time_entry(time_entry_id)
            snapshot["new"] = new_entry.model_dump()
            time_entry_id = new_entry.id
            self.store.update_range(row, "time_entry_id", [time_entry_id])
            self.watermarks.advance(self.store.max_time_entry_id(row.table_location))

        if row.calendar_id and row.ical_id:
            await self.calendar.delete_event(row.calendar_id, row.ical_id)
        event = await self.calendar.create_event(
            target_calendar,
            calendar_title(row.project, new_entry.description),
            parse_timestamp(row.start),
            parse_timestamp(row.stop),
            description=calendar_description(time_entry_id, row.workspace, row.tags or "")
        )

        last_modified = self.normalizer.localize(new_entry.at) if new_entry.at else None
        self.store.update_range(row, "last_modified", [
            last_modified,
            event.id,
            self.normalizer.now_local(),
            target_calendar,
            flag.mark_applied().value,
        ])

    async def reconcile(self, rows: List[RecordRow]) -> ReconcileResult:
        """
        Applies every pending row. Rows are independent: a failing row is logged and
        collected in errors while the rest proceed. A failed row keeps its pending flag,
        so the next run retries it.
        """
        pending = [row for row in rows if UpdateFlag.parse(row.update_flag).pending]
        log.info(f"Reconcile: {len(pending)} of {len(rows)} rows flagged for update")
        if not pending:
            return ReconcileResult(outcome=OutcomeCode.NO_UPDATES)

        updated_ids: List[int] = []
        errors: List[RowError] = []
        snapshots: List[Dict[str, Any]] = []
        for row in pending:
            original_id = row.time_entry_id
            snapshot: Dict[str, Any] = {"row": row.as_dict()}
            try:
                await self._reconcile_row(row, snapshot)
            except Exception as e:
                self.store.db.rollback()
                log.error(f"Failed to update time entry {original_id}: {e}", exc_info=True)
                log.debug(f"State of time entry {original_id} at failure: {snapshot}")
                errors.append(RowError(time_entry_id=original_id, error=str(e), snapshot=snapshot))
                continue
            updated_ids.append(row.time_entry_id)
            snapshots.append(snapshot)
            log.debug(f"Updated time entry {original_id}: {snapshot}")

        outcome = OutcomeCode.UPDATED if updated_ids else OutcomeCode.FAILED
        log.info(f"Reconcile finished: {len(updated_ids)} updated, {len(errors)} failed")
        return ReconcileResult(
            updated_count=len(updated_ids),
            updated_ids=updated_ids,
            errors=errors,
            snapshots=snapshots,
            outcome=outcome
        )
