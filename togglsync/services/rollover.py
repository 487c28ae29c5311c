import logging
from datetime import date
from typing import Awaitable, Callable, List, Optional

from pydantic import BaseModel, ConfigDict

from togglsync.constants.outcomes import OutcomeCode
from togglsync.models.record_table import RecordTable
from togglsync.services.properties import WatermarkStore
from togglsync.services.record_table import RecordTableStore

log = logging.getLogger(__name__)


def render_table_name(template: str, year: int, user_name: str) -> str:
    return template.replace("{{year}}", str(year)).replace("{{userName}}", user_name)


def select_current_table(registry: List[RecordTable], recording_year: int) -> Optional[RecordTable]:
    """
    The table rows are recorded into: the newest table registered for recording_year,
    otherwise the table of the latest year. None for an empty registry.
    """
    if not registry:
        return None
    same_year = [t for t in registry if t.year == recording_year]
    if same_year:
        return max(same_year, key=lambda t: t.id)
    return max(registry, key=lambda t: (t.year, t.id))


class RolloverResult(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    outcome: OutcomeCode
    table: RecordTable
    previous_table: Optional[RecordTable] = None
    year: int


class RolloverService:
    """Starts a new record table when the calendar year changes."""

    def __init__(
        self,
        store: RecordTableStore,
        watermarks: WatermarkStore,
        name_template: str,
        user_name: str,
        flush: Optional[Callable[[RecordTable], Awaitable[None]]] = None
    ):
        self.store = store
        self.watermarks = watermarks
        self.name_template = name_template
        self.user_name = user_name
        self.flush = flush

    def current_table(self, today: date) -> Optional[RecordTable]:
        recording_year = self.watermarks.get_recording_year(today.year)
        return select_current_table(self.store.list_tables(), recording_year)

    async def check(self, today: date) -> RolloverResult:
        """
        Creates and registers this year's table when the recording year is behind or no
        table exists for the current year. The table in use is flushed first (auto-tag,
        then record) so the old period receives every entry up to the switch.
        """
        current_year = today.year
        recording_year = self.watermarks.get_recording_year(current_year)
        current_year_table = self.store.get_table_for_year(current_year)

        if current_year <= recording_year and current_year_table is not None:
            log.info(f"Rollover check: use current table '{current_year_table.location}'")
            return RolloverResult(outcome=OutcomeCode.TABLE_CURRENT, table=current_year_table, year=current_year)

        previous = select_current_table(self.store.list_tables(), recording_year)
        if previous is not None and self.flush is not None:
            log.info(f"Rollover: flushing '{previous.location}' before switching to {current_year}")
            await self.flush(previous)

        name = render_table_name(self.name_template, current_year, self.user_name)
        table = self.store.create_table(current_year, name)
        self.watermarks.set_recording_year(current_year)
        log.info(f"Rollover: created record table '{table.location}' for {current_year}")
        return RolloverResult(
            outcome=OutcomeCode.TABLE_CREATED,
            table=table,
            previous_table=previous,
            year=current_year
        )
