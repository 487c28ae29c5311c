import pytest

from togglsync.connectors.base import CalendarRequestError
from togglsync.constants.outcomes import OutcomeCode
from togglsync.exceptions import ConfigurationError
from togglsync.services.name_index import build_name_index
from togglsync.services.sync_service import admit

from fakes import PRIVATE_WID, make_entry


@pytest.fixture
def table(ctx):
    return ctx.store.create_table(2024, "Toggl_Record_2024_tester")


def test_admit_filters_watermark_and_running():
    entries = [make_entry(98), make_entry(101), make_entry(102, duration=-1709283600)]
    assert [e.id for e in admit(entries, 100)] == [101]


@pytest.mark.asyncio
async def test_sync_records_only_new_finished_entries(ctx, toggl, calendar, table):
    ctx.watermarks.advance(100)
    for entry in (make_entry(98), make_entry(101, pid=11, tags=["a", "b"]), make_entry(102, duration=-1)):
        toggl.entries[entry.id] = entry

    result = await ctx.sync_service().sync(table.location, await build_name_index(toggl))

    assert result.outcome == OutcomeCode.SYNCED
    assert result.fetched == 3
    assert result.new_watermark == 101
    assert ctx.watermarks.get() == 101

    rows = ctx.store.get_rows(table.location)
    assert [r.time_entry_id for r in rows] == [101]
    row = rows[0]
    assert row.workspace == "Work"
    assert row.project == "Alpha"
    assert row.tags == "a,b"
    assert row.calendar_id == "cal-work"
    assert row.ical_id == "evt-1"
    assert row.update_flag is None

    event = calendar.events[("cal-work", "evt-1")]
    assert event.title == "[Alpha] work"
    assert event.description == "Time Entry ID: 101\nWorkspace: Work\nTags: a,b"


@pytest.mark.asyncio
async def test_sync_is_idempotent(ctx, toggl, calendar, table):
    toggl.entries[1] = make_entry(1)
    toggl.entries[2] = make_entry(2, wid=PRIVATE_WID)
    service = ctx.sync_service()
    name_index = await build_name_index(toggl)

    first = await service.sync(table.location, name_index)
    second = await service.sync(table.location, name_index)

    assert first.outcome == OutcomeCode.SYNCED
    assert [r.calendar_id for r in first.appended_rows] == ["cal-work", "cal-private"]
    assert second.outcome == OutcomeCode.NO_NEW_ENTRIES
    assert second.new_watermark == 2
    assert len(ctx.store.get_rows(table.location)) == 2
    assert len(calendar.events) == 2


@pytest.mark.asyncio
async def test_missing_calendar_fails_before_any_event(ctx, toggl, calendar, table):
    ctx.settings.calendar_ids = {"Work": "cal-work"}
    toggl.entries[1] = make_entry(1)
    toggl.entries[2] = make_entry(2, wid=PRIVATE_WID)

    with pytest.raises(ConfigurationError, match="Private"):
        await ctx.sync_service().sync(table.location, await build_name_index(toggl))

    assert calendar.events == {}
    assert ctx.store.get_rows(table.location) == []
    assert ctx.watermarks.get() == 0


@pytest.mark.asyncio
async def test_watermark_never_regresses(ctx, toggl, table):
    ctx.watermarks.advance(500)
    toggl.entries[10] = make_entry(10)

    result = await ctx.sync_service().sync(table.location, await build_name_index(toggl), watermark=5)

    assert result.outcome == OutcomeCode.SYNCED
    assert result.new_watermark == 500
    assert ctx.watermarks.get() == 500


@pytest.mark.asyncio
async def test_calendar_failure_appends_nothing(ctx, toggl, calendar, table):
    calendar.fail_create_times = 1
    toggl.entries[1] = make_entry(1)

    with pytest.raises(CalendarRequestError):
        await ctx.sync_service().sync(table.location, await build_name_index(toggl))

    assert ctx.store.get_rows(table.location) == []
    assert ctx.watermarks.get() == 0
