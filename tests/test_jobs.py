from datetime import date

import pytest

from togglsync.connectors.base import TogglRequestError
from togglsync.models.audit_log import AuditLog
from togglsync.models.sync_run import SyncRun
from togglsync.services.jobs import (
    auto_tag,
    check_rollover,
    record_time_entries,
    update_time_entries,
    update_toggl,
)

from fakes import make_entry


def actions(db):
    return [a.action for a in db.query(AuditLog).order_by(AuditLog.id).all()]


def subjects(notifier):
    return [subject for subject, _ in notifier.sent]


@pytest.fixture
def table(ctx):
    return ctx.store.create_table(ctx.today().year, f"Toggl_Record_{ctx.today().year}_tester")


@pytest.mark.asyncio
async def test_record_creates_table_on_first_run(ctx, toggl, notifier):
    toggl.entries[1] = make_entry(1)

    report = await record_time_entries(ctx)

    assert report.status == "completed"
    assert report.outcome == "SYNCED"
    assert report.entries_synced == 1
    assert report.watermark == 1
    assert report.table_location == f"Toggl_Record_{ctx.today().year}_tester"
    assert "table_created" in actions(ctx.db)
    assert "record_completed" in actions(ctx.db)
    assert "[Toggl] New Record Table Created" in subjects(notifier)

    runs = {run.job: run for run in ctx.db.query(SyncRun).all()}
    assert runs["record"].status == "completed"
    assert runs["record"].watermark_before == 0
    assert runs["record"].watermark_after == 1
    assert runs["rollover"].outcome == "TABLE_CREATED"


@pytest.mark.asyncio
async def test_record_noop(ctx, table):
    report = await record_time_entries(ctx)

    assert report.status == "noop"
    assert report.outcome == "NO_NEW_ENTRIES"
    assert actions(ctx.db) == ["record_noop"]


@pytest.mark.asyncio
async def test_record_skips_when_table_locked(ctx, toggl, table):
    toggl.entries[1] = make_entry(1)
    ctx.locks.acquire(table.location, "other-run")

    report = await record_time_entries(ctx)

    assert report.status == "locked"
    assert toggl.count("list") == 0
    assert ctx.store.get_rows(table.location) == []


@pytest.mark.asyncio
async def test_record_failure_is_reported_and_mailed(ctx, toggl, notifier, table):
    toggl.fail_list = TogglRequestError("Toggl API request failed with status 500", status_code=500)

    report = await record_time_entries(ctx)

    assert report.status == "failed"
    assert "status 500" in report.error_detail
    assert "record_failed" in actions(ctx.db)
    subject, body = notifier.sent[0]
    assert subject.startswith("[Error] Recording Toggl Time Entry")
    assert table.location in body
    run = ctx.db.query(SyncRun).one()
    assert run.status == "failed"
    # the lock is released after a failure
    assert ctx.locks.acquire(table.location, "next") == "next"


@pytest.mark.asyncio
async def test_auto_tag_without_tags_is_noop(ctx, toggl, notifier, table):
    toggl.entries[1] = make_entry(1)
    retries = []

    report = await auto_tag(ctx, on_failure=lambda: retries.append(1))

    assert report.outcome == "NO_TAG_CONFIGURED"
    assert report.status == "noop"
    assert retries == []
    assert notifier.sent == []


@pytest.mark.asyncio
async def test_auto_tag_applies_configured_tags(ctx, toggl, table):
    ctx.settings.auto_tags = ["billable"]
    ctx.settings.auto_tag_workspace_id = 5
    toggl.entries[1] = make_entry(1)

    report = await auto_tag(ctx)

    assert report.outcome == "TAGGED"
    assert report.time_entry_ids == [1]
    assert report.message == "Tags billable added to 1 time entries."
    assert "auto_tag_completed" in actions(ctx.db)


@pytest.mark.asyncio
async def test_auto_tag_mapping_wins(ctx, toggl, table):
    ctx.settings.auto_tags = ["ignored"]
    ctx.settings.auto_tag_mapping = {7: ["home"]}
    toggl.entries[1] = make_entry(1)
    toggl.entries[2] = make_entry(2, wid=7)

    report = await auto_tag(ctx)

    assert report.time_entry_ids == [2]
    assert toggl.entries[2].tags == ["home"]


@pytest.mark.asyncio
async def test_auto_tag_failure_schedules_retry(ctx, toggl, notifier, table):
    ctx.settings.auto_tags = ["x"]
    toggl.fail_list = TogglRequestError("Toggl API request failed with status 503", status_code=503)
    retries = []

    report = await auto_tag(ctx, on_failure=lambda: retries.append(1))

    assert report.status == "failed"
    assert retries == [1]
    assert subjects(notifier)[0].startswith("[Error] Auto-tagging Toggl Time Entries")


@pytest.mark.asyncio
async def test_update_time_entries(ctx, toggl, notifier, table):
    toggl.entries[1] = make_entry(1)
    await record_time_entries(ctx)
    row = ctx.store.get_rows(table.location)[0]
    row.description = "edited"
    row.update_flag = 1
    ctx.db.commit()

    report = await update_time_entries(ctx)

    assert report.outcome == "UPDATED"
    assert report.time_entry_ids == [1]
    assert report.message == "Updated 1 time entries: 1."
    log = ctx.db.query(AuditLog).filter(AuditLog.action == "entries_updated").one()
    assert log.details["snapshots"][0]["new"]["description"] == "edited"
    assert notifier.sent == []


@pytest.mark.asyncio
async def test_update_time_entries_reports_row_errors(ctx, toggl, table):
    toggl.entries[1] = make_entry(1)
    await record_time_entries(ctx)
    row = ctx.store.get_rows(table.location)[0]
    row.update_flag = 1
    ctx.db.commit()
    del toggl.entries[1]

    report = await update_time_entries(ctx, table_location=table.location)

    assert report.status == "failed"
    assert report.entries_failed == 1
    assert report.errors[0]["time_entry_id"] == 1
    assert "entry_update_failed" in actions(ctx.db)
    failure = ctx.db.query(AuditLog).filter(AuditLog.action == "entry_update_failed").one()
    assert failure.time_entry_id == 1
    assert failure.details["row"]["time_entry_id"] == 1
    assert failure.details["row"]["update_flag"] == 1
    assert "old" not in failure.details


@pytest.mark.asyncio
async def test_update_toggl_stops_records_and_reconciles(ctx, toggl, table):
    toggl.entries[1] = make_entry(1)
    toggl.entries[2] = make_entry(2, duration=-1)

    report = await update_toggl(ctx)

    assert report.stopped_time_entry_id == 2
    assert report.record.time_entry_ids == [1, 2]
    assert report.reconcile.outcome == "NO_UPDATES"
    stop_log = ctx.db.query(AuditLog).filter(AuditLog.action == "running_entry_stopped").one()
    assert stop_log.time_entry_id == 2
    assert stop_log.table_location == table.location


@pytest.mark.asyncio
async def test_check_rollover_new_year_flushes_old_table(ctx, toggl, notifier):
    await check_rollover(ctx, today=date(2024, 12, 31))
    toggl.entries[1] = make_entry(1)

    report = await check_rollover(ctx, today=date(2025, 1, 1))

    assert report.outcome == "TABLE_CREATED"
    assert report.table_location == "Toggl_Record_2025_tester"
    assert [r.time_entry_id for r in ctx.store.get_rows("Toggl_Record_2024_tester")] == [1]
    assert ctx.store.get_rows("Toggl_Record_2025_tester") == []
    assert subjects(notifier).count("[Toggl] New Record Table Created") == 2


@pytest.mark.asyncio
async def test_check_rollover_same_year(ctx, notifier):
    await check_rollover(ctx, today=date(2024, 5, 1))

    report = await check_rollover(ctx, today=date(2024, 5, 2))

    assert report.outcome == "TABLE_CURRENT"
    assert report.status == "noop"
    assert report.message == "Use current table Toggl_Record_2024_tester."
    assert len(notifier.sent) == 1
