"""
Job orchestration: one invocation of record / auto-tag / reconcile / rollover.

Each job opens a SyncRun row, takes the lock of the record table it touches, runs the
service, writes the outcome to the audit log and, for failures of the record, auto-tag
and rollover jobs, sends an email. Jobs never raise; they report.
"""
import logging
import traceback
from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import AsyncIterator, Callable, Optional
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from togglsync.config import Settings
from togglsync.connectors.base import BaseCalendarConnector, BaseTimeTrackingConnector
from togglsync.connectors.google_calendar_connector import GoogleCalendarConnector
from togglsync.connectors.toggl_connector import TogglConnector
from togglsync.constants.outcomes import NO_OP_OUTCOMES, OutcomeCode, explain_outcome
from togglsync.exceptions import (
    ConfigurationError,
    NoTagConfiguredError,
    NoTagTargetsError,
    SyncLockBusyError,
)
from togglsync.models.record_table import RecordTable
from togglsync.models.sync_run import SyncRun
from togglsync.schemas.sync import JobReport, UpdateTogglReport
from togglsync.services.auto_tagger import AutoTagger
from togglsync.services.name_index import build_name_index
from togglsync.services.normalizer import NormalizerService
from togglsync.services.notifier import EmailNotifier
from togglsync.services.properties import PropertyStore, TokenStore, WatermarkStore, state_scope
from togglsync.services.reconciler import ReconciliationService
from togglsync.services.record_table import RecordTableStore
from togglsync.services.rollover import RolloverService
from togglsync.services.sync_lock import SyncLockManager
from togglsync.services.sync_service import SyncService
from togglsync.utils.audit_logger import create_audit_log

log = logging.getLogger(__name__)

ROLLOVER_LOCK_KEY = "rollover"


class JobContext:
    """Collaborators of one job invocation. Nothing here outlives the run."""

    def __init__(
        self,
        db: Session,
        settings: Settings,
        connector: BaseTimeTrackingConnector,
        calendar: Optional[BaseCalendarConnector] = None,
        notifier: Optional[EmailNotifier] = None
    ):
        self.db = db
        self.settings = settings
        self.connector = connector
        self._calendar = calendar
        self.notifier = notifier or EmailNotifier(settings)
        self.store = RecordTableStore(db)
        self.watermarks = WatermarkStore(PropertyStore(db, state_scope(settings)))
        self.normalizer = NormalizerService(settings.time_zone)
        self.locks = SyncLockManager(db, settings.lock_timeout_minutes)

    @property
    def calendar(self) -> BaseCalendarConnector:
        if self._calendar is None:
            raise ConfigurationError("Google Calendar credentials are not configured")
        return self._calendar

    def now(self) -> datetime:
        return datetime.now(ZoneInfo(self.settings.time_zone))

    def today(self) -> date:
        return self.now().date()

    def sync_service(self) -> SyncService:
        return SyncService(
            self.connector, self.calendar, self.store, self.watermarks,
            self.normalizer, self.settings.calendar_ids
        )

    def reconciler(self) -> ReconciliationService:
        return ReconciliationService(
            self.connector, self.calendar, self.store, self.watermarks,
            self.normalizer, self.settings.calendar_ids, self.settings.created_with
        )

    def auto_tagger(self) -> AutoTagger:
        return AutoTagger(self.connector, self.watermarks)

    def rollover_service(self, flush=None) -> RolloverService:
        return RolloverService(
            self.store, self.watermarks, self.settings.record_table_name_template,
            self.settings.user_name, flush=flush
        )

    async def close(self):
        for client in (self.connector, self._calendar):
            close = getattr(client, "close", None)
            if close is not None:
                await close()


def resolve_toggl_token(db: Session, settings: Settings) -> str:
    """The saved (encrypted) token wins over the environment one."""
    token = TokenStore(db, settings).get() or settings.toggl_api_token
    if not token:
        raise ConfigurationError("No Toggl API token saved or configured")
    return token


def build_context(
    db: Session,
    settings: Settings,
    connector: Optional[BaseTimeTrackingConnector] = None,
    calendar: Optional[BaseCalendarConnector] = None,
    notifier: Optional[EmailNotifier] = None
) -> JobContext:
    if connector is None:
        connector = TogglConnector({
            "base_url": settings.toggl_base_url,
            "api_token": resolve_toggl_token(db, settings),
        })
    if calendar is None and settings.google_refresh_token:
        calendar = GoogleCalendarConnector({
            "base_url": settings.google_calendar_base_url,
            "client_id": settings.google_client_id,
            "client_secret": settings.google_client_secret,
            "refresh_token": settings.google_refresh_token,
        })
    return JobContext(db, settings, connector, calendar, notifier)


@asynccontextmanager
async def open_context(db: Session, settings: Settings, **overrides) -> AsyncIterator[JobContext]:
    ctx = build_context(db, settings, **overrides)
    try:
        yield ctx
    finally:
        await ctx.close()


# Run bookkeeping

def _start_run(ctx: JobContext, job: str, trigger_type: str, table_location: Optional[str]) -> SyncRun:
    sync_run = SyncRun(
        job=job,
        trigger_type=trigger_type,
        table_location=table_location,
        start_time=ctx.now(),
        status='running'
    )
    ctx.db.add(sync_run)
    ctx.db.commit()
    return sync_run


def _finish_run(ctx: JobContext, sync_run: SyncRun, report: JobReport) -> JobReport:
    sync_run.status = report.status
    sync_run.outcome = report.outcome
    sync_run.end_time = ctx.now()
    sync_run.entries_fetched = report.entries_fetched
    sync_run.entries_synced = report.entries_synced
    sync_run.entries_failed = report.entries_failed
    sync_run.watermark_after = report.watermark
    sync_run.error_message = report.error_detail
    ctx.db.commit()
    report.sync_run_id = sync_run.id
    return report


def _status_for(outcome: OutcomeCode) -> str:
    if outcome == OutcomeCode.LOCKED:
        return 'locked'
    if outcome == OutcomeCode.FAILED:
        return 'failed'
    if outcome in NO_OP_OUTCOMES:
        return 'noop'
    return 'completed'


def _report(job: str, outcome: OutcomeCode, table_location: Optional[str], context: dict, **fields) -> JobReport:
    return JobReport(
        job=job,
        status=_status_for(outcome),
        outcome=outcome.value,
        message=explain_outcome(outcome, context),
        table_location=table_location,
        **fields
    )


def _failure(ctx: JobContext, job: str, table_location: Optional[str], error: Exception, subject: str) -> JobReport:
    """Logs, audits and notifies a job-level failure."""
    detail = f"{type(error).__name__}: {error}"
    log.error(f"Job '{job}' failed: {detail}", exc_info=True)
    ctx.db.rollback()
    create_audit_log(
        ctx.db,
        action=f"{job}_failed",
        message=explain_outcome(OutcomeCode.FAILED, {"detail": detail}),
        table_location=table_location,
        user=ctx.settings.user_name,
        details={"traceback": traceback.format_exc()}
    )
    if subject:
        ctx.notifier.send(
            f"{subject} {ctx.normalizer.now_local()}",
            f"{traceback.format_exc()}\n\nRecord table:\n{table_location or '(none)'}"
        )
    return _report(job, OutcomeCode.FAILED, table_location, {"detail": detail}, error_detail=detail)


def _locked(ctx: JobContext, job: str, table_location: Optional[str], error: SyncLockBusyError) -> JobReport:
    log.warning(f"Job '{job}' skipped: {error}")
    return _report(job, OutcomeCode.LOCKED, table_location, {"location": error.key})


# Jobs

async def current_table(ctx: JobContext, trigger_type: str = 'manual') -> RecordTable:
    """The table in use; runs the rollover check when none is registered yet."""
    table = ctx.rollover_service().current_table(ctx.today())
    if table is not None:
        return table
    log.info("No record table registered; running rollover check")
    report = await check_rollover(ctx, trigger_type=trigger_type)
    if report.status == 'failed':
        raise ConfigurationError(f"Could not create a record table: {report.error_detail}")
    return ctx.store.get_table(report.table_location)


async def record_time_entries(
    ctx: JobContext,
    trigger_type: str = 'manual',
    table: Optional[RecordTable] = None
) -> JobReport:
    """Records new Toggl time entries into the current (or given) record table."""
    job = 'record'
    try:
        table = table or await current_table(ctx, trigger_type)
    except Exception as e:
        return _failure(ctx, job, None, e, "[Error] Recording Toggl Time Entry")
    location = table.location
    sync_run = _start_run(ctx, job, trigger_type, location)

    try:
        with ctx.locks.hold(location, owner=f"{job}-{sync_run.id}"):
            watermark = ctx.watermarks.get()
            sync_run.watermark_before = watermark
            ctx.db.commit()
            name_index = await build_name_index(ctx.connector)
            result = await ctx.sync_service().sync(location, name_index, watermark)
    except SyncLockBusyError as e:
        return _finish_run(ctx, sync_run, _locked(ctx, job, location, e))
    except Exception as e:
        return _finish_run(ctx, sync_run, _failure(ctx, job, location, e, "[Error] Recording Toggl Time Entry"))

    context = {"count": len(result.appended_rows), "watermark": result.new_watermark}
    report = _report(
        job, result.outcome, location, context,
        entries_fetched=result.fetched,
        entries_synced=len(result.appended_rows),
        watermark=result.new_watermark,
        time_entry_ids=[row.time_entry_id for row in result.appended_rows]
    )
    create_audit_log(
        ctx.db,
        action="record_completed" if result.appended_rows else "record_noop",
        message=report.message,
        table_location=location,
        user=ctx.settings.user_name,
        details={"time_entry_ids": report.time_entry_ids, "watermark": result.new_watermark}
    )
    return _finish_run(ctx, sync_run, report)


async def auto_tag(
    ctx: JobContext,
    trigger_type: str = 'manual',
    table: Optional[RecordTable] = None,
    on_failure: Optional[Callable[[], None]] = None
) -> JobReport:
    """
    Tags not-yet-recorded entries. The per-workspace mapping is used when configured,
    otherwise the target workspace and tag list. on_failure is called after a failure so
    the caller can schedule a retry.
    """
    job = 'auto_tag'
    settings = ctx.settings
    try:
        table = table or await current_table(ctx, trigger_type)
    except Exception as e:
        report = _failure(ctx, job, None, e, "[Error] Auto-tagging Toggl Time Entries")
        if on_failure is not None:
            on_failure()
        return report
    location = table.location
    sync_run = _start_run(ctx, job, trigger_type, location)

    try:
        with ctx.locks.hold(location, owner=f"{job}-{sync_run.id}"):
            tagger = ctx.auto_tagger()
            if settings.auto_tag_mapping:
                result = await tagger.auto_tag_by_workspace(settings.auto_tag_mapping)
            else:
                result = await tagger.auto_tag(settings.auto_tag_workspace_id, settings.auto_tags)
    except SyncLockBusyError as e:
        return _finish_run(ctx, sync_run, _locked(ctx, job, location, e))
    except (NoTagConfiguredError, NoTagTargetsError) as e:
        outcome = OutcomeCode.NO_TAG_CONFIGURED if isinstance(e, NoTagConfiguredError) else OutcomeCode.NO_TAG_TARGETS
        log.info(f"Auto-tag: {e}")
        report = _report(job, outcome, location, {})
        create_audit_log(ctx.db, action="auto_tag_noop", message=report.message,
                         table_location=location, user=settings.user_name)
        return _finish_run(ctx, sync_run, report)
    except Exception as e:
        report = _finish_run(ctx, sync_run, _failure(ctx, job, location, e, "[Error] Auto-tagging Toggl Time Entries"))
        if on_failure is not None:
            on_failure()
        return report

    tags = sorted({t for batch in result.batches for t in batch.tags})
    report = _report(
        job, result.outcome, location,
        {"tags": ", ".join(tags), "count": len(result.tagged_ids)},
        entries_synced=len(result.tagged_ids),
        time_entry_ids=result.tagged_ids
    )
    create_audit_log(
        ctx.db,
        action="auto_tag_completed",
        message=report.message,
        table_location=location,
        user=settings.user_name,
        details={"batches": [batch.model_dump() for batch in result.batches]}
    )
    return _finish_run(ctx, sync_run, report)


async def update_time_entries(
    ctx: JobContext,
    table_location: Optional[str] = None,
    trigger_type: str = 'manual'
) -> JobReport:
    """Reconciles the flagged rows of a record table (default: the current one)."""
    job = 'reconcile'
    try:
        table = ctx.store.get_table(table_location) if table_location else await current_table(ctx, trigger_type)
    except Exception as e:
        return _failure(ctx, job, table_location, e, "")
    location = table.location
    sync_run = _start_run(ctx, job, trigger_type, location)

    try:
        with ctx.locks.hold(location, owner=f"{job}-{sync_run.id}"):
            sync_run.watermark_before = ctx.watermarks.get()
            ctx.db.commit()
            result = await ctx.reconciler().reconcile(ctx.store.get_rows(location))
            watermark = ctx.watermarks.get()
    except SyncLockBusyError as e:
        return _finish_run(ctx, sync_run, _locked(ctx, job, location, e))
    except Exception as e:
        return _finish_run(ctx, sync_run, _failure(ctx, job, location, e, ""))

    user = ctx.settings.user_name
    for error in result.errors:
        create_audit_log(
            ctx.db, action="entry_update_failed", message=f"Error updating time entry {error.time_entry_id}: {error.error}",
            table_location=location, time_entry_id=error.time_entry_id, user=user,
            details=error.snapshot
        )

    context = {"count": result.updated_count, "ids": ", ".join(str(i) for i in result.updated_ids)}
    if result.outcome == OutcomeCode.FAILED:
        context["detail"] = "; ".join(f"{e.time_entry_id}: {e.error}" for e in result.errors)
    report = _report(
        job, result.outcome, location, context,
        entries_synced=result.updated_count,
        entries_failed=len(result.errors),
        watermark=watermark,
        time_entry_ids=result.updated_ids,
        errors=[e.model_dump() for e in result.errors],
        error_detail=context.get("detail")
    )
    create_audit_log(
        ctx.db,
        action="entries_updated" if result.updated_count else "reconcile_noop",
        message=report.message,
        table_location=location,
        user=user,
        details={"snapshots": result.snapshots} if result.snapshots else None
    )
    return _finish_run(ctx, sync_run, report)


async def update_toggl(
    ctx: JobContext,
    table_location: Optional[str] = None,
    trigger_type: str = 'manual'
) -> UpdateTogglReport:
    """Stops the running entry, records everything new, then applies flagged rows."""
    try:
        stopped = await ctx.connector.stop_running_time_entry()
    except Exception as e:
        log.error(f"Could not stop the running time entry: {e}")
        stopped = None
    if stopped is not None:
        location = table_location
        if location is None:
            table = ctx.rollover_service().current_table(ctx.today())
            location = table.location if table else None
        create_audit_log(
            ctx.db,
            action="running_entry_stopped",
            message=f"Running time entry {stopped.id} stopped for time entry update",
            table_location=location,
            time_entry_id=stopped.id,
            user=ctx.settings.user_name,
            details=stopped.model_dump()
        )
    record_report = await record_time_entries(ctx, trigger_type=trigger_type)
    reconcile_report = await update_time_entries(ctx, table_location=table_location, trigger_type=trigger_type)
    return UpdateTogglReport(
        stopped_time_entry_id=stopped.id if stopped else None,
        record=record_report,
        reconcile=reconcile_report
    )


async def check_rollover(
    ctx: JobContext,
    today: Optional[date] = None,
    trigger_type: str = 'manual'
) -> JobReport:
    """Creates this year's record table when the year changed, flushing the previous one first."""
    job = 'rollover'
    today = today or ctx.today()
    sync_run = _start_run(ctx, job, trigger_type, None)

    async def flush(previous: RecordTable) -> None:
        await auto_tag(ctx, trigger_type=trigger_type, table=previous)
        await record_time_entries(ctx, trigger_type=trigger_type, table=previous)

    try:
        with ctx.locks.hold(ROLLOVER_LOCK_KEY, owner=f"{job}-{sync_run.id}"):
            result = await ctx.rollover_service(flush=flush).check(today)
    except SyncLockBusyError as e:
        return _finish_run(ctx, sync_run, _locked(ctx, job, None, e))
    except Exception as e:
        return _finish_run(ctx, sync_run, _failure(ctx, job, None, e, "[Toggl] Error in New Table Check"))

    table = result.table
    report = _report(job, result.outcome, table.location, {"name": table.name, "year": result.year})
    if result.outcome == OutcomeCode.TABLE_CREATED:
        create_audit_log(ctx.db, action="table_created", message="[Rollover] Created this record table.",
                         table_location=table.location, user=ctx.settings.user_name,
                         details={"year": result.year,
                                  "previous": result.previous_table.location if result.previous_table else None})
        ctx.notifier.send(
            "[Toggl] New Record Table Created",
            f"[Rollover] New record table for {result.year} created:\n{table.location}"
        )
    else:
        create_audit_log(ctx.db, action="table_checked", message="[Rollover] Checked: use current table",
                         table_location=table.location, user=ctx.settings.user_name)
    sync_run.table_location = table.location
    return _finish_run(ctx, sync_run, report)
