from enum import Enum
from typing import Dict

class OutcomeCode(Enum):
    SYNCED = "SYNCED"
    NO_NEW_ENTRIES = "NO_NEW_ENTRIES"
    UPDATED = "UPDATED"
    NO_UPDATES = "NO_UPDATES"
    TAGGED = "TAGGED"
    NO_TAG_CONFIGURED = "NO_TAG_CONFIGURED"
    NO_TAG_TARGETS = "NO_TAG_TARGETS"
    TABLE_CREATED = "TABLE_CREATED"
    TABLE_CURRENT = "TABLE_CURRENT"
    LOCKED = "LOCKED"
    FAILED = "FAILED"

# Outcomes that end a run without doing anything; logged, never notified
NO_OP_OUTCOMES = {
    OutcomeCode.NO_NEW_ENTRIES,
    OutcomeCode.NO_UPDATES,
    OutcomeCode.NO_TAG_CONFIGURED,
    OutcomeCode.NO_TAG_TARGETS,
    OutcomeCode.TABLE_CURRENT,
    OutcomeCode.LOCKED,
}

def explain_outcome(code: OutcomeCode, context: Dict) -> str:
    templates = {
        OutcomeCode.SYNCED: "New records added: {count}. Last time entry ID: {watermark}.",
        OutcomeCode.NO_NEW_ENTRIES: "No new time entry to record since ID {watermark}.",
        OutcomeCode.UPDATED: "Updated {count} time entries: {ids}.",
        OutcomeCode.NO_UPDATES: "No updates.",
        OutcomeCode.TAGGED: "Tags {tags} added to {count} time entries.",
        OutcomeCode.NO_TAG_CONFIGURED: "No tag configured for auto-tagging.",
        OutcomeCode.NO_TAG_TARGETS: "No time entry eligible for tagging.",
        OutcomeCode.TABLE_CREATED: "Created new record table {name} for {year}.",
        OutcomeCode.TABLE_CURRENT: "Use current table {name}.",
        OutcomeCode.LOCKED: "Another run holds the lock for {location}; skipped.",
        OutcomeCode.FAILED: "Error: {detail}",
    }
    template = templates.get(code, templates[OutcomeCode.FAILED])
    return template.format(**{**context, "detail": context.get("detail", "")})
