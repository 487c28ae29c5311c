#!/usr/bin/env python
"""
Report the watermark a record table implies (its largest time entry ID) and optionally store it.
Run with: python scripts/last_time_entry_id.py [--table LOCATION] [--apply]
Uses DATABASE_URL and the watermark scope settings from .env.
"""

import argparse
from datetime import datetime
from zoneinfo import ZoneInfo

from togglsync.config import settings
from togglsync.database import SessionLocal, init_db
from togglsync.services.properties import PropertyStore, WatermarkStore, state_scope
from togglsync.services.record_table import RecordTableStore
from togglsync.services.rollover import select_current_table


def main():
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("--table", help="Record table location (default: the current table)")
    parser.add_argument("--apply", action="store_true", help="Advance the stored watermark to this value")
    args = parser.parse_args()

    init_db()
    db = SessionLocal()
    try:
        store = RecordTableStore(db)
        watermarks = WatermarkStore(PropertyStore(db, state_scope(settings)))
        if args.table:
            table = store.get_table(args.table)
        else:
            year = datetime.now(ZoneInfo(settings.time_zone)).year
            table = select_current_table(store.list_tables(), watermarks.get_recording_year(year))
            if table is None:
                print("No record table registered yet.")
                return

        table_max = store.max_time_entry_id(table.location)
        print(f"Table '{table.location}': lastTimeEntryId should be {table_max}")
        print(f"Stored lastTimeEntryId: {watermarks.get()}")
        if args.apply:
            print(f"Watermark now {watermarks.advance(table_max)}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
