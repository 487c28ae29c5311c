import logging
from typing import List, Optional, Sequence

from sqlalchemy import func
from sqlalchemy.orm import Session

from togglsync.exceptions import RecordTableNotFoundError
from togglsync.models.record_row import ATTRIBUTES, RecordRow
from togglsync.models.record_table import RecordTable
from togglsync.schemas.record import RecordRowData

log = logging.getLogger(__name__)


class RecordTableStore:
    """
    Tabular store of record rows plus the year -> table registry.
    Rows are addressed by table location and kept in append order.
    """

    def __init__(self, db: Session):
        self.db = db

    # Registry

    def list_tables(self) -> List[RecordTable]:
        return self.db.query(RecordTable).order_by(RecordTable.year, RecordTable.id).all()

    def get_table_for_year(self, year: int) -> Optional[RecordTable]:
        return (
            self.db.query(RecordTable)
            .filter(RecordTable.year == year)
            .order_by(RecordTable.id.desc())
            .first()
        )

    def get_table(self, location: str) -> RecordTable:
        table = self.db.query(RecordTable).filter(RecordTable.location == location).first()
        if table is None:
            raise RecordTableNotFoundError(f"No record table at location '{location}'")
        return table

    def create_table(self, year: int, name: str) -> RecordTable:
        """Registers a new, empty record table; the location is the name, suffixed if taken."""
        location = name
        suffix = 2
        while self.db.query(RecordTable).filter(RecordTable.location == location).first():
            location = f"{name}_{suffix}"
            suffix += 1
        table = RecordTable(year=year, name=name, location=location)
        self.db.add(table)
        self.db.commit()
        self.db.refresh(table)
        log.info(f"Registered record table '{location}' for {year}")
        return table

    # Rows

    def get_rows(self, location: str) -> List[RecordRow]:
        return (
            self.db.query(RecordRow)
            .filter(RecordRow.table_location == location)
            .order_by(RecordRow.id)
            .all()
        )

    def append_rows(self, location: str, rows: Sequence[RecordRowData]) -> List[RecordRow]:
        """Appends all rows in one commit, preserving their order."""
        if not rows:
            return []
        db_rows = [RecordRow(table_location=location, **row.model_dump()) for row in rows]
        self.db.add_all(db_rows)
        self.db.commit()
        log.debug(f"Appended {len(db_rows)} rows to '{location}'")
        return db_rows

    def update_range(self, row: RecordRow, start_attr: str, values: Sequence) -> RecordRow:
        """
        Overwrites consecutive columns of one row, starting at start_attr in the fixed
        column order, and commits.
        """
        start = ATTRIBUTES.index(start_attr)
        if start + len(values) > len(ATTRIBUTES):
            raise ValueError(f"{len(values)} values do not fit from column '{start_attr}'")
        for attr, value in zip(ATTRIBUTES[start:], values):
            setattr(row, attr, value)
        self.db.commit()
        self.db.refresh(row)
        return row

    def max_time_entry_id(self, location: str, initial: int = 0) -> int:
        """Largest time entry ID in the table, or initial when it is larger or the table is empty."""
        current_max = self.db.query(func.max(RecordRow.time_entry_id)).filter(
            RecordRow.table_location == location
        ).scalar()
        if current_max is None:
            return initial
        return max(int(current_max), initial)
