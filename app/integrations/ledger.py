"""
Attendance ledger: mirrors attendance records into a spreadsheet for human review.

The database is the system of record; the sheet is best-effort. Rows are keyed by
(Employee ID, formatted Date) and matched by exact string equality, so every date and
time string is produced by the Clock. Each sync reads every row (O(rows) per call),
which is fine for a small team but is the first thing to revisit if the sheet grows.
"""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date, datetime
from typing import List, Optional, Protocol

from fastapi import Request

from app.core.clock import Clock
from app.core.exceptions import ExternalSyncError

logger = logging.getLogger(__name__)

HEADER = ["Date", "Employee ID", "Name", "Status", "Check-In Time", "Check-Out Time"]
DATE_COL, EMPLOYEE_ID_COL, NAME_COL, STATUS_COL, CHECK_IN_COL, CHECK_OUT_COL = range(len(HEADER))
DEFAULT_STATUS = "present"


class SheetBackend(Protocol):
    """Row-oriented view of one worksheet. Row numbers are 1-based, row 1 is the header."""

    def get_all_values(self) -> List[List[str]]:
        ...

    def write_row(self, row_number: int, values: List[str]) -> None:
        ...


@dataclass
class LedgerEntry:
    """What the ledger needs to know about one attendance record."""

    day: date
    employee_code: str
    employee_name: str
    status: Optional[str] = None
    submitted_at: Optional[datetime] = None
    checkout_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record, employee) -> "LedgerEntry":
        return cls(
            day=record.date,
            employee_code=employee.employee_code,
            employee_name=employee.name,
            status=record.status,
            submitted_at=record.submitted_at,
            checkout_at=record.checkout_at,
        )


@dataclass
class RowWrite:
    row_number: int
    values: List[str]
    action: str  # "updated" | "appended"
    separator_inserted: bool = False


def _pad(row: List[str]) -> List[str]:
    cells = [str(c) if c is not None else "" for c in row[: len(HEADER)]]
    return cells + [""] * (len(HEADER) - len(cells))


def _is_blank(cells: List[str]) -> bool:
    return all(not c.strip() for c in cells)


def plan_row_write(values: List[List[str]], entry: LedgerEntry, clock: Clock) -> RowWrite:
    """
    Decide which row to write for an entry, given the sheet's current values (header included).

    Existing (Employee ID, Date) rows are updated in place with only the fields the entry
    carries. New rows go after the last row; when the new row starts a different month
    than the last data row, one blank row is left in between as a month separator.
    """
    formatted_date = clock.format_display_date(entry.day)
    data_rows = [_pad(row) for row in values[1:]]

    for offset, cells in enumerate(data_rows):
        if _is_blank(cells):
            continue
        if cells[EMPLOYEE_ID_COL].strip() == entry.employee_code and cells[DATE_COL] == formatted_date:
            updated = list(cells)
            if entry.status:
                updated[STATUS_COL] = entry.status
            if entry.submitted_at:
                updated[CHECK_IN_COL] = clock.format_display_time(entry.submitted_at)
            if entry.checkout_at:
                updated[CHECK_OUT_COL] = clock.format_display_time(entry.checkout_at)
            return RowWrite(row_number=offset + 2, values=updated, action="updated")

    next_row = max(len(values), 1) + 1
    separator = False
    last_data = next((cells for cells in reversed(data_rows) if not _is_blank(cells)), None)
    if last_data is not None:
        last_day = clock.parse_display_date(last_data[DATE_COL])
        if last_day and (last_day.year, last_day.month) != (entry.day.year, entry.day.month):
            next_row += 1
            separator = True

    check_in = entry.submitted_at or clock.day_bounds(entry.day)[0]
    row = [
        formatted_date,
        entry.employee_code,
        entry.employee_name,
        entry.status or DEFAULT_STATUS,
        clock.format_display_time(check_in),
        clock.format_display_time(entry.checkout_at),
    ]
    return RowWrite(row_number=next_row, values=row, action="appended", separator_inserted=separator)


class AttendanceLedger:
    """
    Spreadsheet synchronizer.

    All sheet I/O runs on a single worker thread, so syncs for this sheet are applied one
    at a time in arrival order (read-all-rows-then-write has no concurrency token).
    A call that exceeds the timeout raises ExternalSyncError; if it was still queued it is
    dropped.
    """

    def __init__(self, backend: SheetBackend, clock: Clock, timeout_seconds: float = 15.0) -> None:
        self.backend = backend
        self.clock = clock
        self.timeout_seconds = timeout_seconds
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="ledger")

    def _sync_blocking(self, entry: LedgerEntry) -> RowWrite:
        values = self.backend.get_all_values()
        if not values:
            self.backend.write_row(1, list(HEADER))
            values = [list(HEADER)]
        write = plan_row_write(values, entry, self.clock)
        self.backend.write_row(write.row_number, write.values)
        return write

    async def sync(self, entry: LedgerEntry) -> None:
        loop = asyncio.get_running_loop()
        try:
            write = await asyncio.wait_for(
                loop.run_in_executor(self._executor, self._sync_blocking, entry),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            raise ExternalSyncError(
                f"Spreadsheet update timed out after {self.timeout_seconds}s for {entry.employee_code}"
            )
        except Exception as e:
            raise ExternalSyncError(f"Spreadsheet update failed: {e}") from e
        if write.separator_inserted:
            logger.info("New month detected, left a blank separator row before row %s", write.row_number)
        logger.info(
            "Ledger row %s %s for %s on %s",
            write.row_number, write.action, entry.employee_code, write.values[DATE_COL],
        )

    def close(self) -> None:
        self._executor.shutdown(wait=False)


class DisabledLedger:
    """Used when no spreadsheet is configured."""

    async def sync(self, entry: LedgerEntry) -> None:
        logger.debug("Ledger disabled, skipping sync for %s on %s", entry.employee_code, entry.day)

    def close(self) -> None:
        pass


async def sync_attendance_safely(ledger, entry: LedgerEntry) -> bool:
    """Best-effort sync for call sites on the critical path. Never raises ExternalSyncError."""
    try:
        await ledger.sync(entry)
    except ExternalSyncError as e:
        logger.warning("Ledger sync failed for %s on %s: %s", entry.employee_code, entry.day, e.message)
        return False
    return True


def build_ledger(settings, clock: Clock):
    if not settings.google_sheet_id:
        logger.info("GOOGLE_SHEET_ID not set; attendance ledger disabled")
        return DisabledLedger()

    from app.integrations.google_sheets import GoogleSheetsBackend

    backend = GoogleSheetsBackend(
        spreadsheet_id=settings.google_sheet_id,
        service_account_email=settings.google_service_account_email,
        private_key=settings.google_private_key,
        worksheet_title=settings.ledger_worksheet_title,
    )
    return AttendanceLedger(backend, clock, timeout_seconds=settings.ledger_timeout_seconds)


def get_ledger(request: Request):
    """FastAPI dependency: the ledger built in create_app."""
    return request.app.state.ledger
