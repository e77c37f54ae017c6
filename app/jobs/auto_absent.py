"""Daily sweep that marks employees without an attendance record as absent."""

import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.auth.models import Employee
from app.core.clock import Clock
from app.core.enums import AttendanceStatus, EmployeeRole
from app.core.models import AttendanceRecord
from app.integrations.ledger import LedgerEntry, sync_attendance_safely

logger = logging.getLogger(__name__)


@dataclass
class AutoAbsentSummary:
    created: int = 0
    already_marked: int = 0
    sync_failures: int = 0
    skipped_rest_day: bool = False


async def run_auto_absent(session_factory: async_sessionmaker, ledger, clock: Clock) -> AutoAbsentSummary:
    """
    Create an "absent" record for today for every active non-admin employee who has none.

    Existing records are never touched, so running twice on the same day creates nothing
    the second time. Each insert commits on its own; a record that appears between the
    read and the insert (a late submission) is left alone.
    """
    summary = AutoAbsentSummary()
    now = clock.now()
    today = clock.normalize_to_day(now)
    if clock.is_rest_day(today):
        logger.info("Weekly rest day (%s), skipping auto-absent", clock.format_display_date(today))
        summary.skipped_rest_day = True
        return summary

    async with session_factory() as db:
        employees = (
            await db.execute(
                select(Employee)
                .where(Employee.role != EmployeeRole.ADMIN.value, Employee.is_active.is_(True))
                .order_by(Employee.employee_code)
            )
        ).scalars().all()
        marked_ids = set(
            (
                await db.execute(
                    select(AttendanceRecord.employee_id).where(AttendanceRecord.date == today)
                )
            ).scalars().all()
        )

    missing = [e for e in employees if e.id not in marked_ids]
    summary.already_marked = len(employees) - len(missing)
    logger.info(
        "Auto-absent for %s: %s employees, %s already marked",
        today, len(employees), summary.already_marked,
    )

    for employee in missing:
        record = AttendanceRecord(
            employee_id=employee.id,
            date=today,
            status=AttendanceStatus.ABSENT.value,
            submitted_at=now,
        )
        async with session_factory() as db:
            db.add(record)
            try:
                await db.commit()
            except IntegrityError:
                await db.rollback()
                logger.info("%s marked attendance during the sweep, leaving it", employee.employee_code)
                summary.already_marked += 1
                continue

        summary.created += 1
        logger.info("Marked %s (%s) absent for %s", employee.employee_code, employee.name, today)
        if not await sync_attendance_safely(ledger, LedgerEntry.from_record(record, employee)):
            summary.sync_failures += 1

    logger.info(
        "Auto-absent done: created=%s already_marked=%s sync_failures=%s",
        summary.created, summary.already_marked, summary.sync_failures,
    )
    return summary
