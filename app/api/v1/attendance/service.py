"""Attendance state machine: mark, correct, check out, and query daily records."""

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import Employee
from app.core.clock import Clock, as_utc
from app.core.enums import ATTENDANCE_STATUSES, CHECKOUT_ALLOWED_STATUSES, EmployeeRole
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.core.models import AttendanceRecord
from app.integrations.ledger import LedgerEntry, sync_attendance_safely

from .schemas import AttendanceFilters, AttendanceListResponse, AttendanceRecordResponse

logger = logging.getLogger(__name__)


# ----- Helpers -----
def _validate_status(status_value: Optional[str]) -> str:
    if not status_value or status_value not in ATTENDANCE_STATUSES:
        raise ValidationError("Invalid attendance status")
    return status_value


def _to_response(record: AttendanceRecord, employee: Employee, clock: Clock) -> AttendanceRecordResponse:
    submitted_at = as_utc(record.submitted_at)
    checkout_at = as_utc(record.checkout_at) if record.checkout_at else None
    return AttendanceRecordResponse(
        id=record.id,
        employee_id=employee.id,
        employee_code=employee.employee_code,
        employee_name=employee.name,
        employee_email=employee.email,
        date=record.date,
        status=record.status,
        submitted_at=submitted_at,
        checkout_at=checkout_at,
        submitted_time=f"{clock.format_display_date(submitted_at)} {clock.format_display_time(submitted_at)}",
        checkout_time=clock.format_display_time(checkout_at) if checkout_at else None,
    )


async def _get_active_employee(db: AsyncSession, employee_id: UUID) -> Employee:
    result = await db.execute(
        select(Employee).where(Employee.id == employee_id, Employee.is_active.is_(True))
    )
    employee = result.scalar_one_or_none()
    if not employee:
        raise NotFoundError("Employee not found")
    return employee


async def _get_record_for_today(db: AsyncSession, clock: Clock, employee_id: UUID) -> Optional[AttendanceRecord]:
    result = await db.execute(
        select(AttendanceRecord).where(
            AttendanceRecord.employee_id == employee_id,
            AttendanceRecord.date == clock.today(),
        )
    )
    return result.scalar_one_or_none()


# ----- State transitions -----
async def mark_attendance(
    db: AsyncSession,
    ledger,
    clock: Clock,
    employee_id: UUID,
    status_value: Optional[str],
) -> AttendanceRecordResponse:
    """Unmarked -> status, once per employee per day. First writer wins."""
    status_value = _validate_status(status_value)
    employee = await _get_active_employee(db, employee_id)

    now = clock.now()
    today = clock.normalize_to_day(now)
    existing = await db.execute(
        select(AttendanceRecord.id).where(
            AttendanceRecord.employee_id == employee.id,
            AttendanceRecord.date == today,
        )
    )
    if existing.scalar_one_or_none():
        raise ConflictError("Attendance already marked for today")

    record = AttendanceRecord(
        employee_id=employee.id,
        date=today,
        status=status_value,
        submitted_at=now,
    )
    db.add(record)
    try:
        await db.commit()
    except IntegrityError:
        # Lost the race against another submission or the absent sweep
        await db.rollback()
        raise ConflictError("Attendance already marked for today")

    await sync_attendance_safely(ledger, LedgerEntry.from_record(record, employee))
    return _to_response(record, employee, clock)


async def correct_attendance(
    db: AsyncSession,
    ledger,
    clock: Clock,
    attendance_id: UUID,
    status_value: Optional[str],
) -> AttendanceRecordResponse:
    """Admin correction: replaces status only; submitted_at and checkout_at stay as they are."""
    status_value = _validate_status(status_value)
    result = await db.execute(select(AttendanceRecord).where(AttendanceRecord.id == attendance_id))
    record = result.scalar_one_or_none()
    if not record:
        raise NotFoundError("Attendance record not found")

    previous = record.status
    record.status = status_value
    await db.commit()
    employee = record.employee
    logger.info(
        "Attendance %s for %s on %s corrected: %s -> %s",
        record.id, employee.employee_code, record.date, previous, status_value,
    )

    await sync_attendance_safely(ledger, LedgerEntry.from_record(record, employee))
    return _to_response(record, employee, clock)


async def check_out(
    db: AsyncSession,
    ledger,
    clock: Clock,
    employee_id: UUID,
) -> AttendanceRecordResponse:
    """present/half-day -> checked out, once."""
    employee = await _get_active_employee(db, employee_id)
    record = await _get_record_for_today(db, clock, employee.id)
    if not record:
        raise NotFoundError("No attendance found for today")
    if record.status not in CHECKOUT_ALLOWED_STATUSES:
        raise ValidationError("Checkout allowed only for present or half-day status")
    if record.checkout_at is not None:
        raise ConflictError("Already checked out")

    now = clock.now()
    if now <= as_utc(record.submitted_at):
        raise ValidationError("Checkout time must be after the attendance submission time")

    # checkout_at is write-once and only reachable from present/half-day, checked at write time
    result = await db.execute(
        update(AttendanceRecord)
        .where(
            AttendanceRecord.id == record.id,
            AttendanceRecord.checkout_at.is_(None),
            AttendanceRecord.status.in_(CHECKOUT_ALLOWED_STATUSES),
        )
        .values(checkout_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        await db.rollback()
        await db.refresh(record)
        if record.status not in CHECKOUT_ALLOWED_STATUSES:
            raise ValidationError("Checkout allowed only for present or half-day status")
        raise ConflictError("Already checked out")
    await db.commit()
    await db.refresh(record)

    await sync_attendance_safely(ledger, LedgerEntry.from_record(record, employee))
    return _to_response(record, employee, clock)


# ----- Queries -----
async def _employee_ids_for_filters(db: AsyncSession, filters: AttendanceFilters) -> List[UUID]:
    stmt = select(Employee.id).where(
        Employee.role != EmployeeRole.ADMIN.value,
        Employee.is_active.is_(True),
    )
    if filters.employee_name:
        stmt = stmt.where(
            func.lower(Employee.name).contains(filters.employee_name.strip().lower(), autoescape=True)
        )
    result = await db.execute(stmt)
    return [row[0] for row in result.all()]


async def query_attendance(
    db: AsyncSession,
    clock: Clock,
    filters: AttendanceFilters,
) -> AttendanceListResponse:
    """
    Records matching the filters, newest day first.

    Unscoped queries only cover active non-admin employees. A name filter that matches no
    employee is a NotFoundError rather than an empty list (existing API behaviour).
    """
    if filters.start_date and filters.end_date and filters.start_date > filters.end_date:
        raise ValidationError("start_date must be on or before end_date")
    if filters.status is not None:
        _validate_status(filters.status)

    stmt = select(AttendanceRecord)
    if filters.employee_id is not None:
        stmt = stmt.where(AttendanceRecord.employee_id == filters.employee_id)
    else:
        employee_ids = await _employee_ids_for_filters(db, filters)
        if filters.employee_name and not employee_ids:
            raise NotFoundError("No employees found matching the name")
        stmt = stmt.where(AttendanceRecord.employee_id.in_(employee_ids))

    if filters.start_date:
        stmt = stmt.where(AttendanceRecord.date >= filters.start_date)
    if filters.end_date:
        stmt = stmt.where(AttendanceRecord.date <= filters.end_date)
    if filters.status:
        stmt = stmt.where(AttendanceRecord.status == filters.status)

    stmt = stmt.order_by(AttendanceRecord.date.desc(), AttendanceRecord.submitted_at.desc())
    result = await db.execute(stmt)
    records = result.scalars().all()
    responses = [_to_response(r, r.employee, clock) for r in records]
    return AttendanceListResponse(count=len(responses), records=responses)
