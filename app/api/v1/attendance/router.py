"""Attendance API router."""

from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_employee
from app.auth.rbac import require_admin, require_employee
from app.auth.schemas import CurrentEmployee
from app.core.clock import Clock, get_clock
from app.core.exceptions import ServiceError
from app.db.session import get_db
from app.integrations.ledger import get_ledger

from . import service
from .schemas import (
    AttendanceFilters,
    AttendanceListResponse,
    AttendanceMarkRequest,
    AttendanceRecordResponse,
    AttendanceStatusUpdate,
)

router = APIRouter(prefix="/api/v1/attendance", tags=["attendance"])


@router.post(
    "",
    response_model=AttendanceRecordResponse,
    status_code=status.HTTP_201_CREATED,
)
async def mark_attendance(
    payload: AttendanceMarkRequest,
    db: AsyncSession = Depends(get_db),
    ledger=Depends(get_ledger),
    clock: Clock = Depends(get_clock),
    current_employee: CurrentEmployee = Depends(get_current_employee),
):
    """Mark today's attendance for the logged-in employee (once per day)."""
    try:
        return await service.mark_attendance(db, ledger, clock, current_employee.id, payload.status)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("", response_model=AttendanceListResponse)
async def list_attendance(
    start_date: Optional[date] = Query(None, description="Inclusive, YYYY-MM-DD"),
    end_date: Optional[date] = Query(None, description="Inclusive, YYYY-MM-DD"),
    employee_name: Optional[str] = Query(
        None,
        description="Case-insensitive literal substring of the employee's name; regex syntax such as ^ is matched literally",
    ),
    status_filter: Optional[str] = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_employee: CurrentEmployee = Depends(require_admin),
):
    """All employees' attendance (admin)."""
    filters = AttendanceFilters(
        start_date=start_date,
        end_date=end_date,
        employee_name=employee_name,
        status=status_filter,
    )
    try:
        return await service.query_attendance(db, clock, filters)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/me", response_model=AttendanceListResponse)
async def list_my_attendance(
    start_date: Optional[date] = Query(None, description="Inclusive, YYYY-MM-DD"),
    end_date: Optional[date] = Query(None, description="Inclusive, YYYY-MM-DD"),
    status_filter: Optional[str] = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_employee: CurrentEmployee = Depends(require_employee),
):
    """Attendance history of the logged-in employee."""
    filters = AttendanceFilters(
        start_date=start_date,
        end_date=end_date,
        status=status_filter,
        employee_id=current_employee.id,
    )
    try:
        return await service.query_attendance(db, clock, filters)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.patch("/checkout", response_model=AttendanceRecordResponse)
async def check_out(
    db: AsyncSession = Depends(get_db),
    ledger=Depends(get_ledger),
    clock: Clock = Depends(get_clock),
    current_employee: CurrentEmployee = Depends(get_current_employee),
):
    """Record checkout time for today's present/half-day attendance."""
    try:
        return await service.check_out(db, ledger, clock, current_employee.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put("/{attendance_id}", response_model=AttendanceRecordResponse)
async def correct_attendance(
    attendance_id: UUID,
    payload: AttendanceStatusUpdate,
    db: AsyncSession = Depends(get_db),
    ledger=Depends(get_ledger),
    clock: Clock = Depends(get_clock),
    current_employee: CurrentEmployee = Depends(require_admin),
):
    """Correct the status of an attendance record (admin)."""
    try:
        return await service.correct_attendance(db, ledger, clock, attendance_id, payload.status)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
