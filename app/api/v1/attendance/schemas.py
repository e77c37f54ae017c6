from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class AttendanceMarkRequest(BaseModel):
    """Mark today's attendance for the logged-in employee."""

    status: str = Field(..., description="present, absent, half-day, casual leave, sick leave, paid leave")


class AttendanceStatusUpdate(BaseModel):
    """Admin status correction. Only the status changes."""

    status: str = Field(..., description="present, absent, half-day, casual leave, sick leave, paid leave")


class AttendanceFilters(BaseModel):
    """Explicit filters for attendance listing. Dates are civil days in the app timezone, inclusive."""

    start_date: Optional[date] = None
    end_date: Optional[date] = None
    employee_name: Optional[str] = None  # case-insensitive substring of the employee's name
    status: Optional[str] = None
    employee_id: Optional[UUID] = None  # scope to one employee (used by the "my attendance" view)


class AttendanceRecordResponse(BaseModel):
    """Attendance record with denormalized employee identity and display strings."""

    id: UUID
    employee_id: UUID
    employee_code: str
    employee_name: str
    employee_email: str
    date: date
    status: str
    submitted_at: datetime
    checkout_at: Optional[datetime] = None
    submitted_time: str  # DD-MM-YYYY hh:mm AM/PM in the app timezone
    checkout_time: Optional[str] = None


class AttendanceListResponse(BaseModel):
    count: int
    records: List[AttendanceRecordResponse]
