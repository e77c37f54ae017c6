import uuid

from sqlalchemy import Column, Date, DateTime, ForeignKey, String, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from app.db.session import Base


class AttendanceRecord(Base):
    """Attendance: one per employee per civil day (enforced by the unique constraint)."""

    __tablename__ = "attendance_records"
    __table_args__ = (
        # The sweep and manual marking race on this; the database is the arbiter
        UniqueConstraint("employee_id", "date", name="uq_attendance_employee_date"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    employee_id = Column(Uuid(as_uuid=True), ForeignKey("employees.id", ondelete="RESTRICT"), nullable=False, index=True)
    # Civil day in the configured timezone, not the submission instant
    date = Column(Date, nullable=False, index=True)
    status = Column(String(20), nullable=False)  # present, absent, half-day, casual leave, sick leave, paid leave
    submitted_at = Column(DateTime(timezone=True), nullable=False)
    checkout_at = Column(DateTime(timezone=True), nullable=True)

    employee = relationship("Employee", lazy="joined")
