import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import relationship

from app.db.session import Base


class Task(Base):
    """Task assigned to an employee by an admin."""

    __tablename__ = "tasks"
    __table_args__ = (
        Index("ix_tasks_assigned_to_status", "assigned_to", "status"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title = Column(String(100), nullable=False)
    description = Column(String(500), nullable=False)
    assigned_to = Column(Uuid(as_uuid=True), ForeignKey("employees.id", ondelete="CASCADE"), nullable=False)
    assigned_by = Column(Uuid(as_uuid=True), ForeignKey("employees.id", ondelete="RESTRICT"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="pending")  # pending, in-progress, completed
    priority = Column(String(10), nullable=False, default="medium")  # low, medium, high
    due_date = Column(DateTime(timezone=True), nullable=False, index=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)

    assignee = relationship("Employee", foreign_keys=[assigned_to], lazy="joined")
    assigner = relationship("Employee", foreign_keys=[assigned_by], lazy="joined")
