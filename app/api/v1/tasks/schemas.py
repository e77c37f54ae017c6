"""Task schemas."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.core.enums import TaskPriority, TaskStatus

TASK_SORT_FIELDS = ("created_at", "-created_at", "due_date", "-due_date", "priority", "-priority")


class TaskCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=500)
    assigned_to: UUID
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: datetime


class TaskUpdate(BaseModel):
    """Admin edit. Status is changed by the assignee through the status endpoint."""

    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, min_length=1, max_length=500)
    assigned_to: Optional[UUID] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[datetime] = None


class TaskStatusUpdate(BaseModel):
    status: str = Field(..., description="pending | in-progress | completed")


class TaskFilters(BaseModel):
    """Enumerated task filters; nothing in the query string is turned into query operators."""

    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    assigned_to: Optional[UUID] = None
    due_after: Optional[datetime] = None
    due_before: Optional[datetime] = None
    sort: str = "-created_at"
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=100)


class TaskPerson(BaseModel):
    id: UUID
    employee_code: str
    name: str

    class Config:
        from_attributes = True


class TaskResponse(BaseModel):
    id: UUID
    title: str
    description: str
    status: str
    priority: str
    due_date: datetime
    completed_at: Optional[datetime] = None
    created_at: datetime
    assignee: TaskPerson
    assigner: TaskPerson

    class Config:
        from_attributes = True


class PageRef(BaseModel):
    page: int
    limit: int


class TaskPaginatedResponse(BaseModel):
    items: List[TaskResponse]
    total: int = Field(..., ge=0, description="Total count matching the filters")
    page: int
    limit: int
    next: Optional[PageRef] = None
    prev: Optional[PageRef] = None
