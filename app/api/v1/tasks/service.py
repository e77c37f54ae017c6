from datetime import datetime, timezone
from typing import List
from uuid import UUID

from sqlalchemy import case, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import Employee
from app.core.enums import TaskStatus
from app.core.exceptions import NotFoundError, ValidationError
from app.core.models import Task

from .schemas import (
    TASK_SORT_FIELDS,
    PageRef,
    TaskCreate,
    TaskFilters,
    TaskPaginatedResponse,
    TaskResponse,
    TaskUpdate,
)

_PRIORITY_RANK = case({"low": 0, "medium": 1, "high": 2}, value=Task.priority, else_=1)


async def _ensure_employee(db: AsyncSession, employee_id: UUID) -> Employee:
    result = await db.execute(
        select(Employee).where(Employee.id == employee_id, Employee.is_active.is_(True))
    )
    employee = result.scalar_one_or_none()
    if not employee:
        raise ValidationError("Please assign the task to an existing employee")
    return employee


async def _get_task(db: AsyncSession, task_id: UUID) -> Task:
    # populate_existing refreshes assignee/assigner after an edit or insert in this session
    result = await db.execute(
        select(Task).where(Task.id == task_id).execution_options(populate_existing=True)
    )
    task = result.scalar_one_or_none()
    if not task:
        raise NotFoundError(f"Task not found with id of {task_id}")
    return task


def _order_by(sort: str):
    if sort not in TASK_SORT_FIELDS:
        raise ValidationError(f"Invalid sort; use one of {', '.join(TASK_SORT_FIELDS)}")
    descending = sort.startswith("-")
    field = sort.lstrip("-")
    column = {"created_at": Task.created_at, "due_date": Task.due_date, "priority": _PRIORITY_RANK}[field]
    return column.desc() if descending else column.asc()


async def list_tasks(db: AsyncSession, filters: TaskFilters) -> TaskPaginatedResponse:
    conditions = []
    if filters.status:
        conditions.append(Task.status == filters.status.value)
    if filters.priority:
        conditions.append(Task.priority == filters.priority.value)
    if filters.assigned_to:
        conditions.append(Task.assigned_to == filters.assigned_to)
    if filters.due_after:
        conditions.append(Task.due_date >= filters.due_after)
    if filters.due_before:
        conditions.append(Task.due_date <= filters.due_before)

    total = (await db.execute(select(func.count(Task.id)).where(*conditions))).scalar_one()
    offset = (filters.page - 1) * filters.limit
    result = await db.execute(
        select(Task)
        .where(*conditions)
        .order_by(_order_by(filters.sort))
        .offset(offset)
        .limit(filters.limit)
    )
    tasks = result.scalars().all()

    return TaskPaginatedResponse(
        items=[TaskResponse.model_validate(t) for t in tasks],
        total=total,
        page=filters.page,
        limit=filters.limit,
        next=PageRef(page=filters.page + 1, limit=filters.limit) if offset + filters.limit < total else None,
        prev=PageRef(page=filters.page - 1, limit=filters.limit) if offset > 0 else None,
    )


async def get_task(db: AsyncSession, task_id: UUID) -> TaskResponse:
    return TaskResponse.model_validate(await _get_task(db, task_id))


async def create_task(db: AsyncSession, assigned_by: UUID, payload: TaskCreate) -> TaskResponse:
    await _ensure_employee(db, payload.assigned_to)
    task = Task(
        title=payload.title.strip(),
        description=payload.description.strip(),
        assigned_to=payload.assigned_to,
        assigned_by=assigned_by,
        priority=payload.priority.value,
        due_date=payload.due_date,
    )
    db.add(task)
    await db.commit()
    return await get_task(db, task.id)


async def update_task(db: AsyncSession, task_id: UUID, payload: TaskUpdate) -> TaskResponse:
    task = await _get_task(db, task_id)
    data = payload.model_dump(exclude_unset=True)
    if data.get("assigned_to"):
        await _ensure_employee(db, data["assigned_to"])
    for field, value in data.items():
        if value is None:
            continue
        setattr(task, field, value.value if field == "priority" else value)
    await db.commit()
    return await get_task(db, task_id)


async def delete_task(db: AsyncSession, task_id: UUID) -> None:
    await _get_task(db, task_id)
    await db.execute(delete(Task).where(Task.id == task_id))
    await db.commit()


async def list_my_tasks(db: AsyncSession, employee_id: UUID) -> List[TaskResponse]:
    result = await db.execute(
        select(Task).where(Task.assigned_to == employee_id).order_by(Task.created_at.desc())
    )
    return [TaskResponse.model_validate(t) for t in result.scalars().all()]


async def update_task_status(db: AsyncSession, employee_id: UUID, task_id: UUID, status_value: str) -> TaskResponse:
    """Assignee moves their own task through pending -> in-progress -> completed."""
    if status_value not in tuple(s.value for s in TaskStatus):
        raise ValidationError("Invalid status value")
    result = await db.execute(select(Task).where(Task.id == task_id, Task.assigned_to == employee_id))
    task = result.scalar_one_or_none()
    if not task:
        raise NotFoundError("Task not found or not assigned to you")
    task.status = status_value
    if status_value == TaskStatus.COMPLETED.value:
        task.completed_at = datetime.now(timezone.utc)
    await db.commit()
    return await get_task(db, task_id)
