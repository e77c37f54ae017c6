"""Task API router."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_employee
from app.auth.rbac import require_admin
from app.auth.schemas import CurrentEmployee
from app.core.exceptions import ServiceError
from app.db.session import get_db

from . import service
from .schemas import (
    TaskCreate,
    TaskFilters,
    TaskPaginatedResponse,
    TaskResponse,
    TaskStatusUpdate,
    TaskUpdate,
)

router = APIRouter(prefix="/api/v1/tasks", tags=["tasks"])


@router.get("", response_model=TaskPaginatedResponse)
async def list_tasks(
    status_filter: Optional[str] = Query(None, alias="status"),
    priority: Optional[str] = Query(None),
    assigned_to: Optional[UUID] = Query(None),
    due_after: Optional[datetime] = Query(None),
    due_before: Optional[datetime] = Query(None),
    sort: str = Query("-created_at", description="created_at, due_date or priority; prefix with - for descending"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    current_employee: CurrentEmployee = Depends(require_admin),
):
    """All tasks with filtering, sorting and pagination (admin)."""
    try:
        filters = TaskFilters(
            status=status_filter,
            priority=priority,
            assigned_to=assigned_to,
            due_after=due_after,
            due_before=due_before,
            sort=sort,
            page=page,
            limit=limit,
        )
    except PydanticValidationError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid task filter")
    try:
        return await service.list_tasks(db, filters)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/me", response_model=List[TaskResponse])
async def list_my_tasks(
    db: AsyncSession = Depends(get_db),
    current_employee: CurrentEmployee = Depends(get_current_employee),
):
    return await service.list_my_tasks(db, current_employee.id)


@router.put("/{task_id}/status", response_model=TaskResponse)
async def update_task_status(
    task_id: UUID,
    payload: TaskStatusUpdate,
    db: AsyncSession = Depends(get_db),
    current_employee: CurrentEmployee = Depends(get_current_employee),
):
    """Assignee updates the status of their own task."""
    try:
        return await service.update_task_status(db, current_employee.id, task_id, payload.status)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    payload: TaskCreate,
    db: AsyncSession = Depends(get_db),
    current_employee: CurrentEmployee = Depends(require_admin),
):
    try:
        return await service.create_task(db, current_employee.id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_employee: CurrentEmployee = Depends(require_admin),
):
    try:
        return await service.get_task(db, task_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: UUID,
    payload: TaskUpdate,
    db: AsyncSession = Depends(get_db),
    current_employee: CurrentEmployee = Depends(require_admin),
):
    try:
        return await service.update_task(db, task_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_employee: CurrentEmployee = Depends(require_admin),
):
    try:
        await service.delete_task(db, task_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
