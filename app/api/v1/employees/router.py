from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_employee
from app.auth.schemas import CurrentEmployee, EmployeeInfo
from app.auth.services import list_employees as list_active_employees
from app.db.session import get_db

router = APIRouter(prefix="/api/v1/employees", tags=["employees"])


@router.get("", response_model=List[EmployeeInfo])
async def list_employees(
    db: AsyncSession = Depends(get_db),
    current_employee: CurrentEmployee = Depends(get_current_employee),
) -> List[EmployeeInfo]:
    """Active employees, without credentials."""
    employees = await list_active_employees(db)
    return [EmployeeInfo.model_validate(e) for e in employees]
