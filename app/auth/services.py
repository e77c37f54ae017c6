import re
from typing import List, Optional

from fastapi import status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import Employee
from app.auth.schemas import (
    EmployeeInfo,
    LoginRequest,
    LoginResponse,
    RegisterEmployeeRequest,
    RegisterEmployeeResponse,
)
from app.auth.security import create_access_token, generate_password, hash_password, verify_password
from app.core.exceptions import ConflictError, ServiceError

_CODE_RE = re.compile(r"^EMP(\d{2,6})$")
_USERNAME_STRIP_RE = re.compile(r"[^a-z0-9_.-]")
MIN_USERNAME_LENGTH = 4


async def login_user(db: AsyncSession, payload: LoginRequest) -> LoginResponse:
    # 1. Find employee by username
    result = await db.execute(select(Employee).where(Employee.username == payload.username.strip()))
    employee: Optional[Employee] = result.scalar_one_or_none()
    if not employee:
        raise ServiceError("Invalid credentials", status.HTTP_401_UNAUTHORIZED)

    # 2. Verify password hash
    if not verify_password(payload.password, employee.password_hash):
        raise ServiceError("Invalid credentials", status.HTTP_401_UNAUTHORIZED)

    # 3. Check account status
    if not employee.is_active:
        raise ServiceError("Employee is inactive", status.HTTP_403_FORBIDDEN)

    access_token = create_access_token(subject={"sub": str(employee.id), "role": employee.role})
    return LoginResponse(access_token=access_token, employee=EmployeeInfo.model_validate(employee))


def next_employee_code(existing_codes: List[str]) -> str:
    """EMP01, EMP02, ... based on the highest existing numeric suffix."""
    highest = 0
    for code in existing_codes:
        match = _CODE_RE.match(code or "")
        if match:
            highest = max(highest, int(match.group(1)))
    return f"EMP{highest + 1:02d}"


def username_from_name(name: str, employee_code: str) -> str:
    """firstname.lastname, lowercase; short results get the employee code appended."""
    base = ".".join(name.lower().split())
    base = _USERNAME_STRIP_RE.sub("", base)
    if len(base) < MIN_USERNAME_LENGTH:
        base = f"{base}.{employee_code.lower()}" if base else employee_code.lower()
    return base


async def _unique_username(db: AsyncSession, base: str) -> str:
    result = await db.execute(
        select(Employee.username).where(Employee.username.like(f"{base}%"))
    )
    taken = {row[0] for row in result.all()}
    if base not in taken:
        return base
    suffix = 2
    while f"{base}{suffix}" in taken:
        suffix += 1
    return f"{base}{suffix}"


async def register_employee(db: AsyncSession, payload: RegisterEmployeeRequest) -> RegisterEmployeeResponse:
    email = payload.email.lower()
    existing = await db.execute(select(Employee.id).where(func.lower(Employee.email) == email))
    if existing.scalar_one_or_none():
        raise ConflictError("Employee already exists")

    codes_result = await db.execute(select(Employee.employee_code))
    employee_code = next_employee_code([row[0] for row in codes_result.all()])
    username = await _unique_username(db, username_from_name(payload.name, employee_code))
    password = generate_password()

    employee = Employee(
        employee_code=employee_code,
        name=payload.name.strip(),
        email=email,
        username=username,
        password_hash=hash_password(password),
        role=payload.role.value,
    )
    db.add(employee)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Employee code or username was taken concurrently, please retry")
    await db.refresh(employee)

    return RegisterEmployeeResponse(
        employee=EmployeeInfo.model_validate(employee),
        username=username,
        password=password,
    )


async def list_employees(db: AsyncSession) -> List[Employee]:
    result = await db.execute(
        select(Employee).where(Employee.is_active.is_(True)).order_by(Employee.employee_code)
    )
    return list(result.scalars().all())
