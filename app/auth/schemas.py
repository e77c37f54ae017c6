from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from app.core.enums import EmployeeRole


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class EmployeeInfo(BaseModel):
    """Public employee profile (no secrets)."""

    id: UUID
    employee_code: str
    name: str
    email: str
    username: str
    role: str
    created_at: datetime

    class Config:
        from_attributes = True


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    employee: EmployeeInfo


class RegisterEmployeeRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=50)
    email: EmailStr
    role: EmployeeRole = EmployeeRole.EMPLOYEE


class RegisterEmployeeResponse(BaseModel):
    """Credentials are shown once; delivering them to the employee is the caller's job."""

    employee: EmployeeInfo
    username: str
    password: str
    message: str = "Account created"


class CurrentEmployee(BaseModel):
    """Lightweight representation of the authenticated employee for RBAC checks."""

    id: UUID
    employee_code: str
    name: str
    role: str

    class Config:
        from_attributes = True
