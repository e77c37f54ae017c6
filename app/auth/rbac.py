from fastapi import Depends, HTTPException, status

from app.auth.dependencies import get_current_employee
from app.auth.schemas import CurrentEmployee


def require_roles(*roles: str):
    """
    Dependency factory to restrict a route to the given roles.

    Example:
        Depends(require_roles("admin"))
    """

    async def _checker(current_employee: CurrentEmployee = Depends(get_current_employee)) -> CurrentEmployee:
        if current_employee.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"User role {current_employee.role} is not authorized to access this route",
            )
        return current_employee

    return _checker


require_admin = require_roles("admin")
require_employee = require_roles("employee")
