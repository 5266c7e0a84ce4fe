"""FastAPI dependencies for authentication.

- Current user extraction from the Bearer access token
- Current employee resolution (by email, cached by EmployeeService)
- Academy admin guard
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError

from src.auth.permissions import is_academy_admin
from src.auth.schemas import AuthUser
from src.auth.security import decode_access_token
from src.config.settings import Settings, get_settings
from src.core.context import set_employee_id, set_user_id
from src.employees.dependencies import EmployeeServiceDep
from src.employees.models import Employee
from src.employees.service import EmployeeNotFoundError


def get_token_from_header(request: Request) -> str | None:
    """Extract Bearer token from Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None

    expected_parts = 2
    parts = auth_header.split()
    if len(parts) != expected_parts or parts[0].lower() != "bearer":
        return None

    return parts[1]


async def get_current_user(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> AuthUser:
    """Get current authenticated user from the access token.

    Raises:
        HTTPException(401): If token is missing, invalid, or expired
    """
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access token not provided",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = decode_access_token(token)
    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

    set_user_id(payload["sub"])
    return AuthUser(id=payload["sub"], email=payload.get("email"))


CurrentUser = Annotated[AuthUser, Depends(get_current_user)]


async def get_current_employee(
    user: CurrentUser,
    employee_service: EmployeeServiceDep,
) -> Employee:
    """Resolve the employee record of the current user by email.

    Raises:
        HTTPException(403): If no employee record matches the user's email
    """
    try:
        employee = await employee_service.resolve_employee(user.email)
    except EmployeeNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=e.message,
        ) from e

    set_employee_id(employee.id)
    return employee


CurrentEmployee = Annotated[Employee, Depends(get_current_employee)]


async def require_academy_admin(
    employee: CurrentEmployee,
    settings: Annotated[Settings, Depends(get_settings)],
) -> Employee:
    """Require the current employee to be an academy administrator.

    Raises:
        HTTPException(403): If the employee is not an administrator
    """
    if not is_academy_admin(employee, settings):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Academy administrator access required",
        )
    return employee


AcademyAdmin = Annotated[Employee, Depends(require_academy_admin)]
