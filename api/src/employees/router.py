"""Employee directory endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from src.auth.dependencies import AcademyAdmin, CurrentEmployee, CurrentUser
from src.auth.permissions import is_academy_admin
from src.config.settings import Settings, get_settings

from .dependencies import EmployeeServiceDep, handle_employee_error
from .schemas import CreateEmployeeRequest, EmployeeResponse, SessionResponse
from .service import EmployeeError


router = APIRouter(prefix="/v1/employees", tags=["employees"])


@router.get("/me", response_model=SessionResponse, summary="Resolve current session")
async def get_my_session(
    user: CurrentUser,
    employee: CurrentEmployee,
    settings: Annotated[Settings, Depends(get_settings)],
) -> SessionResponse:
    """Resolve the logged-in user to their employee record.

    Clients call this once per session and keep the result.
    """
    return SessionResponse(
        user_id=user.id,
        email=user.email or employee.email,
        employee=EmployeeResponse.from_entity(employee),
        is_academy_admin=is_academy_admin(employee, settings),
    )


@router.get("/{employee_id}", response_model=EmployeeResponse, summary="Get employee")
async def get_employee(
    employee_id: int,
    employee_service: EmployeeServiceDep,
    _admin: AcademyAdmin,
) -> EmployeeResponse:
    """Get an employee by id (administrators only)."""
    employee = await employee_service.get_employee(employee_id)
    if employee is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Employee not found",
        )
    return EmployeeResponse.from_entity(employee)


@router.post(
    "",
    response_model=EmployeeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register employee",
)
async def create_employee(
    data: CreateEmployeeRequest,
    employee_service: EmployeeServiceDep,
    _admin: AcademyAdmin,
) -> EmployeeResponse:
    """Register an employee so their login resolves to a directory record."""
    try:
        employee = await employee_service.create_employee(data)
    except EmployeeError as e:
        raise handle_employee_error(e) from e
    return EmployeeResponse.from_entity(employee)
