"""FastAPI dependencies for the employee directory."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import EmployeeError, EmployeeService


async def get_employee_service(request: Request) -> EmployeeService:
    """Get employee service from app state."""
    service = getattr(request.app.state, "employee_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Employee service not available",
        )
    return service


EmployeeServiceDep = Annotated[EmployeeService, Depends(get_employee_service)]


def handle_employee_error(error: EmployeeError) -> HTTPException:
    """Convert employee errors to HTTP exceptions."""
    status_map = {
        "employee_not_found": status.HTTP_404_NOT_FOUND,
        "employee_email_exists": status.HTTP_409_CONFLICT,
    }
    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail=error.message,
    )
