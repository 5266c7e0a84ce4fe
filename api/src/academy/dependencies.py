"""FastAPI dependencies for the academy.

Provides dependency injection for:
- Content and assignment services
- The actor's admin flag
- Error handlers
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from src.auth.dependencies import CurrentEmployee
from src.auth.permissions import is_academy_admin
from src.config.settings import Settings, get_settings

from .service import AcademyError, AssignmentService, ContentService


async def get_content_service(request: Request) -> ContentService:
    """Get content service from app state.

    Args:
        request: FastAPI request

    Returns:
        ContentService instance
    """
    service = getattr(request.app.state, "content_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Academy content service not available",
        )
    return service


async def get_assignment_service(request: Request) -> AssignmentService:
    """Get assignment service from app state."""
    service = getattr(request.app.state, "assignment_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Academy assignment service not available",
        )
    return service


async def get_is_admin(
    employee: CurrentEmployee,
    settings: Annotated[Settings, Depends(get_settings)],
) -> bool:
    """Whether the current employee administers the academy."""
    return is_academy_admin(employee, settings)


# Type aliases for dependency injection
ContentServiceDep = Annotated[ContentService, Depends(get_content_service)]
AssignmentServiceDep = Annotated[AssignmentService, Depends(get_assignment_service)]
IsAdmin = Annotated[bool, Depends(get_is_admin)]


def handle_academy_error(error: AcademyError) -> HTTPException:
    """Convert academy errors to HTTP exceptions.

    Args:
        error: Academy error

    Returns:
        HTTPException with appropriate status code
    """
    status_map = {
        "validation_error": status.HTTP_400_BAD_REQUEST,
        "invalid_reorder": status.HTTP_400_BAD_REQUEST,
        "type_not_found": status.HTTP_404_NOT_FOUND,
        "category_not_found": status.HTTP_404_NOT_FOUND,
        "program_not_found": status.HTTP_404_NOT_FOUND,
        "page_not_found": status.HTTP_404_NOT_FOUND,
        "program_page_not_found": status.HTTP_404_NOT_FOUND,
        "assignment_page_not_found": status.HTTP_404_NOT_FOUND,
        "already_linked": status.HTTP_409_CONFLICT,
        "not_assignee": status.HTTP_403_FORBIDDEN,
    }

    status_code = status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    return HTTPException(
        status_code=status_code,
        detail=error.message,
    )
