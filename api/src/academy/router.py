"""Academy API endpoints.

Provides routes for:
- Authoring: types, categories, programs, pages and program page order
- Assigning pages to employees and the admin manage view
- Learner overview, status updates, submissions and comments
"""

from fastapi import APIRouter, HTTPException, Query, status

from src.auth.dependencies import AcademyAdmin, CurrentEmployee

from .dependencies import (
    AssignmentServiceDep,
    ContentServiceDep,
    IsAdmin,
    handle_academy_error,
)
from .schemas import (
    AcademyTypeResponse,
    AssignablePagesResponse,
    AssignmentPageContentResponse,
    AssignmentPageResponse,
    AssignPagesRequest,
    AssignPagesResponse,
    CategoryResponse,
    CommentAuthor,
    CommentResponse,
    CreateAcademyTypeRequest,
    CreateCategoryRequest,
    CreateCommentRequest,
    CreatePageRequest,
    CreateProgramRequest,
    LearnerAcademyResponse,
    LinkPageRequest,
    MessageResponse,
    PageResponse,
    ProgramPageResponse,
    ProgramResponse,
    ProgressResponse,
    ReorderProgramPagesRequest,
    SetScoreRequest,
    SubmissionResponse,
    SubmitTaskRequest,
    UpdatePageRequest,
    UpdateProgramPageRequest,
    UpdateProgramRequest,
    UpdateStatusRequest,
)
from .service import AcademyError, PageNotFoundError, ProgramNotFoundError


router = APIRouter(prefix="/v1/academy", tags=["academy"])


# ==============================================================================
# Types and Categories
# ==============================================================================


@router.get("/types", response_model=list[AcademyTypeResponse], summary="List types")
async def list_types(
    content_service: ContentServiceDep,
    _employee: CurrentEmployee,
) -> list[AcademyTypeResponse]:
    """List academy types."""
    return [AcademyTypeResponse.from_entity(t) for t in await content_service.list_types()]


@router.post(
    "/types",
    response_model=AcademyTypeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create type",
)
async def create_type(
    data: CreateAcademyTypeRequest,
    content_service: ContentServiceDep,
    _admin: AcademyAdmin,
) -> AcademyTypeResponse:
    """Create an academy type."""
    return AcademyTypeResponse.from_entity(await content_service.create_type(data))


@router.get(
    "/categories", response_model=list[CategoryResponse], summary="List categories"
)
async def list_categories(
    content_service: ContentServiceDep,
    _employee: CurrentEmployee,
) -> list[CategoryResponse]:
    """List categories in their sort order."""
    return [
        CategoryResponse.from_entity(c) for c in await content_service.list_categories()
    ]


@router.post(
    "/categories",
    response_model=CategoryResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create category",
)
async def create_category(
    data: CreateCategoryRequest,
    content_service: ContentServiceDep,
    _admin: AcademyAdmin,
) -> CategoryResponse:
    """Create a category at the end of the list."""
    return CategoryResponse.from_entity(await content_service.create_category(data))


# ==============================================================================
# Programs
# ==============================================================================


@router.get("/programs", response_model=list[ProgramResponse], summary="List programs")
async def list_programs(
    content_service: ContentServiceDep,
    _employee: CurrentEmployee,
    type_id: int | None = Query(None, description="Filter by academy type"),
) -> list[ProgramResponse]:
    """List programs."""
    programs = await content_service.list_programs(type_id=type_id)
    return [ProgramResponse.from_entity(p) for p in programs]


@router.post(
    "/programs",
    response_model=ProgramResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create program",
)
async def create_program(
    data: CreateProgramRequest,
    content_service: ContentServiceDep,
    _admin: AcademyAdmin,
) -> ProgramResponse:
    """Create a program."""
    try:
        program = await content_service.create_program(data)
    except AcademyError as e:
        raise handle_academy_error(e) from e
    return ProgramResponse.from_entity(program)


@router.get(
    "/programs/{program_id}", response_model=ProgramResponse, summary="Get program"
)
async def get_program(
    program_id: int,
    content_service: ContentServiceDep,
    _employee: CurrentEmployee,
) -> ProgramResponse:
    """Get a program by id."""
    program = await content_service.get_program(program_id)
    if not program:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Program not found",
        )
    return ProgramResponse.from_entity(program)


@router.patch(
    "/programs/{program_id}", response_model=ProgramResponse, summary="Update program"
)
async def update_program(
    program_id: int,
    data: UpdateProgramRequest,
    content_service: ContentServiceDep,
    _admin: AcademyAdmin,
) -> ProgramResponse:
    """Update a program."""
    try:
        program = await content_service.update_program(program_id, data)
    except AcademyError as e:
        raise handle_academy_error(e) from e
    return ProgramResponse.from_entity(program)


# ==============================================================================
# Program Pages
# ==============================================================================


@router.get(
    "/programs/{program_id}/pages",
    response_model=list[ProgramPageResponse],
    summary="List program pages",
)
async def list_program_pages(
    program_id: int,
    content_service: ContentServiceDep,
    _admin: AcademyAdmin,
) -> list[ProgramPageResponse]:
    """List a program's pages by order index."""
    try:
        return await content_service.list_program_page_views(program_id)
    except AcademyError as e:
        raise handle_academy_error(e) from e


@router.post(
    "/programs/{program_id}/pages",
    response_model=ProgramPageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add page to program",
)
async def link_page(
    program_id: int,
    data: LinkPageRequest,
    content_service: ContentServiceDep,
    _admin: AcademyAdmin,
) -> ProgramPageResponse:
    """Append an existing page to the end of a program."""
    try:
        if not await content_service.get_program(program_id):
            raise ProgramNotFoundError
        if not await content_service.get_page(data.page_id):
            raise PageNotFoundError
        link = await content_service.link_page(
            program_id, data.page_id, is_required=data.is_required
        )
    except AcademyError as e:
        raise handle_academy_error(e) from e
    (response,) = await content_service.to_program_page_responses([link])
    return response


@router.put(
    "/programs/{program_id}/pages/order",
    response_model=list[ProgramPageResponse],
    summary="Reorder program pages",
)
async def reorder_program_pages(
    program_id: int,
    data: ReorderProgramPagesRequest,
    content_service: ContentServiceDep,
    _admin: AcademyAdmin,
) -> list[ProgramPageResponse]:
    """Rewrite the whole page order of a program in one call."""
    try:
        links = await content_service.reorder_program_pages(
            program_id, data.program_page_ids
        )
    except AcademyError as e:
        raise handle_academy_error(e) from e
    return await content_service.to_program_page_responses(links)


@router.patch(
    "/programs/{program_id}/pages/{program_page_id}",
    response_model=ProgramPageResponse,
    summary="Update program page",
)
async def update_program_page(
    program_id: int,
    program_page_id: int,
    data: UpdateProgramPageRequest,
    content_service: ContentServiceDep,
    _admin: AcademyAdmin,
) -> ProgramPageResponse:
    """Set one row's order index and/or required flag."""
    try:
        link = await content_service.update_program_page(
            program_id, program_page_id, data
        )
    except AcademyError as e:
        raise handle_academy_error(e) from e
    (response,) = await content_service.to_program_page_responses([link])
    return response


@router.delete(
    "/programs/{program_id}/pages/{program_page_id}",
    response_model=MessageResponse,
    summary="Remove page from program",
)
async def unlink_program_page(
    program_id: int,
    program_page_id: int,
    content_service: ContentServiceDep,
    _admin: AcademyAdmin,
) -> MessageResponse:
    """Remove a page from a program (the page itself is kept)."""
    try:
        await content_service.unlink_program_page(program_id, program_page_id)
    except AcademyError as e:
        raise handle_academy_error(e) from e
    return MessageResponse(message="Page removed from program")


# ==============================================================================
# Pages
# ==============================================================================


@router.post(
    "/pages",
    response_model=PageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create page",
)
async def create_page(
    data: CreatePageRequest,
    content_service: ContentServiceDep,
    admin: AcademyAdmin,
) -> PageResponse:
    """Create a page (version 1) at the end of a program."""
    try:
        page, _version, _link = await content_service.create_page(data, admin.id)
    except AcademyError as e:
        raise handle_academy_error(e) from e
    return await content_service.to_page_response(page)


@router.get("/pages/{page_id}", response_model=PageResponse, summary="Get page")
async def get_page(
    page_id: int,
    content_service: ContentServiceDep,
    _admin: AcademyAdmin,
) -> PageResponse:
    """Get a page with its current version."""
    page = await content_service.get_page(page_id)
    if not page:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Page not found",
        )
    return await content_service.to_page_response(page)


@router.put("/pages/{page_id}", response_model=PageResponse, summary="Edit page")
async def update_page(
    page_id: int,
    data: UpdatePageRequest,
    content_service: ContentServiceDep,
    admin: AcademyAdmin,
) -> PageResponse:
    """Save a page edit as a new version."""
    try:
        page, _version = await content_service.update_page(page_id, data, admin.id)
    except AcademyError as e:
        raise handle_academy_error(e) from e
    return await content_service.to_page_response(page)


@router.delete("/pages/{page_id}", response_model=MessageResponse, summary="Delete page")
async def delete_page(
    page_id: int,
    content_service: ContentServiceDep,
    _admin: AcademyAdmin,
) -> MessageResponse:
    """Delete a page after removing it from every program."""
    try:
        removed = await content_service.delete_page(page_id)
    except AcademyError as e:
        raise handle_academy_error(e) from e
    return MessageResponse(message=f"Page deleted (removed from {removed} program(s))")


# ==============================================================================
# Assignments
# ==============================================================================


@router.post(
    "/assignments/pages",
    response_model=AssignPagesResponse,
    summary="Assign pages",
)
async def assign_pages(
    data: AssignPagesRequest,
    assignment_service: AssignmentServiceDep,
    _admin: AcademyAdmin,
) -> AssignPagesResponse:
    """Assign program pages to an employee.

    Pages the employee already has are skipped; the notice says so when
    nothing new was assigned.
    """
    try:
        return await assignment_service.assign_pages(
            employee_id=data.employee_id,
            program_id=data.program_id,
            page_ids=data.page_ids,
            pin_current_version=data.pin_current_version,
        )
    except AcademyError as e:
        raise handle_academy_error(e) from e


@router.get(
    "/assignments/{assignment_id}/progress",
    response_model=ProgressResponse,
    summary="Assignment progress",
)
async def get_assignment_progress(
    assignment_id: int,
    assignment_service: AssignmentServiceDep,
    _employee: CurrentEmployee,
) -> ProgressResponse:
    """Share of the assignment's pages that are done."""
    return await assignment_service.compute_progress(assignment_id)


@router.get("/me", response_model=LearnerAcademyResponse, summary="My academy")
async def get_my_academy(
    assignment_service: AssignmentServiceDep,
    employee: CurrentEmployee,
) -> LearnerAcademyResponse:
    """The current employee's programs, pages and progress."""
    return await assignment_service.get_learner_overview(employee.id)


@router.get(
    "/employees/{employee_id}",
    response_model=LearnerAcademyResponse,
    summary="Employee academy",
)
async def get_employee_academy(
    employee_id: int,
    assignment_service: AssignmentServiceDep,
    _admin: AcademyAdmin,
) -> LearnerAcademyResponse:
    """An employee's programs, pages and progress (administrators only)."""
    return await assignment_service.get_learner_overview(employee_id)


@router.get(
    "/employees/{employee_id}/programs/{program_id}/assignable",
    response_model=AssignablePagesResponse,
    summary="Assignable pages",
)
async def get_assignable_pages(
    employee_id: int,
    program_id: int,
    assignment_service: AssignmentServiceDep,
    _admin: AcademyAdmin,
) -> AssignablePagesResponse:
    """Program pages with what the employee already has marked."""
    try:
        return await assignment_service.get_assignable_pages(employee_id, program_id)
    except AcademyError as e:
        raise handle_academy_error(e) from e


# ==============================================================================
# Assignment Pages
# ==============================================================================


@router.get(
    "/assignment-pages/{assignment_page_id}/content",
    response_model=AssignmentPageContentResponse,
    summary="Assigned page content",
)
async def get_assignment_page_content(
    assignment_page_id: int,
    assignment_service: AssignmentServiceDep,
    employee: CurrentEmployee,
    is_admin: IsAdmin,
) -> AssignmentPageContentResponse:
    """Content of an assigned page (pinned version if any)."""
    try:
        return await assignment_service.get_page_content(
            assignment_page_id, employee, is_admin=is_admin
        )
    except AcademyError as e:
        raise handle_academy_error(e) from e


@router.patch(
    "/assignment-pages/{assignment_page_id}/status",
    response_model=AssignmentPageResponse,
    summary="Update status",
)
async def update_assignment_page_status(
    assignment_page_id: int,
    data: UpdateStatusRequest,
    assignment_service: AssignmentServiceDep,
    employee: CurrentEmployee,
) -> AssignmentPageResponse:
    """Set the status of one of the current employee's pages."""
    try:
        page = await assignment_service.update_status(
            assignment_page_id, data.status, employee
        )
    except AcademyError as e:
        raise handle_academy_error(e) from e
    return AssignmentPageResponse.from_entity(page)


@router.patch(
    "/assignment-pages/{assignment_page_id}/score",
    response_model=AssignmentPageResponse,
    summary="Score page",
)
async def set_assignment_page_score(
    assignment_page_id: int,
    data: SetScoreRequest,
    assignment_service: AssignmentServiceDep,
    _admin: AcademyAdmin,
) -> AssignmentPageResponse:
    """Record a review score."""
    try:
        page = await assignment_service.set_score(assignment_page_id, data.score)
    except AcademyError as e:
        raise handle_academy_error(e) from e
    return AssignmentPageResponse.from_entity(page)


@router.post(
    "/assignment-pages/{assignment_page_id}/submissions",
    response_model=SubmissionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit task",
)
async def submit_task(
    assignment_page_id: int,
    data: SubmitTaskRequest,
    assignment_service: AssignmentServiceDep,
    employee: CurrentEmployee,
) -> SubmissionResponse:
    """Submit an answer; the page status is not changed."""
    try:
        submission = await assignment_service.submit_task(
            assignment_page_id, data.answer, employee
        )
    except AcademyError as e:
        raise handle_academy_error(e) from e
    return SubmissionResponse.from_entity(submission)


@router.get(
    "/assignment-pages/{assignment_page_id}/submissions/current",
    response_model=SubmissionResponse | None,
    summary="Current submission",
)
async def get_current_submission(
    assignment_page_id: int,
    assignment_service: AssignmentServiceDep,
    employee: CurrentEmployee,
    is_admin: IsAdmin,
) -> SubmissionResponse | None:
    """Most recent submission, or null."""
    try:
        submission = await assignment_service.get_current_submission(
            assignment_page_id, employee, is_admin=is_admin
        )
    except AcademyError as e:
        raise handle_academy_error(e) from e
    return SubmissionResponse.from_entity(submission) if submission else None


@router.get(
    "/assignment-pages/{assignment_page_id}/comments",
    response_model=list[CommentResponse],
    summary="List comments",
)
async def list_comments(
    assignment_page_id: int,
    assignment_service: AssignmentServiceDep,
    employee: CurrentEmployee,
    is_admin: IsAdmin,
) -> list[CommentResponse]:
    """Comment thread, oldest first."""
    try:
        return await assignment_service.list_comments(
            assignment_page_id, employee, is_admin=is_admin
        )
    except AcademyError as e:
        raise handle_academy_error(e) from e


@router.post(
    "/assignment-pages/{assignment_page_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add comment",
)
async def add_comment(
    assignment_page_id: int,
    data: CreateCommentRequest,
    assignment_service: AssignmentServiceDep,
    employee: CurrentEmployee,
    is_admin: IsAdmin,
) -> CommentResponse:
    """Add a comment as the assignee or an administrator."""
    try:
        comment = await assignment_service.add_comment(
            assignment_page_id, data.comment, employee, is_admin=is_admin
        )
    except AcademyError as e:
        raise handle_academy_error(e) from e
    author = CommentAuthor(
        id=employee.id,
        first_name=employee.first_name,
        last_name=employee.last_name,
        email=employee.email,
    )
    return CommentResponse.from_entity(comment, author)
