"""Pydantic schemas for the academy.

Request and response models for:
- Authoring (types, categories, programs, pages, program page order)
- Assignment of pages to employees
- Learner progress, submissions and comments
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import (
    AcademyType,
    Assignment,
    AssignmentPage,
    AssignmentStatus,
    Category,
    Comment,
    PageType,
    Program,
    Submission,
)


def _strip_required(value: str) -> str:
    stripped = value.strip()
    if not stripped:
        msg = "must not be blank"
        raise ValueError(msg)
    return stripped


# ==============================================================================
# Authoring Schemas
# ==============================================================================


class CreateAcademyTypeRequest(BaseModel):
    """Request to create an academy type."""

    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(None, max_length=500)
    icon: str | None = Field(None, max_length=50, description="Icon key, e.g. book-open")


class AcademyTypeResponse(BaseModel):
    """Academy type."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None = None
    icon: str | None = None

    @classmethod
    def from_entity(cls, entity: AcademyType) -> "AcademyTypeResponse":
        return cls.model_validate(entity)


class CreateCategoryRequest(BaseModel):
    """Request to create a page category."""

    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(None, max_length=500)

    _strip_name = field_validator("name")(_strip_required)


class CategoryResponse(BaseModel):
    """Page category."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None = None
    sort_order: int = 0

    @classmethod
    def from_entity(cls, entity: Category) -> "CategoryResponse":
        return cls.model_validate(entity)


class CreateProgramRequest(BaseModel):
    """Request to create a program."""

    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(None, max_length=2000)
    type_id: int | None = None

    _strip_name = field_validator("name")(_strip_required)


class UpdateProgramRequest(BaseModel):
    """Request to update a program (only provided fields change)."""

    name: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=2000)
    type_id: int | None = None


class ProgramResponse(BaseModel):
    """Program."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None = None
    type_id: int | None = None
    created_at: datetime | None = None

    @classmethod
    def from_entity(cls, entity: Program) -> "ProgramResponse":
        return cls.model_validate(entity)


class CreatePageRequest(BaseModel):
    """Request to create a page and append it to a program."""

    program_id: int = Field(..., description="Program the page is appended to")
    title: str = Field(..., min_length=1, max_length=300)
    page_type: PageType = PageType.THEORY
    category_id: int | None = None
    content: dict[str, Any] = Field(
        default_factory=dict, description="Rich-text document (editor JSON)"
    )

    _strip_title = field_validator("title")(_strip_required)


class UpdatePageRequest(BaseModel):
    """Request to edit a page; every save creates a new version."""

    title: str | None = Field(None, min_length=1, max_length=300)
    page_type: PageType | None = None
    category_id: int | None = None
    content: dict[str, Any] = Field(default_factory=dict)


class CategoryRef(BaseModel):
    """Category id and name embedded in page listings."""

    id: int
    name: str


class PageSummary(BaseModel):
    """Page fields shown in lists."""

    id: int
    title: str
    page_type: PageType
    category: CategoryRef | None = None


class PageResponse(BaseModel):
    """Page with its current version."""

    id: int
    title: str
    page_type: PageType
    category_id: int | None = None
    current_version_id: int | None = None
    version_number: int | None = None
    content: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ProgramPageResponse(BaseModel):
    """A page's place in a program."""

    id: int
    program_id: int
    page_id: int
    order_index: int
    is_required: bool = True
    page: PageSummary | None = None


class LinkPageRequest(BaseModel):
    """Request to append an existing page to a program."""

    page_id: int
    is_required: bool = True


class UpdateProgramPageRequest(BaseModel):
    """Request to update one program page row."""

    order_index: int | None = Field(None, ge=0)
    is_required: bool | None = None


class ReorderProgramPagesRequest(BaseModel):
    """Full page order for a program, as program page ids."""

    program_page_ids: list[int] = Field(..., min_length=1)


# ==============================================================================
# Assignment Schemas
# ==============================================================================


class AssignPagesRequest(BaseModel):
    """Request to assign program pages to an employee."""

    employee_id: int
    program_id: int
    page_ids: list[int] = Field(
        ..., min_length=1, description="Pages to assign (already assigned are skipped)"
    )
    pin_current_version: bool = Field(
        False, description="Pin each new page to its current version"
    )


class AssignPagesResponse(BaseModel):
    """Outcome of an assignment request."""

    assignment_id: int
    assignment_created: bool
    inserted_page_ids: list[int] = Field(default_factory=list)
    skipped_page_ids: list[int] = Field(default_factory=list)
    notice: str


class AssignmentResponse(BaseModel):
    """Assignment of a program to an employee."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    employee_id: int
    program_id: int
    status: AssignmentStatus
    assigned_at: datetime | None = None

    @classmethod
    def from_entity(cls, entity: Assignment) -> "AssignmentResponse":
        return cls.model_validate(entity)


class AssignmentPageResponse(BaseModel):
    """A learner's page with its status, in program order."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    assignment_id: int
    program_id: int
    page_id: int
    page_version_id: int | None = None
    status: AssignmentStatus
    score: int | None = None
    updated_at: datetime | None = None
    order_index: int | None = None
    page: PageSummary | None = None

    @classmethod
    def from_entity(cls, entity: AssignmentPage) -> "AssignmentPageResponse":
        return cls.model_validate(entity)


class ProgressResponse(BaseModel):
    """Completion of an assignment."""

    assignment_id: int
    total: int
    completed: int
    percent: int = Field(..., ge=0, le=100)


class ProgramProgressGroup(BaseModel):
    """One assigned program with its pages and progress."""

    assignment: AssignmentResponse
    program: ProgramResponse | None = None
    academy_type: AcademyTypeResponse | None = None
    pages: list[AssignmentPageResponse] = Field(default_factory=list)
    progress: ProgressResponse


class LearnerAcademyResponse(BaseModel):
    """Everything assigned to one employee, grouped per program."""

    employee_id: int
    programs: list[ProgramProgressGroup] = Field(default_factory=list)


class AssignablePageOption(BaseModel):
    """A program page as offered in the assign dialog."""

    program_page: ProgramPageResponse
    already_assigned: bool
    selected_by_default: bool


class AssignablePagesResponse(BaseModel):
    """Program pages for assigning to an employee."""

    employee_id: int
    program_id: int
    pages: list[AssignablePageOption] = Field(default_factory=list)


class UpdateStatusRequest(BaseModel):
    """Request to set an assignment page status."""

    status: AssignmentStatus


class SetScoreRequest(BaseModel):
    """Request to score an assignment page (None clears it)."""

    score: int | None = Field(None, ge=0, le=100)


class AssignmentPageContentResponse(BaseModel):
    """Content a learner sees for an assigned page."""

    assignment_page_id: int
    page: PageSummary
    page_version_id: int | None = None
    version_number: int | None = None
    content: dict[str, Any] = Field(default_factory=dict)


# ==============================================================================
# Submission and Comment Schemas
# ==============================================================================


class SubmitTaskRequest(BaseModel):
    """Request to submit an answer for a task page."""

    answer: str = Field(..., min_length=1, max_length=20000)

    _strip_answer = field_validator("answer")(_strip_required)


class SubmissionResponse(BaseModel):
    """Task submission."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    assignment_page_id: int
    employee_id: int
    answer: str
    created_at: datetime

    @classmethod
    def from_entity(cls, entity: Submission) -> "SubmissionResponse":
        return cls.model_validate(entity)


class CreateCommentRequest(BaseModel):
    """Request to add a comment to an assignment page thread."""

    comment: str = Field(..., min_length=1, max_length=5000)

    _strip_comment = field_validator("comment")(_strip_required)


class CommentAuthor(BaseModel):
    """Comment author details."""

    id: int
    first_name: str | None = None
    last_name: str | None = None
    email: str


class CommentResponse(BaseModel):
    """Comment in a thread."""

    id: int
    assignment_page_id: int
    comment: str
    created_at: datetime
    author: CommentAuthor | None = None

    @classmethod
    def from_entity(
        cls, entity: Comment, author: CommentAuthor | None = None
    ) -> "CommentResponse":
        return cls(
            id=entity.id,
            assignment_page_id=entity.assignment_page_id,
            comment=entity.comment,
            created_at=entity.created_at,
            author=author,
        )


class MessageResponse(BaseModel):
    """Generic message response."""

    message: str
    success: bool = True
