"""Database models for the academy.

Cassandra table definitions for:
- Authoring: types, categories, programs, pages, page versions and the
  program/page join carrying the page order
- Learning: assignments, assignment pages (per-page status), task
  submissions and comment threads

Ids are dense integers handed out by the Redis id allocator. Tables queried
from more than one side are dual-written to a lookup table.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

import orjson


class PageType(str, Enum):
    """Kind of academy page."""

    THEORY = "THEORY"  # Reading material
    TASK = "TASK"  # Expects a submission


class AssignmentStatus(str, Enum):
    """Learner-visible status of an assigned page.

    The set is closed but flat: any status may be written from any other.
    """

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    READY_FOR_REVIEW = "ready_for_review"
    REVISION_NEEDED = "revision_needed"
    DONE = "done"


# Order used for assigned pages missing from their program's page list
UNORDERED_INDEX = 9999


# ==============================================================================
# Helper Functions
# ==============================================================================


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware (Cassandra returns naive datetimes)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def dump_content(content: dict[str, Any] | None) -> str:
    """Serialize a rich-text document for storage."""
    return orjson.dumps(content or {}).decode()


def load_content(raw: str | None) -> dict[str, Any]:
    """Deserialize a stored rich-text document."""
    if not raw:
        return {}
    return orjson.loads(raw)


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

ACADEMY_TYPES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.academy_types (
    id BIGINT PRIMARY KEY,
    name TEXT,
    description TEXT,
    icon TEXT
)
"""

ACADEMY_CATEGORIES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.academy_categories (
    id BIGINT PRIMARY KEY,
    name TEXT,
    description TEXT,
    sort_order INT
)
"""

ACADEMY_PROGRAMS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.academy_programs (
    id BIGINT PRIMARY KEY,
    name TEXT,
    description TEXT,
    type_id BIGINT,
    created_at TIMESTAMP
)
"""

ACADEMY_PAGES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.academy_pages (
    id BIGINT PRIMARY KEY,
    title TEXT,
    page_type TEXT,
    category_id BIGINT,
    current_version_id BIGINT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

# Versions of a page, newest first
ACADEMY_PAGE_VERSIONS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.academy_page_versions (
    page_id BIGINT,
    version_number INT,
    id BIGINT,
    content TEXT,
    created_by BIGINT,
    created_at TIMESTAMP,
    PRIMARY KEY ((page_id), version_number)
) WITH CLUSTERING ORDER BY (version_number DESC)
"""

# Page order within a program (order_index is dense from 0)
ACADEMY_PROGRAM_PAGES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.academy_program_pages (
    program_id BIGINT,
    id BIGINT,
    page_id BIGINT,
    order_index INT,
    is_required BOOLEAN,
    PRIMARY KEY ((program_id), id)
)
"""

# Lookup: programs linking a page (for cascade delete)
ACADEMY_PROGRAM_PAGES_BY_PAGE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.academy_program_pages_by_page (
    page_id BIGINT,
    program_id BIGINT,
    id BIGINT,
    PRIMARY KEY ((page_id), program_id, id)
)
"""

# Assignments per employee, newest first within a program
ACADEMY_ASSIGNMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.academy_assignments (
    employee_id BIGINT,
    program_id BIGINT,
    id BIGINT,
    status TEXT,
    assigned_at TIMESTAMP,
    PRIMARY KEY ((employee_id), program_id, id)
) WITH CLUSTERING ORDER BY (program_id ASC, id DESC)
"""

ACADEMY_ASSIGNMENT_PAGES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.academy_assignment_pages (
    assignment_id BIGINT,
    id BIGINT,
    employee_id BIGINT,
    program_id BIGINT,
    page_id BIGINT,
    page_version_id BIGINT,
    status TEXT,
    score INT,
    updated_at TIMESTAMP,
    PRIMARY KEY ((assignment_id), id)
)
"""

# Lookup: assignment page by id
ACADEMY_ASSIGNMENT_PAGE_INDEX_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.academy_assignment_page_index (
    id BIGINT PRIMARY KEY,
    assignment_id BIGINT,
    employee_id BIGINT
)
"""

# Submissions, newest first (the first row is the current answer)
ACADEMY_TASK_SUBMISSIONS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.academy_task_submissions (
    assignment_page_id BIGINT,
    created_at TIMESTAMP,
    id BIGINT,
    employee_id BIGINT,
    answer TEXT,
    PRIMARY KEY ((assignment_page_id), created_at, id)
) WITH CLUSTERING ORDER BY (created_at DESC, id DESC)
"""

# Comment threads, oldest first
ACADEMY_TASK_COMMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.academy_task_comments (
    assignment_page_id BIGINT,
    created_at TIMESTAMP,
    id BIGINT,
    author_employee_id BIGINT,
    comment TEXT,
    PRIMARY KEY ((assignment_page_id), created_at, id)
) WITH CLUSTERING ORDER BY (created_at ASC, id ASC)
"""

ACADEMY_TABLES_CQL = [
    ACADEMY_TYPES_TABLE_CQL,
    ACADEMY_CATEGORIES_TABLE_CQL,
    ACADEMY_PROGRAMS_TABLE_CQL,
    ACADEMY_PAGES_TABLE_CQL,
    ACADEMY_PAGE_VERSIONS_TABLE_CQL,
    ACADEMY_PROGRAM_PAGES_TABLE_CQL,
    ACADEMY_PROGRAM_PAGES_BY_PAGE_TABLE_CQL,
    ACADEMY_ASSIGNMENTS_TABLE_CQL,
    ACADEMY_ASSIGNMENT_PAGES_TABLE_CQL,
    ACADEMY_ASSIGNMENT_PAGE_INDEX_TABLE_CQL,
    ACADEMY_TASK_SUBMISSIONS_TABLE_CQL,
    ACADEMY_TASK_COMMENTS_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class AcademyType:
    """Grouping of programs shown as a card on the academy home."""

    id: int
    name: str
    description: str | None = None
    icon: str | None = None

    @classmethod
    def from_row(cls, row: Any) -> "AcademyType":
        return cls(id=row.id, name=row.name, description=row.description, icon=row.icon)


@dataclass
class Category:
    """Page category."""

    id: int
    name: str
    description: str | None = None
    sort_order: int = 0

    @classmethod
    def from_row(cls, row: Any) -> "Category":
        return cls(
            id=row.id,
            name=row.name,
            description=row.description,
            sort_order=row.sort_order or 0,
        )


@dataclass
class Program:
    """Named curriculum made of ordered pages."""

    id: int
    name: str
    description: str | None = None
    type_id: int | None = None
    created_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Any) -> "Program":
        return cls(
            id=row.id,
            name=row.name,
            description=row.description,
            type_id=row.type_id,
            created_at=ensure_utc_aware(row.created_at),
        )


@dataclass
class Page:
    """Unit of content; the body lives in its versions."""

    id: int
    title: str
    page_type: str = PageType.THEORY.value
    category_id: int | None = None
    current_version_id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Any) -> "Page":
        return cls(
            id=row.id,
            title=row.title,
            page_type=row.page_type or PageType.THEORY.value,
            category_id=row.category_id,
            current_version_id=row.current_version_id,
            created_at=ensure_utc_aware(row.created_at),
            updated_at=ensure_utc_aware(row.updated_at),
        )


@dataclass
class PageVersion:
    """Immutable snapshot of a page body."""

    id: int
    page_id: int
    version_number: int
    content: dict[str, Any]
    created_by: int | None = None
    created_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Any) -> "PageVersion":
        return cls(
            id=row.id,
            page_id=row.page_id,
            version_number=row.version_number,
            content=load_content(row.content),
            created_by=row.created_by,
            created_at=ensure_utc_aware(row.created_at),
        )


@dataclass
class ProgramPage:
    """A page's position within a program."""

    id: int
    program_id: int
    page_id: int
    order_index: int
    is_required: bool = True

    @classmethod
    def from_row(cls, row: Any) -> "ProgramPage":
        return cls(
            id=row.id,
            program_id=row.program_id,
            page_id=row.page_id,
            order_index=row.order_index if row.order_index is not None else UNORDERED_INDEX,
            is_required=bool(row.is_required),
        )


@dataclass
class Assignment:
    """An employee's enrollment in a program."""

    id: int
    employee_id: int
    program_id: int
    status: str = AssignmentStatus.NOT_STARTED.value
    assigned_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Any) -> "Assignment":
        return cls(
            id=row.id,
            employee_id=row.employee_id,
            program_id=row.program_id,
            status=row.status or AssignmentStatus.NOT_STARTED.value,
            assigned_at=ensure_utc_aware(row.assigned_at),
        )


@dataclass
class AssignmentPage:
    """A learner's progress record for one page of an assignment."""

    id: int
    assignment_id: int
    employee_id: int
    program_id: int
    page_id: int
    page_version_id: int | None = None
    status: str = AssignmentStatus.NOT_STARTED.value
    score: int | None = None
    updated_at: datetime | None = None

    @property
    def is_done(self) -> bool:
        return self.status == AssignmentStatus.DONE.value

    @classmethod
    def from_row(cls, row: Any) -> "AssignmentPage":
        return cls(
            id=row.id,
            assignment_id=row.assignment_id,
            employee_id=row.employee_id,
            program_id=row.program_id,
            page_id=row.page_id,
            page_version_id=row.page_version_id,
            status=row.status or AssignmentStatus.NOT_STARTED.value,
            score=row.score,
            updated_at=ensure_utc_aware(row.updated_at),
        )


@dataclass
class Submission:
    """Free-text answer to a task page."""

    id: int
    assignment_page_id: int
    employee_id: int
    answer: str
    created_at: datetime

    @classmethod
    def from_row(cls, row: Any) -> "Submission":
        return cls(
            id=row.id,
            assignment_page_id=row.assignment_page_id,
            employee_id=row.employee_id,
            answer=row.answer,
            created_at=ensure_utc_aware(row.created_at),
        )


@dataclass
class Comment:
    """Note in an assignment page's thread."""

    id: int
    assignment_page_id: int
    author_employee_id: int
    comment: str
    created_at: datetime

    @classmethod
    def from_row(cls, row: Any) -> "Comment":
        return cls(
            id=row.id,
            assignment_page_id=row.assignment_page_id,
            author_employee_id=row.author_employee_id,
            comment=row.comment,
            created_at=ensure_utc_aware(row.created_at),
        )
