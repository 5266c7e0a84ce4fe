"""Academy service layer.

Business logic for:
- Authoring: academy types, categories, programs, versioned pages and the
  page order of each program
- Assignment of program pages to employees
- Learner status updates, progress, task submissions and comment threads
"""

import asyncio
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog

from src.core.redis import IdAllocator

from .models import (
    AcademyType,
    Assignment,
    AssignmentPage,
    AssignmentStatus,
    Category,
    Comment,
    Page,
    PageType,
    PageVersion,
    Program,
    ProgramPage,
    Submission,
    dump_content,
)
from .ordering import progress_percent, sort_assignment_pages
from .schemas import (
    AcademyTypeResponse,
    AssignablePageOption,
    AssignablePagesResponse,
    AssignmentPageContentResponse,
    AssignmentPageResponse,
    AssignmentResponse,
    AssignPagesResponse,
    CategoryRef,
    CommentAuthor,
    CommentResponse,
    CreateAcademyTypeRequest,
    CreateCategoryRequest,
    CreatePageRequest,
    CreateProgramRequest,
    LearnerAcademyResponse,
    PageResponse,
    PageSummary,
    ProgramPageResponse,
    ProgramProgressGroup,
    ProgramResponse,
    ProgressResponse,
    UpdatePageRequest,
    UpdateProgramPageRequest,
    UpdateProgramRequest,
)


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from src.employees.models import Employee
    from src.employees.service import EmployeeService

logger = structlog.get_logger(__name__)

ALREADY_ASSIGNED_NOTICE = "All selected pages are already assigned."


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class AcademyError(Exception):
    """Base academy error."""

    def __init__(self, message: str, code: str = "academy_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class AcademyValidationError(AcademyError):
    """Input rejected before touching the store."""

    def __init__(self, message: str = "Invalid input"):
        super().__init__(message, "validation_error")


class AcademyTypeNotFoundError(AcademyError):
    """Academy type not found."""

    def __init__(self, message: str = "Academy type not found"):
        super().__init__(message, "type_not_found")


class CategoryNotFoundError(AcademyError):
    """Category not found."""

    def __init__(self, message: str = "Category not found"):
        super().__init__(message, "category_not_found")


class ProgramNotFoundError(AcademyError):
    """Program not found."""

    def __init__(self, message: str = "Program not found"):
        super().__init__(message, "program_not_found")


class PageNotFoundError(AcademyError):
    """Page not found."""

    def __init__(self, message: str = "Page not found"):
        super().__init__(message, "page_not_found")


class ProgramPageNotFoundError(AcademyError):
    """Page is not part of the program."""

    def __init__(self, message: str = "Program page not found"):
        super().__init__(message, "program_page_not_found")


class AlreadyLinkedError(AcademyError):
    """Page already part of the program."""

    def __init__(self, message: str = "Page is already part of this program"):
        super().__init__(message, "already_linked")


class InvalidReorderError(AcademyError):
    """Reorder ids do not match the program's pages."""

    def __init__(
        self, message: str = "Page ids do not match the program's current pages"
    ):
        super().__init__(message, "invalid_reorder")


class AssignmentPageNotFoundError(AcademyError):
    """Assignment page not found."""

    def __init__(self, message: str = "Assignment page not found"):
        super().__init__(message, "assignment_page_not_found")


class AssignmentCreateError(AcademyError):
    """Assignment row could not be created."""

    def __init__(self, message: str = "Failed to create assignment"):
        super().__init__(message, "assignment_create_failed")


class NotAssigneeError(AcademyError):
    """Actor is not allowed to act on this assignment page."""

    def __init__(self, message: str = "Only the assignee can do this"):
        super().__init__(message, "not_assignee")


# ==============================================================================
# Content Service
# ==============================================================================


class ContentService:
    """Service for academy authoring."""

    def __init__(self, session: "Session", keyspace: str, ids: IdAllocator):
        """Initialize with Cassandra session and id allocator."""
        self.session = session
        self.keyspace = keyspace
        self.ids = ids
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements."""
        ks = self.keyspace

        # Types and categories
        self._list_types = self.session.prepare(f"SELECT * FROM {ks}.academy_types")
        self._get_type = self.session.prepare(
            f"SELECT * FROM {ks}.academy_types WHERE id = ?"
        )
        self._insert_type = self.session.prepare(f"""
            INSERT INTO {ks}.academy_types (id, name, description, icon)
            VALUES (?, ?, ?, ?)
        """)
        self._list_categories = self.session.prepare(
            f"SELECT * FROM {ks}.academy_categories"
        )
        self._get_category = self.session.prepare(
            f"SELECT * FROM {ks}.academy_categories WHERE id = ?"
        )
        self._insert_category = self.session.prepare(f"""
            INSERT INTO {ks}.academy_categories (id, name, description, sort_order)
            VALUES (?, ?, ?, ?)
        """)

        # Programs
        self._list_programs = self.session.prepare(
            f"SELECT * FROM {ks}.academy_programs"
        )
        self._get_program = self.session.prepare(
            f"SELECT * FROM {ks}.academy_programs WHERE id = ?"
        )
        self._insert_program = self.session.prepare(f"""
            INSERT INTO {ks}.academy_programs
            (id, name, description, type_id, created_at)
            VALUES (?, ?, ?, ?, ?)
        """)
        self._update_program = self.session.prepare(f"""
            UPDATE {ks}.academy_programs
            SET name = ?, description = ?, type_id = ?
            WHERE id = ?
        """)

        # Pages and versions
        self._get_page = self.session.prepare(
            f"SELECT * FROM {ks}.academy_pages WHERE id = ?"
        )
        self._insert_page = self.session.prepare(f"""
            INSERT INTO {ks}.academy_pages
            (id, title, page_type, category_id, current_version_id,
             created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """)
        self._update_page = self.session.prepare(f"""
            UPDATE {ks}.academy_pages
            SET title = ?, page_type = ?, category_id = ?,
                current_version_id = ?, updated_at = ?
            WHERE id = ?
        """)
        self._delete_page = self.session.prepare(
            f"DELETE FROM {ks}.academy_pages WHERE id = ?"
        )
        self._list_versions = self.session.prepare(
            f"SELECT * FROM {ks}.academy_page_versions WHERE page_id = ?"
        )
        self._get_latest_version = self.session.prepare(
            f"SELECT * FROM {ks}.academy_page_versions WHERE page_id = ? LIMIT 1"
        )
        self._insert_version = self.session.prepare(f"""
            INSERT INTO {ks}.academy_page_versions
            (page_id, version_number, id, content, created_by, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """)
        self._delete_versions = self.session.prepare(
            f"DELETE FROM {ks}.academy_page_versions WHERE page_id = ?"
        )

        # Program pages (dual-write with the by-page lookup)
        self._list_program_pages = self.session.prepare(
            f"SELECT * FROM {ks}.academy_program_pages WHERE program_id = ?"
        )
        self._get_program_page = self.session.prepare(
            f"SELECT * FROM {ks}.academy_program_pages WHERE program_id = ? AND id = ?"
        )
        self._insert_program_page = self.session.prepare(f"""
            INSERT INTO {ks}.academy_program_pages
            (program_id, id, page_id, order_index, is_required)
            VALUES (?, ?, ?, ?, ?)
        """)
        self._update_program_page_order = self.session.prepare(f"""
            UPDATE {ks}.academy_program_pages SET order_index = ?
            WHERE program_id = ? AND id = ?
        """)
        self._update_program_page_required = self.session.prepare(f"""
            UPDATE {ks}.academy_program_pages SET is_required = ?
            WHERE program_id = ? AND id = ?
        """)
        self._delete_program_page = self.session.prepare(
            f"DELETE FROM {ks}.academy_program_pages WHERE program_id = ? AND id = ?"
        )
        self._list_links_by_page = self.session.prepare(
            f"SELECT * FROM {ks}.academy_program_pages_by_page WHERE page_id = ?"
        )
        self._insert_link_by_page = self.session.prepare(f"""
            INSERT INTO {ks}.academy_program_pages_by_page (page_id, program_id, id)
            VALUES (?, ?, ?)
        """)
        self._delete_link_by_page = self.session.prepare(f"""
            DELETE FROM {ks}.academy_program_pages_by_page
            WHERE page_id = ? AND program_id = ? AND id = ?
        """)

    # --------------------------------------------------------------------------
    # Types and categories
    # --------------------------------------------------------------------------

    async def list_types(self) -> list[AcademyType]:
        """List academy types by id."""
        result = await self.session.aexecute(self._list_types)
        return sorted((AcademyType.from_row(row) for row in result), key=lambda t: t.id)

    async def get_type(self, type_id: int) -> AcademyType | None:
        """Get academy type by id."""
        result = await self.session.aexecute(self._get_type, [type_id])
        row = result.one()
        return AcademyType.from_row(row) if row else None

    async def create_type(self, data: CreateAcademyTypeRequest) -> AcademyType:
        """Create an academy type."""
        academy_type = AcademyType(
            id=await self.ids.next_id("academy_types"),
            name=data.name.strip(),
            description=data.description,
            icon=data.icon,
        )
        await self.session.aexecute(
            self._insert_type,
            [academy_type.id, academy_type.name, academy_type.description, academy_type.icon],
        )
        logger.info("academy_type_created", type_id=academy_type.id)
        return academy_type

    async def list_categories(self) -> list[Category]:
        """List categories by sort order."""
        result = await self.session.aexecute(self._list_categories)
        return sorted(
            (Category.from_row(row) for row in result),
            key=lambda c: (c.sort_order, c.id),
        )

    async def create_category(self, data: CreateCategoryRequest) -> Category:
        """Create a category at the end of the list."""
        existing = await self.list_categories()
        category = Category(
            id=await self.ids.next_id("academy_categories"),
            name=data.name,
            description=data.description,
            sort_order=len(existing) + 1,
        )
        await self.session.aexecute(
            self._insert_category,
            [category.id, category.name, category.description, category.sort_order],
        )
        logger.info("category_created", category_id=category.id)
        return category

    # --------------------------------------------------------------------------
    # Programs
    # --------------------------------------------------------------------------

    async def list_programs(self, type_id: int | None = None) -> list[Program]:
        """List programs, optionally for one academy type."""
        result = await self.session.aexecute(self._list_programs)
        programs = [Program.from_row(row) for row in result]
        if type_id is not None:
            programs = [p for p in programs if p.type_id == type_id]
        return sorted(programs, key=lambda p: p.id)

    async def get_program(self, program_id: int) -> Program | None:
        """Get program by id."""
        result = await self.session.aexecute(self._get_program, [program_id])
        row = result.one()
        return Program.from_row(row) if row else None

    async def _require_program(self, program_id: int) -> Program:
        program = await self.get_program(program_id)
        if not program:
            raise ProgramNotFoundError
        return program

    async def create_program(self, data: CreateProgramRequest) -> Program:
        """Create a program."""
        if data.type_id is not None and not await self.get_type(data.type_id):
            raise AcademyTypeNotFoundError

        program = Program(
            id=await self.ids.next_id("academy_programs"),
            name=data.name,
            description=data.description,
            type_id=data.type_id,
            created_at=datetime.now(UTC),
        )
        await self.session.aexecute(
            self._insert_program,
            [
                program.id,
                program.name,
                program.description,
                program.type_id,
                program.created_at,
            ],
        )
        logger.info("program_created", program_id=program.id)
        return program

    async def update_program(
        self, program_id: int, data: UpdateProgramRequest
    ) -> Program:
        """Update program fields that were provided."""
        program = await self._require_program(program_id)

        if data.name is not None:
            program.name = data.name.strip()
        if data.description is not None:
            program.description = data.description
        if data.type_id is not None:
            if not await self.get_type(data.type_id):
                raise AcademyTypeNotFoundError
            program.type_id = data.type_id

        await self.session.aexecute(
            self._update_program,
            [program.name, program.description, program.type_id, program.id],
        )
        return program

    # --------------------------------------------------------------------------
    # Pages and versions
    # --------------------------------------------------------------------------

    async def get_page(self, page_id: int) -> Page | None:
        """Get page by id."""
        result = await self.session.aexecute(self._get_page, [page_id])
        row = result.one()
        return Page.from_row(row) if row else None

    async def list_versions(self, page_id: int) -> list[PageVersion]:
        """List a page's versions, newest first."""
        result = await self.session.aexecute(self._list_versions, [page_id])
        return [PageVersion.from_row(row) for row in result]

    async def get_version(self, page_id: int, version_id: int) -> PageVersion | None:
        """Get one version of a page by version id."""
        for version in await self.list_versions(page_id):
            if version.id == version_id:
                return version
        return None

    async def get_current_version(self, page: Page) -> PageVersion | None:
        """Version the page currently points at (latest if unset)."""
        if page.current_version_id is not None:
            version = await self.get_version(page.id, page.current_version_id)
            if version is not None:
                return version
        result = await self.session.aexecute(self._get_latest_version, [page.id])
        row = result.one()
        return PageVersion.from_row(row) if row else None

    async def _insert_new_version(
        self,
        page_id: int,
        version_number: int,
        content: dict,
        author_id: int | None,
    ) -> PageVersion:
        version = PageVersion(
            id=await self.ids.next_id("academy_page_versions"),
            page_id=page_id,
            version_number=version_number,
            content=content,
            created_by=author_id,
            created_at=datetime.now(UTC),
        )
        await self.session.aexecute(
            self._insert_version,
            [
                version.page_id,
                version.version_number,
                version.id,
                dump_content(version.content),
                version.created_by,
                version.created_at,
            ],
        )
        return version

    async def create_page(
        self, data: CreatePageRequest, author_id: int | None = None
    ) -> tuple[Page, PageVersion, ProgramPage]:
        """Create a page with version 1 and append it to a program."""
        await self._require_program(data.program_id)

        page_id = await self.ids.next_id("academy_pages")
        version = await self._insert_new_version(page_id, 1, data.content, author_id)

        now = datetime.now(UTC)
        page = Page(
            id=page_id,
            title=data.title,
            page_type=data.page_type.value,
            category_id=data.category_id,
            current_version_id=version.id,
            created_at=now,
            updated_at=now,
        )
        await self.session.aexecute(
            self._insert_page,
            [
                page.id,
                page.title,
                page.page_type,
                page.category_id,
                page.current_version_id,
                page.created_at,
                page.updated_at,
            ],
        )

        link = await self.link_page(data.program_id, page.id, is_required=True)

        logger.info(
            "page_created",
            page_id=page.id,
            program_id=data.program_id,
            version_id=version.id,
        )
        return page, version, link

    async def update_page(
        self, page_id: int, data: UpdatePageRequest, author_id: int | None = None
    ) -> tuple[Page, PageVersion]:
        """Save a page edit as a new version."""
        page = await self.get_page(page_id)
        if not page:
            raise PageNotFoundError

        result = await self.session.aexecute(self._get_latest_version, [page_id])
        latest = result.one()
        next_number = (latest.version_number if latest else 0) + 1
        version = await self._insert_new_version(
            page_id, next_number, data.content, author_id
        )

        if data.title is not None:
            page.title = data.title.strip()
        if data.page_type is not None:
            page.page_type = data.page_type.value
        if data.category_id is not None:
            page.category_id = data.category_id
        page.current_version_id = version.id
        page.updated_at = datetime.now(UTC)

        await self.session.aexecute(
            self._update_page,
            [
                page.title,
                page.page_type,
                page.category_id,
                page.current_version_id,
                page.updated_at,
                page.id,
            ],
        )

        logger.info("page_updated", page_id=page.id, version_number=next_number)
        return page, version

    async def delete_page(self, page_id: int) -> int:
        """Delete a page, its program links and its versions.

        Links go first so no program ever lists a missing page; the programs
        that held it are renumbered.

        Returns:
            Number of program links removed.
        """
        page = await self.get_page(page_id)
        if not page:
            raise PageNotFoundError

        result = await self.session.aexecute(self._list_links_by_page, [page_id])
        links = list(result)
        for link in links:
            await self.session.aexecute(
                self._delete_program_page, [link.program_id, link.id]
            )
            await self.session.aexecute(
                self._delete_link_by_page, [page_id, link.program_id, link.id]
            )

        for program_id in sorted({link.program_id for link in links}):
            await self._densify(program_id)

        await self.session.aexecute(self._delete_versions, [page_id])
        await self.session.aexecute(self._delete_page, [page_id])

        logger.info("page_deleted", page_id=page_id, links_removed=len(links))
        return len(links)

    async def to_page_response(self, page: Page) -> PageResponse:
        """Page with its current version content."""
        version = await self.get_current_version(page)
        return PageResponse(
            id=page.id,
            title=page.title,
            page_type=PageType(page.page_type),
            category_id=page.category_id,
            current_version_id=page.current_version_id,
            version_number=version.version_number if version else None,
            content=version.content if version else {},
            created_at=page.created_at,
            updated_at=page.updated_at,
        )

    # --------------------------------------------------------------------------
    # Program pages
    # --------------------------------------------------------------------------

    async def list_program_pages(self, program_id: int) -> list[ProgramPage]:
        """Program pages sorted by order index (ties by id)."""
        result = await self.session.aexecute(self._list_program_pages, [program_id])
        return sorted(
            (ProgramPage.from_row(row) for row in result),
            key=lambda pp: (pp.order_index, pp.id),
        )

    async def get_program_page(
        self, program_id: int, program_page_id: int
    ) -> ProgramPage | None:
        """Get one program page row."""
        result = await self.session.aexecute(
            self._get_program_page, [program_id, program_page_id]
        )
        row = result.one()
        return ProgramPage.from_row(row) if row else None

    async def link_page(
        self, program_id: int, page_id: int, is_required: bool = True
    ) -> ProgramPage:
        """Append a page to the end of a program."""
        current = await self.list_program_pages(program_id)
        if any(pp.page_id == page_id for pp in current):
            raise AlreadyLinkedError

        link = ProgramPage(
            id=await self.ids.next_id("academy_program_pages"),
            program_id=program_id,
            page_id=page_id,
            order_index=len(current),
            is_required=is_required,
        )

        # Dual-write pattern
        await self.session.aexecute(
            self._insert_program_page,
            [link.program_id, link.id, link.page_id, link.order_index, link.is_required],
        )
        await self.session.aexecute(
            self._insert_link_by_page, [link.page_id, link.program_id, link.id]
        )
        return link

    async def unlink_program_page(self, program_id: int, program_page_id: int) -> None:
        """Remove a page from a program and close the gap in the order."""
        link = await self.get_program_page(program_id, program_page_id)
        if not link:
            raise ProgramPageNotFoundError

        await self.session.aexecute(self._delete_program_page, [program_id, link.id])
        await self.session.aexecute(
            self._delete_link_by_page, [link.page_id, program_id, link.id]
        )
        await self._densify(program_id)

        logger.info(
            "program_page_removed", program_id=program_id, program_page_id=link.id
        )

    async def update_program_page(
        self,
        program_id: int,
        program_page_id: int,
        data: UpdateProgramPageRequest,
    ) -> ProgramPage:
        """Update one row's order index and/or required flag.

        Rows are independent: writing an index does not shift any other row,
        so a full reorder is one call per row.
        """
        link = await self.get_program_page(program_id, program_page_id)
        if not link:
            raise ProgramPageNotFoundError

        if data.order_index is not None:
            await self.session.aexecute(
                self._update_program_page_order,
                [data.order_index, program_id, program_page_id],
            )
            link.order_index = data.order_index
        if data.is_required is not None:
            await self.session.aexecute(
                self._update_program_page_required,
                [data.is_required, program_id, program_page_id],
            )
            link.is_required = data.is_required
        return link

    async def reorder_program_pages(
        self, program_id: int, program_page_ids: list[int]
    ) -> list[ProgramPage]:
        """Rewrite a program's whole page order."""
        current = await self.list_program_pages(program_id)
        current_ids = {pp.id for pp in current}

        if len(program_page_ids) != len(set(program_page_ids)) or (
            set(program_page_ids) != current_ids
        ):
            raise InvalidReorderError

        await asyncio.gather(
            *(
                self.session.aexecute(
                    self._update_program_page_order, [index, program_id, pp_id]
                )
                for index, pp_id in enumerate(program_page_ids)
            )
        )

        logger.info(
            "program_pages_reordered",
            program_id=program_id,
            count=len(program_page_ids),
        )

        by_id = {pp.id: pp for pp in current}
        reordered = []
        for index, pp_id in enumerate(program_page_ids):
            link = by_id[pp_id]
            link.order_index = index
            reordered.append(link)
        return reordered

    async def _densify(self, program_id: int) -> None:
        """Renumber a program's pages to 0..n-1, keeping their order."""
        for index, link in enumerate(await self.list_program_pages(program_id)):
            if link.order_index != index:
                await self.session.aexecute(
                    self._update_program_page_order, [index, program_id, link.id]
                )

    # --------------------------------------------------------------------------
    # Responses
    # --------------------------------------------------------------------------

    @staticmethod
    def page_summary(page: Page, categories: dict[int, Category]) -> PageSummary:
        """Page listing fields with its category resolved."""
        category = categories.get(page.category_id) if page.category_id else None
        return PageSummary(
            id=page.id,
            title=page.title,
            page_type=PageType(page.page_type),
            category=CategoryRef(id=category.id, name=category.name)
            if category
            else None,
        )

    async def category_map(self) -> dict[int, Category]:
        """Categories keyed by id."""
        return {c.id: c for c in await self.list_categories()}

    async def to_program_page_responses(
        self, links: Iterable[ProgramPage]
    ) -> list[ProgramPageResponse]:
        """Program page rows with their page details."""
        categories = await self.category_map()
        responses = []
        for link in links:
            page = await self.get_page(link.page_id)
            responses.append(
                ProgramPageResponse(
                    id=link.id,
                    program_id=link.program_id,
                    page_id=link.page_id,
                    order_index=link.order_index,
                    is_required=link.is_required,
                    page=self.page_summary(page, categories) if page else None,
                )
            )
        return responses

    async def list_program_page_views(self, program_id: int) -> list[ProgramPageResponse]:
        """A program's pages in order with page details."""
        await self._require_program(program_id)
        return await self.to_program_page_responses(
            await self.list_program_pages(program_id)
        )


# ==============================================================================
# Assignment Service
# ==============================================================================


class AssignmentService:
    """Service for assignments and learner progress."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        ids: IdAllocator,
        content: ContentService,
        employees: "EmployeeService | None" = None,
    ):
        """Initialize with Cassandra session, id allocator and content service."""
        self.session = session
        self.keyspace = keyspace
        self.ids = ids
        self.content = content
        self.employees = employees
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements."""
        ks = self.keyspace

        # Assignments
        self._get_latest_assignment = self.session.prepare(f"""
            SELECT * FROM {ks}.academy_assignments
            WHERE employee_id = ? AND program_id = ? LIMIT 1
        """)
        self._list_program_assignments = self.session.prepare(f"""
            SELECT * FROM {ks}.academy_assignments
            WHERE employee_id = ? AND program_id = ?
        """)
        self._list_assignments = self.session.prepare(
            f"SELECT * FROM {ks}.academy_assignments WHERE employee_id = ?"
        )
        self._insert_assignment = self.session.prepare(f"""
            INSERT INTO {ks}.academy_assignments
            (employee_id, program_id, id, status, assigned_at)
            VALUES (?, ?, ?, ?, ?)
        """)

        # Assignment pages (dual-write with the id index)
        self._list_assignment_pages = self.session.prepare(
            f"SELECT * FROM {ks}.academy_assignment_pages WHERE assignment_id = ?"
        )
        self._get_assignment_page = self.session.prepare(f"""
            SELECT * FROM {ks}.academy_assignment_pages
            WHERE assignment_id = ? AND id = ?
        """)
        self._get_page_index = self.session.prepare(
            f"SELECT * FROM {ks}.academy_assignment_page_index WHERE id = ?"
        )
        self._insert_assignment_page = self.session.prepare(f"""
            INSERT INTO {ks}.academy_assignment_pages
            (assignment_id, id, employee_id, program_id, page_id,
             page_version_id, status, score, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._insert_page_index = self.session.prepare(f"""
            INSERT INTO {ks}.academy_assignment_page_index
            (id, assignment_id, employee_id)
            VALUES (?, ?, ?)
        """)
        self._update_status = self.session.prepare(f"""
            UPDATE {ks}.academy_assignment_pages
            SET status = ?, updated_at = ?
            WHERE assignment_id = ? AND id = ?
        """)
        self._update_score = self.session.prepare(f"""
            UPDATE {ks}.academy_assignment_pages
            SET score = ?, updated_at = ?
            WHERE assignment_id = ? AND id = ?
        """)

        # Submissions and comments
        self._insert_submission = self.session.prepare(f"""
            INSERT INTO {ks}.academy_task_submissions
            (assignment_page_id, created_at, id, employee_id, answer)
            VALUES (?, ?, ?, ?, ?)
        """)
        self._get_current_submission = self.session.prepare(f"""
            SELECT * FROM {ks}.academy_task_submissions
            WHERE assignment_page_id = ? LIMIT 1
        """)
        self._insert_comment = self.session.prepare(f"""
            INSERT INTO {ks}.academy_task_comments
            (assignment_page_id, created_at, id, author_employee_id, comment)
            VALUES (?, ?, ?, ?, ?)
        """)
        self._list_comments = self.session.prepare(
            f"SELECT * FROM {ks}.academy_task_comments WHERE assignment_page_id = ?"
        )

    # --------------------------------------------------------------------------
    # Lookups
    # --------------------------------------------------------------------------

    async def get_latest_assignment(
        self, employee_id: int, program_id: int
    ) -> Assignment | None:
        """Most recent assignment (highest id) for an employee and program."""
        result = await self.session.aexecute(
            self._get_latest_assignment, [employee_id, program_id]
        )
        row = result.one()
        return Assignment.from_row(row) if row else None

    async def list_assignments(self, employee_id: int) -> list[Assignment]:
        """All assignments of an employee, by id."""
        result = await self.session.aexecute(self._list_assignments, [employee_id])
        return sorted((Assignment.from_row(row) for row in result), key=lambda a: a.id)

    async def list_assignment_pages(self, assignment_id: int) -> list[AssignmentPage]:
        """Pages of an assignment, by id."""
        result = await self.session.aexecute(
            self._list_assignment_pages, [assignment_id]
        )
        return [AssignmentPage.from_row(row) for row in result]

    async def get_assignment_page(self, assignment_page_id: int) -> AssignmentPage:
        """Get assignment page by id.

        Raises:
            AssignmentPageNotFoundError: If it does not exist.
        """
        result = await self.session.aexecute(self._get_page_index, [assignment_page_id])
        index = result.one()
        if not index:
            raise AssignmentPageNotFoundError

        result = await self.session.aexecute(
            self._get_assignment_page, [index.assignment_id, assignment_page_id]
        )
        row = result.one()
        if not row:
            raise AssignmentPageNotFoundError
        return AssignmentPage.from_row(row)

    async def _assigned_page_ids(self, employee_id: int, program_id: int) -> set[int]:
        """Page ids already assigned to an employee in a program."""
        result = await self.session.aexecute(
            self._list_program_assignments, [employee_id, program_id]
        )
        page_ids: set[int] = set()
        for row in result:
            for page in await self.list_assignment_pages(row.id):
                page_ids.add(page.page_id)
        return page_ids

    @staticmethod
    def _ensure_access(
        page: AssignmentPage,
        actor: "Employee",
        allow_admin: bool = False,
        is_admin: bool = False,
    ) -> None:
        if page.employee_id == actor.id:
            return
        if allow_admin and is_admin:
            return
        raise NotAssigneeError

    # --------------------------------------------------------------------------
    # Assigning
    # --------------------------------------------------------------------------

    async def assign_pages(
        self,
        employee_id: int,
        program_id: int,
        page_ids: list[int],
        pin_current_version: bool = False,
    ) -> AssignPagesResponse:
        """Assign program pages to an employee.

        Reuses the employee's latest assignment for the program or creates
        one. Pages the employee already has in this program are skipped; if
        nothing is left, nothing is written.
        """
        if not page_ids:
            raise AcademyValidationError("Select at least one page to assign.")

        if not await self.content.get_program(program_id):
            raise ProgramNotFoundError

        assignment = await self.get_latest_assignment(employee_id, program_id)
        created = False
        if assignment is None:
            assignment = Assignment(
                id=await self.ids.next_id("academy_assignments"),
                employee_id=employee_id,
                program_id=program_id,
                status=AssignmentStatus.NOT_STARTED.value,
                assigned_at=datetime.now(UTC),
            )
            try:
                await self.session.aexecute(
                    self._insert_assignment,
                    [
                        assignment.employee_id,
                        assignment.program_id,
                        assignment.id,
                        assignment.status,
                        assignment.assigned_at,
                    ],
                )
            except Exception as e:
                logger.exception(
                    "assignment_create_failed",
                    employee_id=employee_id,
                    program_id=program_id,
                )
                raise AssignmentCreateError(f"Failed to create assignment: {e}") from e
            created = True
            logger.info(
                "assignment_created",
                assignment_id=assignment.id,
                employee_id=employee_id,
                program_id=program_id,
            )

        already = await self._assigned_page_ids(employee_id, program_id)
        requested = list(dict.fromkeys(page_ids))
        to_insert = [pid for pid in requested if pid not in already]
        skipped = [pid for pid in requested if pid in already]

        if not to_insert:
            return AssignPagesResponse(
                assignment_id=assignment.id,
                assignment_created=created,
                skipped_page_ids=skipped,
                notice=ALREADY_ASSIGNED_NOTICE,
            )

        now = datetime.now(UTC)
        for page_id in to_insert:
            version_id = None
            if pin_current_version:
                page = await self.content.get_page(page_id)
                version_id = page.current_version_id if page else None

            page_row_id = await self.ids.next_id("academy_assignment_pages")
            await self.session.aexecute(
                self._insert_assignment_page,
                [
                    assignment.id,
                    page_row_id,
                    employee_id,
                    program_id,
                    page_id,
                    version_id,
                    AssignmentStatus.NOT_STARTED.value,
                    None,
                    now,
                ],
            )
            await self.session.aexecute(
                self._insert_page_index, [page_row_id, assignment.id, employee_id]
            )

        logger.info(
            "pages_assigned",
            assignment_id=assignment.id,
            employee_id=employee_id,
            inserted=len(to_insert),
            skipped=len(skipped),
        )

        return AssignPagesResponse(
            assignment_id=assignment.id,
            assignment_created=created,
            inserted_page_ids=to_insert,
            skipped_page_ids=skipped,
            notice=f"Assigned {len(to_insert)} page(s).",
        )

    # --------------------------------------------------------------------------
    # Learner actions
    # --------------------------------------------------------------------------

    async def update_status(
        self,
        assignment_page_id: int,
        status: AssignmentStatus,
        actor: "Employee",
    ) -> AssignmentPage:
        """Set the status of one of the actor's assignment pages.

        Any status may follow any other.
        """
        page = await self.get_assignment_page(assignment_page_id)
        self._ensure_access(page, actor)

        previous = page.status
        page.status = AssignmentStatus(status).value
        page.updated_at = datetime.now(UTC)
        await self.session.aexecute(
            self._update_status,
            [page.status, page.updated_at, page.assignment_id, page.id],
        )

        logger.info(
            "assignment_page_status_updated",
            assignment_page_id=page.id,
            previous_status=previous,
            status=page.status,
        )
        return page

    async def set_score(
        self, assignment_page_id: int, score: int | None
    ) -> AssignmentPage:
        """Record a reviewer's score (0-100, None clears it)."""
        if score is not None and not 0 <= score <= 100:
            raise AcademyValidationError("Score must be between 0 and 100.")

        page = await self.get_assignment_page(assignment_page_id)
        page.score = score
        page.updated_at = datetime.now(UTC)
        await self.session.aexecute(
            self._update_score,
            [page.score, page.updated_at, page.assignment_id, page.id],
        )

        logger.info("assignment_page_scored", assignment_page_id=page.id, score=score)
        return page

    async def compute_progress(self, assignment_id: int) -> ProgressResponse:
        """Share of an assignment's pages that are done."""
        pages = await self.list_assignment_pages(assignment_id)
        return self._progress(assignment_id, pages)

    @staticmethod
    def _progress(assignment_id: int, pages: list[AssignmentPage]) -> ProgressResponse:
        completed = sum(1 for page in pages if page.is_done)
        return ProgressResponse(
            assignment_id=assignment_id,
            total=len(pages),
            completed=completed,
            percent=progress_percent(completed, len(pages)),
        )

    async def submit_task(
        self, assignment_page_id: int, answer: str, actor: "Employee"
    ) -> Submission:
        """Append a submission; the page status is left alone."""
        text = (answer or "").strip()
        if not text:
            raise AcademyValidationError("Answer must not be empty.")

        page = await self.get_assignment_page(assignment_page_id)
        self._ensure_access(page, actor)

        submission = Submission(
            id=await self.ids.next_id("academy_task_submissions"),
            assignment_page_id=page.id,
            employee_id=actor.id,
            answer=text,
            created_at=datetime.now(UTC),
        )
        await self.session.aexecute(
            self._insert_submission,
            [
                submission.assignment_page_id,
                submission.created_at,
                submission.id,
                submission.employee_id,
                submission.answer,
            ],
        )

        logger.info(
            "task_submitted", assignment_page_id=page.id, submission_id=submission.id
        )
        return submission

    async def get_current_submission(
        self,
        assignment_page_id: int,
        actor: "Employee",
        is_admin: bool = False,
    ) -> Submission | None:
        """Most recent submission for an assignment page."""
        page = await self.get_assignment_page(assignment_page_id)
        self._ensure_access(page, actor, allow_admin=True, is_admin=is_admin)

        result = await self.session.aexecute(self._get_current_submission, [page.id])
        row = result.one()
        return Submission.from_row(row) if row else None

    async def add_comment(
        self,
        assignment_page_id: int,
        text: str,
        author: "Employee",
        is_admin: bool = False,
    ) -> Comment:
        """Append a comment from the assignee or an administrator."""
        body = (text or "").strip()
        if not body:
            raise AcademyValidationError("Comment must not be empty.")

        page = await self.get_assignment_page(assignment_page_id)
        self._ensure_access(page, author, allow_admin=True, is_admin=is_admin)

        comment = Comment(
            id=await self.ids.next_id("academy_task_comments"),
            assignment_page_id=page.id,
            author_employee_id=author.id,
            comment=body,
            created_at=datetime.now(UTC),
        )
        await self.session.aexecute(
            self._insert_comment,
            [
                comment.assignment_page_id,
                comment.created_at,
                comment.id,
                comment.author_employee_id,
                comment.comment,
            ],
        )

        logger.info(
            "comment_added",
            assignment_page_id=page.id,
            comment_id=comment.id,
            author_employee_id=author.id,
        )
        return comment

    async def list_comments(
        self,
        assignment_page_id: int,
        actor: "Employee",
        is_admin: bool = False,
    ) -> list[CommentResponse]:
        """Comment thread, oldest first, with author details."""
        page = await self.get_assignment_page(assignment_page_id)
        self._ensure_access(page, actor, allow_admin=True, is_admin=is_admin)

        result = await self.session.aexecute(self._list_comments, [page.id])
        comments = sorted(
            (Comment.from_row(row) for row in result),
            key=lambda c: (c.created_at, c.id),
        )

        authors: dict[int, CommentAuthor | None] = {}
        responses = []
        for comment in comments:
            author_id = comment.author_employee_id
            if author_id not in authors:
                authors[author_id] = await self._comment_author(author_id)
            responses.append(CommentResponse.from_entity(comment, authors[author_id]))
        return responses

    async def _comment_author(self, employee_id: int) -> CommentAuthor | None:
        if self.employees is None:
            return None
        employee = await self.employees.get_employee(employee_id)
        if employee is None:
            return None
        return CommentAuthor(
            id=employee.id,
            first_name=employee.first_name,
            last_name=employee.last_name,
            email=employee.email,
        )

    async def get_page_content(
        self,
        assignment_page_id: int,
        actor: "Employee",
        is_admin: bool = False,
    ) -> AssignmentPageContentResponse:
        """Content for an assigned page: the pinned version, else the current one."""
        assignment_page = await self.get_assignment_page(assignment_page_id)
        self._ensure_access(assignment_page, actor, allow_admin=True, is_admin=is_admin)

        page = await self.content.get_page(assignment_page.page_id)
        if not page:
            raise PageNotFoundError

        version = None
        if assignment_page.page_version_id is not None:
            version = await self.content.get_version(
                page.id, assignment_page.page_version_id
            )
        if version is None:
            version = await self.content.get_current_version(page)

        categories = await self.content.category_map()
        return AssignmentPageContentResponse(
            assignment_page_id=assignment_page.id,
            page=self.content.page_summary(page, categories),
            page_version_id=version.id if version else None,
            version_number=version.version_number if version else None,
            content=version.content if version else {},
        )

    # --------------------------------------------------------------------------
    # Overviews
    # --------------------------------------------------------------------------

    async def get_learner_overview(self, employee_id: int) -> LearnerAcademyResponse:
        """An employee's assignments with pages in program order and progress."""
        categories = await self.content.category_map()
        types: dict[int, AcademyType | None] = {}
        pages: dict[int, Page | None] = {}
        groups = []

        for assignment in await self.list_assignments(employee_id):
            program = await self.content.get_program(assignment.program_id)
            academy_type = None
            if program and program.type_id is not None:
                if program.type_id not in types:
                    types[program.type_id] = await self.content.get_type(program.type_id)
                academy_type = types[program.type_id]

            links = await self.content.list_program_pages(assignment.program_id)
            order_map = {(link.program_id, link.page_id): link.order_index for link in links}

            assignment_pages = sort_assignment_pages(
                await self.list_assignment_pages(assignment.id), order_map
            )

            views = []
            for ap in assignment_pages:
                if ap.page_id not in pages:
                    pages[ap.page_id] = await self.content.get_page(ap.page_id)
                page = pages[ap.page_id]
                views.append(
                    AssignmentPageResponse(
                        id=ap.id,
                        assignment_id=ap.assignment_id,
                        program_id=ap.program_id,
                        page_id=ap.page_id,
                        page_version_id=ap.page_version_id,
                        status=AssignmentStatus(ap.status),
                        score=ap.score,
                        updated_at=ap.updated_at,
                        order_index=order_map.get((ap.program_id, ap.page_id)),
                        page=self.content.page_summary(page, categories) if page else None,
                    )
                )

            groups.append(
                ProgramProgressGroup(
                    assignment=AssignmentResponse.from_entity(assignment),
                    program=ProgramResponse.from_entity(program) if program else None,
                    academy_type=AcademyTypeResponse.from_entity(academy_type)
                    if academy_type
                    else None,
                    pages=views,
                    progress=self._progress(assignment.id, assignment_pages),
                )
            )

        return LearnerAcademyResponse(employee_id=employee_id, programs=groups)

    async def get_assignable_pages(
        self, employee_id: int, program_id: int
    ) -> AssignablePagesResponse:
        """Program pages for the assign dialog.

        Required pages the employee does not have yet are preselected.
        """
        program_pages = await self.content.list_program_page_views(program_id)
        already = await self._assigned_page_ids(employee_id, program_id)

        options = [
            AssignablePageOption(
                program_page=pp,
                already_assigned=pp.page_id in already,
                selected_by_default=pp.is_required and pp.page_id not in already,
            )
            for pp in program_pages
        ]
        return AssignablePagesResponse(
            employee_id=employee_id, program_id=program_id, pages=options
        )
