"""Client-side academy views.

- LearnerBoard: assigned programs with optimistic status updates,
  submissions, comments and live progress
- AssignPagesDialog: the administrator's page picker for one employee
- PageOrderEditor: drag to reorder a program's pages
"""

import asyncio

import structlog

from src.academy.models import AssignmentStatus
from src.academy.ordering import order_signature, progress_percent, reorder_locally
from src.academy.schemas import (
    AssignablePageOption,
    AssignmentPageResponse,
    CommentResponse,
    ProgramPageResponse,
    ProgramProgressGroup,
    SubmissionResponse,
)

from .api_client import AcademyClient
from .errors import QueryFailedError, ValidationNotice, WriteFailedError
from .optimistic import OptimisticMutation, StateCell
from .session import AcademySession


logger = structlog.get_logger(__name__)


def _with_status(
    groups: list[ProgramProgressGroup],
    assignment_page_id: int,
    status: AssignmentStatus,
) -> list[ProgramProgressGroup]:
    """Groups with one page's status replaced and progress recomputed."""
    updated = []
    for group in groups:
        if not any(page.id == assignment_page_id for page in group.pages):
            updated.append(group)
            continue

        pages = [
            page.model_copy(update={"status": status})
            if page.id == assignment_page_id
            else page
            for page in group.pages
        ]
        completed = sum(1 for page in pages if page.status == AssignmentStatus.DONE)
        progress = group.progress.model_copy(
            update={
                "total": len(pages),
                "completed": completed,
                "percent": progress_percent(completed, len(pages)),
            }
        )
        updated.append(group.model_copy(update={"pages": pages, "progress": progress}))
    return updated


class LearnerBoard:
    """An employee's assigned programs.

    Administrators may open another employee's board; only the assignee can
    change statuses or submit.
    """

    def __init__(
        self,
        client: AcademyClient,
        session: AcademySession,
        employee_id: int | None = None,
    ):
        self.client = client
        self.session = session
        self.employee_id = employee_id or session.employee_id
        self._groups: StateCell[list[ProgramProgressGroup]] = StateCell([])
        self.submissions: dict[int, SubmissionResponse | None] = {}
        self.comments: dict[int, list[CommentResponse]] = {}
        self.error: str | None = None
        self.notice: str | None = None

    @property
    def groups(self) -> list[ProgramProgressGroup]:
        return self._groups.get()

    @property
    def is_own_board(self) -> bool:
        return self.employee_id == self.session.employee_id

    async def load(self) -> None:
        """Fetch the board; on failure show nothing and keep the message."""
        try:
            if self.is_own_board:
                overview = await self.client.get_my_academy()
            else:
                overview = await self.client.get_employee_academy(self.employee_id)
        except QueryFailedError as e:
            self._groups.set([])
            self.error = e.message
            return
        self._groups.set(overview.programs)
        self.error = None

    def find_page(self, assignment_page_id: int) -> AssignmentPageResponse | None:
        for group in self.groups:
            for page in group.pages:
                if page.id == assignment_page_id:
                    return page
        return None

    async def update_status(
        self, assignment_page_id: int, status: AssignmentStatus
    ) -> bool:
        """Show the new status at once, then persist it.

        Returns:
            False if the write failed and the page went back to its old status.
        """
        status = AssignmentStatus(status)
        page = self.find_page(assignment_page_id)
        previous = page.status if page is not None else None

        def rollback(groups: list[ProgramProgressGroup]) -> list[ProgramProgressGroup]:
            if previous is None:
                return groups
            return _with_status(groups, assignment_page_id, previous)

        mutation = OptimisticMutation(
            self._groups,
            apply=lambda groups: _with_status(groups, assignment_page_id, status),
            rollback=rollback,
            persist=lambda: self.client.update_status(assignment_page_id, status),
            name="update_status",
        )
        try:
            await mutation.run()
        except WriteFailedError as e:
            self.error = e.message
            return False
        self.error = None
        return True

    async def load_submission(self, assignment_page_id: int) -> SubmissionResponse | None:
        try:
            submission = await self.client.get_current_submission(assignment_page_id)
        except QueryFailedError as e:
            self.error = e.message
            submission = None
        self.submissions[assignment_page_id] = submission
        return submission

    async def submit(
        self, assignment_page_id: int, answer: str
    ) -> SubmissionResponse | None:
        """Submit an answer; it becomes the current submission."""
        try:
            submission = await self.client.submit_task(assignment_page_id, answer)
        except ValidationNotice as e:
            self.notice = e.message
            return None
        except WriteFailedError as e:
            self.error = e.message
            return None
        self.submissions[assignment_page_id] = submission
        self.notice = "Answer submitted."
        return submission

    async def load_comments(self, assignment_page_id: int) -> list[CommentResponse]:
        try:
            thread = await self.client.list_comments(assignment_page_id)
        except QueryFailedError as e:
            self.error = e.message
            thread = []
        self.comments[assignment_page_id] = thread
        return thread

    async def add_comment(
        self, assignment_page_id: int, text: str
    ) -> CommentResponse | None:
        """Post a comment and append it to the thread."""
        try:
            comment = await self.client.add_comment(assignment_page_id, text)
        except ValidationNotice as e:
            self.notice = e.message
            return None
        except WriteFailedError as e:
            self.error = e.message
            return None
        self.comments.setdefault(assignment_page_id, []).append(comment)
        return comment


class AssignPagesDialog:
    """Pick program pages to assign to an employee."""

    def __init__(self, client: AcademyClient, employee_id: int, program_id: int):
        self.client = client
        self.employee_id = employee_id
        self.program_id = program_id
        self.options: list[AssignablePageOption] = []
        self.selected: set[int] = set()
        self.error: str | None = None
        self.notice: str | None = None

    async def load(self) -> None:
        """Fetch options; required pages not yet assigned start selected."""
        try:
            data = await self.client.get_assignable_pages(self.employee_id, self.program_id)
        except QueryFailedError as e:
            self.options = []
            self.selected = set()
            self.error = e.message
            return
        self.options = data.pages
        self.selected = {
            option.program_page.page_id
            for option in data.pages
            if option.selected_by_default
        }
        self.error = None

    def toggle(self, page_id: int) -> None:
        if page_id in self.selected:
            self.selected.remove(page_id)
        else:
            self.selected.add(page_id)

    async def submit(self, pin_current_version: bool = False) -> bool:
        """Assign the selection; the server skips pages already assigned."""
        order = [option.program_page.page_id for option in self.options]
        page_ids = [pid for pid in order if pid in self.selected]
        page_ids += sorted(self.selected.difference(order))

        try:
            result = await self.client.assign_pages(
                self.employee_id,
                self.program_id,
                page_ids,
                pin_current_version=pin_current_version,
            )
        except ValidationNotice as e:
            self.notice = e.message
            return False
        except WriteFailedError as e:
            self.error = e.message
            return False

        self.notice = result.notice
        self.error = None
        await self.load()
        return True


class PageOrderEditor:
    """Drag-and-drop ordering of a program's pages.

    Hovering reorders locally; the order is persisted once, when the drag
    ends, and only if the gesture changed something along the way.
    """

    def __init__(self, client: AcademyClient, program_id: int):
        self.client = client
        self.program_id = program_id
        self.items: list[ProgramPageResponse] = []
        self.error: str | None = None
        self.dragging_id: int | None = None
        self._snapshot: list[ProgramPageResponse] | None = None
        self._dirty = False

    async def load(self) -> None:
        try:
            self.items = await self.client.list_program_pages(self.program_id)
        except QueryFailedError as e:
            self.items = []
            self.error = e.message
            return
        self.error = None

    def start_drag(self, program_page_id: int) -> None:
        self.dragging_id = program_page_id
        self._snapshot = list(self.items)
        self._dirty = False

    def hover(self, target_id: int) -> None:
        """Move the dragged page to the hovered position, locally only."""
        if self.dragging_id is None:
            return
        reordered = reorder_locally(self.items, self.dragging_id, target_id)
        if order_signature(reordered) != order_signature(self.items):
            self._dirty = True
        self.items = reordered

    async def end_drag(self) -> bool:
        """Finish the gesture, persisting when it moved anything.

        Returns:
            False if the order was reverted to the drag-start state.
        """
        snapshot = self._snapshot if self._snapshot is not None else list(self.items)
        dirty = self._dirty
        self.dragging_id = None
        self._snapshot = None
        self._dirty = False

        if not dirty:
            return True
        return await self.persist_order(self.items, revert_to=snapshot)

    async def persist_order(
        self,
        items: list[ProgramPageResponse],
        revert_to: list[ProgramPageResponse] | None = None,
    ) -> bool:
        """Write every row's index, then check the stored order.

        One update per row is sent concurrently and their outcomes are not
        inspected; the re-fetched list decides. If it differs from ``items``
        or cannot be fetched, the editor goes back to ``revert_to``.
        """
        fallback = list(revert_to) if revert_to is not None else list(self.items)
        expected = order_signature(items)

        await asyncio.gather(
            *(
                self.client.update_program_page_order(self.program_id, item.id, index)
                for index, item in enumerate(items)
            ),
            return_exceptions=True,
        )

        try:
            stored = await self.client.list_program_pages(self.program_id)
        except QueryFailedError as e:
            self.items = fallback
            self.error = e.message
            logger.warning(
                "page_order_reverted",
                program_id=self.program_id,
                reason="refetch_failed",
            )
            return False

        if order_signature(stored) != expected:
            self.items = fallback
            self.error = "The page order could not be saved."
            logger.warning(
                "page_order_reverted",
                program_id=self.program_id,
                reason="order_mismatch",
                expected=expected,
                stored=order_signature(stored),
            )
            return False

        self.items = stored
        self.error = None
        logger.info("page_order_saved", program_id=self.program_id, count=len(stored))
        return True
