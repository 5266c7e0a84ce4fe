"""Tests for AssignmentService.

Covers:
- assign_pages (create or reuse the assignment, skip assigned pages)
- update_status (assignee only, any transition)
- compute_progress
- submissions and comment threads
- learner overview ordering and the assign dialog defaults
"""

from datetime import UTC, datetime, timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

import pytest

from src.academy.models import AssignmentStatus
from src.academy.service import (
    ALREADY_ASSIGNED_NOTICE,
    AcademyValidationError,
    AssignmentCreateError,
    AssignmentPageNotFoundError,
    AssignmentService,
    ContentService,
    NotAssigneeError,
    ProgramNotFoundError,
)
from src.employees.models import Employee

from support import FakeResult


NOW = datetime(2026, 3, 1, 9, 30, tzinfo=UTC)


def program_row(program_id: int = 7, type_id: int | None = None):
    return SimpleNamespace(
        id=program_id,
        name="Onboarding",
        description=None,
        type_id=type_id,
        created_at=NOW,
    )


def assignment_row(assignment_id: int = 50, employee_id: int = 1, program_id: int = 7):
    return SimpleNamespace(
        id=assignment_id,
        employee_id=employee_id,
        program_id=program_id,
        status="not_started",
        assigned_at=NOW,
    )


def assignment_page_row(
    page_row_id: int,
    page_id: int,
    status: str = "not_started",
    assignment_id: int = 50,
    employee_id: int = 1,
    program_id: int = 7,
    page_version_id: int | None = None,
):
    return SimpleNamespace(
        id=page_row_id,
        assignment_id=assignment_id,
        employee_id=employee_id,
        program_id=program_id,
        page_id=page_id,
        page_version_id=page_version_id,
        status=status,
        score=None,
        updated_at=NOW,
    )


def page_row(page_id: int, title: str = "Page", current_version_id: int | None = None):
    return SimpleNamespace(
        id=page_id,
        title=title,
        page_type="THEORY",
        category_id=None,
        current_version_id=current_version_id,
        created_at=NOW,
        updated_at=NOW,
    )


def program_page_row(link_id: int, page_id: int, order_index: int, program_id: int = 7):
    return SimpleNamespace(
        id=link_id,
        program_id=program_id,
        page_id=page_id,
        order_index=order_index,
        is_required=True,
    )


@pytest.fixture
def learner() -> Employee:
    return Employee(id=1, email="learner@quitcode.dev", first_name="Lea", last_name="Rner")


@pytest.fixture
def stranger() -> Employee:
    return Employee(id=2, email="other@quitcode.dev", first_name="Oth", last_name="Er")


@pytest.fixture
def content_service(mock_session, mock_ids) -> ContentService:
    return ContentService(session=mock_session, keyspace="test_keyspace", ids=mock_ids)


@pytest.fixture
def employee_service():
    service = Mock()
    service.get_employee = AsyncMock(return_value=None)
    return service


@pytest.fixture
def assignment_service(
    mock_session, mock_ids, content_service, employee_service
) -> AssignmentService:
    return AssignmentService(
        session=mock_session,
        keyspace="test_keyspace",
        ids=mock_ids,
        content=content_service,
        employees=employee_service,
    )


def script_assignment_page(results, service: AssignmentService, row) -> None:
    """Make get_assignment_page(row.id) find the row."""
    results.on(
        service._get_page_index,
        FakeResult([SimpleNamespace(id=row.id, assignment_id=row.assignment_id)]),
    )
    results.on(service._get_assignment_page, FakeResult([row]))


class TestAssignPages:
    """Tests for assign_pages."""

    @pytest.mark.asyncio
    async def test_empty_selection_fails_before_store(
        self, assignment_service: AssignmentService, mock_session
    ):
        """Should reject an empty selection without any query."""
        with pytest.raises(AcademyValidationError):
            await assignment_service.assign_pages(1, 7, [])
        mock_session.aexecute.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_program(self, assignment_service: AssignmentService):
        """Should fail when the program does not exist."""
        with pytest.raises(ProgramNotFoundError):
            await assignment_service.assign_pages(1, 7, [100])

    @pytest.mark.asyncio
    async def test_creates_assignment_when_missing(
        self,
        assignment_service: AssignmentService,
        content_service: ContentService,
        results,
    ):
        """Should create an assignment and one page row per selected page."""
        results.on(content_service._get_program, FakeResult([program_row()]))

        outcome = await assignment_service.assign_pages(1, 7, [300, 400])

        assert outcome.assignment_created is True
        assert outcome.assignment_id == 100
        assert outcome.inserted_page_ids == [300, 400]
        assert outcome.notice != ALREADY_ASSIGNED_NOTICE

        (assignment_params,) = results.params_for(assignment_service._insert_assignment)
        assert assignment_params[:4] == [1, 7, 100, "not_started"]

        page_params = results.params_for(assignment_service._insert_assignment_page)
        assert [p[4] for p in page_params] == [300, 400]
        assert all(p[0] == 100 for p in page_params)
        assert all(p[6] == "not_started" for p in page_params)
        assert len(results.params_for(assignment_service._insert_page_index)) == 2

    @pytest.mark.asyncio
    async def test_reuses_latest_assignment_and_skips_assigned(
        self,
        assignment_service: AssignmentService,
        content_service: ContentService,
        results,
    ):
        """Should reuse the assignment and insert only new pages."""
        results.on(content_service._get_program, FakeResult([program_row()]))
        results.on(
            assignment_service._get_latest_assignment, FakeResult([assignment_row()])
        )
        results.on(
            assignment_service._list_program_assignments,
            FakeResult([assignment_row()]),
        )
        results.on(
            assignment_service._list_assignment_pages,
            FakeResult([assignment_page_row(60, page_id=300)]),
        )

        outcome = await assignment_service.assign_pages(1, 7, [300, 400, 400])

        assert outcome.assignment_created is False
        assert outcome.assignment_id == 50
        assert outcome.inserted_page_ids == [400]
        assert outcome.skipped_page_ids == [300]
        assert results.params_for(assignment_service._insert_assignment) == []
        (params,) = results.params_for(assignment_service._insert_assignment_page)
        assert params[0] == 50
        assert params[4] == 400

    @pytest.mark.asyncio
    async def test_all_assigned_returns_notice_without_insert(
        self,
        assignment_service: AssignmentService,
        content_service: ContentService,
        results,
    ):
        """Should insert nothing and return the notice."""
        results.on(content_service._get_program, FakeResult([program_row()]))
        results.on(
            assignment_service._get_latest_assignment, FakeResult([assignment_row()])
        )
        results.on(
            assignment_service._list_program_assignments,
            FakeResult([assignment_row()]),
        )
        results.on(
            assignment_service._list_assignment_pages,
            FakeResult([assignment_page_row(60, 300), assignment_page_row(61, 400)]),
        )

        outcome = await assignment_service.assign_pages(1, 7, [400, 300])

        assert outcome.notice == ALREADY_ASSIGNED_NOTICE
        assert outcome.inserted_page_ids == []
        assert results.params_for(assignment_service._insert_assignment_page) == []

    @pytest.mark.asyncio
    async def test_assignment_creation_failure_propagates(
        self,
        assignment_service: AssignmentService,
        content_service: ContentService,
        results,
    ):
        """Should surface a failed assignment insert and write no pages."""
        results.on(content_service._get_program, FakeResult([program_row()]))
        results.on(assignment_service._insert_assignment, RuntimeError("write timeout"))

        with pytest.raises(AssignmentCreateError):
            await assignment_service.assign_pages(1, 7, [300])
        assert results.params_for(assignment_service._insert_assignment_page) == []

    @pytest.mark.asyncio
    async def test_pin_current_version(
        self,
        assignment_service: AssignmentService,
        content_service: ContentService,
        results,
    ):
        """Should pin each new page to its current version when asked."""
        results.on(content_service._get_program, FakeResult([program_row()]))
        results.on(
            content_service._get_page, FakeResult([page_row(300, current_version_id=31)])
        )

        await assignment_service.assign_pages(1, 7, [300], pin_current_version=True)

        (params,) = results.params_for(assignment_service._insert_assignment_page)
        assert params[5] == 31


class TestUpdateStatus:
    """Tests for update_status."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "before,after",
        [
            ("done", "not_started"),
            ("not_started", "done"),
            ("revision_needed", "in_progress"),
            ("ready_for_review", "ready_for_review"),
        ],
    )
    async def test_any_transition_allowed(
        self,
        assignment_service: AssignmentService,
        results,
        learner: Employee,
        before: str,
        after: str,
    ):
        """Should write any status over any other."""
        script_assignment_page(
            results, assignment_service, assignment_page_row(60, 300, status=before)
        )

        page = await assignment_service.update_status(
            60, AssignmentStatus(after), learner
        )

        assert page.status == after
        (params,) = results.params_for(assignment_service._update_status)
        assert params[0] == after
        assert params[2:] == [50, 60]

    @pytest.mark.asyncio
    async def test_only_assignee(
        self, assignment_service: AssignmentService, results, stranger: Employee
    ):
        """Should refuse status changes from anyone but the assignee."""
        script_assignment_page(results, assignment_service, assignment_page_row(60, 300))

        with pytest.raises(NotAssigneeError):
            await assignment_service.update_status(60, AssignmentStatus.DONE, stranger)
        assert results.params_for(assignment_service._update_status) == []

    @pytest.mark.asyncio
    async def test_missing_page(
        self, assignment_service: AssignmentService, learner: Employee
    ):
        """Should raise when the assignment page does not exist."""
        with pytest.raises(AssignmentPageNotFoundError):
            await assignment_service.update_status(60, AssignmentStatus.DONE, learner)


class TestComputeProgress:
    """Tests for compute_progress."""

    @pytest.mark.asyncio
    async def test_no_pages_is_zero(self, assignment_service: AssignmentService):
        """Should report 0 for an assignment without pages."""
        progress = await assignment_service.compute_progress(50)
        assert (progress.total, progress.completed, progress.percent) == (0, 0, 0)

    @pytest.mark.asyncio
    async def test_two_of_three(self, assignment_service: AssignmentService, results):
        """Should round 2 of 3 to 67."""
        results.on(
            assignment_service._list_assignment_pages,
            FakeResult(
                [
                    assignment_page_row(60, 300, status="done"),
                    assignment_page_row(61, 400, status="done"),
                    assignment_page_row(62, 500, status="ready_for_review"),
                ]
            ),
        )
        progress = await assignment_service.compute_progress(50)
        assert (progress.total, progress.completed, progress.percent) == (3, 2, 67)


class TestSubmissions:
    """Tests for task submissions."""

    @pytest.mark.asyncio
    async def test_blank_answer_rejected_before_store(
        self, assignment_service: AssignmentService, mock_session, learner: Employee
    ):
        """Should reject blank answers without any query."""
        with pytest.raises(AcademyValidationError):
            await assignment_service.submit_task(60, "   ", learner)
        mock_session.aexecute.assert_not_called()

    @pytest.mark.asyncio
    async def test_submit_appends_and_keeps_status(
        self, assignment_service: AssignmentService, results, learner: Employee
    ):
        """Should insert a submission and leave the status alone."""
        script_assignment_page(
            results, assignment_service, assignment_page_row(60, 300, status="in_progress")
        )

        submission = await assignment_service.submit_task(60, "  my answer ", learner)

        assert submission.answer == "my answer"
        assert submission.employee_id == learner.id
        assert len(results.params_for(assignment_service._insert_submission)) == 1
        assert results.params_for(assignment_service._update_status) == []

    @pytest.mark.asyncio
    async def test_submit_requires_assignee(
        self, assignment_service: AssignmentService, results, stranger: Employee
    ):
        """Should refuse submissions from anyone but the assignee."""
        script_assignment_page(results, assignment_service, assignment_page_row(60, 300))
        with pytest.raises(NotAssigneeError):
            await assignment_service.submit_task(60, "answer", stranger)

    @pytest.mark.asyncio
    async def test_current_submission_is_first_row(
        self, assignment_service: AssignmentService, results, learner: Employee
    ):
        """Should return the newest submission."""
        script_assignment_page(results, assignment_service, assignment_page_row(60, 300))
        newest = SimpleNamespace(
            id=9,
            assignment_page_id=60,
            employee_id=1,
            answer="second",
            created_at=NOW + timedelta(minutes=5),
        )
        results.on(assignment_service._get_current_submission, FakeResult([newest]))

        submission = await assignment_service.get_current_submission(60, learner)

        assert submission is not None
        assert submission.answer == "second"


class TestComments:
    """Tests for comment threads."""

    @pytest.mark.asyncio
    async def test_admin_may_comment(
        self, assignment_service: AssignmentService, results, stranger: Employee
    ):
        """Should let an administrator comment on someone else's page."""
        script_assignment_page(results, assignment_service, assignment_page_row(60, 300))

        comment = await assignment_service.add_comment(
            60, "Looks good", stranger, is_admin=True
        )

        assert comment.author_employee_id == stranger.id
        assert comment.comment == "Looks good"

    @pytest.mark.asyncio
    async def test_stranger_may_not_comment(
        self, assignment_service: AssignmentService, results, stranger: Employee
    ):
        """Should refuse comments from non-assignees who are not admins."""
        script_assignment_page(results, assignment_service, assignment_page_row(60, 300))
        with pytest.raises(NotAssigneeError):
            await assignment_service.add_comment(60, "hi", stranger)

    @pytest.mark.asyncio
    async def test_blank_comment_rejected(
        self, assignment_service: AssignmentService, mock_session, learner: Employee
    ):
        """Should reject blank comments without any query."""
        with pytest.raises(AcademyValidationError):
            await assignment_service.add_comment(60, "\n\t", learner)
        mock_session.aexecute.assert_not_called()

    @pytest.mark.asyncio
    async def test_thread_oldest_first_with_authors(
        self,
        assignment_service: AssignmentService,
        employee_service,
        results,
        learner: Employee,
    ):
        """Should list comments oldest first and resolve each author once."""
        script_assignment_page(results, assignment_service, assignment_page_row(60, 300))
        results.on(
            assignment_service._list_comments,
            FakeResult(
                [
                    SimpleNamespace(
                        id=3,
                        assignment_page_id=60,
                        author_employee_id=1,
                        comment="later",
                        created_at=NOW + timedelta(hours=1),
                    ),
                    SimpleNamespace(
                        id=2,
                        assignment_page_id=60,
                        author_employee_id=1,
                        comment="first",
                        created_at=NOW,
                    ),
                ]
            ),
        )
        employee_service.get_employee = AsyncMock(return_value=learner)

        thread = await assignment_service.list_comments(60, learner)

        assert [c.comment for c in thread] == ["first", "later"]
        assert thread[0].author is not None
        assert thread[0].author.email == learner.email
        employee_service.get_employee.assert_awaited_once_with(1)


class TestOverviews:
    """Tests for the learner overview and the assign dialog."""

    @pytest.mark.asyncio
    async def test_learner_overview_orders_pages(
        self,
        assignment_service: AssignmentService,
        content_service: ContentService,
        results,
    ):
        """Should order pages by program order, unknown pages last."""
        results.on(assignment_service._list_assignments, FakeResult([assignment_row()]))
        results.on(content_service._get_program, FakeResult([program_row()]))
        results.on(
            content_service._list_program_pages,
            FakeResult([program_page_row(1, 300, 1), program_page_row(2, 400, 0)]),
        )
        results.on(
            assignment_service._list_assignment_pages,
            FakeResult(
                [
                    assignment_page_row(60, 300, status="done"),
                    assignment_page_row(61, 400),
                    assignment_page_row(62, 999),
                ]
            ),
        )
        results.on(content_service._get_page, FakeResult([page_row(300)]))

        overview = await assignment_service.get_learner_overview(1)

        (group,) = overview.programs
        assert [page.id for page in group.pages] == [61, 60, 62]
        assert [page.order_index for page in group.pages] == [0, 1, None]
        assert (group.progress.total, group.progress.completed) == (3, 1)
        assert group.progress.percent == 33
        assert group.program is not None
        assert group.program.name == "Onboarding"

    @pytest.mark.asyncio
    async def test_assignable_pages_defaults(
        self,
        assignment_service: AssignmentService,
        content_service: ContentService,
        results,
    ):
        """Required pages not yet assigned should be preselected."""
        results.on(content_service._get_program, FakeResult([program_row()]))
        optional = program_page_row(3, 500, 2)
        optional.is_required = False
        results.on(
            content_service._list_program_pages,
            FakeResult(
                [program_page_row(1, 300, 0), program_page_row(2, 400, 1), optional]
            ),
        )
        results.on(
            assignment_service._list_program_assignments,
            FakeResult([assignment_row()]),
        )
        results.on(
            assignment_service._list_assignment_pages,
            FakeResult([assignment_page_row(60, 300)]),
        )

        dialog = await assignment_service.get_assignable_pages(1, 7)

        by_page = {option.program_page.page_id: option for option in dialog.pages}
        assert by_page[300].already_assigned is True
        assert by_page[300].selected_by_default is False
        assert by_page[400].selected_by_default is True
        assert by_page[500].selected_by_default is False
