"""Tests for the client-side academy views."""

import asyncio
from datetime import UTC, datetime
from unittest.mock import AsyncMock, Mock

import pytest

from src.academy.models import AssignmentStatus
from src.academy.schemas import (
    AssignablePageOption,
    AssignablePagesResponse,
    AssignmentPageResponse,
    AssignmentResponse,
    AssignPagesResponse,
    CommentResponse,
    LearnerAcademyResponse,
    ProgramPageResponse,
    ProgramProgressGroup,
    ProgressResponse,
    SubmissionResponse,
)
from src.client.api_client import AcademyClient
from src.client.boards import AssignPagesDialog, LearnerBoard, PageOrderEditor
from src.client.errors import QueryFailedError, ValidationNotice, WriteFailedError
from src.client.session import AcademySession


NOW = datetime(2026, 3, 1, 9, 30, tzinfo=UTC)


def make_group(*statuses: str) -> ProgramProgressGroup:
    pages = [
        AssignmentPageResponse(
            id=60 + index,
            assignment_id=50,
            program_id=7,
            page_id=300 + index,
            status=AssignmentStatus(status),
            order_index=index,
        )
        for index, status in enumerate(statuses)
    ]
    completed = sum(1 for status in statuses if status == "done")
    return ProgramProgressGroup(
        assignment=AssignmentResponse(
            id=50,
            employee_id=1,
            program_id=7,
            status=AssignmentStatus.NOT_STARTED,
            assigned_at=NOW,
        ),
        pages=pages,
        progress=ProgressResponse(
            assignment_id=50,
            total=len(pages),
            completed=completed,
            percent=round(100 * completed / len(pages)) if pages else 0,
        ),
    )


def program_pages(*ids: int) -> list[ProgramPageResponse]:
    return [
        ProgramPageResponse(id=pid, program_id=7, page_id=pid * 10, order_index=index)
        for index, pid in enumerate(ids)
    ]


@pytest.fixture
def academy_session() -> AcademySession:
    return AcademySession(
        user_id="user-1",
        email="learner@quitcode.dev",
        employee_id=1,
        employee_name="Lea Rner",
        is_admin=False,
    )


@pytest.fixture
def fake_client():
    """AcademyClient double."""
    return Mock(spec=AcademyClient)


class TestLearnerBoard:
    """Tests for LearnerBoard."""

    @pytest.mark.asyncio
    async def test_load(self, fake_client, academy_session):
        """Should show the employee's programs."""
        fake_client.get_my_academy = AsyncMock(
            return_value=LearnerAcademyResponse(employee_id=1, programs=[make_group("done")])
        )
        board = LearnerBoard(fake_client, academy_session)

        await board.load()

        assert len(board.groups) == 1
        assert board.error is None

    @pytest.mark.asyncio
    async def test_load_failure_shows_empty_board(self, fake_client, academy_session):
        """Should fall back to an empty board and keep the message."""
        fake_client.get_my_academy = AsyncMock(side_effect=QueryFailedError("timeout"))
        board = LearnerBoard(fake_client, academy_session)

        await board.load()

        assert board.groups == []
        assert board.error == "timeout"

    @pytest.mark.asyncio
    async def test_admin_opens_other_board(self, fake_client, academy_session):
        """Should load another employee's overview by id."""
        fake_client.get_employee_academy = AsyncMock(
            return_value=LearnerAcademyResponse(employee_id=9, programs=[])
        )
        board = LearnerBoard(fake_client, academy_session, employee_id=9)

        await board.load()

        fake_client.get_employee_academy.assert_awaited_once_with(9)

    @pytest.mark.asyncio
    async def test_status_update_is_optimistic(self, fake_client, academy_session):
        """Should show the new status and progress before the write completes."""
        board = LearnerBoard(fake_client, academy_session)
        board._groups.set([make_group("done", "in_progress", "not_started")])
        seen = {}

        async def persist(assignment_page_id, status):
            page = board.find_page(assignment_page_id)
            seen["status"] = page.status
            seen["percent"] = board.groups[0].progress.percent
            return page

        fake_client.update_status = AsyncMock(side_effect=persist)

        assert await board.update_status(61, AssignmentStatus.DONE) is True
        assert seen == {"status": AssignmentStatus.DONE, "percent": 67}
        assert board.find_page(61).status == AssignmentStatus.DONE

    @pytest.mark.asyncio
    async def test_status_update_rolls_back(self, fake_client, academy_session):
        """Should restore the previous status when the write fails."""
        board = LearnerBoard(fake_client, academy_session)
        board._groups.set([make_group("in_progress", "done")])
        fake_client.update_status = AsyncMock(side_effect=WriteFailedError("offline"))

        assert await board.update_status(60, AssignmentStatus.DONE) is False

        assert board.find_page(60).status == AssignmentStatus.IN_PROGRESS
        assert board.groups[0].progress.percent == 50
        assert board.error == "offline"
        fake_client.update_status.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_blank_submission_notice(self, fake_client, academy_session):
        """Should keep the validation message and not record a submission."""
        fake_client.submit_task = AsyncMock(
            side_effect=ValidationNotice("Write an answer before submitting.")
        )
        board = LearnerBoard(fake_client, academy_session)

        assert await board.submit(60, " ") is None
        assert board.notice == "Write an answer before submitting."
        assert 60 not in board.submissions

    @pytest.mark.asyncio
    async def test_failed_update_keeps_overlapping_save(self, fake_client, academy_session):
        """Only the failed page should revert when updates overlap."""
        board = LearnerBoard(fake_client, academy_session)
        board._groups.set([make_group("not_started", "not_started")])
        release = asyncio.Event()

        async def persist(assignment_page_id, status):
            if assignment_page_id == 60:
                await release.wait()
                raise WriteFailedError("offline")
            return board.find_page(assignment_page_id)

        fake_client.update_status = AsyncMock(side_effect=persist)

        pending = asyncio.create_task(board.update_status(60, AssignmentStatus.DONE))
        await asyncio.sleep(0)
        assert await board.update_status(61, AssignmentStatus.DONE) is True
        release.set()

        assert await pending is False
        assert [page.status for page in board.groups[0].pages] == [
            AssignmentStatus.NOT_STARTED,
            AssignmentStatus.DONE,
        ]
        assert board.groups[0].progress.percent == 50

    @pytest.mark.asyncio
    async def test_load_submission(self, fake_client, academy_session):
        """Should keep the current submission for the page."""
        submission = SubmissionResponse(
            id=5, assignment_page_id=60, employee_id=1, answer="42", created_at=NOW
        )
        fake_client.get_current_submission = AsyncMock(return_value=submission)
        board = LearnerBoard(fake_client, academy_session)

        assert await board.load_submission(60) == submission
        assert board.submissions[60] == submission
        fake_client.get_current_submission.assert_awaited_once_with(60)

    @pytest.mark.asyncio
    async def test_load_submission_failure(self, fake_client, academy_session):
        """Should store no submission and keep the message."""
        fake_client.get_current_submission = AsyncMock(
            side_effect=QueryFailedError("timeout")
        )
        board = LearnerBoard(fake_client, academy_session)

        assert await board.load_submission(60) is None
        assert board.submissions[60] is None
        assert board.error == "timeout"

    @pytest.mark.asyncio
    async def test_comment_appended_to_thread(self, fake_client, academy_session):
        """Should append the new comment after the loaded thread."""
        older = CommentResponse(id=1, assignment_page_id=60, comment="hi", created_at=NOW)
        newer = CommentResponse(id=2, assignment_page_id=60, comment="ok", created_at=NOW)
        fake_client.list_comments = AsyncMock(return_value=[older])
        fake_client.add_comment = AsyncMock(return_value=newer)
        board = LearnerBoard(fake_client, academy_session)

        await board.load_comments(60)
        await board.add_comment(60, "ok")

        assert [c.id for c in board.comments[60]] == [1, 2]


class TestAssignPagesDialog:
    """Tests for AssignPagesDialog."""

    @pytest.mark.asyncio
    async def test_defaults_and_submit(self, fake_client):
        """Should preselect defaults and send the selection in program order."""
        pages = program_pages(1, 2, 3)
        fake_client.get_assignable_pages = AsyncMock(
            return_value=AssignablePagesResponse(
                employee_id=1,
                program_id=7,
                pages=[
                    AssignablePageOption(
                        program_page=pages[0], already_assigned=True, selected_by_default=False
                    ),
                    AssignablePageOption(
                        program_page=pages[1], already_assigned=False, selected_by_default=True
                    ),
                    AssignablePageOption(
                        program_page=pages[2], already_assigned=False, selected_by_default=False
                    ),
                ],
            )
        )
        fake_client.assign_pages = AsyncMock(
            return_value=AssignPagesResponse(
                assignment_id=50,
                assignment_created=True,
                inserted_page_ids=[10, 20, 30],
                notice="Assigned 3 page(s).",
            )
        )
        dialog = AssignPagesDialog(fake_client, employee_id=1, program_id=7)

        await dialog.load()
        assert dialog.selected == {20}

        dialog.toggle(30)
        dialog.toggle(10)
        assert await dialog.submit() is True

        fake_client.assign_pages.assert_awaited_once_with(
            1, 7, [10, 20, 30], pin_current_version=False
        )
        assert dialog.notice == "Assigned 3 page(s)."

    @pytest.mark.asyncio
    async def test_empty_selection(self, fake_client):
        """Should surface the validation notice."""
        fake_client.assign_pages = AsyncMock(
            side_effect=ValidationNotice("Select at least one page to assign.")
        )
        dialog = AssignPagesDialog(fake_client, employee_id=1, program_id=7)

        assert await dialog.submit() is False
        assert dialog.notice == "Select at least one page to assign."


class TestPageOrderEditor:
    """Tests for PageOrderEditor."""

    @pytest.fixture
    def editor(self, fake_client) -> PageOrderEditor:
        editor = PageOrderEditor(fake_client, program_id=7)
        editor.items = program_pages(10, 20, 30)
        fake_client.update_program_page_order = AsyncMock()
        return editor

    def test_hover_reorders_without_persisting(self, editor, fake_client):
        """Hovering should only change the local order."""
        editor.start_drag(30)
        editor.hover(10)

        assert [item.id for item in editor.items] == [30, 10, 20]
        fake_client.update_program_page_order.assert_not_called()

    @pytest.mark.asyncio
    async def test_drop_without_move_does_not_persist(self, editor, fake_client):
        """A gesture that changed nothing should not write."""
        editor.start_drag(20)
        editor.hover(20)

        assert await editor.end_drag() is True
        fake_client.update_program_page_order.assert_not_called()

    @pytest.mark.asyncio
    async def test_drop_persists_each_row(self, editor, fake_client):
        """Should write one index per row, then adopt the stored order."""
        fake_client.list_program_pages = AsyncMock(return_value=program_pages(30, 10, 20))
        editor.start_drag(30)
        editor.hover(10)

        assert await editor.end_drag() is True

        calls = sorted(
            call.args for call in fake_client.update_program_page_order.await_args_list
        )
        assert calls == [(7, 10, 1), (7, 20, 2), (7, 30, 0)]
        assert [item.id for item in editor.items] == [30, 10, 20]
        assert editor.error is None

    @pytest.mark.asyncio
    async def test_mismatch_reverts_to_drag_start(self, editor, fake_client):
        """Should restore the drag-start order when the store disagrees."""
        fake_client.list_program_pages = AsyncMock(return_value=program_pages(10, 30, 20))
        editor.start_drag(30)
        editor.hover(10)

        assert await editor.end_drag() is False
        assert [item.id for item in editor.items] == [10, 20, 30]
        assert editor.error is not None

    @pytest.mark.asyncio
    async def test_refetch_failure_reverts(self, editor, fake_client):
        """Should restore the drag-start order when the re-fetch fails."""
        fake_client.list_program_pages = AsyncMock(side_effect=QueryFailedError("down"))
        editor.start_drag(10)
        editor.hover(30)

        assert await editor.end_drag() is False
        assert [item.id for item in editor.items] == [10, 20, 30]
        assert editor.error == "down"

    @pytest.mark.asyncio
    async def test_failed_row_write_not_inspected(self, editor, fake_client):
        """Individual write failures should not matter when the store matches."""
        fake_client.update_program_page_order = AsyncMock(
            side_effect=[None, WriteFailedError("one failed"), None]
        )
        fake_client.list_program_pages = AsyncMock(return_value=program_pages(30, 10, 20))
        editor.start_drag(30)
        editor.hover(10)

        assert await editor.end_drag() is True

    @pytest.mark.asyncio
    async def test_back_to_start_still_persists(self, editor, fake_client):
        """A gesture that moved and came back should still write."""
        fake_client.list_program_pages = AsyncMock(return_value=program_pages(10, 20, 30))
        editor.start_drag(30)
        editor.hover(10)
        editor.hover(20)

        assert [item.id for item in editor.items] == [10, 20, 30]
        assert await editor.end_drag() is True
        assert fake_client.update_program_page_order.await_count == 3

    @pytest.mark.asyncio
    async def test_persisting_same_order_twice(self, editor, fake_client):
        """Should store the same indexes both times."""
        fake_client.list_program_pages = AsyncMock(return_value=program_pages(10, 20, 30))

        await editor.persist_order(list(editor.items))
        first = [c.args for c in fake_client.update_program_page_order.await_args_list]
        fake_client.update_program_page_order.reset_mock()
        await editor.persist_order(list(editor.items))
        second = [c.args for c in fake_client.update_program_page_order.await_args_list]

        assert sorted(first) == sorted(second) == [(7, 10, 0), (7, 20, 1), (7, 30, 2)]
