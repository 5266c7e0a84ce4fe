"""Async HTTP client for the academy API."""

from typing import Any, TypeVar

import httpx
import structlog
from pydantic import TypeAdapter, ValidationError

from src.academy.models import AssignmentStatus
from src.academy.schemas import (
    AssignablePagesResponse,
    AssignmentPageResponse,
    AssignPagesResponse,
    CommentResponse,
    LearnerAcademyResponse,
    ProgramPageResponse,
    SubmissionResponse,
)
from src.employees.schemas import SessionResponse

from .errors import QueryFailedError, ValidationNotice, WriteFailedError


logger = structlog.get_logger(__name__)

T = TypeVar("T")


def _error_message(response: httpx.Response) -> str:
    """Message from an API error body, else the status line."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return f"{response.status_code} {response.reason_phrase}".strip()


class AcademyClient:
    """Thin typed wrapper over the academy REST endpoints.

    Reads raise QueryFailedError and writes raise WriteFailedError, both with
    the server's message when there is one.
    """

    def __init__(
        self,
        base_url: str,
        access_token: str,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers={"Authorization": f"Bearer {access_token}"},
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "AcademyClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        error_cls: type[QueryFailedError] | type[WriteFailedError],
        **kwargs: Any,
    ) -> Any:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("academy_request_failed", method=method, path=path, error=str(e))
            raise error_cls(str(e) or type(e).__name__) from e

        if response.is_error:
            message = _error_message(response)
            logger.warning(
                "academy_request_rejected",
                method=method,
                path=path,
                status_code=response.status_code,
                message=message,
            )
            raise error_cls(message, status_code=response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise error_cls(f"Invalid response body from {path}") from e

    async def _read(self, path: str, model: type[T] | Any, **kwargs: Any) -> T:
        data = await self._request("GET", path, QueryFailedError, **kwargs)
        try:
            return TypeAdapter(model).validate_python(data)
        except ValidationError as e:
            raise QueryFailedError(f"Unexpected response from {path}") from e

    async def _write(
        self, method: str, path: str, model: type[T] | Any, **kwargs: Any
    ) -> T:
        data = await self._request(method, path, WriteFailedError, **kwargs)
        try:
            return TypeAdapter(model).validate_python(data)
        except ValidationError as e:
            raise WriteFailedError(f"Unexpected response from {path}") from e

    # --------------------------------------------------------------------------
    # Session
    # --------------------------------------------------------------------------

    async def get_session(self) -> SessionResponse:
        """Resolve the logged-in user's employee record."""
        return await self._read("/v1/employees/me", SessionResponse)

    # --------------------------------------------------------------------------
    # Learner
    # --------------------------------------------------------------------------

    async def get_my_academy(self) -> LearnerAcademyResponse:
        return await self._read("/v1/academy/me", LearnerAcademyResponse)

    async def get_employee_academy(self, employee_id: int) -> LearnerAcademyResponse:
        return await self._read(
            f"/v1/academy/employees/{employee_id}", LearnerAcademyResponse
        )

    async def update_status(
        self, assignment_page_id: int, status: AssignmentStatus
    ) -> AssignmentPageResponse:
        return await self._write(
            "PATCH",
            f"/v1/academy/assignment-pages/{assignment_page_id}/status",
            AssignmentPageResponse,
            json={"status": AssignmentStatus(status).value},
        )

    async def submit_task(
        self, assignment_page_id: int, answer: str
    ) -> SubmissionResponse:
        if not answer or not answer.strip():
            raise ValidationNotice("Write an answer before submitting.")
        return await self._write(
            "POST",
            f"/v1/academy/assignment-pages/{assignment_page_id}/submissions",
            SubmissionResponse,
            json={"answer": answer},
        )

    async def get_current_submission(
        self, assignment_page_id: int
    ) -> SubmissionResponse | None:
        return await self._read(
            f"/v1/academy/assignment-pages/{assignment_page_id}/submissions/current",
            SubmissionResponse | None,
        )

    async def list_comments(self, assignment_page_id: int) -> list[CommentResponse]:
        return await self._read(
            f"/v1/academy/assignment-pages/{assignment_page_id}/comments",
            list[CommentResponse],
        )

    async def add_comment(self, assignment_page_id: int, text: str) -> CommentResponse:
        if not text or not text.strip():
            raise ValidationNotice("Comment cannot be empty.")
        return await self._write(
            "POST",
            f"/v1/academy/assignment-pages/{assignment_page_id}/comments",
            CommentResponse,
            json={"comment": text},
        )

    # --------------------------------------------------------------------------
    # Administration
    # --------------------------------------------------------------------------

    async def get_assignable_pages(
        self, employee_id: int, program_id: int
    ) -> AssignablePagesResponse:
        return await self._read(
            f"/v1/academy/employees/{employee_id}/programs/{program_id}/assignable",
            AssignablePagesResponse,
        )

    async def assign_pages(
        self,
        employee_id: int,
        program_id: int,
        page_ids: list[int],
        pin_current_version: bool = False,
    ) -> AssignPagesResponse:
        if not page_ids:
            raise ValidationNotice("Select at least one page to assign.")
        return await self._write(
            "POST",
            "/v1/academy/assignments/pages",
            AssignPagesResponse,
            json={
                "employee_id": employee_id,
                "program_id": program_id,
                "page_ids": list(page_ids),
                "pin_current_version": pin_current_version,
            },
        )

    async def list_program_pages(self, program_id: int) -> list[ProgramPageResponse]:
        return await self._read(
            f"/v1/academy/programs/{program_id}/pages", list[ProgramPageResponse]
        )

    async def update_program_page_order(
        self, program_id: int, program_page_id: int, order_index: int
    ) -> ProgramPageResponse:
        """Write one row's order index."""
        return await self._write(
            "PATCH",
            f"/v1/academy/programs/{program_id}/pages/{program_page_id}",
            ProgramPageResponse,
            json={"order_index": order_index},
        )

    async def reorder_program_pages(
        self, program_id: int, program_page_ids: list[int]
    ) -> list[ProgramPageResponse]:
        """Write a full order in one request."""
        return await self._write(
            "PUT",
            f"/v1/academy/programs/{program_id}/pages/order",
            list[ProgramPageResponse],
            json={"program_page_ids": list(program_page_ids)},
        )
