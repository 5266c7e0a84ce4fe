"""Tests for AcademyClient over a mocked transport."""

import json

import httpx
import pytest

from src.academy.models import AssignmentStatus
from src.client.api_client import AcademyClient
from src.client.errors import QueryFailedError, ValidationNotice, WriteFailedError


def make_client(handler) -> AcademyClient:
    return AcademyClient(
        "http://academy.test",
        "token-123",
        transport=httpx.MockTransport(handler),
    )


class TestReads:
    """Tests for read requests."""

    @pytest.mark.asyncio
    async def test_sends_bearer_token_and_parses(self):
        """Should authenticate and parse the program page list."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers["Authorization"]
            seen["path"] = request.url.path
            return httpx.Response(
                200,
                json=[
                    {"id": 1, "program_id": 7, "page_id": 100, "order_index": 0},
                    {"id": 2, "program_id": 7, "page_id": 200, "order_index": 1},
                ],
            )

        async with make_client(handler) as client:
            pages = await client.list_program_pages(7)

        assert seen == {"auth": "Bearer token-123", "path": "/v1/academy/programs/7/pages"}
        assert [page.id for page in pages] == [1, 2]

    @pytest.mark.asyncio
    async def test_error_message_from_body(self):
        """Should raise QueryFailedError carrying the API message."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                403,
                json={
                    "error": True,
                    "message": "No employee record found for x@y.z",
                    "status_code": 403,
                },
            )

        async with make_client(handler) as client:
            with pytest.raises(QueryFailedError) as exc_info:
                await client.get_session()

        assert exc_info.value.message == "No employee record found for x@y.z"
        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_network_error_is_query_failure(self):
        """Should wrap transport errors."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with make_client(handler) as client:
            with pytest.raises(QueryFailedError):
                await client.get_my_academy()

    @pytest.mark.asyncio
    async def test_missing_submission_is_none(self):
        """Should parse a null current submission."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200, content=b"null", headers={"content-type": "application/json"}
            )

        async with make_client(handler) as client:
            assert await client.get_current_submission(60) is None


class TestWrites:
    """Tests for write requests."""

    @pytest.mark.asyncio
    async def test_update_status_payload(self):
        """Should PATCH the status value."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["body"] = json.loads(request.content)
            return httpx.Response(
                200,
                json={
                    "id": 60,
                    "assignment_id": 50,
                    "program_id": 7,
                    "page_id": 300,
                    "status": "done",
                },
            )

        async with make_client(handler) as client:
            page = await client.update_status(60, AssignmentStatus.DONE)

        assert seen == {"method": "PATCH", "body": {"status": "done"}}
        assert page.status == AssignmentStatus.DONE

    @pytest.mark.asyncio
    async def test_server_error_is_write_failure(self):
        """Should raise WriteFailedError on a 5xx."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, json={"error": True, "message": "Internal server error"})

        async with make_client(handler) as client:
            with pytest.raises(WriteFailedError) as exc_info:
                await client.update_program_page_order(7, 1, 0)

        assert exc_info.value.message == "Internal server error"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "call",
        [
            lambda c: c.submit_task(60, "  "),
            lambda c: c.add_comment(60, ""),
            lambda c: c.assign_pages(1, 7, []),
        ],
    )
    async def test_validation_before_request(self, call):
        """Should reject empty input without a request."""
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={})

        async with make_client(handler) as client:
            with pytest.raises(ValidationNotice):
                await call(client)

        assert requests == []
