"""Tests for EmployeeService."""

from types import SimpleNamespace

import pytest

from src.employees.schemas import CreateEmployeeRequest
from src.employees.service import (
    EmployeeEmailExistsError,
    EmployeeNotFoundError,
    EmployeeService,
)

from support import FakeResult


def employee_row(employee_id: int = 1, email: str = "learner@quitcode.dev"):
    return SimpleNamespace(
        id=employee_id,
        email=email,
        first_name="Lea",
        last_name="Rner",
        position="Developer",
        is_lead=False,
        status="active",
        team_id=None,
        created_at=None,
    )


@pytest.fixture
def employee_service(mock_session, mock_ids) -> EmployeeService:
    return EmployeeService(session=mock_session, keyspace="test_keyspace", ids=mock_ids)


class TestResolveEmployee:
    """Tests for resolving the actor's employee."""

    @pytest.mark.asyncio
    async def test_resolves_by_email(self, employee_service, results):
        """Should look up the id by email, then the record."""
        results.on(employee_service._get_id_by_email, FakeResult([SimpleNamespace(employee_id=1)]))
        results.on(employee_service._get_employee, FakeResult([employee_row()]))

        employee = await employee_service.resolve_employee("Learner@QuitCode.dev")

        assert employee.id == 1
        assert results.params_for(employee_service._get_id_by_email) == [
            ["learner@quitcode.dev"]
        ]

    @pytest.mark.asyncio
    async def test_second_lookup_is_cached(self, employee_service, results, mock_session):
        """Should query the store once per email."""
        results.on(employee_service._get_id_by_email, FakeResult([SimpleNamespace(employee_id=1)]))
        results.on(employee_service._get_employee, FakeResult([employee_row()]))

        await employee_service.resolve_employee("learner@quitcode.dev")
        await employee_service.resolve_employee("learner@quitcode.dev")

        assert mock_session.aexecute.await_count == 2

    @pytest.mark.asyncio
    async def test_missing_employee(self, employee_service):
        """Should name the email in the error."""
        with pytest.raises(EmployeeNotFoundError) as exc_info:
            await employee_service.resolve_employee("ghost@quitcode.dev")

        assert "No employee record found for ghost@quitcode.dev" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_missing_email(self, employee_service, mock_session):
        """Should fail without querying."""
        with pytest.raises(EmployeeNotFoundError):
            await employee_service.resolve_employee(None)

        mock_session.aexecute.assert_not_called()


class TestCreateEmployee:
    """Tests for registering employees."""

    @pytest.mark.asyncio
    async def test_creates_with_email_lookup(self, employee_service, results):
        """Should insert the record and its email lookup row."""
        employee = await employee_service.create_employee(
            CreateEmployeeRequest(
                email="New@QuitCode.dev", first_name=" Nia ", last_name="Ewe"
            )
        )

        assert employee.id == 100
        assert employee.email == "new@quitcode.dev"
        assert employee.first_name == "Nia"
        assert results.params_for(employee_service._insert_email_lookup) == [
            ["new@quitcode.dev", 100]
        ]

    @pytest.mark.asyncio
    async def test_duplicate_email(self, employee_service, results):
        """Should refuse an email that is already registered."""
        results.on(employee_service._get_id_by_email, FakeResult([SimpleNamespace(employee_id=1)]))

        with pytest.raises(EmployeeEmailExistsError):
            await employee_service.create_employee(
                CreateEmployeeRequest(
                    email="learner@quitcode.dev", first_name="Lea", last_name="Rner"
                )
            )

        assert employee_service._insert_employee not in results.statements()
