"""Employee directory service.

Resolves the authenticated actor to an employee by email. Lookups are cached
per process so a session resolves its employee once, not on every request.
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog

from src.core.redis import IdAllocator

from .models import Employee, normalize_email
from .schemas import CreateEmployeeRequest


if TYPE_CHECKING:
    from cassandra.cluster import Session

logger = structlog.get_logger(__name__)


class EmployeeError(Exception):
    """Base employee error."""

    def __init__(self, message: str, code: str = "employee_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class EmployeeNotFoundError(EmployeeError):
    """No employee record for the given id or email."""

    def __init__(self, message: str = "Employee not found"):
        super().__init__(message, "employee_not_found")


class EmployeeEmailExistsError(EmployeeError):
    """Email already registered."""

    def __init__(self, message: str = "An employee with this email already exists"):
        super().__init__(message, "employee_email_exists")


class EmployeeService:
    """Service for employee lookups."""

    def __init__(self, session: "Session", keyspace: str, ids: IdAllocator):
        """Initialize with Cassandra session and id allocator."""
        self.session = session
        self.keyspace = keyspace
        self.ids = ids
        self._by_email: dict[str, Employee] = {}
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements."""
        self._get_employee = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.employees WHERE id = ?"
        )
        self._get_id_by_email = self.session.prepare(
            f"SELECT employee_id FROM {self.keyspace}.employees_by_email WHERE email = ?"
        )
        self._insert_employee = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.employees
            (id, email, first_name, last_name, position, is_lead, status,
             team_id, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._insert_email_lookup = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.employees_by_email (email, employee_id)
            VALUES (?, ?)
        """)

    async def get_employee(self, employee_id: int) -> Employee | None:
        """Get employee by id."""
        result = await self.session.aexecute(self._get_employee, [employee_id])
        row = result.one()
        return Employee.from_row(row) if row else None

    async def get_employee_by_email(self, email: str) -> Employee | None:
        """Get employee by email, served from the cache after the first hit."""
        key = normalize_email(email)
        cached = self._by_email.get(key)
        if cached is not None:
            return cached

        result = await self.session.aexecute(self._get_id_by_email, [key])
        row = result.one()
        if not row:
            return None

        employee = await self.get_employee(row.employee_id)
        if employee is not None:
            self._by_email[key] = employee
        return employee

    async def resolve_employee(self, email: str | None) -> Employee:
        """Resolve the employee for an authenticated user's email.

        Raises:
            EmployeeNotFoundError: When the user has no email or no record.
        """
        if not email:
            raise EmployeeNotFoundError("No email found in user account")
        employee = await self.get_employee_by_email(email)
        if employee is None:
            logger.warning("employee_not_resolved", email=email)
            raise EmployeeNotFoundError(
                f"No employee record found for {email}. Please contact administrator."
            )
        return employee

    async def create_employee(self, data: CreateEmployeeRequest) -> Employee:
        """Register a new employee."""
        email = normalize_email(data.email)
        existing = await self.session.aexecute(self._get_id_by_email, [email])
        if existing.one():
            raise EmployeeEmailExistsError

        employee = Employee(
            id=await self.ids.next_id("employees"),
            email=email,
            first_name=data.first_name.strip(),
            last_name=data.last_name.strip(),
            position=data.position,
            is_lead=data.is_lead,
            team_id=data.team_id,
            created_at=datetime.now(UTC),
        )
        await self.session.aexecute(
            self._insert_employee,
            [
                employee.id,
                employee.email,
                employee.first_name,
                employee.last_name,
                employee.position,
                employee.is_lead,
                employee.status,
                employee.team_id,
                employee.created_at,
            ],
        )
        await self.session.aexecute(self._insert_email_lookup, [email, employee.id])

        logger.info("employee_created", employee_id=employee.id)
        return employee
