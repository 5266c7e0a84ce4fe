"""Database models for the employee directory.

The academy only needs to resolve a logged-in user to an employee record by
email, so the directory is stored with a lookup table keyed by email.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any


EMPLOYEES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.employees (
    id BIGINT PRIMARY KEY,
    email TEXT,
    first_name TEXT,
    last_name TEXT,
    position TEXT,
    is_lead BOOLEAN,
    status TEXT,
    team_id BIGINT,
    created_at TIMESTAMP
)
"""

# Lookup: employee id by (lower-cased) email
EMPLOYEES_BY_EMAIL_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.employees_by_email (
    email TEXT PRIMARY KEY,
    employee_id BIGINT
)
"""

EMPLOYEES_TABLES_CQL = [
    EMPLOYEES_TABLE_CQL,
    EMPLOYEES_BY_EMAIL_TABLE_CQL,
]


def normalize_email(email: str) -> str:
    """Normalize an email for lookups."""
    return email.strip().lower()


@dataclass
class Employee:
    """Employee record."""

    id: int
    email: str
    first_name: str
    last_name: str
    position: str | None = None
    is_lead: bool = False
    status: str = "active"
    team_id: int | None = None
    created_at: datetime | None = None

    @property
    def full_name(self) -> str:
        """First and last name joined, falling back to the email."""
        name = f"{self.first_name} {self.last_name}".strip()
        return name or self.email

    @classmethod
    def from_row(cls, row: Any) -> "Employee":
        """Create Employee from Cassandra row."""
        created_at = row.created_at
        if created_at is not None and created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=UTC)
        return cls(
            id=row.id,
            email=row.email,
            first_name=row.first_name or "",
            last_name=row.last_name or "",
            position=row.position,
            is_lead=bool(row.is_lead),
            status=row.status or "active",
            team_id=row.team_id,
            created_at=created_at,
        )
