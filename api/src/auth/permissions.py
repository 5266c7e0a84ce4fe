"""Academy permission checks.

Two roles exist: every employee is a learner; leads and the configured
admin emails also author programs and assign pages.
"""

from enum import Enum

from src.config.settings import Settings
from src.employees.models import Employee


class AcademyRole(str, Enum):
    """Academy roles."""

    LEARNER = "learner"
    ADMIN = "admin"


def get_academy_role(employee: Employee, settings: Settings) -> AcademyRole:
    """Resolve the academy role of an employee."""
    if employee.is_lead or settings.is_academy_admin_email(employee.email):
        return AcademyRole.ADMIN
    return AcademyRole.LEARNER


def is_academy_admin(employee: Employee, settings: Settings) -> bool:
    """Check if an employee may administer the academy."""
    return get_academy_role(employee, settings) == AcademyRole.ADMIN
