"""Employee directory lookups used to resolve the acting employee."""

from .models import EMPLOYEES_TABLES_CQL, Employee


__all__ = ["EMPLOYEES_TABLES_CQL", "Employee"]
