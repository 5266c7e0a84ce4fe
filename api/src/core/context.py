"""Request context management using contextvars.

Each request gets a unique ID plus the authenticated user and employee once
they are known, so every log line emitted while serving the request carries
them without passing parameters explicitly.
"""

from contextvars import ContextVar
from typing import Any
from uuid import uuid4


request_id_var: ContextVar[str] = ContextVar("request_id", default="")
user_id_var: ContextVar[str | None] = ContextVar("user_id", default=None)
employee_id_var: ContextVar[int | None] = ContextVar("employee_id", default=None)


def generate_request_id() -> str:
    """Generate a new unique request ID."""
    return str(uuid4())


def get_request_id() -> str:
    """Get the current request ID."""
    return request_id_var.get()


def set_request_id(request_id: str | None = None) -> str:
    """Set the request ID for the current context.

    Args:
        request_id: Optional request ID. If not provided, generates a new one.

    Returns:
        The request ID that was set.
    """
    rid = request_id or generate_request_id()
    request_id_var.set(rid)
    return rid


def get_user_id() -> str | None:
    """Get the current auth user ID (token subject)."""
    return user_id_var.get()


def set_user_id(user_id: str | None) -> None:
    """Set the auth user ID for the current context."""
    user_id_var.set(str(user_id) if user_id is not None else None)


def get_employee_id() -> int | None:
    """Get the employee ID resolved for the current actor."""
    return employee_id_var.get()


def set_employee_id(employee_id: int | None) -> None:
    """Set the employee ID resolved for the current actor."""
    employee_id_var.set(employee_id)


def get_context() -> dict[str, Any]:
    """Get all non-empty context variables as a dictionary."""
    context: dict[str, Any] = {}

    request_id = get_request_id()
    if request_id:
        context["request_id"] = request_id

    user_id = get_user_id()
    if user_id:
        context["user_id"] = user_id

    employee_id = get_employee_id()
    if employee_id is not None:
        context["employee_id"] = employee_id

    return context


def clear_context() -> None:
    """Clear all context variables.

    Called at the end of each request to prevent context leakage.
    """
    request_id_var.set("")
    user_id_var.set(None)
    employee_id_var.set(None)
