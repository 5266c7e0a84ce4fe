"""Async client and view state for the academy API."""

from .api_client import AcademyClient
from .boards import AssignPagesDialog, LearnerBoard, PageOrderEditor
from .errors import (
    AcademyClientError,
    QueryFailedError,
    ValidationNotice,
    WriteFailedError,
)
from .optimistic import OptimisticMutation, StateCell
from .session import AcademySession


__all__ = [
    "AcademyClient",
    "AcademyClientError",
    "AcademySession",
    "AssignPagesDialog",
    "LearnerBoard",
    "OptimisticMutation",
    "PageOrderEditor",
    "QueryFailedError",
    "StateCell",
    "ValidationNotice",
    "WriteFailedError",
]
