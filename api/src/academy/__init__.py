"""Academy module.

Provides:
- Programs made of ordered, versioned pages
- Assignment of pages to employees with per-page status
- Progress, task submissions and comment threads
- Pure reorder and progress helpers shared with the client

Note: Router is not exported here to avoid circular imports.
Import directly from src.academy.router when needed.
"""

from .models import (
    ACADEMY_TABLES_CQL,
    UNORDERED_INDEX,
    AssignmentStatus,
    PageType,
)
from .ordering import compute_progress, progress_percent, reorder_locally


__all__ = [
    "ACADEMY_TABLES_CQL",
    "UNORDERED_INDEX",
    "AssignmentStatus",
    "PageType",
    "compute_progress",
    "progress_percent",
    "reorder_locally",
]
