"""Pure ordering and progress helpers shared by the API and the client.

Nothing here touches the network: the page-order editor calls
``reorder_locally`` on every hover and persists separately on drag end.
"""

from collections.abc import Iterable, Mapping, Sequence
from typing import Protocol, TypeVar

from pydantic import BaseModel

from .models import UNORDERED_INDEX, AssignmentStatus


OrderedT = TypeVar("OrderedT", bound=BaseModel)


class ProgressSource(Protocol):
    """Anything carrying an assignment page status."""

    status: str


class SortableAssignmentPage(Protocol):
    """Assignment page fields needed to place it in its program order."""

    id: int
    program_id: int
    page_id: int


PageT = TypeVar("PageT", bound=SortableAssignmentPage)


def reorder_locally(
    items: Sequence[OrderedT],
    dragged_id: int,
    target_id: int,
) -> list[OrderedT]:
    """Move the dragged item to the target's position and renumber.

    The dragged item is removed and reinserted at the index the target held
    before the move, so dragging up lands right before the target and
    dragging down lands right after it. Every item's ``order_index`` is then
    rewritten to its position.

    Dragging onto itself, or naming an id that is not in the list, returns
    the items unchanged (and not renumbered).
    """
    if dragged_id == target_id:
        return list(items)

    ids = [item.id for item in items]  # type: ignore[attr-defined]
    if dragged_id not in ids or target_id not in ids:
        return list(items)

    from_index = ids.index(dragged_id)
    to_index = ids.index(target_id)

    reordered = list(items)
    dragged = reordered.pop(from_index)
    reordered.insert(to_index, dragged)

    return renumber(reordered)


def renumber(items: Iterable[OrderedT]) -> list[OrderedT]:
    """Copy items with ``order_index`` set to their position."""
    return [
        item.model_copy(update={"order_index": index})
        for index, item in enumerate(items)
    ]


def order_signature(items: Iterable[BaseModel]) -> list[int]:
    """Ids in list order, used to compare an optimistic list to the store."""
    return [item.id for item in items]  # type: ignore[attr-defined]


def sort_assignment_pages(
    pages: Iterable[PageT],
    order_map: Mapping[tuple[int, int], int],
) -> list[PageT]:
    """Sort assignment pages by their program order.

    ``order_map`` maps ``(program_id, page_id)`` to ``order_index``. Pages
    missing from it sort last; ties break by assignment page id.
    """
    return sorted(
        pages,
        key=lambda page: (
            order_map.get((page.program_id, page.page_id), UNORDERED_INDEX),
            page.id,
        ),
    )


def progress_percent(completed: int, total: int) -> int:
    """Integer percentage rounded half up; 0 when there is nothing to do."""
    if total <= 0:
        return 0
    return (200 * completed + total) // (2 * total)


def compute_progress(pages: Iterable[ProgressSource]) -> int:
    """Percentage of pages whose status is ``done``."""
    statuses = [page.status for page in pages]
    completed = sum(1 for status in statuses if status == AssignmentStatus.DONE.value)
    return progress_percent(completed, len(statuses))
