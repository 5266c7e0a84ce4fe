"""Optimistic updates with per-entry rollback."""

from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

import structlog

from .errors import WriteFailedError


logger = structlog.get_logger(__name__)

StateT = TypeVar("StateT")
ResultT = TypeVar("ResultT")


class StateCell(Generic[StateT]):
    """Holder for one piece of view state."""

    def __init__(self, value: StateT):
        self.value = value

    def get(self) -> StateT:
        return self.value

    def set(self, value: StateT) -> None:
        self.value = value


class OptimisticMutation(Generic[StateT, ResultT]):
    """Apply a change locally, persist it, undo that change on failure.

    ``rollback`` receives the state as it is when the write fails and must
    undo only this mutation's entry, so changes made by other mutations in
    the meantime survive. There is no retry.
    """

    def __init__(
        self,
        state: StateCell[StateT],
        apply: Callable[[StateT], StateT],
        rollback: Callable[[StateT], StateT],
        persist: Callable[[], Awaitable[ResultT]],
        name: str = "mutation",
    ):
        self.state = state
        self.apply = apply
        self.rollback = rollback
        self.persist = persist
        self.name = name
        self.rolled_back = False

    async def run(self) -> ResultT:
        """Apply, persist and return the persisted result.

        Raises:
            WriteFailedError: After the change was undone.
        """
        self.state.set(self.apply(self.state.get()))

        try:
            return await self.persist()
        except WriteFailedError as e:
            self.state.set(self.rollback(self.state.get()))
            self.rolled_back = True
            logger.warning("optimistic_update_rolled_back", mutation=self.name, error=e.message)
            raise
