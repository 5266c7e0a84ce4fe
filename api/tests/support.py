"""Test doubles for the Cassandra driver."""

from collections.abc import Iterable
from typing import Any


class FakeResult:
    """Stand-in for a driver result set."""

    def __init__(self, rows: Iterable[Any] | None = None):
        self._rows = list(rows or [])

    def one(self) -> Any:
        return self._rows[0] if self._rows else None

    def __iter__(self):
        return iter(self._rows)


class StatementResults:
    """Scripted answers for session.aexecute, per prepared statement.

    Each statement gets a queue of results; the last one repeats. Unscripted
    statements return an empty result. Exceptions in a queue are raised.
    """

    def __init__(self):
        self._queues: dict[int, list[Any]] = {}
        self.calls: list[tuple[Any, Any]] = []

    def on(self, statement: Any, *results: Any) -> None:
        self._queues[id(statement)] = list(results)

    async def execute(self, statement: Any, params: Any = None) -> Any:
        self.calls.append((statement, params))
        queue = self._queues.get(id(statement))
        if not queue:
            return FakeResult()
        result = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(result, BaseException):
            raise result
        return result

    def params_for(self, statement: Any) -> list[Any]:
        """Parameters of every call made with a statement, in order."""
        return [params for stmt, params in self.calls if stmt is statement]

    def statements(self) -> list[Any]:
        return [stmt for stmt, _ in self.calls]
