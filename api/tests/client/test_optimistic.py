"""Tests for optimistic mutations."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from src.client.errors import WriteFailedError
from src.client.optimistic import OptimisticMutation, StateCell


def set_key(key: str, value: str):
    return lambda state: {**state, key: value}


class TestOptimisticMutation:
    """Tests for OptimisticMutation."""

    @pytest.mark.asyncio
    async def test_applies_before_persisting(self):
        """The new state should be visible while the write is in flight."""
        state = StateCell({"a": "todo"})
        seen = []

        async def persist():
            seen.append(state.get())
            return "ok"

        mutation = OptimisticMutation(
            state,
            apply=set_key("a", "done"),
            rollback=set_key("a", "todo"),
            persist=persist,
        )

        assert await mutation.run() == "ok"
        assert seen == [{"a": "done"}]
        assert state.get() == {"a": "done"}
        assert mutation.rolled_back is False

    @pytest.mark.asyncio
    async def test_undoes_change_on_failure(self):
        """Should undo the change and re-raise."""
        state = StateCell({"status": "in_progress"})
        persist = AsyncMock(side_effect=WriteFailedError("offline"))
        mutation = OptimisticMutation(
            state,
            apply=set_key("status", "done"),
            rollback=set_key("status", "in_progress"),
            persist=persist,
        )

        with pytest.raises(WriteFailedError):
            await mutation.run()

        assert state.get() == {"status": "in_progress"}
        assert mutation.rolled_back is True
        persist.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failure_keeps_overlapping_change(self):
        """A failed write should not undo another entry saved meanwhile."""
        state = StateCell({"a": "todo", "b": "todo"})
        release = asyncio.Event()

        async def slow_failure():
            await release.wait()
            raise WriteFailedError("boom")

        async def success():
            return "ok"

        failing = OptimisticMutation(
            state, apply=set_key("a", "done"), rollback=set_key("a", "todo"), persist=slow_failure
        )
        succeeding = OptimisticMutation(
            state, apply=set_key("b", "done"), rollback=set_key("b", "todo"), persist=success
        )

        pending = asyncio.create_task(failing.run())
        await asyncio.sleep(0)
        assert await succeeding.run() == "ok"
        release.set()

        with pytest.raises(WriteFailedError):
            await pending
        assert state.get() == {"a": "todo", "b": "done"}
