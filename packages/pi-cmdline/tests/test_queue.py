"""Tests for pi.cmdline.queue -- strict FIFO command execution."""

from __future__ import annotations

import asyncio

import pytest

from pi.cmdline.queue import CommandQueue

# ---------------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------------


class TestOrdering:
    """Tasks run one at a time in enqueue order."""

    @pytest.mark.asyncio
    async def test_runs_in_enqueue_order(self) -> None:
        queue = CommandQueue()
        order: list[str] = []
        for name in "abc":
            queue.enqueue(lambda name=name: order.append(name))
        await queue.wait_idle()
        assert order == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_slow_task_blocks_successor(self) -> None:
        queue = CommandQueue()
        order: list[str] = []
        release = asyncio.Event()

        async def slow_b():
            order.append("b-start")
            await release.wait()
            order.append("b-end")

        queue.enqueue(lambda: order.append("a"))
        queue.enqueue(slow_b)
        queue.enqueue(lambda: order.append("c"))
        # Let the queue reach B's suspension point before releasing it
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        assert "c" not in order
        release.set()
        await queue.wait_idle()
        assert order == ["a", "b-start", "b-end", "c"]

    @pytest.mark.asyncio
    async def test_never_overlaps(self) -> None:
        queue = CommandQueue()
        running = 0
        peak = 0

        async def task():
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0)
            running -= 1

        for _ in range(5):
            queue.enqueue(task)
        await queue.wait_idle()
        assert peak == 1

    @pytest.mark.asyncio
    async def test_enqueue_does_not_run_synchronously(self) -> None:
        queue = CommandQueue()
        ran = []
        queue.enqueue(lambda: ran.append(1))
        assert ran == []
        await queue.wait_idle()
        assert ran == [1]

    @pytest.mark.asyncio
    async def test_enqueue_after_drain_restarts(self) -> None:
        queue = CommandQueue()
        ran = []
        queue.enqueue(lambda: ran.append(1))
        await queue.wait_idle()
        queue.enqueue(lambda: ran.append(2))
        await queue.wait_idle()
        assert ran == [1, 2]


# ---------------------------------------------------------------------------
# Results and failures
# ---------------------------------------------------------------------------


class TestResults:
    """Per-task futures carry results and failures."""

    @pytest.mark.asyncio
    async def test_future_resolves_with_value(self) -> None:
        queue = CommandQueue()
        assert await queue.enqueue(lambda: 42) == 42

    @pytest.mark.asyncio
    async def test_future_resolves_with_awaited_value(self) -> None:
        queue = CommandQueue()

        async def fn():
            return "done"

        assert await queue.enqueue(fn) == "done"

    @pytest.mark.asyncio
    async def test_failure_isolated(self) -> None:
        queue = CommandQueue()
        ran = []

        def boom():
            raise RuntimeError("boom")

        failed = queue.enqueue(boom)
        ok = queue.enqueue(lambda: ran.append("after"))
        with pytest.raises(RuntimeError, match="boom"):
            await failed
        await ok
        assert ran == ["after"]

    @pytest.mark.asyncio
    async def test_close_cancels_pending(self) -> None:
        queue = CommandQueue()
        release = asyncio.Event()
        first = queue.enqueue(release.wait)
        second = queue.enqueue(lambda: None)
        await asyncio.sleep(0)
        queue.close()
        assert second.cancelled()
        await asyncio.sleep(0)
        assert first.cancelled()


# ---------------------------------------------------------------------------
# History tagging
# ---------------------------------------------------------------------------


class TestHistoryTagging:
    """Whether a task follows a history step."""

    @pytest.mark.asyncio
    async def test_after_history_reflects_predecessor(self) -> None:
        queue = CommandQueue()
        seen: list[bool] = []

        def record():
            seen.append(queue.current.after_history)

        queue.enqueue(record, history=True)
        queue.enqueue(record, history=True)
        queue.enqueue(record)
        queue.enqueue(record)
        await queue.wait_idle()
        assert seen == [False, True, True, False]

    @pytest.mark.asyncio
    async def test_current_is_none_when_idle(self) -> None:
        queue = CommandQueue()
        assert queue.current is None
        assert queue.is_idle
        queue.enqueue(lambda: None)
        assert queue.pending == 1
        await queue.wait_idle()
        assert queue.current is None
        assert queue.is_idle

    @pytest.mark.asyncio
    async def test_self_insert_when_idle_resets_flag(self) -> None:
        queue = CommandQueue()
        await queue.enqueue(lambda: None, history=True)
        assert queue.last_started_history
        queue.mark_self_insert()
        assert not queue.last_started_history

    @pytest.mark.asyncio
    async def test_self_insert_ordered_after_queued_history(self) -> None:
        queue = CommandQueue()
        seen: list[bool] = []

        def record():
            seen.append(queue.current.after_history)

        queue.enqueue(record, history=True)
        queue.enqueue(record, history=True)
        queue.mark_self_insert()
        queue.enqueue(record, history=True)
        await queue.wait_idle()
        # the second step still follows the first; the third follows the keystroke
        assert seen == [False, True, False]
