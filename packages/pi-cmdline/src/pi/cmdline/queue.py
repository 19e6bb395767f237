"""Strict FIFO execution of command-line commands.

A command issued while another is still running waits until the earlier
one has settled. Failures are isolated: a failing command rejects only its
own future, and the next command starts regardless.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections import deque
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)

TaskFn = Callable[[], "Awaitable[Any] | Any"]


@dataclass
class QueuedTask:
    """One deferred command invocation.

    ``after_history`` is filled in when the task starts: whether the task
    that started immediately before it was a history step.
    """

    fn: TaskFn
    future: asyncio.Future[Any]
    history: bool = False
    after_history: bool = False
    label: str = ""


class CommandQueue:
    """Runs enqueued thunks one at a time, in enqueue order."""

    def __init__(self) -> None:
        self._tasks: deque[QueuedTask] = deque()
        self._current: QueuedTask | None = None
        self._drain_task: asyncio.Task[None] | None = None
        self._last_started_history = False

    # --- Properties ---

    @property
    def current(self) -> QueuedTask | None:
        """The task whose body is running right now, if any."""
        return self._current

    @property
    def last_started_history(self) -> bool:
        """Whether the most recently started task was a history step."""
        return self._last_started_history

    @property
    def pending(self) -> int:
        """Queued plus running tasks."""
        return len(self._tasks) + (1 if self._current is not None else 0)

    @property
    def is_idle(self) -> bool:
        return self.pending == 0

    # --- Queueing ---

    def enqueue(self, fn: TaskFn, *, history: bool = False, label: str = "") -> asyncio.Future[Any]:
        """Queue *fn* and return a future for its eventual result.

        Never blocks. *fn* may return a value or an awaitable. Must be
        called from within a running event loop.
        """
        loop = asyncio.get_running_loop()
        task = QueuedTask(fn=fn, future=loop.create_future(), history=history, label=label)
        self._tasks.append(task)
        logger.debug("Queued %s (%d pending)", label or fn, self.pending)
        if self._drain_task is None or self._drain_task.done():
            self._drain_task = loop.create_task(self._drain())
        return task.future

    def mark_self_insert(self) -> None:
        """Record that an unbound key was typed into the buffer.

        The reset is ordered after any queued commands, so a history step
        queued before the keystroke still sees its own predecessor.
        """
        if self.is_idle:
            self._last_started_history = False
            return
        self.enqueue(lambda: None, label="self-insert")

    async def _drain(self) -> None:
        while self._tasks:
            task = self._tasks.popleft()
            self._current = task
            task.after_history = self._last_started_history
            self._last_started_history = task.history
            try:
                result = task.fn()
                if inspect.isawaitable(result):
                    result = await result
            except asyncio.CancelledError:
                task.future.cancel()
                raise
            except Exception as e:
                if not task.future.done():
                    task.future.set_exception(e)
            else:
                if not task.future.done():
                    task.future.set_result(result)
            finally:
                self._current = None

    async def wait_idle(self) -> None:
        """Wait until every queued task has settled."""
        while self._drain_task is not None and not self._drain_task.done():
            await asyncio.shield(self._drain_task)

    def close(self) -> None:
        """Cancel the running task and every queued one."""
        if self._drain_task is not None and not self._drain_task.done():
            self._drain_task.cancel()
        while self._tasks:
            self._tasks.popleft().future.cancel()
