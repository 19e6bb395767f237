"""Command-line functions, reachable from bindings as ``ex.<name>``.

Bind them in the command-line mode table, for example::

    {"ex": {"<C-p>": "ex.prev_completion"}}

Each function takes at most one string argument (the rest of the bound
command after its name) and runs inside the command queue.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable

if TYPE_CHECKING:
    from pi.cmdline.session import InputSession

logger = logging.getLogger(__name__)

HISTORY_COMMANDS: frozenset[str] = frozenset({"ex.prev_history", "ex.next_history", "ex.history"})

COMMAND_LINE_FUNCTIONS: tuple[str, ...] = (
    "complete",
    "next_completion",
    "prev_completion",
    "insert_completion",
    "insert_space_or_completion",
    "deselect_completion",
    "prev_history",
    "next_history",
    "history",
    "accept_line",
    "execute_ex_on_completion",
    "hide_and_clear",
)


class CommandLineFunctions:
    """Functions that act on one ``InputSession``."""

    def __init__(self, session: InputSession) -> None:
        self._session = session

    def get(self, name: str) -> Callable[[str | None], Any] | None:
        """Look up a function by name; ``None`` when it does not exist."""
        if name not in COMMAND_LINE_FUNCTIONS:
            return None
        return getattr(self, name)

    # --- Completion ---

    async def complete(self, _arg: str | None = None) -> None:
        """Replace the buffer with the selected completion."""
        completion = self._session.get_completion()
        if completion is not None:
            await self._session.fill_buffer(completion, add_trailing_space=False)

    def next_completion(self, _arg: str | None = None) -> None:
        self._session.next_completion()

    def prev_completion(self, _arg: str | None = None) -> None:
        self._session.prev_completion()

    async def insert_completion(self, _arg: str | None = None) -> None:
        """Replace the buffer with the selected completion and a space."""
        completion = self._session.get_completion()
        if completion is not None:
            await self._session.fill_buffer(completion)

    async def insert_space_or_completion(self, _arg: str | None = None) -> None:
        """Insert the completion the user navigated to, otherwise a space."""
        if self._session.aggregator.navigated:
            await self.insert_completion()
        else:
            await self._session.editor_function("insert_text", " ")

    def deselect_completion(self, _arg: str | None = None) -> None:
        self._session.emit(self._session.aggregator.deselect())

    # --- History ---

    async def history(self, arg: str | None = None) -> None:
        """Step through history by ``int(arg)`` entries (negative is older)."""
        try:
            n = int(arg) if arg is not None else -1
        except ValueError:
            logger.error("History step must be an integer, got %r", arg)
            return
        task = self._session.queue.current
        reuse_prefix = task.after_history if task is not None else False
        await self._session.navigator.step(self._session.state, n, reuse_prefix=reuse_prefix)
        self._session.on_text_changed()

    async def prev_history(self, _arg: str | None = None) -> None:
        await self.history("-1")

    async def next_history(self, _arg: str | None = None) -> None:
        await self.history("1")

    # --- Submission ---

    async def accept_line(self, _arg: str | None = None) -> Any:
        """Submit the buffer, or the completion the user navigated to."""
        session = self._session
        completion = session.get_completion() if session.aggregator.navigated else None
        command = (completion or session.state.text).strip()
        self.hide_and_clear()
        if not command:
            return None
        await session.record_history(command)
        name, _, arg = command.partition(" ")
        return await session.executor(name, arg.strip() or None)

    async def execute_ex_on_completion(self, arg: str | None = None) -> Any:
        """Run ``<command> <completion>`` without closing the command line.

        The command is *arg*, or the first word of the buffer.
        """
        completion = self._session.get_completion()
        command = arg or self._session.state.text.partition(" ")[0]
        if not command or completion is None:
            return None
        return await self._session.executor(command, completion)

    def hide_and_clear(self, _arg: str | None = None) -> None:
        session = self._session
        session.clear_buffer(also_yield_focus=True)
        session.state.visible = False
        session.aggregator.reset()
        session.emit(session.aggregator.project())
