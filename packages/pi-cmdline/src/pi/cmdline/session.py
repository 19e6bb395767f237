"""InputSession: the command line's orchestrator.

Owns the buffer state and wires the pieces together: key events go to the
matcher, resolved commands go to the FIFO queue, and buffer changes
schedule a debounced completion refresh whose result is discarded if the
buffer changed again before it finished.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Protocol

from pi.cmdline.commands import HISTORY_COMMANDS, CommandLineFunctions
from pi.cmdline.completions import CompletionAggregator, RenderProjection
from pi.cmdline.editor import EditBuffer, apply_editor_function
from pi.cmdline.history import HistoryNavigator, HistoryStore, InMemoryHistoryStore
from pi.cmdline.keybindings import KeyBindingTable
from pi.cmdline.keys import KeyEvent
from pi.cmdline.matcher import KeySequenceMatcher, MatchResult
from pi.cmdline.queue import CommandQueue
from pi.cmdline.render import Renderer
from pi.cmdline.settings import SettingsManager

logger = logging.getLogger(__name__)


class CommandExecutor(Protocol):
    """Performs a command outside the command line itself."""

    def __call__(self, name: str, arg: str | None) -> Awaitable[Any]: ...


@dataclass
class SessionState(EditBuffer):
    """Everything the session mutates.

    Passed by reference to the navigator and editor functions for the
    duration of one call; nothing else keeps hold of it.
    """

    history_position: int = 0
    history_draft: str = ""
    history_search: str = ""
    last_task_history: bool = False
    visible: bool = False
    focused: bool = False


def split_command(command: str) -> tuple[str, str | None]:
    """Split ``"name some args"`` into ``("name", "some args")``."""
    parts = command.split()
    if not parts:
        return "", None
    return parts[0], " ".join(parts[1:]) or None


class InputSession:
    """Turns key events and buffer edits into commands and completions."""

    def __init__(
        self,
        *,
        executor: CommandExecutor,
        aggregator: CompletionAggregator | None = None,
        navigator: HistoryNavigator | None = None,
        history_store: HistoryStore | None = None,
        matcher: KeySequenceMatcher | None = None,
        renderer: Renderer | None = None,
        settings: SettingsManager | None = None,
        queue: CommandQueue | None = None,
    ) -> None:
        settings = settings or SettingsManager.in_memory()
        self.state = SessionState()
        self.executor = executor
        self.aggregator = aggregator or CompletionAggregator(
            source_timeout=settings.get_source_timeout()
        )
        self.navigator = navigator or HistoryNavigator(history_store or InMemoryHistoryStore())
        self.matcher = matcher or KeySequenceMatcher(KeyBindingTable(settings.get_keybindings()))
        self.queue = queue or CommandQueue()
        self.renderer = renderer
        self.projection = RenderProjection()

        self._debounce = settings.get_debounce_ms() / 1000
        self._functions = CommandLineFunctions(self)
        self._pending_keys: list[KeyEvent] = []
        self._debounce_handle: asyncio.TimerHandle | None = None
        self._refresh_lock = asyncio.Lock()
        self._background: set[asyncio.Task[Any]] = set()

    # --- Properties ---

    @property
    def pending_keys(self) -> list[KeyEvent]:
        return list(self._pending_keys)

    @property
    def functions(self) -> CommandLineFunctions:
        return self._functions

    # --- Key handling ---

    def handle_key(self, event: KeyEvent) -> MatchResult | None:
        """Process one key press.

        Returns the match classification, or ``None`` for events that are
        ignored outright (untrusted or bare modifiers). A rejected result
        with no keys means the key is unbound and the host inserts it.
        """
        if not event.trusted or event.is_modifier:
            return None

        self._pending_keys.append(event)
        result = self.matcher.feed(self._pending_keys)

        if result.kind == "resolved":
            self._pending_keys = []
            assert result.command is not None
            self.execute(result.command)
        else:
            self._pending_keys = list(result.keys)
            if result.kind == "rejected" and not result.keys:
                self.queue.mark_self_insert()
        return result

    def reset_keys(self) -> None:
        self._pending_keys = []

    # --- Command execution ---

    def execute(self, command: str) -> asyncio.Future[Any]:
        """Queue *command* behind every command issued before it."""
        name, _ = split_command(command)
        future = self.queue.enqueue(
            lambda: self._run_command(command),
            history=name in HISTORY_COMMANDS,
            label=command,
        )
        future.add_done_callback(lambda f: self._log_failure(command, f))
        return future

    @staticmethod
    def _log_failure(command: str, future: asyncio.Future[Any]) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.error("Command %r failed: %s", command, exc, exc_info=exc)

    async def _run_command(self, command: str) -> Any:
        task = self.queue.current
        self.state.last_task_history = task.history if task is not None else False

        name, arg = split_command(command)
        if name.startswith("ex."):
            fn = self._functions.get(name[3:])
            if fn is None:
                logger.error("No command-line function named %s", name[3:])
                return None
            result = fn(arg)
            return await result if inspect.isawaitable(result) else result

        if name.startswith("text."):
            args = (arg,) if arg is not None else ()
            return await self.editor_function(name[5:], *args)

        return await self.executor(name, arg)

    # --- Buffer ---

    def get_buffer_text(self) -> str:
        return self.state.text

    def set_text(self, text: str, cursor: int | None = None) -> None:
        """Replace the buffer as a direct edit or paste would."""
        self.state.set_text(text, cursor)
        self.on_text_changed()

    async def fill_buffer(
        self,
        text: str,
        add_trailing_space: bool = True,
        take_focus: bool = True,
    ) -> RenderProjection | None:
        """Set the buffer and show the command line.

        With *take_focus*, completions are refreshed immediately and the
        projection is returned.
        """
        self.state.set_text(text + " " if add_trailing_space else text)
        self.state.visible = True
        if not take_focus:
            return None
        self.state.focused = True
        return await self.refresh_completions()

    def clear_buffer(self, also_yield_focus: bool = False) -> None:
        """Empty the buffer and reset history navigation."""
        self.state.set_text("")
        self.state.history_position = 0
        self.state.history_draft = ""
        if also_yield_focus:
            self.state.focused = False
            self._cancel_debounce()
        else:
            self.on_text_changed()

    async def editor_function(self, name: str, *args: str) -> RenderProjection | None:
        """Apply the editor function *name* to the buffer, then refresh."""
        if not apply_editor_function(self.state, name, *args):
            logger.error("No editor function named %s", name)
            return None
        return await self.refresh_completions()

    async def record_history(self, entry: str) -> None:
        append = getattr(self.navigator.store, "append", None)
        if append is not None:
            await append(entry)

    # --- Completions ---

    def on_text_changed(self) -> None:
        """Schedule a completion refresh once input has been quiet for a while."""
        self._cancel_debounce()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No event loop - the next explicit refresh picks the text up
            return
        self._debounce_handle = loop.call_later(self._debounce, self._debounce_fired)

    def _cancel_debounce(self) -> None:
        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
            self._debounce_handle = None

    def _debounce_fired(self) -> None:
        self._debounce_handle = None
        self._spawn(self.refresh_completions())

    def _spawn(self, coro: Awaitable[Any]) -> None:
        task = asyncio.ensure_future(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def refresh_completions(self, text: str | None = None) -> RenderProjection | None:
        """Refresh completions for the buffer and emit the projection.

        Refreshes run one at a time. Returns ``None`` when the buffer
        changed before the refresh completed; those rows are dropped and
        the aggregator keeps its previous pass.
        """
        filter_text = self.state.text if text is None else text
        async with self._refresh_lock:
            if filter_text != self.state.text:
                logger.debug("Skipping stale refresh for %r", filter_text)
                return None
            rows = await self.aggregator.gather_rows(filter_text)
            if filter_text != self.state.text:
                logger.debug("Discarding stale completions for %r", filter_text)
                return None
            projection = self.aggregator.commit(filter_text, rows)

        self.emit(projection)
        return projection

    def emit(self, projection: RenderProjection) -> None:
        """Hand *projection* to the renderer."""
        self.projection = projection
        if self.renderer is None:
            return
        try:
            self.renderer.render(projection)
        except Exception:
            logger.exception("Renderer failed")

    def next_completion(self) -> RenderProjection:
        projection = self.aggregator.next()
        self.emit(projection)
        return projection

    def prev_completion(self) -> RenderProjection:
        projection = self.aggregator.prev()
        self.emit(projection)
        return projection

    def get_completion(self, args_only: bool = False) -> str | None:
        """The selected completion; with *args_only*, without its first word."""
        completion = self.aggregator.get_completion()
        if completion is None or not args_only:
            return completion
        _, arg = split_command(completion)
        return arg or ""

    # --- Lifecycle ---

    async def wait_idle(self) -> None:
        """Wait for queued commands, pending debounces and refreshes."""
        while True:
            await self.queue.wait_idle()
            if self._debounce_handle is not None:
                await asyncio.sleep(self._debounce)
                continue
            tasks = [t for t in self._background if not t.done()]
            if not tasks:
                if self.queue.is_idle:
                    return
                continue
            await asyncio.gather(*tasks, return_exceptions=True)

    def close(self) -> None:
        self._cancel_debounce()
        for task in self._background:
            task.cancel()
        self.queue.close()
