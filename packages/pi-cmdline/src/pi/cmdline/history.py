"""Prefix-filtered navigation over submitted command-line history."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from pi.cmdline.session import SessionState

logger = logging.getLogger(__name__)


@runtime_checkable
class HistoryStore(Protocol):
    """Read access to persisted history, oldest entry first."""

    async def get_history_snapshot(self) -> list[str]: ...


class InMemoryHistoryStore:
    """History store backed by a list, with optional size cap."""

    def __init__(self, entries: list[str] | None = None, max_size: int = 1000) -> None:
        self._entries: list[str] = list(entries or [])
        self._max_size = max_size

    async def get_history_snapshot(self) -> list[str]:
        return list(self._entries)

    async def append(self, entry: str) -> None:
        """Record a submitted command. Blank entries are ignored."""
        if not entry.strip():
            return
        self._entries.append(entry)
        if len(self._entries) > self._max_size:
            self._entries = self._entries[-self._max_size :]

    @property
    def length(self) -> int:
        return len(self._entries)


def unique_chronological(entries: list[str]) -> list[str]:
    """Deduplicate *entries*, keeping the position of each value's last use.

    ``["a", "b", "a", "c"]`` becomes ``["b", "a", "c"]``.
    """
    seen: set[str] = set()
    newest_first: list[str] = []
    for entry in reversed(entries):
        if entry not in seen:
            seen.add(entry)
            newest_first.append(entry)
    newest_first.reverse()
    return newest_first


class HistoryNavigator:
    """Steps the command-line buffer through matching history entries.

    Navigation state (position, search prefix, working draft) lives on the
    ``SessionState`` passed to each call; the navigator keeps none of it.
    """

    def __init__(self, store: HistoryStore) -> None:
        self._store = store

    @property
    def store(self) -> HistoryStore:
        return self._store

    async def matches(self, prefix: str) -> list[str]:
        """Unique history entries starting with *prefix*, oldest first."""
        snapshot = await self._store.get_history_snapshot()
        return [e for e in unique_chronological(snapshot) if e.startswith(prefix)]

    async def step(self, state: SessionState, n: int, *, reuse_prefix: bool = False) -> None:
        """Move *n* entries through history (negative is older).

        Unless *reuse_prefix* is set, the current buffer becomes the search
        prefix. When the target runs past the newest match the working
        draft is shown. The stored position only moves when the target
        needed no clamping.
        """
        if not reuse_prefix:
            state.history_search = state.text

        matches = await self.matches(state.history_search)

        if state.history_position == 0:
            state.history_draft = state.text

        target = len(matches) + n - state.history_position
        index = max(0, min(target, len(matches)))

        text = matches[index] if index < len(matches) else state.history_draft
        state.set_text(text)

        if index == target:
            state.history_position -= n

        logger.debug(
            "History step %+d: %d matches for %r, index %d, position %d",
            n,
            len(matches),
            state.history_search,
            index,
            state.history_position,
        )
