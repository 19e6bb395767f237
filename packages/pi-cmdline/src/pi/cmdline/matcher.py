"""Partial key-sequence matching against a binding table."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Literal

from pi.cmdline.keybindings import COMMAND_LINE_MODE, KeyBindingTable
from pi.cmdline.keys import KeyEvent, format_key_sequence

logger = logging.getLogger(__name__)

MatchKind = Literal["resolved", "partial", "rejected"]


@dataclass
class MatchResult:
    """Classification of a buffered key sequence.

    ``resolved`` carries the bound command; the caller clears its buffer.
    ``partial`` carries the keys to keep buffering. ``rejected`` carries the
    tail that can still start a binding, which is empty when nothing does.
    """

    kind: MatchKind
    command: str | None = None
    keys: list[KeyEvent] = field(default_factory=list)

    @property
    def is_match(self) -> bool:
        """Whether the keys were consumed by a (possibly partial) binding."""
        return self.kind != "rejected" or len(self.keys) > 0

    @classmethod
    def resolved(cls, command: str) -> MatchResult:
        return cls(kind="resolved", command=command)

    @classmethod
    def partial(cls, keys: list[KeyEvent]) -> MatchResult:
        return cls(kind="partial", keys=keys)

    @classmethod
    def rejected(cls, keys: list[KeyEvent]) -> MatchResult:
        return cls(kind="rejected", keys=keys)


class KeySequenceMatcher:
    """Classifies key sequences against one mode of a ``KeyBindingTable``.

    The matcher only classifies. It never mutates the sequence it is given
    and never touches the edit buffer.
    """

    def __init__(
        self,
        table: KeyBindingTable | None = None,
        mode: str = COMMAND_LINE_MODE,
    ) -> None:
        self._table = table or KeyBindingTable()
        self._mode = mode

    @property
    def mode(self) -> str:
        return self._mode

    @property
    def table(self) -> KeyBindingTable:
        return self._table

    def _candidates(
        self, chords: list[tuple[str, bool, bool, bool, bool]]
    ) -> list[tuple[int, int, str]]:
        """Bindings starting with *chords*, as (length, order, command)."""
        found: list[tuple[int, int, str]] = []
        n = len(chords)
        for order, (keys, command) in enumerate(self._table.bindings(self._mode)):
            if len(keys) < n:
                continue
            if all(keys[i].chord == chords[i] for i in range(n)):
                found.append((len(keys), order, command))
        return found

    def feed(self, sequence: list[KeyEvent]) -> MatchResult:
        """Classify *sequence* (oldest key first)."""
        keys = [k for k in sequence if k.trusted and not k.is_modifier]
        if not keys:
            return MatchResult.rejected([])

        dropped = False
        chords = [k.chord for k in keys]
        candidates = self._candidates(chords)
        while not candidates and keys:
            keys = keys[1:]
            chords = chords[1:]
            dropped = True
            candidates = self._candidates(chords) if keys else []

        if candidates:
            perfect = [c for c in candidates if c[0] == len(keys)]
            if perfect:
                _, _, command = max(perfect)
                logger.debug("%s resolved to %s", format_key_sequence(keys), command)
                return MatchResult.resolved(command)

        if dropped:
            return MatchResult.rejected(keys)
        return MatchResult.partial(keys)
