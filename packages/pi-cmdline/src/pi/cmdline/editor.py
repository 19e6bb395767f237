"""Readline-style editing functions for the single-line command buffer.

Functions are registered by name so that bindings can reach them as
``text.<name>``. Each takes the buffer as its first argument and edits it
in place.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable


class KillRing:
    """Killed text entries for yank.

    Consecutive kills accumulate into one entry: backward kills prepend,
    forward kills append.
    """

    def __init__(self) -> None:
        self._ring: list[str] = []

    def push(self, text: str, *, prepend: bool, accumulate: bool = False) -> None:
        if not text:
            return
        if accumulate and self._ring:
            last = self._ring.pop()
            text = text + last if prepend else last + text
        self._ring.append(text)

    def peek(self) -> str | None:
        return self._ring[-1] if self._ring else None

    @property
    def length(self) -> int:
        return len(self._ring)


@dataclass
class EditBuffer:
    """Buffer text plus cursor position (an index into ``text``)."""

    text: str = ""
    cursor: int = 0
    kill_ring: KillRing = field(default_factory=KillRing)
    last_command_killed: bool = False
    _accumulate_kill: bool = field(default=False, repr=False)

    def set_text(self, text: str, cursor: int | None = None) -> None:
        """Replace the text; the cursor defaults to the end."""
        self.text = text
        self.cursor = len(text) if cursor is None else max(0, min(cursor, len(text)))
        self.last_command_killed = False


EditorFn = Callable[..., None]

EDITOR_FUNCTIONS: dict[str, EditorFn] = {}


def editor_function(fn: EditorFn) -> EditorFn:
    EDITOR_FUNCTIONS[fn.__name__] = fn
    return fn


def apply_editor_function(buf: EditBuffer, name: str, *args: str) -> bool:
    """Run the editor function *name* on *buf*.

    Returns ``False`` when no such function exists.
    """
    fn = EDITOR_FUNCTIONS.get(name)
    if fn is None:
        return False
    buf._accumulate_kill = buf.last_command_killed
    buf.last_command_killed = False
    fn(buf, *args)
    return True


# ---------------------------------------------------------------------------
# Word boundaries
# ---------------------------------------------------------------------------


def _is_word_char(ch: str) -> bool:
    return ch.isalnum() or ch == "_"


def _forward_word_end(text: str, pos: int) -> int:
    while pos < len(text) and not _is_word_char(text[pos]):
        pos += 1
    while pos < len(text) and _is_word_char(text[pos]):
        pos += 1
    return pos


def _backward_word_start(text: str, pos: int) -> int:
    while pos > 0 and not _is_word_char(text[pos - 1]):
        pos -= 1
    while pos > 0 and _is_word_char(text[pos - 1]):
        pos -= 1
    return pos


def _kill(buf: EditBuffer, start: int, end: int, *, backward: bool) -> None:
    if start >= end:
        return
    buf.kill_ring.push(buf.text[start:end], prepend=backward, accumulate=buf._accumulate_kill)
    buf.text = buf.text[:start] + buf.text[end:]
    buf.cursor = start
    buf.last_command_killed = True


# ---------------------------------------------------------------------------
# Movement
# ---------------------------------------------------------------------------


@editor_function
def beginning_of_line(buf: EditBuffer) -> None:
    buf.cursor = 0


@editor_function
def end_of_line(buf: EditBuffer) -> None:
    buf.cursor = len(buf.text)


@editor_function
def forward_char(buf: EditBuffer) -> None:
    buf.cursor = min(buf.cursor + 1, len(buf.text))


@editor_function
def backward_char(buf: EditBuffer) -> None:
    buf.cursor = max(buf.cursor - 1, 0)


@editor_function
def forward_word(buf: EditBuffer) -> None:
    buf.cursor = _forward_word_end(buf.text, buf.cursor)


@editor_function
def backward_word(buf: EditBuffer) -> None:
    buf.cursor = _backward_word_start(buf.text, buf.cursor)


# ---------------------------------------------------------------------------
# Deletion
# ---------------------------------------------------------------------------


@editor_function
def delete_char(buf: EditBuffer) -> None:
    if buf.cursor < len(buf.text):
        buf.text = buf.text[: buf.cursor] + buf.text[buf.cursor + 1 :]


@editor_function
def delete_backward_char(buf: EditBuffer) -> None:
    if buf.cursor > 0:
        buf.text = buf.text[: buf.cursor - 1] + buf.text[buf.cursor :]
        buf.cursor -= 1


@editor_function
def kill_line(buf: EditBuffer) -> None:
    _kill(buf, buf.cursor, len(buf.text), backward=False)


@editor_function
def backward_kill_line(buf: EditBuffer) -> None:
    _kill(buf, 0, buf.cursor, backward=True)


@editor_function
def kill_whole_line(buf: EditBuffer) -> None:
    _kill(buf, 0, len(buf.text), backward=False)


@editor_function
def kill_word(buf: EditBuffer) -> None:
    _kill(buf, buf.cursor, _forward_word_end(buf.text, buf.cursor), backward=False)


@editor_function
def backward_kill_word(buf: EditBuffer) -> None:
    _kill(buf, _backward_word_start(buf.text, buf.cursor), buf.cursor, backward=True)


@editor_function
def yank(buf: EditBuffer) -> None:
    text = buf.kill_ring.peek()
    if text:
        insert_text(buf, text)


# ---------------------------------------------------------------------------
# Transformation
# ---------------------------------------------------------------------------


@editor_function
def insert_text(buf: EditBuffer, text: str = "") -> None:
    buf.text = buf.text[: buf.cursor] + text + buf.text[buf.cursor :]
    buf.cursor += len(text)


@editor_function
def transpose_chars(buf: EditBuffer) -> None:
    """Swap the characters around the cursor; at end of line, the last two."""
    text, pos = buf.text, buf.cursor
    if len(text) < 2 or pos == 0:
        return
    if pos >= len(text):
        pos = len(text) - 1
    buf.text = text[: pos - 1] + text[pos] + text[pos - 1] + text[pos + 1 :]
    buf.cursor = pos + 1


@editor_function
def transpose_words(buf: EditBuffer) -> None:
    """Swap the word before the cursor with the word after it."""
    text = buf.text
    second_end = _forward_word_end(text, buf.cursor)
    second_start = _backward_word_start(text, second_end)
    first_start = _backward_word_start(text, second_start)
    first_end = _forward_word_end(text, first_start)
    if first_start == second_start or first_end > second_start:
        return
    buf.text = (
        text[:first_start]
        + text[second_start:second_end]
        + text[first_end:second_start]
        + text[first_start:first_end]
        + text[second_end:]
    )
    buf.cursor = second_end


def _transform_word(buf: EditBuffer, fn: Callable[[str], str]) -> None:
    end = _forward_word_end(buf.text, buf.cursor)
    buf.text = buf.text[: buf.cursor] + fn(buf.text[buf.cursor : end]) + buf.text[end:]
    buf.cursor = end


@editor_function
def upcase_word(buf: EditBuffer) -> None:
    _transform_word(buf, str.upper)


@editor_function
def downcase_word(buf: EditBuffer) -> None:
    _transform_word(buf, str.lower)


@editor_function
def capitalize_word(buf: EditBuffer) -> None:
    def capitalize(segment: str) -> str:
        for i, ch in enumerate(segment):
            if _is_word_char(ch):
                return segment[:i] + ch.upper() + segment[i + 1 :].lower()
        return segment

    _transform_word(buf, capitalize)
