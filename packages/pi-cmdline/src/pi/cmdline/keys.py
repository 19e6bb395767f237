"""Key events, key-sequence notation, and raw terminal key decoding.

A binding table names keys in bracket notation: ``<C-n>``, ``<S-Tab>``,
``<A-f>``, ``<CR>``, plain characters such as ``gg``. Raw terminal input
(legacy escape sequences, control characters, CSI u) is decoded into the
same ``KeyEvent`` records so that both sides compare by ``chord``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

# ---------------------------------------------------------------------------
# Type alias
# ---------------------------------------------------------------------------

KeyId = str

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

MODIFIER_KEYS: frozenset[str] = frozenset({"shift", "ctrl", "alt", "meta"})

MODIFIERS: dict[str, int] = {
    "shift": 1,
    "alt": 2,
    "ctrl": 4,
    "meta": 8,
}

LOCK_MASK = 64 + 128

# Bracket-notation names -> key ids (lookup is case-insensitive)
NAMED_KEYS: dict[str, str] = {
    "cr": "enter",
    "enter": "enter",
    "return": "enter",
    "esc": "escape",
    "escape": "escape",
    "tab": "tab",
    "space": "space",
    "bs": "backspace",
    "backspace": "backspace",
    "del": "delete",
    "delete": "delete",
    "insert": "insert",
    "ins": "insert",
    "up": "up",
    "down": "down",
    "left": "left",
    "right": "right",
    "arrowup": "up",
    "arrowdown": "down",
    "arrowleft": "left",
    "arrowright": "right",
    "home": "home",
    "end": "end",
    "pageup": "pageUp",
    "pagedown": "pageDown",
    "lt": "<",
    "gt": ">",
    "bar": "|",
    "bslash": "\\",
    **{f"f{i}": f"f{i}" for i in range(1, 13)},
}

# Key id -> preferred bracket name, for display
_DISPLAY_NAMES: dict[str, str] = {
    "enter": "CR",
    "escape": "Esc",
    "tab": "Tab",
    "space": "Space",
    "backspace": "BS",
    "delete": "Del",
    "insert": "Insert",
    "up": "Up",
    "down": "Down",
    "left": "Left",
    "right": "Right",
    "home": "Home",
    "end": "End",
    "pageUp": "PageUp",
    "pageDown": "PageDown",
    "<": "lt",
    ">": "gt",
    "|": "Bar",
    "\\": "Bslash",
    **{f"f{i}": f"F{i}" for i in range(1, 13)},
}

_MODIFIER_LETTERS: dict[str, str] = {
    "c": "ctrl",
    "a": "alt",
    "m": "meta",
    "s": "shift",
}

_BRACKET_RE = re.compile(r"<((?:[A-Za-z]-)*)([^>]+|>)>")


# ---------------------------------------------------------------------------
# KeyEvent
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class KeyEvent:
    """One physical key press.

    ``trusted`` is false for synthetic events that did not come from the
    user's keyboard; the matcher never lets them reach a binding.
    """

    key: KeyId
    ctrl: bool = False
    alt: bool = False
    meta: bool = False
    shift: bool = False
    trusted: bool = True

    @property
    def is_modifier(self) -> bool:
        """True for a bare modifier press (shift, ctrl, alt, meta alone)."""
        return self.key.lower() in MODIFIER_KEYS

    @property
    def chord(self) -> tuple[str, bool, bool, bool, bool]:
        """Identity used for binding comparison.

        Shift is folded into single printable characters, so ``<S-a>``
        and ``A`` compare equal.
        """
        key, shift = self.key, self.shift
        if len(key) == 1 and key.isprintable():
            if shift and key.isalpha():
                key = key.upper()
            shift = False
        return (key, self.ctrl, self.alt, self.meta, shift)

    @property
    def key_id(self) -> KeyId:
        """The event as a ``ctrl+shift+x`` style key id."""
        prefix = ""
        if self.ctrl:
            prefix += "ctrl+"
        if self.shift:
            prefix += "shift+"
        if self.alt:
            prefix += "alt+"
        if self.meta:
            prefix += "meta+"
        return prefix + self.key

    @classmethod
    def from_key_id(cls, key_id: KeyId, *, trusted: bool = True) -> KeyEvent:
        """Build an event from a key id like ``"ctrl+shift+a"``.

        Raises ``ValueError`` when the id names no base key.
        """
        if key_id == "+":
            return cls(key="+", trusted=trusted)

        flags = {name: False for name in MODIFIER_KEYS}
        parts = key_id.split("+")
        # A trailing "+" means the base key is the plus sign
        if key_id.endswith("++"):
            parts = parts[:-2] + ["+"]
        key_parts: list[str] = []
        last = len(parts) - 1
        for i, part in enumerate(parts):
            lower = part.lower()
            if lower in MODIFIER_KEYS and i < last:
                flags[lower] = True
            else:
                key_parts.append(part)

        key = "+".join(key_parts)
        if not key:
            raise ValueError(f"Key id has no base key: {key_id!r}")
        return cls(key=key, trusted=trusted, **flags)

    def __str__(self) -> str:
        return format_key_sequence([self])


# ---------------------------------------------------------------------------
# Bracket notation
# ---------------------------------------------------------------------------


def _parse_bracket(modifiers: str, name: str) -> KeyEvent:
    flags = {flag: False for flag in MODIFIER_KEYS}
    for letter in modifiers.split("-"):
        if not letter:
            continue
        flag = _MODIFIER_LETTERS.get(letter.lower())
        if flag is None:
            raise ValueError(f"Unknown modifier {letter!r} in <{modifiers}{name}>")
        flags[flag] = True

    if len(name) == 1:
        return KeyEvent(key=name, **flags)

    key = NAMED_KEYS.get(name.lower())
    if key is None:
        raise ValueError(f"Unknown key name {name!r} in <{modifiers}{name}>")
    return KeyEvent(key=key, **flags)


def parse_key_sequence(spec: str) -> list[KeyEvent]:
    """Parse bracket notation into a list of key events.

    ``"<C-x><C-e>"`` gives two events, ``"gg"`` gives two plain ``g``
    presses. A ``<`` that does not open a valid bracket expression is the
    literal less-than key. Raises ``ValueError`` for unknown key names or
    modifier letters and for an empty spec.
    """
    if not spec:
        raise ValueError("Empty key sequence")

    events: list[KeyEvent] = []
    pos = 0
    while pos < len(spec):
        if spec[pos] == "<":
            m = _BRACKET_RE.match(spec, pos)
            if m is not None:
                events.append(_parse_bracket(m.group(1), m.group(2)))
                pos = m.end()
                continue
        ch = spec[pos]
        events.append(KeyEvent(key="space" if ch == " " else ch))
        pos += 1
    return events


def format_key_sequence(keys: list[KeyEvent]) -> str:
    """Render key events back into bracket notation."""
    out: list[str] = []
    for event in keys:
        key, ctrl, alt, meta, shift = event.chord
        mods = ""
        if ctrl:
            mods += "C-"
        if alt:
            mods += "A-"
        if meta:
            mods += "M-"
        if shift:
            mods += "S-"
        name = _DISPLAY_NAMES.get(key)
        if not mods and name is None:
            out.append(key)
        else:
            out.append(f"<{mods}{name or key}>")
    return "".join(out)


# ---------------------------------------------------------------------------
# Raw terminal decoding
# ---------------------------------------------------------------------------

LEGACY_KEY_SEQUENCES: dict[str, str] = {
    "\x1b[A": "up",
    "\x1b[B": "down",
    "\x1b[C": "right",
    "\x1b[D": "left",
    "\x1b[H": "home",
    "\x1b[F": "end",
    "\x1bOA": "up",
    "\x1bOB": "down",
    "\x1bOC": "right",
    "\x1bOD": "left",
    "\x1bOH": "home",
    "\x1bOF": "end",
    "\x1b[1~": "home",
    "\x1b[4~": "end",
    "\x1b[2~": "insert",
    "\x1b[3~": "delete",
    "\x1b[5~": "pageUp",
    "\x1b[6~": "pageDown",
    "\x1bOP": "f1",
    "\x1bOQ": "f2",
    "\x1bOR": "f3",
    "\x1bOS": "f4",
    "\x1b[15~": "f5",
    "\x1b[17~": "f6",
    "\x1b[18~": "f7",
    "\x1b[19~": "f8",
    "\x1b[20~": "f9",
    "\x1b[21~": "f10",
    "\x1b[23~": "f11",
    "\x1b[24~": "f12",
}

# Final byte of CSI 1;<mod>X sequences
_CSI_LETTER_KEYS: dict[str, str] = {
    "A": "up",
    "B": "down",
    "C": "right",
    "D": "left",
    "H": "home",
    "F": "end",
    "P": "f1",
    "Q": "f2",
    "R": "f3",
    "S": "f4",
}

# Number of CSI <n>;<mod>~ sequences
_CSI_TILDE_KEYS: dict[int, str] = {
    1: "home",
    2: "insert",
    3: "delete",
    4: "end",
    5: "pageUp",
    6: "pageDown",
    15: "f5",
    17: "f6",
    18: "f7",
    19: "f8",
    20: "f9",
    21: "f10",
    23: "f11",
    24: "f12",
}

# Kitty CSI u codepoints with names
_CSI_U_CODEPOINTS: dict[int, str] = {
    27: "escape",
    9: "tab",
    13: "enter",
    32: "space",
    127: "backspace",
    57414: "enter",
}

_CSI_MOD_LETTER_RE = re.compile(r"\x1b\[1;(\d+)(?::\d+)?([ABCDHFPQRS])$")
_SS3_MOD_RE = re.compile(r"\x1bO(\d)([PQRS])$")
_CSI_MOD_TILDE_RE = re.compile(r"\x1b\[(\d+);(\d+)(?::\d+)?~$")
_CSI_U_RE = re.compile(r"\x1b\[(\d+)(?::\d+(?::\d+)?)?(?:;(\d+)(?::(\d+))?)?u$")
_MODIFY_OTHER_KEYS_RE = re.compile(r"\x1b\[27;(\d+);(\d+)~$")


def _modifier_prefix(modifier: int) -> str:
    mod = (modifier - 1) & ~LOCK_MASK
    prefix = ""
    if mod & MODIFIERS["ctrl"]:
        prefix += "ctrl+"
    if mod & MODIFIERS["shift"]:
        prefix += "shift+"
    if mod & MODIFIERS["alt"]:
        prefix += "alt+"
    if mod & MODIFIERS["meta"]:
        prefix += "meta+"
    return prefix


def parse_key(data: str) -> KeyId | None:  # noqa: C901
    """Decode raw terminal input into a key id, or ``None``.

    Handles legacy VT sequences, xterm modified sequences, kitty CSI u,
    modifyOtherKeys, control characters and ESC-prefixed Alt chords.
    Key release events (kitty event type 3) decode to ``None``.
    """
    if not data:
        return None

    if data in LEGACY_KEY_SEQUENCES:
        return LEGACY_KEY_SEQUENCES[data]

    m = _CSI_U_RE.match(data)
    if m:
        if m.group(3) == "3":
            return None
        codepoint = int(m.group(1))
        prefix = _modifier_prefix(int(m.group(2) or 1))
        name = _CSI_U_CODEPOINTS.get(codepoint)
        if name is not None:
            return prefix + name
        ch = chr(codepoint)
        return prefix + ch.lower() if ch.isprintable() else None

    m = _MODIFY_OTHER_KEYS_RE.match(data)
    if m:
        ch = chr(int(m.group(2)))
        name = _CSI_U_CODEPOINTS.get(ord(ch))
        if name is not None:
            return _modifier_prefix(int(m.group(1))) + name
        return _modifier_prefix(int(m.group(1))) + ch.lower() if ch.isprintable() else None

    m = _CSI_MOD_LETTER_RE.match(data) or _SS3_MOD_RE.match(data)
    if m:
        return _modifier_prefix(int(m.group(1))) + _CSI_LETTER_KEYS[m.group(2)]

    m = _CSI_MOD_TILDE_RE.match(data)
    if m:
        name = _CSI_TILDE_KEYS.get(int(m.group(1)))
        if name is None:
            return None
        return _modifier_prefix(int(m.group(2))) + name

    if data == "\x1b[Z":
        return "shift+tab"
    if data == "\x1b":
        return "escape"
    if data in ("\r", "\n"):
        return "enter"
    if data == "\t":
        return "tab"
    if data == " ":
        return "space"
    if data in ("\x7f", "\x08"):
        return "backspace"
    if data == "\x00":
        return "ctrl+space"

    if len(data) == 1 and 1 <= ord(data) <= 26:
        return "ctrl+" + chr(ord(data) + ord("a") - 1)

    if len(data) == 2 and data[0] == "\x1b":
        inner = parse_key(data[1])
        if inner is None:
            return None
        if len(inner) == 1 and inner.isupper():
            return "shift+alt+" + inner.lower()
        return "alt+" + inner if not inner.startswith("ctrl+") else "ctrl+alt+" + inner[5:]

    if len(data) == 1 and data.isprintable():
        return data

    return None


def key_event_from_data(data: str, *, trusted: bool = True) -> KeyEvent | None:
    """Decode raw terminal input into a ``KeyEvent``, or ``None``."""
    key_id = parse_key(data)
    if key_id is None:
        return None
    return KeyEvent.from_key_id(key_id, trusted=trusted)
