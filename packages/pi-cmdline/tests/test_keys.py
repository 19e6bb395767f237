"""Tests for pi.cmdline.keys — key events, notation and terminal decoding."""

from __future__ import annotations

import pytest

from pi.cmdline.keys import (
    KeyEvent,
    format_key_sequence,
    key_event_from_data,
    parse_key,
    parse_key_sequence,
)

# ---------------------------------------------------------------------------
# KeyEvent
# ---------------------------------------------------------------------------


class TestKeyEvent:
    """Chord identity and modifier handling."""

    def test_is_frozen(self) -> None:
        event = KeyEvent("a")
        with pytest.raises(AttributeError):
            event.key = "b"  # type: ignore[misc]

    def test_trusted_by_default(self) -> None:
        assert KeyEvent("a").trusted is True

    def test_shift_folds_into_letter(self) -> None:
        assert KeyEvent("a", shift=True).chord == KeyEvent("A").chord

    def test_shift_kept_for_named_keys(self) -> None:
        assert KeyEvent("tab", shift=True).chord != KeyEvent("tab").chord

    def test_shift_dropped_for_symbols(self) -> None:
        assert KeyEvent("?", shift=True).chord == KeyEvent("?").chord

    def test_bare_modifier(self) -> None:
        assert KeyEvent("shift", shift=True).is_modifier
        assert KeyEvent("Control").is_modifier is False
        assert KeyEvent("ctrl").is_modifier

    def test_key_id_roundtrip_flags(self) -> None:
        event = KeyEvent.from_key_id("ctrl+shift+a")
        assert event.ctrl and event.shift
        assert event.key == "a"
        assert event.key_id == "ctrl+shift+a"

    def test_from_key_id_plus_key(self) -> None:
        assert KeyEvent.from_key_id("+").key == "+"
        event = KeyEvent.from_key_id("ctrl++")
        assert event.key == "+"
        assert event.ctrl

    def test_from_key_id_bare_modifier(self) -> None:
        assert KeyEvent.from_key_id("shift").is_modifier

    def test_from_key_id_untrusted(self) -> None:
        assert KeyEvent.from_key_id("a", trusted=False).trusted is False


# ---------------------------------------------------------------------------
# parse_key_sequence / format_key_sequence
# ---------------------------------------------------------------------------


class TestParseKeySequence:
    """Parsing angle-bracket key notation."""

    def test_plain_characters(self) -> None:
        keys = parse_key_sequence("gg")
        assert [k.key for k in keys] == ["g", "g"]

    def test_ctrl_chord(self) -> None:
        (key,) = parse_key_sequence("<C-n>")
        assert key.key == "n"
        assert key.ctrl and not key.alt

    def test_multiple_modifiers(self) -> None:
        (key,) = parse_key_sequence("<C-A-x>")
        assert key.ctrl and key.alt

    def test_named_keys_case_insensitive(self) -> None:
        assert parse_key_sequence("<CR>")[0].key == "enter"
        assert parse_key_sequence("<Enter>")[0].key == "enter"
        assert parse_key_sequence("<esc>")[0].key == "escape"
        assert parse_key_sequence("<PageUp>")[0].key == "pageUp"
        assert parse_key_sequence("<F5>")[0].key == "f5"

    def test_shift_tab(self) -> None:
        (key,) = parse_key_sequence("<S-Tab>")
        assert key.key == "tab"
        assert key.shift

    def test_mixed_sequence(self) -> None:
        keys = parse_key_sequence("<C-x>e<Space>")
        assert [k.key for k in keys] == ["x", "e", "space"]
        assert keys[0].ctrl and not keys[1].ctrl

    def test_lone_less_than_is_literal(self) -> None:
        keys = parse_key_sequence("<a")
        assert [k.key for k in keys] == ["<", "a"]

    def test_lt_name(self) -> None:
        assert parse_key_sequence("<lt>")[0].key == "<"

    def test_unknown_name_raises(self) -> None:
        with pytest.raises(ValueError):
            parse_key_sequence("<Bogus>")

    def test_unknown_modifier_raises(self) -> None:
        with pytest.raises(ValueError):
            parse_key_sequence("<X-a>")

    def test_empty_raises(self) -> None:
        with pytest.raises(ValueError):
            parse_key_sequence("")


class TestFormatKeySequence:
    """Formatting events back into notation."""

    def test_formats_chords_and_plain_keys(self) -> None:
        assert format_key_sequence(parse_key_sequence("<C-x>e")) == "<C-x>e"

    def test_formats_named_keys(self) -> None:
        assert format_key_sequence(parse_key_sequence("<S-Tab><CR>")) == "<S-Tab><CR>"

    def test_folds_shifted_letter(self) -> None:
        assert format_key_sequence([KeyEvent("a", shift=True)]) == "A"

    def test_str_of_event(self) -> None:
        assert str(KeyEvent("n", ctrl=True)) == "<C-n>"


# ---------------------------------------------------------------------------
# Raw terminal decoding
# ---------------------------------------------------------------------------


class TestParseKey:
    """Decoding raw terminal input into key ids."""

    def test_printable(self) -> None:
        assert parse_key("a") == "a"
        assert parse_key("A") == "A"

    def test_control_characters(self) -> None:
        assert parse_key("\x01") == "ctrl+a"
        assert parse_key("\x0e") == "ctrl+n"

    def test_simple_keys(self) -> None:
        assert parse_key("\r") == "enter"
        assert parse_key("\t") == "tab"
        assert parse_key("\x1b") == "escape"
        assert parse_key("\x7f") == "backspace"
        assert parse_key(" ") == "space"

    def test_legacy_arrows(self) -> None:
        assert parse_key("\x1b[A") == "up"
        assert parse_key("\x1bOB") == "down"

    def test_modified_arrow(self) -> None:
        assert parse_key("\x1b[1;5A") == "ctrl+up"
        assert parse_key("\x1b[1;3D") == "alt+left"

    def test_modified_tilde(self) -> None:
        assert parse_key("\x1b[3;5~") == "ctrl+delete"

    def test_shift_tab(self) -> None:
        assert parse_key("\x1b[Z") == "shift+tab"

    def test_alt_prefix(self) -> None:
        assert parse_key("\x1bf") == "alt+f"
        assert parse_key("\x1bF") == "shift+alt+f"
        assert parse_key("\x1b\x01") == "ctrl+alt+a"

    def test_kitty_csi_u(self) -> None:
        assert parse_key("\x1b[97;5u") == "ctrl+a"
        assert parse_key("\x1b[13u") == "enter"

    def test_kitty_release_ignored(self) -> None:
        assert parse_key("\x1b[97;1:3u") is None

    def test_empty(self) -> None:
        assert parse_key("") is None


class TestKeyEventFromData:
    """Building events from raw terminal input."""

    def test_matches_notation(self) -> None:
        event = key_event_from_data("\x0e")
        assert event is not None
        assert event.chord == parse_key_sequence("<C-n>")[0].chord

    def test_shift_tab_matches_notation(self) -> None:
        event = key_event_from_data("\x1b[Z")
        assert event is not None
        assert event.chord == parse_key_sequence("<S-Tab>")[0].chord

    def test_alt_shift_letter_matches_uppercase(self) -> None:
        event = key_event_from_data("\x1bF")
        assert event is not None
        assert event.chord == parse_key_sequence("<A-F>")[0].chord

    def test_untrusted_flag_carried(self) -> None:
        event = key_event_from_data("a", trusted=False)
        assert event is not None and event.trusted is False

    def test_undecodable(self) -> None:
        assert key_event_from_data("\x1b[999;5~") is None
