"""Tests for pi.cmdline.keybindings — per-mode binding tables."""

from __future__ import annotations

import logging

from pi.cmdline.keybindings import (
    COMMAND_LINE_MODE,
    DEFAULT_COMMAND_LINE_BINDINGS,
    KeyBindingTable,
)

# ---------------------------------------------------------------------------
# DEFAULT_COMMAND_LINE_BINDINGS
# ---------------------------------------------------------------------------


class TestDefaultBindings:
    """The built-in command-line bindings."""

    def test_history_bindings(self) -> None:
        assert DEFAULT_COMMAND_LINE_BINDINGS["<Up>"] == "ex.prev_history"
        assert DEFAULT_COMMAND_LINE_BINDINGS["<Down>"] == "ex.next_history"

    def test_completion_bindings(self) -> None:
        assert DEFAULT_COMMAND_LINE_BINDINGS["<Tab>"] == "ex.next_completion"
        assert DEFAULT_COMMAND_LINE_BINDINGS["<S-Tab>"] == "ex.prev_completion"

    def test_submit(self) -> None:
        assert DEFAULT_COMMAND_LINE_BINDINGS["<CR>"] == "ex.accept_line"

    def test_every_default_parses(self) -> None:
        table = KeyBindingTable()
        assert len(table.bindings(COMMAND_LINE_MODE)) == len(DEFAULT_COMMAND_LINE_BINDINGS)


# ---------------------------------------------------------------------------
# KeyBindingTable
# ---------------------------------------------------------------------------


class TestKeyBindingTable:
    """Lookup, user overrides and unbinding."""

    def test_default_lookup(self) -> None:
        table = KeyBindingTable()
        assert table.get_command(COMMAND_LINE_MODE, "<C-a>") == "text.beginning_of_line"

    def test_lookup_uses_chord_identity(self) -> None:
        table = KeyBindingTable()
        # <Enter> and <CR> name the same key
        assert table.get_command(COMMAND_LINE_MODE, "<Enter>") == "ex.accept_line"

    def test_override(self) -> None:
        table = KeyBindingTable({COMMAND_LINE_MODE: {"<Tab>": "ex.complete"}})
        assert table.get_command(COMMAND_LINE_MODE, "<Tab>") == "ex.complete"
        assert table.get_command(COMMAND_LINE_MODE, "<S-Tab>") == "ex.prev_completion"

    def test_override_with_alias_notation_wins(self) -> None:
        table = KeyBindingTable({COMMAND_LINE_MODE: {"<Enter>": "ex.complete"}})
        assert table.get_command(COMMAND_LINE_MODE, "<CR>") == "ex.complete"

    def test_empty_command_unbinds(self) -> None:
        table = KeyBindingTable({COMMAND_LINE_MODE: {"<C-k>": ""}})
        assert table.get_command(COMMAND_LINE_MODE, "<C-k>") is None

    def test_new_mode(self) -> None:
        table = KeyBindingTable({"normal": {"gg": "scrolltop"}})
        assert "normal" in table.modes()
        assert table.get_command("normal", "gg") == "scrolltop"

    def test_unknown_mode_is_empty(self) -> None:
        assert KeyBindingTable().bindings("nope") == []

    def test_bad_entry_skipped_and_logged(self, caplog) -> None:
        with caplog.at_level(logging.WARNING, logger="pi.cmdline.keybindings"):
            table = KeyBindingTable({COMMAND_LINE_MODE: {"<Nope>": "ex.complete"}})
        assert "Skipping" in caplog.text
        assert table.get_command(COMMAND_LINE_MODE, "<Tab>") == "ex.next_completion"

    def test_set_config_rebuilds(self) -> None:
        table = KeyBindingTable()
        table.set_config({COMMAND_LINE_MODE: {"<C-a>": "ex.complete"}})
        assert table.get_command(COMMAND_LINE_MODE, "<C-a>") == "ex.complete"
        table.set_config({})
        assert table.get_command(COMMAND_LINE_MODE, "<C-a>") == "text.beginning_of_line"
