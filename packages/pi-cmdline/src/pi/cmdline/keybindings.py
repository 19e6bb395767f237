"""Per-mode key-binding tables for the command line."""

from __future__ import annotations

import logging

from pi.cmdline.keys import KeyEvent, parse_key_sequence

logger = logging.getLogger(__name__)

COMMAND_LINE_MODE = "ex"

# Key-sequence notation -> command string.
# "ex." commands are command-line functions, "text." commands are editor
# functions applied to the buffer; anything else goes to the executor.
DEFAULT_COMMAND_LINE_BINDINGS: dict[str, str] = {
    # Submission
    "<CR>": "ex.accept_line",
    "<C-j>": "ex.accept_line",
    "<C-m>": "ex.accept_line",
    "<C-CR>": "ex.execute_ex_on_completion",
    "<Esc>": "ex.hide_and_clear",
    # History
    "<Up>": "ex.prev_history",
    "<Down>": "ex.next_history",
    "<C-p>": "ex.prev_history",
    "<C-n>": "ex.next_history",
    # Completion
    "<Tab>": "ex.next_completion",
    "<S-Tab>": "ex.prev_completion",
    "<C-f>": "ex.complete",
    "<Space>": "ex.insert_space_or_completion",
    "<C-Space>": "ex.deselect_completion",
    # Editing
    "<C-a>": "text.beginning_of_line",
    "<C-e>": "text.end_of_line",
    "<C-b>": "text.backward_char",
    "<A-b>": "text.backward_word",
    "<A-f>": "text.forward_word",
    "<C-d>": "text.delete_char",
    "<C-h>": "text.delete_backward_char",
    "<C-u>": "text.backward_kill_line",
    "<C-k>": "text.kill_line",
    "<C-w>": "text.backward_kill_word",
    "<A-d>": "text.kill_word",
    "<C-y>": "text.yank",
    "<C-t>": "text.transpose_chars",
    "<A-t>": "text.transpose_words",
    "<A-u>": "text.upcase_word",
    "<A-l>": "text.downcase_word",
    "<A-c>": "text.capitalize_word",
}

DEFAULT_BINDINGS: dict[str, dict[str, str]] = {
    COMMAND_LINE_MODE: DEFAULT_COMMAND_LINE_BINDINGS,
}

KeyBindingsConfig = dict[str, dict[str, str]]


class KeyBindingTable:
    """Parsed binding tables, one per mode.

    User config for a mode is layered over the defaults. Binding a
    sequence to an empty string removes it. Entries with malformed
    notation are logged and skipped.
    """

    def __init__(self, config: KeyBindingsConfig | None = None) -> None:
        self._tables: dict[str, list[tuple[list[KeyEvent], str]]] = {}
        self._build(config or {})

    def _build(self, config: KeyBindingsConfig) -> None:
        self._tables.clear()
        modes = set(DEFAULT_BINDINGS) | set(config)
        for mode in modes:
            merged = dict(DEFAULT_BINDINGS.get(mode, {}))
            merged.update(config.get(mode, {}))
            self._tables[mode] = self._parse_table(mode, merged)

    @staticmethod
    def _parse_table(mode: str, bindings: dict[str, str]) -> list[tuple[list[KeyEvent], str]]:
        table: list[tuple[list[KeyEvent], str]] = []
        for spec, command in bindings.items():
            if not command:
                continue
            try:
                keys = parse_key_sequence(spec)
            except ValueError as e:
                logger.warning("Skipping %s binding %r -> %r: %s", mode, spec, command, e)
                continue
            table.append((keys, command))
        return table

    def bindings(self, mode: str) -> list[tuple[list[KeyEvent], str]]:
        """Parsed (keys, command) pairs for *mode*, in configuration order."""
        return self._tables.get(mode, [])

    def modes(self) -> list[str]:
        return sorted(self._tables)

    def get_command(self, mode: str, spec: str) -> str | None:
        """Command bound to the notation *spec* in *mode*, or ``None``."""
        wanted = [k.chord for k in parse_key_sequence(spec)]
        command = None
        for keys, cmd in self.bindings(mode):
            if [k.chord for k in keys] == wanted:
                command = cmd
        return command

    def set_config(self, config: KeyBindingsConfig) -> None:
        """Replace user configuration and rebuild all tables."""
        self._build(config)
