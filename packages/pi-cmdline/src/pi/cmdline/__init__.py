"""pi-cmdline: key-driven command line with history and completions."""

# Commands
from pi.cmdline.commands import COMMAND_LINE_FUNCTIONS, HISTORY_COMMANDS, CommandLineFunctions

# Completions
from pi.cmdline.completions import (
    Cell,
    CompletionAggregator,
    CompletionRow,
    CompletionSource,
    RenderedCell,
    RenderedRow,
    RenderProjection,
    SourceResult,
    StaticCompletionSource,
    normalize_widths,
)

# Editing
from pi.cmdline.editor import EDITOR_FUNCTIONS, EditBuffer, KillRing, apply_editor_function

# History
from pi.cmdline.history import (
    HistoryNavigator,
    HistoryStore,
    InMemoryHistoryStore,
    unique_chronological,
)

# Keybindings
from pi.cmdline.keybindings import (
    COMMAND_LINE_MODE,
    DEFAULT_COMMAND_LINE_BINDINGS,
    KeyBindingTable,
)

# Keys
from pi.cmdline.keys import (
    KeyEvent,
    KeyId,
    format_key_sequence,
    key_event_from_data,
    parse_key,
    parse_key_sequence,
)

# Matching
from pi.cmdline.matcher import KeySequenceMatcher, MatchResult

# Queue
from pi.cmdline.queue import CommandQueue, QueuedTask

# Rendering
from pi.cmdline.render import Renderer

# Session
from pi.cmdline.session import CommandExecutor, InputSession, SessionState

# Settings
from pi.cmdline.settings import SettingsManager

__all__ = [
    # Commands
    "COMMAND_LINE_FUNCTIONS",
    "HISTORY_COMMANDS",
    "CommandLineFunctions",
    # Completions
    "Cell",
    "CompletionAggregator",
    "CompletionRow",
    "CompletionSource",
    "RenderedCell",
    "RenderedRow",
    "RenderProjection",
    "SourceResult",
    "StaticCompletionSource",
    "normalize_widths",
    # Editing
    "EDITOR_FUNCTIONS",
    "EditBuffer",
    "KillRing",
    "apply_editor_function",
    # History
    "HistoryNavigator",
    "HistoryStore",
    "InMemoryHistoryStore",
    "unique_chronological",
    # Keybindings
    "COMMAND_LINE_MODE",
    "DEFAULT_COMMAND_LINE_BINDINGS",
    "KeyBindingTable",
    # Keys
    "KeyEvent",
    "KeyId",
    "format_key_sequence",
    "key_event_from_data",
    "parse_key",
    "parse_key_sequence",
    # Matching
    "KeySequenceMatcher",
    "MatchResult",
    # Queue
    "CommandQueue",
    "QueuedTask",
    # Rendering
    "Renderer",
    # Session
    "CommandExecutor",
    "InputSession",
    "SessionState",
    # Settings
    "SettingsManager",
]
