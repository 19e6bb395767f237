"""Command-line settings read from layered JSON files.

Layers, lowest first: the user file, the project file, then in-process
overrides. Later layers win key by key and nested tables merge, so a
project can rebind one key without repeating the user's whole table.
"""

from __future__ import annotations

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

Settings = dict[str, Any]

CONFIG_DIR_NAME = ".pi"
SETTINGS_FILE_NAME = "cmdline.json"
USER_SETTINGS_FILE_NAME = "settings.json"

DEFAULT_DEBOUNCE_MS = 100


def user_config_dir() -> Path:
    """``$PI_CMDLINE_DIR``, or ``~/.pi/cmdline``."""
    env = os.environ.get("PI_CMDLINE_DIR")
    return Path(env) if env else Path.home() / CONFIG_DIR_NAME / "cmdline"


def read_settings_file(path: Path) -> tuple[Settings, Exception | None]:
    """Parse one settings layer.

    A missing file is an empty layer. A file that cannot be read, is not
    JSON, or does not hold an object is also empty, and the error is
    returned with it.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}, None
    except OSError as e:
        logger.warning("Could not read settings from %s: %s", path, e)
        return {}, e

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning("Invalid JSON in %s: %s", path, e)
        return {}, e

    if not isinstance(data, dict):
        err = ValueError(f"Settings file {path} must contain a JSON object")
        logger.warning("%s", err)
        return {}, err
    return data, None


def deep_merge_settings(base: Settings, overrides: Settings) -> Settings:
    """Merge *overrides* over *base* without mutating either.

    Nested dicts merge key by key. A ``None`` override keeps the base value.
    """
    merged = dict(base)
    for key, value in overrides.items():
        if value is None:
            continue
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge_settings(current, value)
        else:
            merged[key] = value
    return merged


class SettingsManager:
    """Merged view over the settings layers.

    Build one with ``create`` (file backed) or ``in_memory``. Setters write
    the user layer; they never touch the project file.
    """

    def __init__(
        self,
        user_file: Path | None = None,
        project_file: Path | None = None,
        user_settings: Settings | None = None,
        load_error: Exception | None = None,
    ) -> None:
        self._user_file = user_file
        self._project_file = project_file
        self._user: Settings = dict(user_settings or {})
        self._overrides: Settings = {}
        self._load_error = load_error
        self._merged = self._merge()

    @classmethod
    def create(cls, cwd: str, config_dir: str | None = None) -> SettingsManager:
        """Settings for a session started in *cwd*."""
        user_file = (Path(config_dir) if config_dir else user_config_dir()) / USER_SETTINGS_FILE_NAME
        user, error = read_settings_file(user_file)
        return cls(
            user_file=user_file,
            project_file=Path(cwd) / CONFIG_DIR_NAME / SETTINGS_FILE_NAME,
            user_settings=user,
            load_error=error,
        )

    @classmethod
    def in_memory(cls, settings: Settings | None = None) -> SettingsManager:
        """Settings that live only in this process."""
        return cls(user_settings=settings)

    # --- Layers ---

    def _merge(self) -> Settings:
        project: Settings = {}
        if self._project_file is not None:
            project, _ = read_settings_file(self._project_file)
        return deep_merge_settings(deep_merge_settings(self._user, project), self._overrides)

    @property
    def settings(self) -> Settings:
        return self._merged

    @property
    def load_error(self) -> Exception | None:
        """Why the user file could not be loaded, if it could not."""
        return self._load_error

    def reload(self) -> None:
        """Re-read both files. In-process overrides survive."""
        if self._user_file is not None:
            self._user, self._load_error = read_settings_file(self._user_file)
        self._merged = self._merge()

    def apply_overrides(self, overrides: Settings) -> None:
        self._overrides = deep_merge_settings(self._overrides, overrides)
        self._merged = self._merge()

    def get_global_settings(self) -> Settings:
        return copy.deepcopy(self._user)

    def _write_user_layer(self) -> None:
        # A file we failed to parse is left alone rather than replaced
        if self._user_file is None or self._load_error is not None:
            return
        self._user_file.parent.mkdir(parents=True, exist_ok=True)
        self._user_file.write_text(
            json.dumps(self._user, indent=2, ensure_ascii=False) + "\n",
            encoding="utf-8",
        )

    def _update_user_layer(self, key: str, value: Any) -> None:
        self._user[key] = value
        self._write_user_layer()
        self.reload()

    # --- Getters ---

    def get_debounce_ms(self) -> int:
        value = self._merged.get("debounceMs")
        return DEFAULT_DEBOUNCE_MS if value is None else max(0, int(value))

    def get_source_timeout(self) -> float | None:
        """Per-source completion timeout in seconds, or ``None``."""
        value = self._merged.get("sourceTimeoutMs")
        return None if value is None else float(value) / 1000

    def get_keybindings(self) -> dict[str, dict[str, str]]:
        """User key-binding overrides, per mode."""
        bindings = self._merged.get("keybindings") or {}
        return {mode: dict(table) for mode, table in bindings.items() if isinstance(table, dict)}

    # --- Setters ---

    def set_debounce_ms(self, value: int) -> None:
        self._update_user_layer("debounceMs", value)

    def set_keybinding(self, mode: str, spec: str, command: str) -> None:
        """Bind *spec* to *command* in *mode*; an empty command unbinds."""
        bindings = copy.deepcopy(self._user.get("keybindings") or {})
        bindings.setdefault(mode, {})[spec] = command
        self._update_user_layer("keybindings", bindings)
