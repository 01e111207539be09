"""
Settings management for ShellScribe.

Settings are kept in a JSON file in the per-platform configuration
directory. Values missing from the file fall back to ``DEFAULT_SETTINGS``,
and the ``config`` command edits the file through ``set_value`` and
``reset``.
"""

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from shellscribe.executor import platform_utils

logger = logging.getLogger(__name__)

LANGUAGE_NAMES = {
    "en": "English",
    "de": "German",
    "es": "Spanish",
    "fr": "French",
    "it": "Italian",
    "ja": "Japanese",
    "ko": "Korean",
    "pt": "Portuguese",
    "ru": "Russian",
    "tr": "Turkish",
    "uk": "Ukrainian",
    "vi": "Vietnamese",
    "zh-Hans": "Simplified Chinese",
    "zh-Hant": "Traditional Chinese",
}

_TRUE_WORDS = {"1", "true", "yes", "on"}
_FALSE_WORDS = {"0", "false", "no", "off"}


def default_config_dir() -> Path:
    """
    Get the configuration directory for the current platform.

    Returns:
        Path: ``%APPDATA%\\ShellScribe`` on Windows,
        ``~/Library/Application Support/ShellScribe`` on macOS and
        ``$XDG_CONFIG_HOME/shellscribe`` (or ``~/.config/shellscribe``)
        elsewhere.
    """
    if platform_utils.is_windows():
        return Path(os.environ.get("APPDATA", "")) / "ShellScribe"
    if platform_utils.is_macos():
        return Path.home() / "Library" / "Application Support" / "ShellScribe"
    base = os.environ.get("XDG_CONFIG_HOME")
    return (Path(base) if base else Path.home() / ".config") / "shellscribe"


def _merge(target: Dict[str, Any], source: Dict[str, Any]) -> None:
    for key, value in source.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            _merge(target[key], value)
        else:
            target[key] = value


def _coerce(raw: str, like: Any) -> Any:
    """Convert a command line string to the type of the default value."""
    if isinstance(like, bool):
        word = raw.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
        raise ValueError(f"Expected true or false, got {raw!r}")
    if isinstance(like, int):
        return int(raw)
    if isinstance(like, float):
        return float(raw)
    return raw


class Settings:
    """
    Settings store backed by ``settings.json``.

    Loading never creates anything on disk; the directory is created on the
    first ``save``.
    """

    DEFAULT_SETTINGS = {
        "api": {
            "api_key": "",
            "model": "gpt-4o-mini",
            "api_endpoint": "https://api.openai.com/v1",
            "timeout": 60,
        },
        "ui": {
            "language": "en",
            "silent_mode": False,
            "explain_in_second_request": True,
        },
        "advanced": {
            "debug_mode": False,
            "log_level": "WARNING",
            "log_file": "",
        },
    }

    def __init__(self, config_dir: Optional[Path] = None):
        self.config_dir = Path(config_dir) if config_dir else default_config_dir()
        self.config_file = self.config_dir / "settings.json"
        self.settings = copy.deepcopy(self.DEFAULT_SETTINGS)
        if self.config_file.exists():
            self.load()

    def load(self) -> bool:
        """
        Merge the settings file over the current values.

        Returns:
            bool: False if the file could not be read or parsed.
        """
        try:
            stored = json.loads(self.config_file.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable settings file {self.config_file}: {e}")
            return False
        if not isinstance(stored, dict):
            logger.warning(f"Ignoring settings file {self.config_file}: not a JSON object")
            return False
        _merge(self.settings, stored)
        return True

    def save(self) -> bool:
        """
        Write the current values to the settings file.

        Returns:
            bool: False if the file could not be written.
        """
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            self.config_file.write_text(
                json.dumps(self.settings, indent=2), encoding="utf-8"
            )
        except OSError as e:
            logger.error(f"Could not save settings to {self.config_file}: {e}")
            return False
        return True

    def get(self, section: str, key: str, default: Any = None) -> Any:
        return self.settings.get(section, {}).get(key, default)

    def set(self, section: str, key: str, value: Any) -> None:
        self.settings.setdefault(section, {})[key] = value

    def get_all(self) -> Dict[str, Dict[str, Any]]:
        """Return a deep copy of every section."""
        return copy.deepcopy(self.settings)

    @classmethod
    def split_key(cls, dotted_key: str) -> Tuple[str, str]:
        """
        Split ``section.key`` and check that it names a known setting.

        Raises:
            ValueError: If the key is malformed or unknown.
        """
        section, _, key = dotted_key.partition(".")
        if not key or key not in cls.DEFAULT_SETTINGS.get(section, {}):
            known = ", ".join(
                f"{s}.{k}" for s, values in cls.DEFAULT_SETTINGS.items() for k in values
            )
            raise ValueError(f"Unknown setting {dotted_key!r}. Known settings: {known}")
        return section, key

    def set_value(self, dotted_key: str, raw: str) -> Any:
        """
        Set a setting from its command line form.

        The string is converted to the type of the setting's default, so
        ``ui.silent_mode true`` stores a boolean and ``api.timeout 30`` an int.

        Args:
            dotted_key (str): Setting name such as ``api.model``.
            raw (str): Value as typed by the user.

        Returns:
            Any: The stored value.

        Raises:
            ValueError: For unknown settings or values of the wrong type.
        """
        section, key = self.split_key(dotted_key)
        value = _coerce(raw, self.DEFAULT_SETTINGS[section][key])
        self.set(section, key, value)
        return value

    def reset(self, section: Optional[str] = None) -> None:
        """
        Restore defaults for one section, or for everything.

        Raises:
            ValueError: If ``section`` is not a known section.
        """
        if section is None:
            self.settings = copy.deepcopy(self.DEFAULT_SETTINGS)
            return
        if section not in self.DEFAULT_SETTINGS:
            raise ValueError(f"Unknown settings section {section!r}")
        self.settings[section] = copy.deepcopy(self.DEFAULT_SETTINGS[section])

    def get_language_name(self) -> str:
        """Display name of the configured language; unknown codes pass through."""
        code = self.get("ui", "language", "en") or "en"
        return LANGUAGE_NAMES.get(code, code)

    def get_log_file_path(self) -> Optional[Path]:
        """
        Resolve the log file.

        Returns:
            Optional[Path]: ``advanced.log_file`` if set, ``shellscribe.log``
            in the config directory in debug mode, otherwise None.
        """
        log_file = self.get("advanced", "log_file", "")
        if log_file:
            return Path(log_file)
        if self.get("advanced", "debug_mode", False):
            return self.config_dir / "shellscribe.log"
        return None


settings = Settings()
