"""
TAP Core Config Runtime - Runtime Configuration Management

This module provides path resolution and the settings store used by the
CLI and the API server. Settings are read from ``config/settings.json``
under the base directory, completed with the defaults of each section and
finally overridden by ``TAP_*`` environment variables.

University of Athens - Nikolaos Lavidas
"""

from __future__ import annotations
import os
import copy
import json
import logging
import threading
from pathlib import Path
from typing import Dict, Optional, Any, Callable, Mapping, Tuple

from tap_core.models import GoldOptions

logger = logging.getLogger(__name__)


DEFAULT_SETTINGS: Dict[str, Dict[str, Any]] = {
    "gold": {
        "mode": "unionPreferA",
        "label_mode": "preferA",
        "token_mode": "preferA",
        "sent_count_mode": "max",
        "include_comments": True,
        "mark_misc": True,
        "fix_orphan_heads": True,
        "filename": "gold.conllu"
    },
    "viewer": {
        "only_diff_sentences": False,
        "only_diff_edges": False,
        "show_pos": False
    },
    "loader": {
        "extensions": r"\.conll(u)?$|\.txt$",
        "encoding": "utf-8"
    },
    "server": {
        "host": "127.0.0.1",
        "port": 8000
    },
    "logging": {
        "level": "WARNING",
        "json": False,
        "file": None
    }
}


class ConfigurationError(ValueError):
    """Raised when a settings value cannot be used"""


# variable -> (section, key, converter)
ENVIRONMENT_OVERRIDES: Dict[str, Tuple[str, str, Callable[[str], Any]]] = {
    "TAP_LOG_LEVEL": ("logging", "level", str.upper),
    "TAP_SERVER_HOST": ("server", "host", str),
    "TAP_SERVER_PORT": ("server", "port", int),
}


class PathResolver:
    """Resolves platform paths below one base directory"""

    def __init__(self, base_dir: Optional[Path] = None):
        if base_dir is None:
            base_dir = os.environ.get("TAP_BASE_DIR") or Path.cwd()
        self.base_dir = Path(base_dir)

    @property
    def config_dir(self) -> Path:
        return self.base_dir / "config"

    @property
    def logs_dir(self) -> Path:
        return self.base_dir / "logs"

    @property
    def settings_file(self) -> Path:
        return self.config_dir / "settings.json"

    def get_log_path(self, log_name: str = "tap.log") -> Path:
        """Log file path; relative names are placed in the logs directory"""
        path = Path(log_name)
        return path if path.is_absolute() else self.logs_dir / path


class RuntimeConfig:
    """Settings of one process, shared through get_runtime_config()"""

    _current: Optional[RuntimeConfig] = None
    _lock = threading.Lock()

    def __init__(self, base_dir: Optional[Path] = None):
        self.path_resolver = PathResolver(base_dir)
        self._settings = self._read_settings_file(self.path_resolver.settings_file)
        self._fill_defaults()
        self._apply_environment()
        logger.debug(f"Settings loaded from {self.path_resolver.base_dir}")

    @classmethod
    def current(cls) -> RuntimeConfig:
        """The shared instance, created on first use"""
        with cls._lock:
            if cls._current is None:
                cls._current = cls()
            return cls._current

    @classmethod
    def reset(cls):
        """Forget the shared instance so the next access reloads settings"""
        with cls._lock:
            cls._current = None

    @staticmethod
    def _read_settings_file(path: Path) -> Dict[str, Dict[str, Any]]:
        if not path.exists():
            return {}
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable settings file {path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring settings file {path}: top level is not an object")
            return {}
        return data

    def _fill_defaults(self):
        for section, defaults in DEFAULT_SETTINGS.items():
            values = self._settings.setdefault(section, {})
            for key, value in defaults.items():
                values.setdefault(key, copy.deepcopy(value))

    def _apply_environment(self):
        for variable, (section, key, convert) in ENVIRONMENT_OVERRIDES.items():
            raw = os.environ.get(variable)
            if not raw:
                continue
            try:
                self._settings[section][key] = convert(raw)
            except ValueError:
                logger.warning(f"Ignoring invalid {variable}: {raw!r}")

    def save_settings(self):
        """Write the current settings to config/settings.json"""
        path = self.path_resolver.settings_file
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self._settings, indent=2), encoding="utf-8")

    def get_section(self, section: str) -> Dict[str, Any]:
        """Copy of one settings section"""
        return dict(self._settings.get(section, {}))

    def get_setting(self, section: str, key: str, default: Any = None) -> Any:
        return self._settings.get(section, {}).get(key, default)

    def set_setting(self, section: str, key: str, value: Any):
        self._settings.setdefault(section, {})[key] = value


def get_runtime_config() -> RuntimeConfig:
    """Get the shared runtime configuration"""
    return RuntimeConfig.current()


def get_setting(section: str, key: str, default: Any = None) -> Any:
    """Shortcut for get_runtime_config().get_setting()"""
    return get_runtime_config().get_setting(section, key, default)


def get_gold_options(overrides: Optional[Mapping[str, Any]] = None) -> GoldOptions:
    """Gold options from the ``gold`` settings section with overrides applied

    Override values are expected to be validated by the caller (argparse
    choices, request models); a value that still fails to parse comes from
    the settings and is reported as a ConfigurationError.
    """
    config = get_runtime_config()
    values = config.get_section("gold")
    values.update({k: v for k, v in (overrides or {}).items() if v is not None})
    try:
        return GoldOptions.from_dict(values)
    except ValueError as e:
        raise ConfigurationError(
            f"Invalid gold settings in {config.path_resolver.settings_file}: {e}"
        ) from None
