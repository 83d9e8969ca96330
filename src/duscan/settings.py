"""JSON-backed settings store."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from duscan.core.scanner import DEEP_STRATEGIES
from duscan.utils import xdg_config_home

log = logging.getLogger(__name__)

_SETTINGS_DIR = "duscan"
_SETTINGS_FILE = "settings.json"

DEEP_STRATEGY_KEY = "scan.deep_strategy"
LAST_PATH_KEY = "scan.last_path"

DEFAULT_DEEP_STRATEGY = "rewalk"


class Settings:
    """Persistent settings backed by a JSON file.

    Uses dot-notation keys for nested access:
        settings.get("scan.deep_strategy")  # reads data["scan"]["deep_strategy"]
        settings.set("scan.last_path", "/home/me")  # writes + saves
    """

    _instance: Settings | None = None

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or (xdg_config_home() / _SETTINGS_DIR / _SETTINGS_FILE)
        self._data: dict[str, Any] = {}
        self._load()

    @classmethod
    def instance(cls) -> Settings:
        """Return the singleton settings instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str, default: Any = None) -> Any:
        """Get a value by dot-notation key."""
        node: Any = self._data
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def set(self, key: str, value: Any) -> None:
        """Set a value by dot-notation key and persist to disk."""
        parts = key.split(".")
        node = self._data
        for part in parts[:-1]:
            if part not in node or not isinstance(node[part], dict):
                node[part] = {}
            node = node[part]
        node[parts[-1]] = value
        self._save()

    def deep_strategy(self) -> str:
        """Configured deep-scan strategy, falling back to the default."""
        value = self.get(DEEP_STRATEGY_KEY, DEFAULT_DEEP_STRATEGY)
        if value not in DEEP_STRATEGIES:
            log.warning("Unknown deep scan strategy %r, using %s", value, DEFAULT_DEEP_STRATEGY)
            return DEFAULT_DEEP_STRATEGY
        return value

    def _load(self) -> None:
        """Load settings from disk, gracefully handling errors."""
        if not self._path.exists():
            return
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            log.warning("Could not load settings from %s: %s", self._path, e)
            return
        if not isinstance(data, dict):
            log.warning("Ignoring settings in %s: expected an object", self._path)
            return
        self._data = data

    def _save(self) -> None:
        """Persist settings to disk."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(
                json.dumps(self._data, indent=2, ensure_ascii=False) + "\n",
                encoding="utf-8",
            )
        except OSError as e:
            log.warning("Could not save settings to %s: %s", self._path, e)
