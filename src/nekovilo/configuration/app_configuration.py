"""
Application settings from ``config/app_config.yml``.

Only a handful of keys are read; everything else in the file is ignored.
The file is read under a shared ``fcntl`` lock so an editor saving it at the
same time cannot hand us a half-written document.

    trigger_reload:
      interval_seconds: 300
    database:
      path: ./data/nekovilo.db
    presence:
      activity: for keywords
    links:
      dashboard_url: https://...
"""

from __future__ import annotations

import fcntl
from pathlib import Path
from typing import Any, Dict, Mapping

import yaml

from nekovilo.util.logger import get_logger

logger = get_logger("app_configuration")

CONFIG_PATH = Path("./config/app_config.yml").resolve()

DEFAULT_RELOAD_INTERVAL_SECONDS = 300.0
DEFAULT_DATABASE_PATH = "./data/nekovilo.db"
DEFAULT_PRESENCE_ACTIVITY = "for keywords"


def read_yaml_mapping(path: Path) -> Dict[str, Any]:
    """Parse ``path`` as a YAML mapping; any problem is logged and yields ``{}``."""
    try:
        with path.open("r", encoding="utf-8") as handle:
            fcntl.flock(handle.fileno(), fcntl.LOCK_SH)
            try:
                document = yaml.safe_load(handle)
            finally:
                fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
    except FileNotFoundError:
        logger.error("[APP CONFIGURATION] %s does not exist; using defaults.", path)
        return {}
    except (OSError, yaml.YAMLError) as exc:
        logger.error("[APP CONFIGURATION] Could not read %s: %s", path, exc)
        return {}

    if document is None:
        return {}
    if not isinstance(document, dict):
        logger.error("[APP CONFIGURATION] %s must contain a mapping, got %s.", path, type(document).__name__)
        return {}
    return document


class AppConfig:
    """Cached view of the YAML settings with typed accessors and defaults."""

    def __init__(self, config_path: Path) -> None:
        self.config_path = config_path
        self._data: Dict[str, Any] = {}
        self.reload()

    def reload(self) -> Dict[str, Any]:
        """Re-read the file and return the new mapping."""
        self._data = read_yaml_mapping(self.config_path)
        return self._data

    @property
    def data(self) -> Mapping[str, Any]:
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def _section(self, name: str) -> Dict[str, Any]:
        section = self._data.get(name)
        return section if isinstance(section, dict) else {}

    @property
    def trigger_reload_interval(self) -> float:
        """Seconds between periodic trigger reloads (``trigger_reload.interval_seconds``).

        Anything that is not a positive number falls back to 300.
        """
        raw = self._section("trigger_reload").get("interval_seconds", DEFAULT_RELOAD_INTERVAL_SECONDS)
        try:
            interval = float(raw)
        except (TypeError, ValueError):
            interval = 0.0
        if interval > 0:
            return interval
        logger.warning(
            "[APP CONFIGURATION] trigger_reload.interval_seconds=%r is not a positive number; using %.0fs",
            raw,
            DEFAULT_RELOAD_INTERVAL_SECONDS,
        )
        return DEFAULT_RELOAD_INTERVAL_SECONDS

    @property
    def database_path(self) -> Path:
        raw = self._section("database").get("path") or DEFAULT_DATABASE_PATH
        return Path(str(raw)).resolve()

    @property
    def dashboard_url(self) -> str:
        """Optional link shown by /help; empty when unset."""
        return str(self._section("links").get("dashboard_url") or "")

    @property
    def presence_activity(self) -> str:
        return str(self._section("presence").get("activity") or DEFAULT_PRESENCE_ACTIVITY)


app_config = AppConfig(CONFIG_PATH)
