from __future__ import annotations
from pathlib import Path
import fcntl
from typing import Any, Dict, List
import yaml

from modledger.util.logger import get_logger

logger = get_logger("app_configuration")


CONFIG_PATH = Path("./config/app_config.yml").resolve()

# Embed colours for the history summary, from no cases up to six or more
DEFAULT_HISTORY_COLORS: List[int] = [8450847, 10870283, 13091073, 14917123, 16152591, 16667430, 16462404]


class AppConfig:
    """File-lock based accessor around the YAML application configuration.

    Caches the contents of ``./config/app_config.yml`` and exposes typed
    shortcuts for the values Modledger reads. A missing or malformed file
    yields the defaults.
    """

    def __init__(self, config_path: Path) -> None:
        self.config_path = config_path
        self._data: Dict[str, Any] = {}
        self.reload()

    def load_from_disk(self) -> Dict[str, Any]:
        try:
            with self.config_path.open("r", encoding="utf-8") as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                try:
                    data = yaml.safe_load(f)
                finally:
                    fcntl.flock(f.fileno(), fcntl.LOCK_UN)
        except FileNotFoundError:
            logger.warning("[APP CONFIGURATION] Config file %s not found, using defaults.", self.config_path)
            return {}
        except (OSError, yaml.YAMLError) as exc:
            logger.error("[APP CONFIGURATION] Failed to load config %s: %s", self.config_path, exc)
            return {}

        if not isinstance(data, dict):
            if data is not None:
                logger.error("[APP CONFIGURATION] Config %s is not a mapping, ignoring it.", self.config_path)
            return {}
        return data

    def reload(self) -> Dict[str, Any]:
        """Re-read the YAML file, replace the cache and return the new mapping."""
        self._data = self.load_from_disk()
        return self._data

    @property
    def data(self) -> Dict[str, Any]:
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        """Safe lookup for top-level configuration keys."""
        return self._data.get(key, default)

    def _section(self, name: str) -> Dict[str, Any]:
        section = self._data.get(name, {})
        return section if isinstance(section, dict) else {}

    # --------------------------
    # High-level shortcuts
    # --------------------------
    @property
    def database_path(self) -> Path:
        """Path of the SQLite database file (default ``./data/modledger.db``)."""
        value = self._section("database").get("path") or "./data/modledger.db"
        return Path(str(value)).resolve()

    @property
    def history_colors(self) -> List[int]:
        """Severity colour tiers for ``/history``; index 0 is a clean record."""
        colors = self._section("history").get("colors")
        if not isinstance(colors, list) or not colors:
            return list(DEFAULT_HISTORY_COLORS)
        try:
            return [int(str(c), 0) if isinstance(c, str) else int(c) for c in colors]
        except (TypeError, ValueError):
            logger.error("[APP CONFIGURATION] Invalid history colours %r, using defaults.", colors)
            return list(DEFAULT_HISTORY_COLORS)

    @property
    def mute_scheduler_enabled(self) -> bool:
        """Whether timed mutes are lifted automatically."""
        return bool(self._section("mute_scheduler").get("enabled", True))

    @property
    def mute_catch_up_seconds(self) -> int:
        """How far back to look at startup for mutes that ended while the bot was offline."""
        return int(self._section("mute_scheduler").get("catch_up_seconds", 86400))


app_config = AppConfig(CONFIG_PATH)
