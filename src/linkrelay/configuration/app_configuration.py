from __future__ import annotations
from pathlib import Path
import fcntl
import os
from typing import Any, Dict
import yaml

from linkrelay.configuration.relay_settings import RelaySettings
from linkrelay.util.logger import get_logger

logger = get_logger("app_configuration")


HOME_ENV = "LINKRELAY_HOME"
BASE_DIR = Path(os.getenv(HOME_ENV, ".")).resolve()
CONFIG_PATH = BASE_DIR / "config" / "app_config.yml"
DEFAULT_DATABASE_PATH = "./data/relay.db"


class AppConfig:
    """File-lock based accessor around the YAML-based application configuration.

    The class caches contents of ``config/app_config.yml``, exposes dictionary-like
    access helpers, and resolves relay-specific settings through :class:`RelaySettings`.
    Uses fcntl file locks for safe concurrent access across processes.
    """

    def __init__(self, config_path: Path) -> None:
        self.config_path = config_path
        self._data: Dict[str, Any] = {}
        self.reload()

    # --------------------------
    # Private helpers
    # --------------------------
    def load_from_disk(self) -> Dict[str, Any]:
        try:
            with self.config_path.open("r", encoding="utf-8") as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                try:
                    data = yaml.safe_load(f)
                finally:
                    fcntl.flock(f.fileno(), fcntl.LOCK_UN)
        except FileNotFoundError:
            logger.error("[APP CONFIGURATION] Config file %s not found.", self.config_path)
            return {}
        except (OSError, yaml.YAMLError) as exc:
            logger.error("[APP CONFIGURATION] Failed to load config %s: %s", self.config_path, exc)
            return {}

        if not isinstance(data, dict):
            if data is not None:
                logger.error("[APP CONFIGURATION] Config %s is not a mapping; ignoring it", self.config_path)
            return {}
        return data

    def _section(self, key: str) -> Dict[str, Any]:
        value = self._data.get(key, {})
        return value if isinstance(value, dict) else {}

    # --------------------------
    # Public API
    # --------------------------
    def reload(self) -> Dict[str, Any]:
        """Reload configuration from disk and return the loaded mapping.

        Returns the raw mapping that was loaded (an empty dict on error).
        """
        self._data = self.load_from_disk()
        return self._data

    @property
    def data(self) -> Dict[str, Any]:
        """Return the current cached configuration mapping (do not mutate)."""
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        """Safe lookup for top-level configuration keys."""
        return self._data.get(key, default)

    # --------------------------
    # High-level shortcuts
    # --------------------------
    @property
    def relay_settings(self) -> RelaySettings:
        """Return the ``relay`` section wrapped in a :class:`RelaySettings` helper."""
        return RelaySettings(self._section("relay"))

    @property
    def database_path(self) -> Path:
        """Return the SQLite file path, relative paths resolved against the base directory."""
        raw = self._section("database").get("path") or DEFAULT_DATABASE_PATH
        path = Path(str(raw))
        return path if path.is_absolute() else (BASE_DIR / path).resolve()


# Shared application-wide configuration instance
app_config = AppConfig(CONFIG_PATH)
