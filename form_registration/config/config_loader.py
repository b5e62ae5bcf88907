"""
YAML configuration for form registration.

The packaged ``registration_config.yaml`` holds detection defaults, cache
and batch limits and the logging setup. ``FORMREG_CONFIG`` points at a
different file, and any ``FORMREG_<SECTION>_<KEY>`` variable overrides a
single value, converted to the type of the value it replaces.
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

ENV_PREFIX = "FORMREG_"
CONFIG_PATH_ENV = "FORMREG_CONFIG"
DEFAULT_CONFIG_PATH = Path(__file__).parent / "registration_config.yaml"

_TRUE_STRINGS = ("true", "1", "yes", "on")
_NULL_STRINGS = ("none", "null", "")


def _convert_like(original: Any, raw: str) -> Any:
    """Convert an environment string to the type of the YAML value it replaces."""
    if isinstance(original, bool):
        return raw.lower() in _TRUE_STRINGS
    if isinstance(original, int):
        return int(raw)
    if isinstance(original, float):
        return float(raw)
    if original is None:
        if raw.lower() in _NULL_STRINGS:
            return None
        # Unset limits such as max_entries are numeric when given
        return int(raw) if raw.lstrip("-").isdigit() else raw
    return raw


class ConfigLoader:
    """Process-wide configuration, loaded once and shared."""

    _instance: Optional["ConfigLoader"] = None
    _config: Optional[Dict[str, Any]] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if self._config is None:
            self._load_config()

    @staticmethod
    def config_path() -> Path:
        """YAML file in use: ``$FORMREG_CONFIG`` or the packaged default."""
        override = os.environ.get(CONFIG_PATH_ENV)
        return Path(override) if override else DEFAULT_CONFIG_PATH

    def _load_config(self):
        path = self.config_path()
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path, "r", encoding="utf-8") as f:
            self._config = yaml.safe_load(f) or {}

        for name, raw in os.environ.items():
            if name.startswith(ENV_PREFIX) and name != CONFIG_PATH_ENV:
                self._override(name[len(ENV_PREFIX):].lower(), raw)

    def _resolve_env_key(self, env_key: str) -> List[str]:
        """
        Split an override name into existing YAML keys.

        Keys contain underscores themselves (``min_size``), so at each level
        the longest run of words naming an existing key is taken:
        ``detection_min_size`` -> ``["detection", "min_size"]``.

        Returns:
            Key path, or an empty list when the name matches no setting
        """
        words = env_key.split("_")
        node = self._config
        path = []
        start = 0
        while start < len(words):
            if not isinstance(node, dict):
                return []
            match = next(
                (end for end in range(len(words), start, -1) if "_".join(words[start:end]) in node),
                None,
            )
            if match is None:
                return []
            key = "_".join(words[start:match])
            path.append(key)
            node = node[key]
            start = match
        return path

    def _override(self, env_key: str, raw: str):
        path = self._resolve_env_key(env_key)
        if not path:
            return
        parent = self.get(".".join(path[:-1])) if len(path) > 1 else self._config
        key = path[-1]
        if not isinstance(parent, dict) or isinstance(parent.get(key), dict):
            return
        try:
            parent[key] = _convert_like(parent[key], raw)
        except ValueError:
            parent[key] = raw

    def get(self, key: str, default: Any = None) -> Any:
        """
        Look up a value by dotted key, e.g. ``get("detection.threshold")``.

        Args:
            key: Dot-separated path into the YAML structure
            default: Returned when any part of the path is missing
        """
        node = self._config
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def get_section(self, section: str) -> Dict[str, Any]:
        """Top-level section as a dict (empty when absent)."""
        return self.get(section, {})

    def reload(self):
        """Re-read the YAML file and the FORMREG_* environment."""
        self._config = None
        self._load_config()


_loader: Optional[ConfigLoader] = None


def get_config() -> ConfigLoader:
    """Shared ConfigLoader, created on first use."""
    global _loader
    if _loader is None:
        _loader = ConfigLoader()
    return _loader


def reload_config():
    """Reload after changing the YAML file or FORMREG_* variables."""
    get_config().reload()


def get_value(key: str, default: Any = None) -> Any:
    """Shortcut for ``get_config().get(key, default)``."""
    return get_config().get(key, default)
