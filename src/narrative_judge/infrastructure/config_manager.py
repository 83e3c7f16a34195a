"""Thread-safe configuration management."""

import copy
import json
import os
import threading
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, cast

import yaml

from ..exceptions import ConfigurationError
from ..services import IConfigurationManager

DEFAULT_CONFIG: Dict[str, Any] = {
    "scoring": {"blocker_penalty": 25, "warn_penalty": 10, "nit_penalty": 3, "pass_threshold": 70},
    "research": {"level": "DEEP"},
    "model": {"judge": None, "default": None, "fallback": "gpt-4o-mini"},
    "audit": {"max_output_tokens": 600},
    "api": {"key": None, "base_url": None, "timeout": 60.0},
    "storage": {"verdicts_dir": "verdicts"},
}


class ConfigurationManager(IConfigurationManager):
    """Thread-safe configuration manager with file and environment support.

    Lookups use dot notation (``scoring.pass_threshold``). An environment
    variable named after the key (``SCORING_PASS_THRESHOLD``) wins over file and
    in-memory values; its text is parsed as JSON when possible.
    """

    def __init__(
        self,
        config_file: Optional[Path | str] = None,
        defaults: Optional[Mapping[str, Any]] = None,
        auto_reload: bool = False,
    ):
        """Initialize configuration manager.

        Args:
            config_file: Path to configuration file (YAML or JSON)
            defaults: Base values the file is merged over; ``DEFAULT_CONFIG`` if omitted
            auto_reload: Whether to lazily load the file on first access
        """
        self._config_file: Optional[Path] = Path(config_file) if isinstance(config_file, str) else config_file
        self._defaults: Dict[str, Any] = copy.deepcopy(dict(defaults if defaults is not None else DEFAULT_CONFIG))
        self._auto_reload = auto_reload
        self._lock = threading.RLock()
        self._config: Dict[str, Any] = copy.deepcopy(self._defaults)
        self._loaded = False

        if config_file and not auto_reload:
            self.reload()

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by key."""
        with self._lock:
            if self._auto_reload and not self._loaded:
                self.reload()

            env_value = os.getenv(key.upper().replace(".", "_"))
            if env_value is not None:
                return self._parse_env_value(env_value)

            current: Any = self._config
            for part in key.split("."):
                if not isinstance(current, Mapping):
                    return default
                current_map = cast(Mapping[str, Any], current)
                if current_map.get(part) is None:
                    return default
                current = current_map[part]

            return current

    def set(self, key: str, value: Any) -> None:
        """Set configuration value in memory only."""
        with self._lock:
            parts = key.split(".")
            config = self._config
            for part in parts[:-1]:
                if not isinstance(config.get(part), dict):
                    config[part] = {}
                config = config[part]
            config[parts[-1]] = value

    def get_section(self, section: str) -> Dict[str, Any]:
        """Get an entire configuration section with environment overrides applied per key."""
        with self._lock:
            if self._auto_reload and not self._loaded:
                self.reload()

            value = self._config.get(section)
            if not isinstance(value, dict):
                return {}
            resolved = dict(cast(Dict[str, Any], value))
            for name in resolved:
                resolved[name] = self.get(f"{section}.{name}", resolved[name])
            return resolved

    def reload(self) -> None:
        """Reload configuration from file over the defaults."""
        with self._lock:
            self._config = copy.deepcopy(self._defaults)
            self._loaded = True
            if not self._config_file:
                return

            if not self._config_file.exists():
                raise ConfigurationError("Configuration file not found", {"file": str(self._config_file)})

            suffix = self._config_file.suffix.lower()
            data: Any
            with open(self._config_file, "r", encoding="utf-8") as f:
                if suffix in {".yaml", ".yml"}:
                    data = yaml.safe_load(f)
                elif suffix == ".json":
                    data = json.load(f)
                else:
                    raise ConfigurationError("Unsupported configuration file format", {"suffix": suffix})

            if data is None:
                return
            if not isinstance(data, dict):
                raise ConfigurationError("Configuration file must contain a mapping", {"file": str(self._config_file)})
            self._deep_merge(self._config, cast(Dict[str, Any], data))

    def get_all(self) -> Dict[str, Any]:
        """Get entire configuration as a dictionary."""
        with self._lock:
            if self._auto_reload and not self._loaded:
                self.reload()
            return copy.deepcopy(self._config)

    def merge(self, config: Mapping[str, Any]) -> None:
        """Merge configuration dictionary into current config."""
        with self._lock:
            self._deep_merge(self._config, {str(key): value for key, value in config.items()})

    @staticmethod
    def _deep_merge(target: Dict[str, Any], source: Mapping[str, Any]) -> None:
        for key, value in source.items():
            if key in target and isinstance(target[key], dict) and isinstance(value, dict):
                ConfigurationManager._deep_merge(target[key], cast(Dict[str, Any], value))
            else:
                target[key] = value

    @staticmethod
    def _parse_env_value(value: str) -> Any:
        try:
            return json.loads(value)
        except (json.JSONDecodeError, ValueError):
            return value


__all__ = ["ConfigurationManager", "DEFAULT_CONFIG"]
