import os
import yaml
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from .exceptions import ConfigurationError

TAG_FILTER_ENV = "CUCUMBER_FILTER_TAGS"


class ConfigManager:
    """Manages configuration for Gherkin Conductor"""

    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = config_path or self._get_default_config_path()
        self._config = self._load_config()

    def _get_default_config_path(self) -> Path:
        """Get default configuration path"""
        # Check environment variable first
        if env_path := os.getenv("GHERKIN_CONDUCTOR_CONFIG"):
            return Path(env_path)

        locations = [
            Path.cwd() / "gherkin-conductor.yaml",
            Path.cwd() / ".gherkin-conductor" / "config.yaml",
        ]

        for location in locations:
            if location.exists():
                return location

        return Path.cwd() / "gherkin-conductor.yaml"

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from file, layered over the defaults"""
        config = self._get_default_config()
        if not self.config_path.exists():
            return config

        with open(self.config_path, 'r') as f:
            if self.config_path.suffix in ('.yaml', '.yml'):
                loaded = yaml.safe_load(f) or {}
            elif self.config_path.suffix == '.json':
                loaded = json.load(f)
            else:
                raise ConfigurationError(f"Unsupported config format: {self.config_path.suffix}")

        if not isinstance(loaded, dict):
            raise ConfigurationError(f"Config file {self.config_path} must contain a mapping")

        return _merge(config, loaded)

    def _get_default_config(self) -> Dict[str, Any]:
        """Get default configuration"""
        return {
            "logging": {
                "level": "INFO",
                "events": True,
            },
            "runner": {
                "tag_filter": None,
                "features_root": "features",
                "steps_modules": [],
            },
            "reporter": {
                "formats": [],
                "output_dir": "test-results",
            },
        }

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value using dot notation"""
        keys = key.split('.')
        value = self._config

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def set(self, key: str, value: Any) -> None:
        """Set configuration value using dot notation"""
        keys = key.split('.')
        config = self._config

        for k in keys[:-1]:
            if k not in config:
                config[k] = {}
            config = config[k]

        config[keys[-1]] = value

    def save(self) -> None:
        """Save configuration to file"""
        self.config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(self.config_path, 'w') as f:
            if self.config_path.suffix in ('.yaml', '.yml'):
                yaml.dump(self._config, f, default_flow_style=False)
            elif self.config_path.suffix == '.json':
                json.dump(self._config, f, indent=2)

    def tag_filter_source(self) -> Optional[str]:
        """Raw tag filter; the environment wins over the config file"""
        env_value = os.getenv(TAG_FILTER_ENV)
        if env_value is not None:
            return env_value
        return self.get("runner.tag_filter")

    def tag_filter(self):
        """Compile the configured tag filter.

        Raises:
            TagExpressionError: the expression is malformed, before any test runs
        """
        from ..runtime.tags import compile_tag_expression

        return compile_tag_expression(self.tag_filter_source())

    def steps_modules(self) -> List[str]:
        modules = self.get("runner.steps_modules") or []
        if isinstance(modules, str):
            return [modules]
        return list(modules)


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged
