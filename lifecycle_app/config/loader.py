"""Configuration loader with 3-tier parameter precedence."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import yaml

from .defaults import (
    ActivationParams,
    DefaultConfig,
    LoggingParams,
    RouteParams,
    TimerParams,
    get_default_config,
)

CONFIG_FILE_NAME = "lifecycle.yaml"


@dataclass(frozen=True)
class ConfigLoader:
    """Manages configuration loading with 3-tier precedence."""

    config_dir: Path
    defaults: DefaultConfig

    @classmethod
    def create(cls, config_dir: Optional[Path] = None) -> "ConfigLoader":
        """Create a ConfigLoader instance."""
        if config_dir is None:
            config_dir = Path(__file__).parent.parent.parent / "config"

        return cls(
            config_dir=Path(config_dir),
            defaults=get_default_config(),
        )

    def load_file_config(self) -> dict[str, Any]:
        """Load deployment overrides from lifecycle.yaml, if present."""
        config_file = self.config_dir / CONFIG_FILE_NAME

        if not config_file.exists():
            return {}

        with open(config_file) as f:
            file_config = yaml.safe_load(f)

        return file_config or {}

    def merge_config(self, overrides: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        """
        Merge configuration with 3-tier precedence.

        Priority order:
        1. Explicit overrides (highest priority)
        2. lifecycle.yaml in the config directory
        3. Defaults (lowest priority)
        """
        config = self._dataclass_to_dict(self.defaults)
        config = self._deep_merge(config, self.load_file_config())

        if overrides:
            config = self._deep_merge(config, overrides)

        return config

    def load(self, overrides: Optional[dict[str, Any]] = None) -> DefaultConfig:
        """Merge and build a typed configuration."""
        return build_config(self.merge_config(overrides))

    def _dataclass_to_dict(self, obj: Any) -> dict[str, Any]:
        """Convert nested dataclasses to dictionary."""
        if hasattr(obj, '__dataclass_fields__'):
            result = {}
            for field_name in obj.__dataclass_fields__:
                value = getattr(obj, field_name)
                if hasattr(value, '__dataclass_fields__'):
                    result[field_name] = self._dataclass_to_dict(value)
                else:
                    result[field_name] = value
            return result
        return obj  # type: ignore[no-any-return]

    def _deep_merge(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result


def build_config(config: dict[str, Any]) -> DefaultConfig:
    """
    Build typed parameters from a merged configuration dictionary.

    Unknown keys are ignored so a newer config file does not break an
    older deployment.
    """
    def section(cls, name):
        values = config.get(name) or {}
        known = {k: v for k, v in values.items() if k in cls.__dataclass_fields__}
        return cls(**known)

    return DefaultConfig(
        timer=section(TimerParams, "timer"),
        activation=section(ActivationParams, "activation"),
        routes=section(RouteParams, "routes"),
        logging=section(LoggingParams, "logging"),
    )
