"""Settings management for facetflow.

Settings Discovery Precedence (Highest to Lowest Priority):
===========================================================

1. **FACETFLOW_CONFIG_DIR Environment Variable** (Highest Priority)
   - Looks for: `${FACETFLOW_CONFIG_DIR}/facetflow.yaml`
   - Use case: Development, testing, custom deployments

2. **~/.facetflow Directory** (Fallback)
   - Looks for: `~/.facetflow/facetflow.yaml`

If no `facetflow.yaml` is found, defaults (overridable through `FACETFLOW_*`
environment variables) are applied.

Examples:
--------
# Record guard violations instead of raising, for every new root configuration
export FACETFLOW_RAISE_ON_GUARD_VIOLATION=false

# facetflow.yaml
facetflow:
  debug: true
  log_rule_application: true
"""

import logging
import os
import threading
from pathlib import Path
from typing import Any

import yaml
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

_YAML_KEYS = ("debug", "raise_on_guard_violation", "log_rule_application")


class FacetflowSettings(BaseSettings):
    """Process-wide settings read from the environment and facetflow.yaml."""

    model_config = SettingsConfigDict(
        env_prefix="FACETFLOW_",
        case_sensitive=False,
        extra="ignore",
    )

    debug: bool = False
    """Set the facetflow loggers to DEBUG"""

    raise_on_guard_violation: bool = True
    """Guard failure mode for root configurations that do not choose one"""

    log_rule_application: bool = False
    """Log every applied query rule at INFO instead of DEBUG"""

    config_path: Path | None = None
    """facetflow.yaml the settings were read from, if any"""

    @classmethod
    def from_yaml(cls, yaml_path: Path, **kwargs: Any) -> "FacetflowSettings":
        """Load settings from the ``facetflow`` section of a YAML file.

        Args:
            yaml_path: Path to facetflow.yaml
            **kwargs: Values overriding the file

        Returns:
            FacetflowSettings instance
        """
        data: dict[str, Any] = {}
        if yaml_path.exists():
            with yaml_path.open() as f:
                loaded = yaml.safe_load(f) or {}
            section = loaded.get("facetflow", {}) if isinstance(loaded, dict) else {}
            if isinstance(section, dict):
                data = {key: section[key] for key in _YAML_KEYS if key in section}
            else:
                logger.warning(f"Invalid facetflow section in {yaml_path}: {type(section)}")

        data.update(kwargs)
        return cls(config_path=yaml_path, **data)

    def apply_logging(self) -> None:
        """Raise the facetflow loggers to DEBUG when ``debug`` is set."""
        if not self.debug:
            return
        facetflow_logger = logging.getLogger("facetflow")
        facetflow_logger.setLevel(logging.DEBUG)
        if not facetflow_logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter("%(name)s:%(levelname)s: %(message)s"))
            facetflow_logger.addHandler(handler)


# Global settings instance
_settings_instance: FacetflowSettings | None = None
_settings_lock = threading.Lock()


def get_settings() -> FacetflowSettings:
    """Get the settings instance."""
    global _settings_instance

    if _settings_instance is None:
        with _settings_lock:
            # Double-check locking pattern
            if _settings_instance is None:
                env_config_dir = os.environ.get("FACETFLOW_CONFIG_DIR")
                if env_config_dir:
                    config_dir = Path(env_config_dir)
                    logger.info(f"Using config directory from environment: {config_dir}")
                else:
                    config_dir = Path.home() / ".facetflow"

                yaml_path = config_dir / "facetflow.yaml"
                if yaml_path.exists():
                    logger.info(f"Loading facetflow settings from: {yaml_path}")
                    _settings_instance = FacetflowSettings.from_yaml(yaml_path)
                else:
                    _settings_instance = FacetflowSettings()
                _settings_instance.apply_logging()

    return _settings_instance


def set_settings_instance(settings: FacetflowSettings) -> None:
    """Set the global settings instance (for testing)."""
    global _settings_instance
    _settings_instance = settings


def clear_settings_instance() -> None:
    """Clear the global settings instance (for testing)."""
    global _settings_instance
    _settings_instance = None
