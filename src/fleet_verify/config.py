"""YAML Configuration for fleet-verify.

Configuration Priority: Environment Variables > YAML > Defaults

Example YAML configuration (fleet_verify.yaml):

    fleet_verify:
      store_path: ~/.fleet-verify/status.jsonl
      retry_inconclusive: false
      instance_types: [c5.large, c5.xlarge, m5.2xlarge]
      max_concurrency: 4
      timeout_seconds: 600
      log_level: INFO

Environment Variables:
    FLEET_VERIFY_CONFIG: Path to the YAML configuration file
    FLEET_VERIFY_STORE: Path to the JSONL status store
    FLEET_VERIFY_RETRY: Retry inconclusive instance types (true/false)
    FLEET_VERIFY_INSTANCE_TYPES: Comma-separated instance types to request
    FLEET_VERIFY_MAX_CONCURRENCY: Maximum concurrent verification attempts
    FLEET_VERIFY_LOG_LEVEL: Logging level name
"""

import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from .errors import ConfigError

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_STORE_PATH = "~/.fleet-verify/status.jsonl"
CONFIG_FILENAME = "fleet_verify.yaml"

_TRUE_VALUES = ("true", "1", "yes")
_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


class VerifyConfig(BaseModel):
    """Configuration for planning and running instance type verification."""

    store_path: str = Field(default=DEFAULT_STORE_PATH, min_length=1)
    retry_inconclusive: bool = False
    instance_types: List[str] = Field(default_factory=list)
    max_concurrency: int = Field(default=4, ge=1, le=64)
    timeout_seconds: Optional[float] = Field(default=None, gt=0)
    log_level: str = Field(default="WARNING")

    @field_validator("instance_types")
    @classmethod
    def strip_instance_types(cls, v: List[str]) -> List[str]:
        """Drop blank entries and surrounding whitespace."""
        return [t.strip() for t in v if t.strip()]

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"invalid log level '{v}', must be one of {sorted(_LOG_LEVELS)}")
        return level

    def to_yaml(self) -> str:
        """Serialize configuration to YAML string."""
        config_dict = {"fleet_verify": self.to_dict()}
        return yaml.dump(config_dict, default_flow_style=False, sort_keys=False)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


# =============================================================================
# Configuration Loading Functions
# =============================================================================


def _substitute_env_vars(value: Any) -> Any:
    """Recursively substitute environment variables in configuration values.

    Supports ${VAR_NAME} syntax.
    """
    if isinstance(value, str):
        pattern = r"\$\{([^}]+)\}"
        for var_name in re.findall(pattern, value):
            value = value.replace(f"${{{var_name}}}", os.getenv(var_name, ""))
        return value
    elif isinstance(value, dict):
        return {k: _substitute_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_substitute_env_vars(item) for item in value]
    return value


def load_config(
    config_path: Optional[Path] = None,
    strict: bool = False,
) -> VerifyConfig:
    """Load configuration from YAML file.

    Args:
        config_path: Path to YAML configuration file. If None, uses defaults.
        strict: If True, raise ConfigError on invalid configuration. If False,
                fall back to defaults on errors.

    Returns:
        VerifyConfig object

    Raises:
        ConfigError: If strict=True and configuration is invalid
    """
    if config_path is None or not config_path.exists():
        if strict and config_path is not None:
            raise ConfigError(f"Configuration file not found: {config_path}")
        return VerifyConfig()

    try:
        with open(config_path, "r") as f:
            raw_config = yaml.safe_load(f)

        if raw_config is None:
            return VerifyConfig()

        raw_config = _substitute_env_vars(raw_config)
        section = raw_config.get("fleet_verify") or {}

        return VerifyConfig(**section)

    except yaml.YAMLError as e:
        if strict:
            raise ConfigError(f"Invalid YAML: {e}") from e
        logger.warning(f"Ignoring invalid YAML in {config_path}: {e}")
        return VerifyConfig()
    except Exception as e:
        if strict:
            raise ConfigError(f"Configuration error: {e}") from e
        logger.warning(f"Ignoring invalid configuration in {config_path}: {e}")
        return VerifyConfig()


def _find_config_file() -> Optional[Path]:
    """Find configuration file in standard locations.

    Search order:
    1. FLEET_VERIFY_CONFIG environment variable
    2. ./fleet_verify.yaml (current directory)
    3. ~/.config/fleet-verify/fleet_verify.yaml
    """
    env_path = os.getenv("FLEET_VERIFY_CONFIG")
    if env_path:
        path = Path(env_path)
        if path.exists():
            return path

    cwd_path = Path.cwd() / CONFIG_FILENAME
    if cwd_path.exists():
        return cwd_path

    home_path = Path.home() / ".config" / "fleet-verify" / CONFIG_FILENAME
    if home_path.exists():
        return home_path

    return None


def _apply_env_overrides(config: VerifyConfig) -> VerifyConfig:
    """Apply environment variable overrides to configuration.

    Raises:
        ConfigError: If an override produces an invalid configuration
    """
    config_dict = config.to_dict()

    store_env = os.getenv("FLEET_VERIFY_STORE")
    if store_env:
        config_dict["store_path"] = store_env

    retry_env = os.getenv("FLEET_VERIFY_RETRY")
    if retry_env:
        config_dict["retry_inconclusive"] = retry_env.lower() in _TRUE_VALUES

    types_env = os.getenv("FLEET_VERIFY_INSTANCE_TYPES")
    if types_env:
        config_dict["instance_types"] = [t.strip() for t in types_env.split(",")]

    concurrency_env = os.getenv("FLEET_VERIFY_MAX_CONCURRENCY")
    if concurrency_env:
        config_dict["max_concurrency"] = concurrency_env

    log_level_env = os.getenv("FLEET_VERIFY_LOG_LEVEL")
    if log_level_env:
        config_dict["log_level"] = log_level_env

    try:
        return VerifyConfig(**config_dict)
    except ValueError as e:
        raise ConfigError(f"Invalid environment override: {e}") from e


def get_effective_config(
    config_path: Optional[Path] = None,
    strict: bool = False,
) -> VerifyConfig:
    """Get the effective configuration with all overrides applied.

    Priority: Environment Variables > YAML > Defaults

    Args:
        config_path: Optional explicit path to configuration file.
                    If None, searches standard locations.
        strict: Raise ConfigError instead of falling back on invalid YAML

    Returns:
        VerifyConfig with all overrides applied
    """
    if config_path is None:
        config_path = _find_config_file()

    config = load_config(config_path, strict=strict)
    return _apply_env_overrides(config)


# =============================================================================
# Global Configuration Instance
# =============================================================================

_global_config: Optional[VerifyConfig] = None


def get_config() -> VerifyConfig:
    """Get the global configuration instance.

    Cached after first load. Use reload_config() to force a reload.
    """
    global _global_config
    if _global_config is None:
        _global_config = get_effective_config()
    return _global_config


def reload_config() -> VerifyConfig:
    """Reload the global configuration from disk."""
    global _global_config
    _global_config = get_effective_config()
    return _global_config
