"""
Configuration Management System for courierkit

This module provides a centralized configuration system that supports a 3-tier
precedence hierarchy: environment → user file → system defaults.
"""

import logging
import os
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Literal, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".courierkit"


class ValidationLevel(Enum):
    """Configuration validation strictness levels"""
    STRICT = "strict"      # Fail fast on validation errors
    LENIENT = "lenient"    # Log warnings, use defaults


class ApiConfig(BaseModel):
    """Backend endpoints and request policy"""
    model_config = ConfigDict(extra='forbid')

    base_url: str = Field(
        default="https://sejasfresh.cloud/api/delivery",
        description="Courier-scoped API base",
    )
    resource_base_url: str = Field(
        default="https://sejasfresh.cloud/api",
        description="General resource API base (order lookup by id)",
    )
    timeout: float = Field(default=15.0, gt=0.0, le=120.0, description="Request timeout (seconds)")


class StorageConfig(BaseModel):
    """Durable credential storage"""
    model_config = ConfigDict(extra='forbid')

    backend: Literal["auto", "file", "memory"] = Field(default="auto", description="Token storage backend")
    path: str = Field(
        default=str(DEFAULT_CONFIG_DIR / "credentials.json"),
        description="Token file path for the file backend",
    )
    token_key: str = Field(default="delivery_boy_token", min_length=1, description="Storage key of the token")


class PollingConfig(BaseModel):
    """Simple polling intervals"""
    model_config = ConfigDict(extra='forbid')

    order_refresh_interval: float = Field(default=30.0, ge=1.0, le=3600.0)
    location_interval: float = Field(default=30.0, ge=1.0, le=3600.0)


class LoggingConfig(BaseModel):
    model_config = ConfigDict(extra='forbid')

    level: str = Field(default="INFO", description="Root log level")
    log_file: Optional[str] = Field(default=None, description="Rotating log file, disabled when unset")


class ClientConfig(BaseModel):
    """Complete client configuration"""
    model_config = ConfigDict(extra='forbid')

    api: ApiConfig = Field(default_factory=ApiConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    polling: PollingConfig = Field(default_factory=PollingConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    schema_version: int = Field(default=1, description="Configuration schema version")


# env var -> (section, key, caster)
ENV_OVERRIDES = {
    'COURIER_API_BASE_URL': ('api', 'base_url', str),
    'COURIER_RESOURCE_BASE_URL': ('api', 'resource_base_url', str),
    'COURIER_API_TIMEOUT': ('api', 'timeout', float),
    'COURIER_STORAGE_BACKEND': ('storage', 'backend', str),
    'COURIER_TOKEN_PATH': ('storage', 'path', str),
    'COURIER_ORDER_REFRESH_INTERVAL': ('polling', 'order_refresh_interval', float),
    'COURIER_LOCATION_INTERVAL': ('polling', 'location_interval', float),
    'LOG_LEVEL': ('logging', 'level', str),
    'COURIER_LOG_FILE': ('logging', 'log_file', str),
}


class ConfigManager:
    """Merges defaults, the user YAML file and environment overrides"""

    def __init__(self, config_dir: Optional[Path] = None):
        self.config_dir = Path(config_dir) if config_dir else DEFAULT_CONFIG_DIR
        self._system_config: Optional[ClientConfig] = None
        self._user_config: Optional[Dict[str, Any]] = None

    def _load_yaml_file(self, file_path: Path) -> Dict[str, Any]:
        """Load a YAML mapping, treating a missing or broken file as empty"""
        if not file_path.exists():
            return {}

        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Failed to load {file_path}: {e}")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"Ignoring {file_path}: top level is not a mapping")
            return {}
        return data

    def _save_yaml_file(self, file_path: Path, data: Dict[str, Any]) -> bool:
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(file_path, 'w', encoding='utf-8') as f:
                yaml.dump(data, f, default_flow_style=False, sort_keys=False, indent=2)
            return True
        except OSError as e:
            logger.error(f"Failed to save {file_path}: {e}")
            return False

    def _load_system_defaults(self) -> ClientConfig:
        """Pydantic defaults, optionally overridden by defaults.yaml"""
        if self._system_config is None:
            defaults_dict = self._load_yaml_file(self.config_dir / "defaults.yaml")
            try:
                self._system_config = ClientConfig(**defaults_dict)
            except ValidationError as e:
                logger.warning(f"System defaults validation failed: {e}")
                self._system_config = ClientConfig()

        return self._system_config

    def _load_user_config(self) -> Dict[str, Any]:
        if self._user_config is None:
            self._user_config = self._load_yaml_file(self.config_dir / "user.yaml")

        return self._user_config

    def _get_env_overrides(self) -> Dict[str, Any]:
        """Extract configuration overrides from environment variables"""
        overrides: Dict[str, Any] = {}
        for env_key, (section, config_key, caster) in ENV_OVERRIDES.items():
            value = os.getenv(env_key)
            if value is None or value == "":
                continue
            try:
                converted = caster(value)
            except ValueError:
                logger.warning(f"Ignoring {env_key}={value!r}: not a valid {caster.__name__}")
                continue
            overrides.setdefault(section, {})[config_key] = converted

        return overrides

    def _deep_merge(self, base: Dict[str, Any], updates: Dict[str, Any]) -> None:
        for key, value in updates.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value

    def _merge_configs(self) -> Dict[str, Any]:
        """Merge configurations with precedence: env → user → system"""
        merged = self._load_system_defaults().model_dump()
        self._deep_merge(merged, self._load_user_config())
        self._deep_merge(merged, self._get_env_overrides())
        return merged

    def get_config(self, validation_level: ValidationLevel = ValidationLevel.STRICT) -> ClientConfig:
        """Get merged configuration with validation"""
        merged_config = self._merge_configs()

        try:
            return ClientConfig(**merged_config)
        except ValidationError as e:
            if validation_level == ValidationLevel.STRICT:
                raise ValueError(f"Configuration validation failed: {e}") from e
            logger.warning(f"Configuration validation failed, using defaults: {e}")
            return ClientConfig()

    def save_user_config(self, config_updates: Dict[str, Any]) -> bool:
        """Persist user-level overrides and drop the cached copy"""
        user_path = self.config_dir / "user.yaml"
        existing_config = self._load_yaml_file(user_path)
        self._deep_merge(existing_config, config_updates)

        success = self._save_yaml_file(user_path, existing_config)
        if success:
            self._user_config = None
        return success

    def reload_config(self) -> None:
        """Clear cached configurations and reload from files"""
        self._system_config = None
        self._user_config = None


def load_config(
    config_dir: Optional[Path] = None,
    validation_level: ValidationLevel = ValidationLevel.STRICT,
) -> ClientConfig:
    """Build a ConfigManager for ``config_dir`` and return its merged config."""
    return ConfigManager(config_dir).get_config(validation_level)
