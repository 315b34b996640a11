"""
Configuration loading for qdrant-index-sync.

Merges a JSON config file over the defaults, applies environment variable
overrides and validates the result.
"""

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError

from index_sync.errors import ConfigurationError
from index_sync.models.config import IndexSyncSettings, SearchServiceConfig
from .defaults import DEFAULT_SETTINGS, ENV_VAR_MAPPING, LOG_FORMAT, STRING_SETTINGS

logger = logging.getLogger(__name__)


def configure_logging(settings: Optional[IndexSyncSettings] = None) -> None:
    """Configure root logging from global settings"""
    settings = settings or IndexSyncSettings()
    logging.basicConfig(level=getattr(logging, settings.log_level), format=LOG_FORMAT)


class ConfigurationLoader:
    """Load and validate search service configuration"""

    def __init__(self, settings: Optional[IndexSyncSettings] = None):
        self.settings = settings or IndexSyncSettings()

    def load(
        self,
        config_file: Optional[Union[str, Path]] = None,
        index_name: Optional[str] = None
    ) -> SearchServiceConfig:
        """
        Load configuration.

        Args:
            config_file: JSON file to merge over the defaults (falls back to
                the INDEX_SYNC_CONFIG_FILE setting)
            index_name: Index identifier, overriding the file and environment

        Returns:
            Validated configuration

        Raises:
            ConfigurationError: If the file is unreadable or values are invalid
        """
        config_data = copy.deepcopy(DEFAULT_SETTINGS)

        config_file = config_file or self.settings.config_file
        if config_file:
            self._merge(config_data, self._read_file(Path(config_file)))

        config_data = self._apply_env_overrides(config_data)

        if index_name:
            config_data["index_name"] = index_name

        try:
            config = SearchServiceConfig(**config_data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid search service configuration: {e}") from e

        logger.info(f"Loaded configuration for index '{config.index_name}' at {config.url}")
        return config

    def _read_file(self, config_file: Path) -> Dict[str, Any]:
        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to load config from {config_file}: {e}")
            raise ConfigurationError(f"Cannot read config file {config_file}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {config_file} must contain a JSON object")
        return data

    def _merge(self, base: Dict[str, Any], overrides: Dict[str, Any]) -> None:
        """Recursively merge overrides into base"""
        for key, value in overrides.items():
            if isinstance(value, dict) and isinstance(base.get(key), dict):
                self._merge(base[key], value)
            else:
                base[key] = value

    def _apply_env_overrides(self, config_data: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides to configuration"""
        for env_var, config_path in ENV_VAR_MAPPING.items():
            env_value = os.getenv(env_var)
            if env_value is not None:
                self._set_nested_value(config_data, config_path, env_value)

        return config_data

    def _set_nested_value(self, data: Dict[str, Any], path: str, value: str) -> None:
        """Set nested dictionary value using dot notation path"""
        keys = path.split('.')
        current = data

        for key in keys[:-1]:
            if key not in current:
                current[key] = {}
            current = current[key]

        final_key = keys[-1]
        if path in STRING_SETTINGS:
            current[final_key] = value
        else:
            current[final_key] = self._convert_env_value(value)

    def _convert_env_value(self, value: str) -> Any:
        """Convert environment variable string to appropriate type"""
        if value.lower() in ('true', 'yes', 'on'):
            return True
        elif value.lower() in ('false', 'no', 'off'):
            return False

        try:
            if '.' in value:
                return float(value)
            else:
                return int(value)
        except ValueError:
            pass

        return value
