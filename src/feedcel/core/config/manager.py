"""
Configuration Manager

Handles hierarchical configuration loading and validation with support for
CLI args → environment variables → config files → defaults.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import yaml
from pydantic import ValidationError

from feedcel.core.config.models import AppConfig
from feedcel.core.exceptions import ConfigurationError, ErrorCode

logger = logging.getLogger(__name__)

ENV_PREFIX = "FEEDCEL_"


class ConfigManager:
    """
    Manages application configuration with hierarchical loading and validation.

    Configuration sources in order of precedence:
    1. CLI arguments (highest priority)
    2. Environment variables
    3. Configuration files
    4. Default values (lowest priority)
    """

    def __init__(self, config_file: Optional[Union[str, Path]] = None):
        """
        Initialize configuration manager.

        Args:
            config_file: Optional path to configuration file
        """
        self.config_file = Path(config_file) if config_file else None
        self._config: Optional[AppConfig] = None
        self._config_paths = self._get_default_config_paths()

    def _get_default_config_paths(self) -> List[Path]:
        """Get default configuration file search paths."""
        search_paths = [
            Path.cwd() / "feedcel.yaml",
            Path.cwd() / "feedcel.yml",
            Path.cwd() / ".feedcel.yaml",
            Path.home() / ".config" / "feedcel" / "config.yaml",
        ]

        xdg_config = os.environ.get('XDG_CONFIG_HOME')
        if xdg_config:
            search_paths.append(Path(xdg_config) / "feedcel" / "config.yaml")

        return search_paths

    def load_config(
        self,
        cli_args: Optional[Dict[str, Any]] = None,
        env_prefix: str = ENV_PREFIX
    ) -> AppConfig:
        """
        Load and validate configuration from all sources.

        Args:
            cli_args: Dictionary of CLI arguments (None values are ignored)
            env_prefix: Prefix for environment variables

        Returns:
            Validated AppConfig instance

        Raises:
            ConfigurationError: If configuration is invalid
        """
        config_data: Dict[str, Any] = {}

        file_config = self._load_config_file()
        if file_config:
            config_data = self._deep_merge(config_data, file_config)

        env_config = self._load_env_config(env_prefix)
        if env_config:
            config_data = self._deep_merge(config_data, env_config)

        if cli_args:
            config_data = self._deep_merge(config_data, self._normalize_cli_args(cli_args))

        try:
            self._config = AppConfig(**config_data)
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed: {e}", cause=e) from e
        return self._config

    def _load_config_file(self) -> Optional[Dict[str, Any]]:
        """Load configuration from file."""
        config_file = self.config_file
        if config_file is not None and not config_file.is_file():
            raise ConfigurationError(f"Config file not found: {config_file}",
                                     error_code=ErrorCode.CONFIG_FILE_NOT_FOUND,
                                     config_key="config_file", config_value=str(config_file))

        if config_file is None:
            for path in self._config_paths:
                if path.is_file():
                    config_file = path
                    break
            else:
                return None

        logger.debug(f"Loading configuration from {config_file}")
        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                if config_file.suffix.lower() == '.json':
                    data = json.load(f)
                else:
                    data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Failed to load config file {config_file}: {e}",
                                     error_code=ErrorCode.CONFIG_INVALID_FORMAT, cause=e) from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {config_file} must contain a mapping",
                                     error_code=ErrorCode.CONFIG_INVALID_FORMAT)
        return data

    def _load_env_config(self, prefix: str) -> Dict[str, Any]:
        """Load configuration from environment variables."""
        env_config: Dict[str, Any] = {}

        env_mappings: Dict[str, Tuple[str, Optional[str], Callable[[str], Any]]] = {
            f"{prefix}FETCH_TIMEOUT": ("fetch", "timeout", float),
            f"{prefix}USER_AGENT": ("fetch", "user_agent", str),

            f"{prefix}HOST": ("server", "host", str),
            f"{prefix}PORT": ("server", "port", int),
            f"{prefix}COMPILE_ERROR_STATUS": ("server", "compile_error_status", int),

            f"{prefix}FORMAT": ("output", "default_format", str),
            f"{prefix}SHOW_EXCLUDED": ("output", "show_excluded", self._parse_bool),

            f"{prefix}DEFAULT_EXPRESSION": ("filter", "default_expression", str),
            f"{prefix}ON_ERROR": ("filter", "on_error", str),

            f"{prefix}VERBOSE": ("verbose", None, self._parse_bool),
            f"{prefix}DEBUG": ("debug", None, self._parse_bool),
            f"{prefix}LOG_LEVEL": ("log_level", None, str),
        }

        for env_var, (section, key, parser) in env_mappings.items():
            value = os.environ.get(env_var)
            if value is None:
                continue
            try:
                parsed_value = parser(value)
            except (ValueError, TypeError) as e:
                raise ConfigurationError(f"Invalid value for {env_var}: {value} ({e})",
                                         error_code=ErrorCode.CONFIG_ENVIRONMENT,
                                         config_key=env_var, config_value=value) from e
            if key is None:
                env_config[section] = parsed_value
            else:
                env_config.setdefault(section, {})[key] = parsed_value

        return env_config

    def _normalize_cli_args(self, cli_args: Dict[str, Any]) -> Dict[str, Any]:
        """Normalize CLI arguments to configuration structure."""
        normalized: Dict[str, Any] = {}

        cli_mappings = {
            'verbose': 'verbose',
            'debug': 'debug',
            'log_level': 'log_level',

            'timeout': ('fetch', 'timeout'),
            'host': ('server', 'host'),
            'port': ('server', 'port'),
            'compile_error_status': ('server', 'compile_error_status'),

            'format': ('output', 'default_format'),
            'output': ('output', 'output_file'),
            'show_excluded': ('output', 'show_excluded'),

            'on_error': ('filter', 'on_error'),
        }

        for cli_key, value in cli_args.items():
            if value is None:
                continue
            mapping = cli_mappings.get(cli_key)
            if isinstance(mapping, tuple):
                section, key = mapping
                normalized.setdefault(section, {})[key] = value
            elif mapping:
                normalized[mapping] = value

        return normalized

    def _deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two dictionaries, with override taking precedence."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    @staticmethod
    def _parse_bool(value: Union[str, bool]) -> bool:
        """Parse boolean value from string."""
        if isinstance(value, bool):
            return value
        return value.strip().lower() in {'true', '1', 'yes', 'on', 'enabled'}

    @property
    def config(self) -> Optional[AppConfig]:
        """Get the loaded configuration."""
        return self._config
