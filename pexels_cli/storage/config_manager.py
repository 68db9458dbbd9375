"""
Manages loading, validation, and migration of the INI configuration file.
"""

import configparser
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from pexels_cli.exceptions import ConfigurationError
from pexels_cli.models.config import AppConfig

log = logging.getLogger(__name__)

# Environment variables that override values from the INI file
ENV_OVERRIDES = {
    "PEXELS_API_KEY": "api_key",
    "DOWNLOAD_PATH": "download_path",
    "MAX_CONCURRENT_DOWNLOADS": "max_concurrent_downloads",
    "CACHE_DURATION": "cache_duration",
    "LOG_LEVEL": "log_level",
}


class ConfigManager:
    """Handles all operations related to the application's INI config file."""

    def __init__(self, config_file_path: Path):
        self.config_file_path = config_file_path
        self._parser = configparser.ConfigParser(interpolation=None)

    def load_config(
        self,
        cli_options: dict[str, Any] | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> AppConfig:
        """
        Loads configuration from the INI file, applies environment and CLI
        overrides (in that order), and validates it.

        A missing INI file is not an error: defaults plus overrides are used.

        Args:
            cli_options: A dictionary of options provided via the command line.
            environ: Environment mapping; defaults to ``os.environ``.

        Returns:
            A validated AppConfig object.

        Raises:
            ConfigurationError: If the config file is invalid or validation fails.
        """
        config_values: dict[str, Any] = {}

        if self.config_file_path.is_file():
            try:
                self._parser.read(self.config_file_path, encoding="utf-8")
            except configparser.Error as e:
                raise ConfigurationError(
                    f"Error parsing configuration file: {e}"
                ) from e

            if self._migrate_if_needed():
                log.info(
                    "[yellow]Configuration file was updated with new default values."
                    "[/yellow]"
                )
            try:
                config_values.update(self._get_config_as_dict())
            except ValueError as e:
                raise ConfigurationError(f"Invalid value in configuration file: {e}") from e

        env = os.environ if environ is None else environ
        for env_key, field_name in ENV_OVERRIDES.items():
            if value := env.get(env_key):
                config_values[field_name] = value

        if cli_options:
            config_values.update(cli_options)

        try:
            config_dir = self.config_file_path.parent
            return AppConfig(**config_values, config_path=str(config_dir))
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed:\n{e}") from e

    def save_new_config(self, settings: dict[str, Any]) -> None:
        """
        Creates and saves a new configuration file.

        Args:
            settings: A dictionary of settings to save.
        """
        config = configparser.ConfigParser(interpolation=None)
        config["DEFAULT"] = {}

        defaults = AppConfig.model_construct()
        for key in sorted(AppConfig.get_ini_keys()):
            value = settings.get(key, getattr(defaults, key, None))
            if isinstance(value, bool):
                config["DEFAULT"][key] = "true" if value else "false"
            elif value is not None:
                config["DEFAULT"][key] = str(value)

        try:
            self.config_file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file_path, "w", encoding="utf-8") as configfile:
                config.write(configfile)
        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration file: {e}") from e

    def _get_config_as_dict(self) -> dict[str, Any]:
        """Reads the 'DEFAULT' section of the INI file into a dictionary."""
        section = self._parser["DEFAULT"]
        defaults = AppConfig.model_construct()
        return {
            "api_key": section.get("api_key", ""),
            "download_path": section.get("download_path", defaults.download_path),
            "max_concurrent_downloads": section.getint(
                "max_concurrent_downloads", defaults.max_concurrent_downloads
            ),
            "default_quality": section.get(
                "default_quality", defaults.default_quality
            ),
            "transfer_timeout": section.getfloat(
                "transfer_timeout", defaults.transfer_timeout
            ),
            "cache_duration": section.getint("cache_duration", defaults.cache_duration),
            "cache_sweep_interval": section.getint(
                "cache_sweep_interval", defaults.cache_sweep_interval
            ),
            "track_usage": section.getboolean("track_usage", defaults.track_usage),
            "log_level": section.get("log_level", defaults.log_level),
        }

    def _migrate_if_needed(self) -> bool:
        """Adds missing default values to an existing config file."""
        defaults = AppConfig.model_construct()
        config_section = self._parser["DEFAULT"]
        needs_saving = False

        for key in sorted(AppConfig.get_ini_keys()):
            if key in config_section:
                continue
            default_value = getattr(defaults, key)
            if isinstance(default_value, bool):
                config_section[key] = "true" if default_value else "false"
            else:
                config_section[key] = str(default_value)
            needs_saving = True
            log.debug(
                f"Migrating config: added missing key '{key}' with "
                f"value '{config_section[key]}'."
            )

        if needs_saving:
            try:
                with open(self.config_file_path, "w", encoding="utf-8") as f:
                    self._parser.write(f)
            except OSError as e:
                log.error(f"Could not save migrated configuration file: {e}")
                return False

        return needs_saving
