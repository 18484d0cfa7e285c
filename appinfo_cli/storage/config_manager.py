"""
Manages loading, validation, and migration of the INI configuration file.
"""

import configparser
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from appinfo_cli.exceptions import ConfigurationError
from appinfo_cli.models.config import PER_PRIORITY_FIELDS, MetadataConfig, Priority

log = logging.getLogger(__name__)


def _flatten(config: MetadataConfig) -> dict[str, str]:
    """Converts a config into the flat string mapping stored in the INI file."""
    flat = {}
    for key, value in config.model_dump().items():
        if key in PER_PRIORITY_FIELDS:
            for priority in Priority:
                flat[f"{key}_{priority.value}"] = str(value[priority])
        else:
            flat[key] = str(value)
    return flat


class ConfigManager:
    """Handles all operations related to the application's INI config file."""

    def __init__(self, config_file_path: Path):
        self.config_file_path = config_file_path
        self._parser = configparser.ConfigParser(interpolation=None)

    def load_config(self, cli_options: dict[str, Any] | None = None) -> MetadataConfig:
        """
        Loads configuration from the INI file, applies CLI overrides, and validates it.
        A missing file yields the defaults.

        Args:
            cli_options: A dictionary of options provided via the command line.

        Returns:
            A validated MetadataConfig object.

        Raises:
            ConfigurationError: If the config file is invalid or validation fails.
        """
        config_from_file: dict[str, Any] = {}
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
            config_from_file = self._get_config_as_dict()
        else:
            log.debug(
                f"No configuration file at '{self.config_file_path}', using defaults."
            )

        # Override with CLI options
        if cli_options:
            config_from_file.update(
                {k: v for k, v in cli_options.items() if v is not None}
            )

        try:
            return MetadataConfig(**config_from_file)
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed:\n{e}") from e

    def save_new_config(self, settings: dict[str, Any] | None = None) -> None:
        """
        Creates and saves a new configuration file from the defaults, with
        ``settings`` applied on top.
        """
        try:
            config = MetadataConfig(**(settings or {}))
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed:\n{e}") from e

        parser = configparser.ConfigParser(interpolation=None)
        parser["DEFAULT"] = _flatten(config)

        try:
            self.config_file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file_path, "w", encoding="utf-8") as configfile:
                parser.write(configfile)
        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration file: {e}") from e

    def _get_config_as_dict(self) -> dict[str, Any]:
        """
        Reads the 'DEFAULT' section of the INI file into a dictionary, folding
        the per-priority keys back into mappings.
        """
        section = self._parser["DEFAULT"]
        result: dict[str, Any] = {}
        for key, value in section.items():
            field, _, suffix = key.rpartition("_")
            if field in PER_PRIORITY_FIELDS and suffix in {p.value for p in Priority}:
                result.setdefault(field, {})[suffix] = value
            elif key in MetadataConfig.model_fields:
                result[key] = value
            else:
                log.debug(f"Ignoring unknown configuration key '{key}'.")

        # Partial per-priority sections fall back to defaults for the rest
        defaults = MetadataConfig()
        for field in PER_PRIORITY_FIELDS:
            if field in result:
                merged = {p.value: v for p, v in getattr(defaults, field).items()}
                merged.update(result[field])
                result[field] = merged
        return result

    def _migrate_if_needed(self) -> bool:
        """Adds missing default values to an existing config file."""
        defaults = _flatten(MetadataConfig())
        config_section = self._parser["DEFAULT"]
        needs_saving = False

        for key in MetadataConfig.get_ini_keys():
            if key not in config_section:
                config_section[key] = defaults[key]
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
