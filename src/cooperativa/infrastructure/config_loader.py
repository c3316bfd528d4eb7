"""
Configuration loader module.

Reads ``cooperativa.json`` from the config directory and applies
``COOPERATIVA_*`` environment overrides on top, then validates the result
into an ``AppConfig``.
"""

import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path

from pydantic import ValidationError

from cooperativa.domain.config import AppConfig

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "cooperativa.json"
ENV_PREFIX = "COOPERATIVA_"


class ConfigLoader:
    """
    Load and validate the application configuration.

    Precedence, lowest first: model defaults, config file, environment.
    """

    def __init__(self, config_dir: str | Path = "config", environ: Mapping[str, str] | None = None):
        """
        Initialize config loader.

        Args:
            config_dir: Directory containing ``cooperativa.json``
            environ: Environment to read overrides from (defaults to ``os.environ``)
        """
        self.config_dir = Path(config_dir)
        self._environ = os.environ if environ is None else environ
        logger.debug("ConfigLoader initialized with directory: %s", self.config_dir)

    def _load_json_file(self, filepath: Path, required: bool = True) -> dict | None:
        """
        Load and parse a JSON file with robust error handling.

        Args:
            filepath: Path to JSON file
            required: If True, a missing file raises. If False, returns None.

        Raises:
            FileNotFoundError: If required file doesn't exist
            ValueError: If JSON is malformed, empty, or not an object
            PermissionError: If file cannot be read
        """
        if not filepath.exists():
            if required:
                raise FileNotFoundError(
                    f"Configuration file not found: {filepath}\n"
                    f"Hint: Copy cooperativa.example.json and customize it."
                )
            logger.debug("Optional config not found: %s", filepath)
            return None

        try:
            content = filepath.read_text(encoding="utf-8")
        except PermissionError as e:
            raise PermissionError(
                f"Cannot read config file (permission denied): {filepath}\n"
                f"Hint: Check file permissions or if another process has it locked."
            ) from e

        if not content.strip():
            raise ValueError(
                f"Configuration file is empty: {filepath}\n"
                f"Hint: Add valid JSON content or copy from cooperativa.example.json"
            )

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise ValueError(
                f"Invalid JSON in config file: {filepath}\n"
                f"Error at line {e.lineno}, column {e.colno}: {e.msg}\n"
                f"Hint: Validate JSON syntax. Note: .json files cannot have comments."
            ) from e

        if not isinstance(data, dict):
            raise ValueError(f"Configuration file must contain a JSON object: {filepath}")
        return data

    def _env_overrides(self) -> dict[str, str]:
        overrides = {}
        for name in AppConfig.model_fields:
            value = self._environ.get(ENV_PREFIX + name.upper())
            if value is not None:
                overrides[name] = value
        if overrides:
            logger.debug("Environment overrides: %s", ", ".join(sorted(overrides)))
        return overrides

    def load(self, filename: str = CONFIG_FILENAME, required: bool = False) -> AppConfig:
        """
        Load the application configuration.

        Args:
            filename: Config file name inside the config directory
            required: Raise if the file is missing instead of using defaults

        Raises:
            FileNotFoundError: If a required config file doesn't exist
            ValueError: If the file or an override is invalid
        """
        filepath = self.config_dir / filename
        data = self._load_json_file(filepath, required=required) or {}
        data.update(self._env_overrides())

        try:
            config = AppConfig.model_validate(data)
        except ValidationError as e:
            raise ValueError(f"Invalid configuration ({filepath}):\n{e}") from e

        logger.debug("Configuration loaded: database=%s", config.database_path)
        return config
