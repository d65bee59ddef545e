"""
Configuration repository for loading admin settings and credential files.

This module provides the infrastructure layer for configuration persistence.
It handles file I/O operations and basic validation.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict

from pydantic import ValidationError

from mssqladmin.domain.config import AdminSettings

logger = logging.getLogger(__name__)

CONFIG_DIR_ENV = "MSSQLADMIN_CONFIG_DIR"
CONFIG_NAME = "admin_config"

# Environment variable -> settings field
ENV_OVERRIDES = {
    "MSSQLADMIN_CONNECT_TIMEOUT": "connect_timeout",
    "MSSQLADMIN_COMMAND_TIMEOUT": "command_timeout",
    "MSSQLADMIN_SERVICE_TIMEOUT": "service_timeout",
    "MSSQLADMIN_MAX_WORKERS": "max_workers",
    "MSSQLADMIN_AUTH": "auth",
}


def strip_json_comments(content: str) -> str:
    """Strip // line and /* block */ comments outside of string literals."""
    out = []
    i = 0
    in_string = False
    length = len(content)
    while i < length:
        ch = content[i]
        if in_string:
            out.append(ch)
            if ch == "\\" and i + 1 < length:
                out.append(content[i + 1])
                i += 2
                continue
            if ch == '"':
                in_string = False
            i += 1
            continue
        if ch == '"':
            in_string = True
            out.append(ch)
            i += 1
        elif content.startswith("//", i):
            end = content.find("\n", i)
            i = length if end < 0 else end
        elif content.startswith("/*", i):
            end = content.find("*/", i + 2)
            i = length if end < 0 else end + 2
        else:
            out.append(ch)
            i += 1
    return "".join(out)


def default_config_dir() -> Path:
    return Path(os.environ.get(CONFIG_DIR_ENV, "config"))


class ConfigRepository:
    """
    Repository for configuration file operations.

    Handles loading of configuration files with support for
    JSON and JSONC formats.
    """

    def __init__(self, config_dir: Path | None = None):
        """
        Initialize the config repository.

        Args:
            config_dir: Base directory for configuration files
        """
        self.config_dir = Path(config_dir) if config_dir else default_config_dir()

    def load_json_file(self, filename: str) -> Dict[str, Any]:
        """
        Load a JSON or JSONC file.

        Args:
            filename: Name of the file to load (without extension)

        Returns:
            Parsed JSON data as dictionary

        Raises:
            FileNotFoundError: If file doesn't exist
            ValueError: If file cannot be parsed
        """
        for suffix in (".json", ".jsonc"):
            path = self.config_dir / f"{filename}{suffix}"
            if not path.exists():
                continue
            content = path.read_text(encoding="utf-8")
            try:
                return json.loads(strip_json_comments(content))
            except json.JSONDecodeError as e:
                logger.error("Failed to parse config file %s: %s", path, e)
                raise ValueError(f"Invalid JSON in {path}: {e}") from e

        raise FileNotFoundError(
            f"Config file '{filename}.json' or '{filename}.jsonc' not found in {self.config_dir}"
        )

    def load_settings(self, required: bool = False) -> AdminSettings:
        """
        Load admin settings, applying environment overrides.

        Missing config yields defaults unless required.

        Raises:
            FileNotFoundError: required and no config file
            ValueError: config cannot be parsed or validated
        """
        try:
            data = self.load_json_file(CONFIG_NAME)
            logger.debug("Loaded %s from %s", CONFIG_NAME, self.config_dir)
        except FileNotFoundError:
            if required:
                raise
            logger.debug("No %s in %s, using defaults", CONFIG_NAME, self.config_dir)
            data = {}

        for env_name, field_name in ENV_OVERRIDES.items():
            if env_name in os.environ:
                data[field_name] = os.environ[env_name]

        try:
            return AdminSettings(**data)
        except ValidationError as e:
            logger.error("Failed to validate admin config: %s", e)
            raise ValueError(f"Invalid admin configuration: {e}") from e

    def credentials_path(self, settings: AdminSettings) -> Path:
        """Directory holding credential files (relative to config dir)."""
        path = Path(settings.credentials_dir)
        return path if path.is_absolute() else self.config_dir / path
