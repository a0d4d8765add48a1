# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Config loader: reads veve.yaml from disk and produces a frozen VeveConfig.

  1. Read the file
  2. Parse as YAML into a plain dict
  3. Hand the dict to pydantic for schema validation
  4. Return the frozen config

Any failure stops here with a clear error. There is no merging of several
files and no fallback to defaults when the file is broken; a missing config
file is only fine when the caller didn't ask for one (see default_config).
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from veve.config.exceptions import ConfigLoadError, ConfigValidationError
from veve.config.schema import VeveConfig


def _read_yaml_file(config_path: Path) -> dict[str, Any]:
    """
    Read a YAML file and return the parsed dict.

    An empty file is treated as an empty mapping, so a bare `touch veve.yaml`
    gives you all the defaults.

    Raises:
        ConfigLoadError: If the file doesn't exist, isn't readable, or isn't a YAML mapping.
    """
    if not config_path.exists():
        raise ConfigLoadError(f"Config file not found: {config_path}")

    if not config_path.is_file():
        raise ConfigLoadError(f"Config path is not a file: {config_path}")

    try:
        raw_text = config_path.read_text(encoding="utf-8")
    except OSError as err:
        raise ConfigLoadError(f"Cannot read config file {config_path}: {err}") from err

    try:
        parsed = yaml.safe_load(raw_text)
    except yaml.YAMLError as err:
        raise ConfigLoadError(f"Invalid YAML in {config_path}: {err}") from err

    if parsed is None:
        return {}

    if not isinstance(parsed, dict):
        raise ConfigLoadError(
            f"Config file must contain a YAML mapping (dict), got {type(parsed).__name__}"
        )

    return parsed


def load_config(config_path: Path) -> VeveConfig:
    """
    Load and validate a config file into a VeveConfig.

    Raises:
        ConfigLoadError: File I/O or YAML parse failures.
        ConfigValidationError: Schema violations (unknown keys, wrong types, bad ranges).
    """
    raw_data = _read_yaml_file(config_path)

    try:
        return VeveConfig.model_validate(raw_data)
    except ValidationError as err:
        raise ConfigValidationError(
            f"Config validation failed for {config_path}:\n{err}"
        ) from err


def default_config() -> VeveConfig:
    """The config used when no file is given on the command line."""
    return VeveConfig()
