# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Exceptions for the configuration layer.

Kept apart from the engine exceptions so the CLI can tell "your veve.yaml is
wrong" from "a test file blew up" without importing the engine.
"""


class ConfigError(Exception):
    """Base for all configuration errors."""


class ConfigLoadError(ConfigError):
    """Raised when a config file cannot be read from disk or parsed as YAML."""


class ConfigValidationError(ConfigError):
    """
    Raised when a config file parses fine but fails schema validation:
    unknown keys, wrong types, out-of-range timeouts or concurrency limits.
    """
