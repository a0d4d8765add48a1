# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Shared pytest fixtures for veve tests.

Fixtures here are available to every test file automatically.
We keep them minimal, just the stuff that multiple test modules need.
"""

import textwrap
from pathlib import Path
from typing import Callable

import pytest


@pytest.fixture()
def tmp_config_file(tmp_path: Path) -> Path:
    """
    A small valid config YAML file in a temp directory.

    Tests that need specific config values should write their own files.
    """
    config_content = textwrap.dedent("""\
        global:
          config_version: "1.0.0"
          project_name: "veve-test"
          log_level: "DEBUG"
        run:
          timeout_ms: 60000
          test_timeout_ms: 5000
          max_concurrency: 2
    """)
    config_file = tmp_path / "veve.yaml"
    config_file.write_text(config_content, encoding="utf-8")
    return config_file


@pytest.fixture()
def invalid_config_file(tmp_path: Path) -> Path:
    """Valid YAML that fails schema validation (unknown key)."""
    config_content = textwrap.dedent("""\
        run:
          timeout_ms: 1000
          parallel: true
    """)
    config_file = tmp_path / "invalid_config.yaml"
    config_file.write_text(config_content, encoding="utf-8")
    return config_file


@pytest.fixture()
def broken_yaml_file(tmp_path: Path) -> Path:
    """A file that isn't valid YAML at all."""
    config_file = tmp_path / "broken.yaml"
    config_file.write_text("{{not: yaml: at: all:::", encoding="utf-8")
    return config_file


@pytest.fixture()
def write_test_file(tmp_path: Path) -> Callable[[str, str], str]:
    """
    Write a veve test file into tmp_path and return its path as a string.

    The source is dedented, so tests can use indented triple-quoted strings.
    """

    def _write(name: str, source: str) -> str:
        path = tmp_path / name
        path.write_text(textwrap.dedent(source), encoding="utf-8")
        return str(path)

    return _write
