# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Tests for config loader, the entry point for all config loading in veve.

We test:
  1. Valid YAML loads into a frozen, correct config object
  2. An empty file gives all the defaults
  3. Unknown fields and wrong types raise ConfigValidationError (extra="forbid")
  4. Broken YAML or a missing file raise ConfigLoadError
  5. Loaded config is truly immutable
"""

import textwrap
from pathlib import Path

import pytest

from veve.config.exceptions import ConfigError, ConfigLoadError, ConfigValidationError
from veve.config.loader import default_config, load_config


class TestLoadValidConfig:
    def test_loads_config_file(self, tmp_config_file: Path) -> None:
        config = load_config(tmp_config_file)
        assert config.global_config.project_name == "veve-test"
        assert config.global_config.log_level == "DEBUG"
        assert config.run.timeout_ms == 60000
        assert config.run.test_timeout_ms == 5000
        assert config.run.max_concurrency == 2

    def test_unset_sections_use_defaults(self, tmp_config_file: Path) -> None:
        config = load_config(tmp_config_file)
        assert config.bench.iterations == 1000
        assert config.bench.warmup == 10
        assert config.bench.timeout_ms == 30000
        assert config.bench.confidence == 0.95

    def test_empty_file_is_all_defaults(self, tmp_path: Path) -> None:
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("", encoding="utf-8")
        assert load_config(config_file) == default_config()

    def test_extra_globals(self, tmp_path: Path) -> None:
        config_file = tmp_path / "globals.yaml"
        config_file.write_text(
            textwrap.dedent("""\
                run:
                  extra_globals:
                    API_URL: "http://localhost:8080"
            """),
            encoding="utf-8",
        )
        config = load_config(config_file)
        assert config.run.extra_globals == {"API_URL": "http://localhost:8080"}


class TestLoadInvalidConfig:
    def test_unknown_field_raises_validation_error(self, invalid_config_file: Path) -> None:
        with pytest.raises(ConfigValidationError):
            load_config(invalid_config_file)

    def test_wrong_type_raises_validation_error(self, tmp_path: Path) -> None:
        config_file = tmp_path / "wrong_type.yaml"
        config_file.write_text("run:\n  timeout_ms: soon\n", encoding="utf-8")
        with pytest.raises(ConfigValidationError):
            load_config(config_file)

    def test_non_mapping_raises_load_error(self, tmp_path: Path) -> None:
        config_file = tmp_path / "list.yaml"
        config_file.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigLoadError, match="mapping"):
            load_config(config_file)

    def test_broken_yaml_raises_load_error(self, broken_yaml_file: Path) -> None:
        with pytest.raises(ConfigLoadError):
            load_config(broken_yaml_file)

    def test_nonexistent_file_raises_load_error(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigLoadError):
            load_config(tmp_path / "does_not_exist.yaml")

    def test_directory_path_raises_load_error(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigLoadError):
            load_config(tmp_path)

    def test_all_errors_share_a_base(self, broken_yaml_file: Path) -> None:
        with pytest.raises(ConfigError):
            load_config(broken_yaml_file)


class TestConfigImmutability:
    def test_cannot_mutate_frozen_config(self, tmp_config_file: Path) -> None:
        config = load_config(tmp_config_file)
        with pytest.raises(Exception):
            config.run.timeout_ms = 1  # type: ignore[misc]

    def test_cannot_mutate_nested_section(self, tmp_config_file: Path) -> None:
        config = load_config(tmp_config_file)
        with pytest.raises(Exception):
            config.global_config.project_name = "hacked"  # type: ignore[misc]
