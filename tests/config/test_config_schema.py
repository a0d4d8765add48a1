# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Schema-level validation tests.

These focus on the pydantic models themselves: boundary values, constraint
enforcement, and structural correctness.
"""

import pytest
from pydantic import ValidationError

from veve.config.schema import BenchConfig, GlobalConfig, RunConfig, VeveConfig


class TestGlobalConfigSchema:
    def test_defaults(self) -> None:
        config = GlobalConfig()
        assert config.config_version == "1.0.0"
        assert config.project_name == "veve"
        assert config.log_level == "INFO"
        assert config.log_file is None

    def test_unknown_field_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            GlobalConfig(seed=1)  # type: ignore[call-arg]


class TestRunConfigSchema:
    def test_defaults(self) -> None:
        config = RunConfig()
        assert config.timeout_ms == 300_000
        assert config.test_timeout_ms == 300_000
        assert config.max_concurrency is None
        assert config.max_parallel_tests is None
        assert config.output_file is None
        assert config.extra_globals == {}

    @pytest.mark.parametrize("value", [0, -1])
    def test_timeout_must_be_positive(self, value: float) -> None:
        with pytest.raises(ValidationError):
            RunConfig(timeout_ms=value)

    def test_max_concurrency_must_be_at_least_one(self) -> None:
        with pytest.raises(ValidationError):
            RunConfig(max_concurrency=0)

    def test_max_concurrency_one_is_valid(self) -> None:
        assert RunConfig(max_concurrency=1).max_concurrency == 1


class TestBenchConfigSchema:
    @pytest.mark.parametrize("confidence", [0.0, 1.0, 1.5])
    def test_confidence_bounds(self, confidence: float) -> None:
        with pytest.raises(ValidationError):
            BenchConfig(confidence=confidence)

    def test_iterations_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            BenchConfig(iterations=0)

    def test_warmup_zero_is_valid(self) -> None:
        assert BenchConfig(warmup=0).warmup == 0


class TestVeveConfigSchema:
    def test_global_alias(self) -> None:
        config = VeveConfig.model_validate({"global": {"project_name": "aliased"}})
        assert config.global_config.project_name == "aliased"

    def test_populate_by_field_name(self) -> None:
        config = VeveConfig(global_config=GlobalConfig(project_name="by-name"))
        assert config.global_config.project_name == "by-name"

    def test_test_timeout_cannot_exceed_file_timeout(self) -> None:
        with pytest.raises(ValidationError, match="test_timeout_ms"):
            VeveConfig.model_validate({"run": {"timeout_ms": 1000, "test_timeout_ms": 2000}})

    def test_unknown_section_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            VeveConfig.model_validate({"serve": {}})
