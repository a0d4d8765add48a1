# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Type-safe configuration schemas for veve.

Each section of veve.yaml gets its own frozen pydantic model. Frozen because
the engine reads these values from many concurrently running files; nothing
is allowed to change them once the run has started.

All models use pydantic v2's ConfigDict with:
  - frozen=True: immutability after construction
  - extra="forbid": unknown keys (usually typos) fail immediately
  - validate_default=True: defaults get type-checked too

Timeouts are milliseconds throughout, matching what test files pass to
timeout=... and what shows up in "exceeded N ms" messages.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class GlobalConfig(BaseModel):
    """Cross-cutting settings: identity and observability."""

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    config_version: str = Field(
        default="1.0.0",
        description="Schema version for compatibility tracking",
    )
    project_name: str = Field(
        default="veve", description="Human-readable project identifier"
    )
    log_level: str = Field(
        default="INFO",
        description="One of DEBUG, INFO, WARNING, ERROR, CRITICAL",
    )
    log_file: Optional[str] = Field(
        default=None,
        description="Optional path for file-based log output",
    )


class RunConfig(BaseModel):
    """
    Knobs for the execution engine.

    timeout_ms bounds a whole file (evaluation plus every test in it);
    test_timeout_ms is the default bound for a single test or hook when the
    test file doesn't set its own.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    timeout_ms: float = Field(
        default=300_000,
        gt=0,
        description="Hard per-file timeout in milliseconds (default 5 minutes)",
    )
    test_timeout_ms: float = Field(
        default=300_000,
        gt=0,
        description="Default per-test and per-hook timeout in milliseconds",
    )
    max_concurrency: Optional[int] = Field(
        default=None,
        ge=1,
        description="Max files executing at once; None means unbounded",
    )
    max_parallel_tests: Optional[int] = Field(
        default=None,
        ge=1,
        description="Batch size for a file's parallel tests; None means CPU count",
    )
    output_file: Optional[str] = Field(
        default=None,
        description="Where to write the JSON results document, if anywhere",
    )
    extra_globals: dict[str, str] = Field(
        default_factory=dict,
        description="Extra string constants injected into every sandbox",
    )


class BenchConfig(BaseModel):
    """Defaults for bench(...) tests that don't override them."""

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    iterations: int = Field(default=1000, ge=1, description="Samples to collect")
    warmup: int = Field(default=10, ge=0, description="Discarded warmup calls")
    timeout_ms: float = Field(
        default=30_000,
        gt=0,
        description="Wall-clock budget for the measurement phase",
    )
    confidence: float = Field(
        default=0.95,
        gt=0,
        lt=1,
        description="Confidence level for the reported interval",
    )


class VeveConfig(BaseModel):
    """
    Top-level config container.

    Every section has defaults, so an empty mapping is a valid config. The
    `global` key is aliased because it's a Python keyword.
    """

    model_config = ConfigDict(
        frozen=True, extra="forbid", validate_default=True, populate_by_name=True,
    )

    global_config: GlobalConfig = Field(default_factory=GlobalConfig, alias="global")
    run: RunConfig = Field(default_factory=RunConfig)
    bench: BenchConfig = Field(default_factory=BenchConfig)

    @model_validator(mode="after")
    def _test_timeout_within_file_timeout(self) -> "VeveConfig":
        if self.run.test_timeout_ms > self.run.timeout_ms:
            raise ValueError(
                "run.test_timeout_ms cannot exceed run.timeout_ms "
                f"({self.run.test_timeout_ms} > {self.run.timeout_ms})"
            )
        return self
