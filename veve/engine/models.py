# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Data models for the execution engine.

These are the types that travel between the pool, the execution units, the
per-file runtime and the reporters. They're frozen dataclasses because a
result must never change after it's been produced: reporters in watch mode
re-read the same PoolResult many times, and an outcome that mutates under
them is a bug.

Every duration and latency here is milliseconds.
"""

import traceback
from dataclasses import dataclass, field
from typing import Any, Callable, Literal, Optional

TestStatus = Literal["passed", "failed", "softfailed", "skipped", "todo", "benched"]
HookKind = Literal["before_all", "before_each", "after_all", "after_each"]
ReportStatus = Literal["passed", "failed"]
FileState = Literal["pending", "compiling", "running", "completed", "timed_out", "crashed"]

HOOK_KINDS: tuple[str, ...] = ("before_all", "before_each", "after_all", "after_each")
TERMINAL_STATES: frozenset[str] = frozenset({"completed", "timed_out", "crashed"})

DEFAULT_TIMEOUT_MS: float = 300_000.0


@dataclass(frozen=True)
class TestOptions:
    """
    Per-test (or per-hook) options as registered by the test file.

    timeout=None means "use the runtime default". The benchmark fields only
    matter when bench=True and likewise fall back to runtime defaults.
    `condition` is the it_if predicate: a bool, None, or a callable (sync or
    async) evaluated right before the test would run.
    """

    __test__ = False

    timeout: Optional[float] = None
    skip: bool = False
    condition: Any = True
    soft_fail: bool = False
    retry: int = 0
    sequential: bool = False
    bench: bool = False
    todo: bool = False
    iterations: Optional[int] = None
    warmup: Optional[int] = None
    confidence: Optional[float] = None
    bench_timeout: Optional[float] = None


@dataclass(frozen=True)
class TestDescriptor:
    """One registered test. Consumed exactly once by the runtime."""

    __test__ = False

    description: str
    body: Callable[..., Any]
    options: TestOptions = field(default_factory=TestOptions)


@dataclass(frozen=True)
class HookDescriptor:
    """One registered hook. A file holds at most one per kind."""

    kind: str
    body: Callable[..., Any]
    options: TestOptions = field(default_factory=TestOptions)


@dataclass(frozen=True)
class ErrorInfo:
    """An exception flattened into something reporters can serialize."""

    message: str
    stack: str = ""
    type: str = "Exception"

    @classmethod
    def from_exception(cls, exc: BaseException) -> "ErrorInfo":
        return cls(
            message=str(exc) or type(exc).__name__,
            stack="".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
            type=type(exc).__name__,
        )


@dataclass(frozen=True)
class ConfidenceInterval:
    lower: float = 0.0
    upper: float = 0.0


@dataclass(frozen=True)
class BenchmarkMetrics:
    """
    Statistical snapshot of one benchmark run.

    samples == 0 means "no data", not failure. timed_out is set whenever the
    measurement phase stopped on its time budget instead of its iteration
    count.
    """

    mean_latency: float
    median_latency: float
    p95_latency: float
    std_dev: float
    ops_per_second: float
    confidence_interval: ConfidenceInterval
    samples: int
    timestamp: float
    timed_out: bool


@dataclass(frozen=True)
class TestOutcome:
    """
    The final result of one test, after every retry has been spent.

    failed_hooks names the precondition hooks (before_all, before_each) that
    failed before this test's body ran, so a failure can be traced back to a
    broken setup rather than to the test itself.
    """

    __test__ = False

    description: str
    status: TestStatus
    retries: int = 0
    duration: float = 0.0
    error: Optional[ErrorInfo] = None
    benchmark: Optional[BenchmarkMetrics] = None
    failed_hooks: tuple[str, ...] = ()


@dataclass(frozen=True)
class HookOutcome:
    description: str
    kind: str
    status: TestStatus
    retries: int = 0
    duration: float = 0.0
    error: Optional[ErrorInfo] = None


@dataclass(frozen=True)
class Stats:
    """
    Aggregate counts for one report.

    passed + failed + skipped + softfailed + todo == total, where total is
    the number of test outcomes. Benched tests count as passed. hooks_failed
    is informational and never part of total.
    """

    total: int = 0
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    softfailed: int = 0
    todo: int = 0
    hooks_failed: int = 0


@dataclass(frozen=True)
class TestReport:
    """Everything one test file produced. status is "failed" iff stats.failed > 0."""

    __test__ = False

    description: str
    status: ReportStatus
    stats: Stats
    tests: tuple[TestOutcome, ...] = ()
    hooks: tuple[HookOutcome, ...] = ()


@dataclass(frozen=True)
class LogEntry:
    """One call made to a sandbox's console, rendered to text at call time."""

    level: str
    message: str
    timestamp: float


@dataclass(frozen=True)
class PoolResult:
    """
    The per-file envelope handed to reporters.

    Exactly one of report / execution_error is set. A file whose tests fail
    still gets a report; execution_error is reserved for files that could not
    produce one (compile error, crash during registration, file timeout,
    malformed report).

    duration covers sandbox construction and execution. Compile time is kept
    separately in compile_duration.
    """

    file_path: str
    report: Optional[TestReport] = None
    execution_error: Optional[ErrorInfo] = None
    duration: float = 0.0
    logs: tuple[LogEntry, ...] = ()
    source_map: Optional[dict[str, Any]] = None
    compile_duration: float = 0.0
    state: FileState = "completed"

    def __post_init__(self) -> None:
        if (self.report is None) == (self.execution_error is None):
            raise ValueError(
                f"PoolResult for {self.file_path} needs exactly one of report or execution_error"
            )
        if self.state not in TERMINAL_STATES:
            raise ValueError(f"PoolResult state must be terminal, got {self.state!r}")
        if (self.report is not None) != (self.state == "completed"):
            raise ValueError(
                f"PoolResult for {self.file_path}: state {self.state!r} does not match its payload"
            )

    @property
    def passed(self) -> bool:
        return self.report is not None and self.report.status == "passed"
