# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Per-file execution plan: turns registered tests and hooks into a TestReport.

Order of business for one file:

  1. Only-filter. If anything was registered through only(), those tests are
     the only ones that run. Everything else is recorded as skipped without
     being attempted, and those outcomes come first in the report.
  2. before_all, once.
  3. The parallel group, in batches of max_parallel_tests run concurrently.
     before_each / after_each bracket each individual test, not the batch.
  4. The sequential group, one test at a time in registration order.
  5. after_all, once, after every test.

Per test: skip -> condition -> todo -> body (with retries). The first three
short-circuit, and a short-circuited test fires no hooks.

Hook failures never abort the file. A failed before_all or before_each is
recorded as a hook outcome and the tests still run, but each affected test
lists the failed hook in failed_hooks so a failure downstream of a broken
setup is visibly attributed to it.

Every test and hook attempt races its own timeout. Losing the race records
a failure; the body itself keeps running if it doesn't yield, because there
is no way to preempt it.
"""

import asyncio
import dataclasses
import inspect
import os
import time
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterator, Optional, Sequence

from veve.engine.bench.runner import BenchmarkOptions, run_benchmark
from veve.engine.exceptions import TestTimeout
from veve.engine.models import (
    DEFAULT_TIMEOUT_MS,
    BenchmarkMetrics,
    ErrorInfo,
    HookDescriptor,
    HookOutcome,
    Stats,
    TestDescriptor,
    TestOptions,
    TestOutcome,
    TestReport,
)
from veve.logging.logger import get_logger
from veve.utils.callables import call_maybe_async

logger = get_logger(__name__)

# SystemExit from user code must become a failed test, not end the process.
_CONTAINED = (Exception, SystemExit)


class _Exited(Exception):
    """Carries a SystemExit out of a task; asyncio would otherwise stop the loop with it."""

    def __init__(self, original: SystemExit) -> None:
        super().__init__(str(original))
        self.original = original


async def _contain_exit(work: Awaitable[Any]) -> Any:
    try:
        return await work
    except SystemExit as exc:
        raise _Exited(exc) from exc


@dataclass(frozen=True)
class RuntimeDefaults:
    """Values a test file doesn't set itself. Filled in from configuration."""

    test_timeout: float = DEFAULT_TIMEOUT_MS
    max_parallel_tests: Optional[int] = None
    bench: BenchmarkOptions = field(default_factory=BenchmarkOptions)

    @property
    def parallel_batch_size(self) -> int:
        return self.max_parallel_tests or os.cpu_count() or 4


@dataclass(frozen=True)
class _Attempted:
    status: str
    retries: int
    duration: float
    error: Optional[ErrorInfo] = None
    benchmark: Optional[BenchmarkMetrics] = None


def fold_stats(tests: Sequence[TestOutcome], hooks: Sequence[HookOutcome] = ()) -> Stats:
    """Aggregate outcome counts. Benched tests count as passed."""
    counts = Counter(outcome.status for outcome in tests)
    return Stats(
        total=len(tests),
        passed=counts["passed"] + counts["benched"],
        failed=counts["failed"],
        skipped=counts["skipped"],
        softfailed=counts["softfailed"],
        todo=counts["todo"],
        hooks_failed=sum(1 for hook in hooks if hook.status == "failed"),
    )


def build_report(
    description: str,
    tests: Sequence[TestOutcome],
    hooks: Sequence[HookOutcome],
) -> TestReport:
    stats = fold_stats(tests, hooks)
    return TestReport(
        description=description,
        status="failed" if stats.failed > 0 else "passed",
        stats=stats,
        tests=tuple(tests),
        hooks=tuple(hooks),
    )


def _batches(items: Sequence[TestDescriptor], size: int) -> Iterator[Sequence[TestDescriptor]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


def _consume_result(task: "asyncio.Future[Any]") -> None:
    # Abandoned attempts may still finish later; retrieve their outcome so
    # asyncio doesn't complain about exceptions that were never retrieved.
    if not task.cancelled():
        task.exception()


async def race(awaitable: Awaitable[Any], description: str, timeout_ms: float) -> Any:
    """
    Await `awaitable` unless `timeout_ms` elapses first.

    Raises:
        TestTimeout: the bound was exceeded. The underlying work is cancelled
            if it can be and abandoned otherwise.
    """
    task = asyncio.ensure_future(awaitable)
    try:
        done, _ = await asyncio.wait({task}, timeout=timeout_ms / 1000.0)
    except asyncio.CancelledError:
        task.cancel()
        raise

    if not done:
        task.add_done_callback(_consume_result)
        task.cancel()
        raise TestTimeout(description, timeout_ms)
    return task.result()


class SuiteExecutor:
    """
    Runs one file's registered tests exactly once.

    The executor receives the registration lists as they stood when the file
    finished evaluating; it never sees later registrations.
    """

    def __init__(
        self,
        description: str,
        tests: Sequence[TestDescriptor],
        sequence_tests: Sequence[TestDescriptor],
        only_tests: Sequence[TestDescriptor],
        sequence_only_tests: Sequence[TestDescriptor],
        hooks: dict[str, HookDescriptor],
        defaults: RuntimeDefaults,
    ) -> None:
        self._description = description
        self._tests = tuple(tests)
        self._sequence_tests = tuple(sequence_tests)
        self._only_tests = tuple(only_tests)
        self._sequence_only_tests = tuple(sequence_only_tests)
        self._hooks = dict(hooks)
        self._defaults = defaults

    def _plan(self) -> tuple[tuple[TestDescriptor, ...], tuple[TestDescriptor, ...], list[TestOutcome]]:
        if self._only_tests or self._sequence_only_tests:
            excluded = [
                TestOutcome(description=test.description, status="skipped")
                for test in self._tests + self._sequence_tests
            ]
            return self._only_tests, self._sequence_only_tests, excluded
        return self._tests, self._sequence_tests, []

    async def run(self) -> TestReport:
        parallel, sequential, test_outcomes = self._plan()
        hook_outcomes: list[HookOutcome] = []

        inherited: tuple[str, ...] = ()
        before_all = await self._run_hook("before_all")
        if before_all is not None:
            hook_outcomes.append(before_all)
            if before_all.status == "failed":
                inherited = ("before_all",)
                logger.debug(
                    "before_all failed, tests will run against a failed setup",
                    extra={"suite": self._description},
                )

        for batch in _batches(parallel, self._defaults.parallel_batch_size):
            results = await asyncio.gather(
                *(self._run_single(test, inherited) for test in batch)
            )
            for before_each, outcome, after_each in results:
                if before_each is not None:
                    hook_outcomes.append(before_each)
                test_outcomes.append(outcome)
                if after_each is not None:
                    hook_outcomes.append(after_each)

        for test in sequential:
            before_each, outcome, after_each = await self._run_single(test, inherited)
            if before_each is not None:
                hook_outcomes.append(before_each)
            test_outcomes.append(outcome)
            if after_each is not None:
                hook_outcomes.append(after_each)

        after_all = await self._run_hook("after_all")
        if after_all is not None:
            hook_outcomes.append(after_all)

        report = build_report(self._description, test_outcomes, hook_outcomes)
        logger.debug(
            "Suite finished",
            extra={"suite": self._description, "status": report.status, **dataclasses.asdict(report.stats)},
        )
        return report

    async def _run_single(
        self,
        test: TestDescriptor,
        inherited: tuple[str, ...],
    ) -> tuple[Optional[HookOutcome], TestOutcome, Optional[HookOutcome]]:
        short_circuit = await self._short_circuit(test)
        if short_circuit is not None:
            return None, short_circuit, None

        before_each = await self._run_hook("before_each", for_test=test.description)
        failed_hooks = inherited
        if before_each is not None and before_each.status == "failed":
            failed_hooks = failed_hooks + ("before_each",)

        attempted = await self._attempt(test.description, test.body, test.options)
        outcome = TestOutcome(
            description=test.description,
            status=attempted.status,
            retries=attempted.retries,
            duration=attempted.duration,
            error=attempted.error,
            benchmark=attempted.benchmark,
            failed_hooks=failed_hooks,
        )

        after_each = await self._run_hook("after_each", for_test=test.description)
        return before_each, outcome, after_each

    async def _short_circuit(self, test: TestDescriptor) -> Optional[TestOutcome]:
        options = test.options
        if options.skip:
            return TestOutcome(description=test.description, status="skipped")

        try:
            should_run = await self._evaluate_condition(options.condition)
        except _CONTAINED as exc:
            return TestOutcome(
                description=test.description,
                status="failed",
                error=ErrorInfo.from_exception(exc),
            )
        if not should_run:
            return TestOutcome(description=test.description, status="skipped")

        if options.todo:
            return TestOutcome(description=test.description, status="todo")
        return None

    @staticmethod
    async def _evaluate_condition(condition: Any) -> bool:
        if callable(condition):
            condition = condition()
            if inspect.isawaitable(condition):
                condition = await condition
        return bool(condition)

    async def _run_hook(self, kind: str, for_test: Optional[str] = None) -> Optional[HookOutcome]:
        hook = self._hooks.get(kind)
        if hook is None:
            return None

        description = kind if for_test is None else f"{kind} for {for_test}"
        attempted = await self._attempt(description, hook.body, hook.options)
        return HookOutcome(
            description=description,
            kind=kind,
            status=attempted.status,
            retries=attempted.retries,
            duration=attempted.duration,
            error=attempted.error,
        )

    def _bench_options(self, options: TestOptions) -> BenchmarkOptions:
        overrides = {
            "iterations": options.iterations,
            "warmup": options.warmup,
            "confidence": options.confidence,
            "timeout": options.bench_timeout,
        }
        return dataclasses.replace(
            self._defaults.bench,
            **{name: value for name, value in overrides.items() if value is not None},
        )

    async def _attempt(
        self,
        description: str,
        body: Callable[..., Any],
        options: TestOptions,
    ) -> _Attempted:
        """Run a body with retries and a per-attempt timeout. Never raises for user errors."""
        timeout_ms = options.timeout if options.timeout is not None else self._defaults.test_timeout
        bench_options = self._bench_options(options) if options.bench else None

        started = time.perf_counter()
        retries = 0
        result: Any = None
        error: Optional[ErrorInfo] = None

        while True:
            if bench_options is not None:
                work = run_benchmark(body, bench_options)
            else:
                work = call_maybe_async(body)
            try:
                result = await race(_contain_exit(work), description, timeout_ms)
                error = None
                break
            except _CONTAINED as exc:
                if retries < options.retry:
                    retries += 1
                    continue
                error = ErrorInfo.from_exception(exc.original if isinstance(exc, _Exited) else exc)
                break

        duration = (time.perf_counter() - started) * 1000.0

        if error is not None:
            status = "softfailed" if options.soft_fail else "failed"
            return _Attempted(status=status, retries=retries, duration=duration, error=error)
        if bench_options is not None:
            return _Attempted(status="benched", retries=retries, duration=duration, benchmark=result)
        return _Attempted(status="passed", retries=retries, duration=duration)
