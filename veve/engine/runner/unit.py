# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Execution unit: runs one test file in its own sandbox and returns a PoolResult.

For each file:
  1. Compile it through the compile service. A CompileError ends things
     right there: the file gets an execution_error and nothing runs.
  2. Build a fresh sandbox namespace (see sandbox/context.py) around a new
     SuiteRuntime and a new Console.
  3. Evaluate the compiled module in a worker thread, then await the
     runtime's report. Both steps together race the hard file timeout.
  4. Validate the report's shape before accepting it.

States: pending -> compiling -> running -> completed | timed_out | crashed.
There are no retries at this level; retrying is something individual tests
ask for, not whole files.

A file timeout abandons the sandbox. Async work inside it is cancelled;
synchronous code already running in a worker thread can't be stopped and is
simply left to finish on its own. Nothing it does afterwards can reach the
result, because the result has already been built from what was captured.
"""

import asyncio
import time
from dataclasses import dataclass, field
from pathlib import Path
from types import CodeType
from typing import Any, Mapping, Optional

from veve.config.schema import VeveConfig
from veve.engine.bench.runner import BenchmarkOptions
from veve.engine.compiler.service import Compiler, PythonCompiler
from veve.engine.exceptions import (
    CompileError,
    ExecutionTimeout,
    MalformedReport,
    SandboxCrash,
)
from veve.engine.models import (
    DEFAULT_TIMEOUT_MS,
    ErrorInfo,
    HookOutcome,
    PoolResult,
    Stats,
    TestOutcome,
    TestReport,
)
from veve.engine.runtime.executor import RuntimeDefaults
from veve.engine.runtime.suite import SuiteRuntime
from veve.engine.sandbox.console import Console
from veve.engine.sandbox.context import ProcessSnapshot, SandboxContext
from veve.logging.logger import get_logger
from veve.utils.callables import run_in_thread

logger = get_logger(__name__)


@dataclass(frozen=True)
class ExecutionOptions:
    """
    Execution settings shared by every unit in a run.

    timeout is the hard per-file bound in milliseconds. max_concurrency caps
    how many files the pool runs at once (None means no cap); units ignore it.
    """

    timeout: float = DEFAULT_TIMEOUT_MS
    runtime_defaults: RuntimeDefaults = field(default_factory=RuntimeDefaults)
    extra_globals: Mapping[str, Any] = field(default_factory=dict)
    max_concurrency: Optional[int] = None


def options_from_config(config: VeveConfig) -> ExecutionOptions:
    """Translate the run and bench sections of a loaded config into engine options."""
    run = config.run
    bench = config.bench
    return ExecutionOptions(
        timeout=run.timeout_ms,
        runtime_defaults=RuntimeDefaults(
            test_timeout=run.test_timeout_ms,
            max_parallel_tests=run.max_parallel_tests,
            bench=BenchmarkOptions(
                iterations=bench.iterations,
                warmup=bench.warmup,
                timeout=bench.timeout_ms,
                confidence=bench.confidence,
            ),
        ),
        extra_globals=dict(run.extra_globals),
        max_concurrency=run.max_concurrency,
    )


def validate_report(report: Any) -> TestReport:
    """
    Accept a runtime's return value only if it really is a well-formed TestReport.

    Raises:
        MalformedReport: wrong type, missing pieces, or counts that don't add up.
    """
    if not isinstance(report, TestReport):
        raise MalformedReport(f"Expected a TestReport, got {type(report).__name__}")
    if not isinstance(report.description, str):
        raise MalformedReport("Report description must be a string")
    if report.status not in ("passed", "failed"):
        raise MalformedReport(f"Unknown report status {report.status!r}")
    if not isinstance(report.stats, Stats):
        raise MalformedReport("Report stats are missing")
    if not all(isinstance(test, TestOutcome) for test in report.tests):
        raise MalformedReport("Report tests must all be TestOutcome records")
    if not all(isinstance(hook, HookOutcome) for hook in report.hooks):
        raise MalformedReport("Report hooks must all be HookOutcome records")

    stats = report.stats
    if stats.total != len(report.tests):
        raise MalformedReport(
            f"stats.total is {stats.total} but the report holds {len(report.tests)} tests"
        )
    if stats.passed + stats.failed + stats.skipped + stats.softfailed + stats.todo != stats.total:
        raise MalformedReport("Report stats don't add up to total")
    if (report.status == "failed") != (stats.failed > 0):
        raise MalformedReport("Report status disagrees with its failure count")
    return report


def _consume(task: "asyncio.Future[Any]") -> None:
    if not task.cancelled():
        task.exception()


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000.0


class ExecutionUnit:
    """Owns one file's sandbox for exactly one execution."""

    def __init__(
        self,
        compiler: Optional[Compiler] = None,
        options: Optional[ExecutionOptions] = None,
        process: Optional[ProcessSnapshot] = None,
    ) -> None:
        self.file_path = ""
        self.state = "pending"
        self._compiler = compiler or PythonCompiler()
        self._options = options or ExecutionOptions()
        self._process = process

    def _transition(self, state: str) -> None:
        logger.debug(
            "File state changed",
            extra={"file": self.file_path, "from_state": self.state, "state": state},
        )
        self.state = state

    async def execute(self, file_path: str) -> PoolResult:
        """
        Run one file start to finish. Never raises for anything the file does.

        A unit executes exactly one file; create a new one per execution.
        """
        if self.state != "pending":
            raise RuntimeError(f"ExecutionUnit already used for {self.file_path}")
        self.file_path = str(file_path)
        self._transition("compiling")
        compile_started = time.perf_counter()
        try:
            compiled = await self._compiler.compile(self.file_path)
        except CompileError as err:
            self._transition("crashed")
            logger.warning("Compile failed", extra={"file": self.file_path, "error": str(err)})
            return PoolResult(
                file_path=self.file_path,
                execution_error=ErrorInfo.from_exception(err),
                compile_duration=_elapsed_ms(compile_started),
                state="crashed",
            )
        compile_duration = _elapsed_ms(compile_started)

        started = time.perf_counter()
        console = Console()
        runtime = SuiteRuntime(
            description=Path(self.file_path).name,
            defaults=self._options.runtime_defaults,
        )
        context = SandboxContext(
            file_path=self.file_path,
            runtime=runtime,
            console=console,
            process=self._process,
            extra_globals=self._options.extra_globals,
        )

        self._transition("running")
        task = asyncio.ensure_future(self._evaluate_and_run(compiled.code, context, runtime))
        try:
            done, _ = await asyncio.wait({task}, timeout=self._options.timeout / 1000.0)
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            # the sandbox is discarded here, whatever happened inside it
            restored = context.restore_spies()
            if restored:
                logger.debug("Spies restored", extra={"file": self.file_path, "spies": restored})

        report: Optional[TestReport] = None
        error: Optional[BaseException] = None
        if not done:
            task.add_done_callback(_consume)
            task.cancel()
            error = ExecutionTimeout(self.file_path, self._options.timeout)
            self._transition("timed_out")
        else:
            try:
                report = task.result()
                self._transition("completed")
            except Exception as exc:
                error = exc
                self._transition("crashed")

        duration = _elapsed_ms(started)
        if report is None:
            logger.warning(
                "File produced no report",
                extra={"file": self.file_path, "state": self.state, "error": str(error)},
            )

        return PoolResult(
            file_path=self.file_path,
            report=report,
            execution_error=ErrorInfo.from_exception(error) if error is not None else None,
            duration=duration,
            logs=console.logs,
            source_map=compiled.source_map,
            compile_duration=compile_duration,
            state=self.state,
        )

    async def _evaluate_and_run(
        self,
        code: CodeType,
        context: SandboxContext,
        runtime: SuiteRuntime,
    ) -> TestReport:
        namespace = context.build_namespace()
        try:
            # module-level code may block or call asyncio.run() itself
            await run_in_thread(
                exec, code, namespace, name=f"veve-eval-{Path(self.file_path).name}"
            )
        except (Exception, SystemExit) as err:
            raise SandboxCrash(
                f"{type(err).__name__} while evaluating {self.file_path}: {err}"
            ) from err

        logger.debug(
            "Test file evaluated",
            extra={"file": self.file_path, "registered": runtime.registered_count},
        )
        return validate_report(await runtime.execute())
