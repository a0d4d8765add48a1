# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
The pool: fans test files out to execution units and owns the results map.

run() executes every file concurrently (optionally capped), stores one
PoolResult per file, hands the whole map to the reporter and computes the
exit code. exec_incremental() is the watch-mode entry point: re-run one
file, update its entry (or drop it if the file is gone) and report the full
map again so aggregate numbers stay right.

The results map is only written from the coroutine driving the pool, one
key per file, so it needs no locking. A file that crashes or times out gets
an execution_error entry like any other result; it never takes its siblings
down with it.
"""

import asyncio
import time
from pathlib import Path
from typing import Callable, Iterable, Mapping, Optional

from veve.engine.compiler.service import Compiler, PythonCompiler
from veve.engine.models import ErrorInfo, PoolResult
from veve.engine.runner.unit import ExecutionOptions, ExecutionUnit
from veve.engine.sandbox.context import ProcessSnapshot
from veve.logging.logger import get_logger

logger = get_logger(__name__)

Reporter = Callable[[Mapping[str, PoolResult]], None]


def compute_exit_code(results: Mapping[str, PoolResult]) -> int:
    """0 iff every file produced a passed report, 1 otherwise."""
    return 0 if all(result.passed for result in results.values()) else 1


class Pool:
    def __init__(
        self,
        compiler: Optional[Compiler] = None,
        options: Optional[ExecutionOptions] = None,
        reporter: Optional[Reporter] = None,
    ) -> None:
        self._compiler = compiler or PythonCompiler()
        self._options = options or ExecutionOptions()
        self._reporter = reporter
        self._max_concurrency = self._options.max_concurrency
        if self._max_concurrency is not None and self._max_concurrency < 1:
            raise ValueError(f"max_concurrency must be >= 1, got {self._max_concurrency}")
        # one snapshot per pool, every sandbox gets the same read-only copy
        self._process = ProcessSnapshot.capture()
        self.results: dict[str, PoolResult] = {}

    async def _execute(self, file_path: str) -> PoolResult:
        unit = ExecutionUnit(self._compiler, self._options, self._process)
        try:
            return await unit.execute(file_path)
        except Exception as err:
            # a bug in a compile service or the engine itself; still only this file's problem
            logger.exception("Execution unit failed unexpectedly", extra={"file": file_path})
            return PoolResult(
                file_path=file_path,
                execution_error=ErrorInfo.from_exception(err),
                state="crashed",
            )

    def _report(self) -> None:
        if self._reporter is None:
            return
        try:
            self._reporter(self.results)
        except Exception:
            logger.exception("Reporter failed", extra={"files": len(self.results)})

    async def run(self, file_paths: Iterable[str]) -> int:
        """
        Execute every file and return the process exit code (0 or 1).

        Duplicate paths are executed once. Results are stored in input order
        and replace whatever an earlier run() left in the map.
        """
        self.results = {}
        paths = list(dict.fromkeys(str(path) for path in file_paths))
        semaphore = asyncio.Semaphore(self._max_concurrency) if self._max_concurrency else None
        started = time.perf_counter()

        logger.info(
            "Pool started",
            extra={"files": len(paths), "max_concurrency": self._max_concurrency},
        )

        async def bounded(path: str) -> PoolResult:
            if semaphore is None:
                return await self._execute(path)
            async with semaphore:
                return await self._execute(path)

        results = await asyncio.gather(*(bounded(path) for path in paths))
        for path, result in zip(paths, results):
            self.results[path] = result

        self._report()
        exit_code = self.exit_code()

        logger.info(
            "Pool finished",
            extra={
                "files": len(paths),
                "failed_files": sum(1 for result in results if not result.passed),
                "elapsed_ms": round((time.perf_counter() - started) * 1000.0, 3),
                "exit_code": exit_code,
            },
        )
        return exit_code

    async def exec_incremental(self, file_path: str) -> Optional[PoolResult]:
        """
        Re-execute one file and merge its result into the live map.

        If the file no longer exists its entry is removed and None is
        returned. Either way the reporter sees the full, updated map.
        """
        file_path = str(file_path)
        if not Path(file_path).exists():
            removed = self.results.pop(file_path, None)
            logger.info(
                "Test file removed",
                extra={"file": file_path, "had_result": removed is not None},
            )
            self._report()
            return None

        result = await self._execute(file_path)
        self.results[file_path] = result
        logger.info(
            "Test file re-executed",
            extra={"file": file_path, "state": result.state, "passed": result.passed},
        )
        self._report()
        return result

    def exit_code(self) -> int:
        return compute_exit_code(self.results)

    def run_sync(self, file_paths: Iterable[str]) -> int:
        """Blocking wrapper around run() for callers without an event loop."""
        return asyncio.run(self.run(file_paths))
