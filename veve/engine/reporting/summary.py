# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Run summary: folds a results map into the numbers a reporter shows at the top.

Per-test counts are summed across every file that produced a report. Files
that ended in an execution_error contribute no test counts (there are none)
but are counted in execution_errors and files_failed.
"""

from dataclasses import dataclass
from typing import Mapping

from veve.engine.models import PoolResult, Stats


@dataclass(frozen=True)
class RunSummary:
    files: int
    files_passed: int
    files_failed: int
    execution_errors: int
    stats: Stats
    duration: float

    @property
    def passed(self) -> bool:
        return self.files_failed == 0


def summarize_results(results: Mapping[str, PoolResult]) -> RunSummary:
    total = passed = failed = skipped = softfailed = todo = hooks_failed = 0
    files_passed = execution_errors = 0
    duration = 0.0

    for result in results.values():
        duration += result.duration + result.compile_duration
        if result.execution_error is not None:
            execution_errors += 1
            continue
        stats = result.report.stats
        total += stats.total
        passed += stats.passed
        failed += stats.failed
        skipped += stats.skipped
        softfailed += stats.softfailed
        todo += stats.todo
        hooks_failed += stats.hooks_failed
        if result.passed:
            files_passed += 1

    return RunSummary(
        files=len(results),
        files_passed=files_passed,
        files_failed=len(results) - files_passed,
        execution_errors=execution_errors,
        stats=Stats(
            total=total,
            passed=passed,
            failed=failed,
            skipped=skipped,
            softfailed=softfailed,
            todo=todo,
            hooks_failed=hooks_failed,
        ),
        duration=duration,
    )
