# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Result writers.

JsonReporter is a pool reporter: call it with the results map and it writes

    <output_path>          e.g. results.json, machine-readable, authoritative

holding the run summary and every PoolResult in input order. In watch mode
the pool calls it after every change, so the file is rewritten in full each
time rather than appended to.

format_summary_text renders the same summary for a terminal. It's a
convenience view; the JSON is what other tools should read.
"""

import json
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

from veve.engine.models import PoolResult
from veve.engine.reporting.summary import RunSummary, summarize_results
from veve.logging.logger import get_logger

logger = get_logger(__name__)


def results_to_dict(results: Mapping[str, PoolResult]) -> dict[str, Any]:
    summary = summarize_results(results)
    return {
        "generated": datetime.now(tz=timezone.utc).isoformat(),
        "summary": asdict(summary),
        "results": [asdict(result) for result in results.values()],
    }


class JsonReporter:
    """Writes results.json every time the pool reports."""

    def __init__(self, output_path: Path) -> None:
        self.output_path = Path(output_path)

    def __call__(self, results: Mapping[str, PoolResult]) -> None:
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        self.output_path.write_text(
            json.dumps(results_to_dict(results), indent=2, sort_keys=True, default=str),
            encoding="utf-8",
        )
        logger.info(
            "Results written",
            extra={"output": str(self.output_path), "files": len(results)},
        )


def format_summary_text(summary: RunSummary) -> str:
    """Human-readable block for the end of a CLI run."""
    stats = summary.stats
    lines: list[str] = [
        "=" * 60,
        "VEVE RUN SUMMARY",
        "=" * 60,
        f"Files: {summary.files} ({summary.files_passed} passed, {summary.files_failed} failed)",
        f"Execution errors: {summary.execution_errors}",
        "",
        f"Tests: {stats.total}",
        f"  passed:     {stats.passed}",
        f"  failed:     {stats.failed}",
        f"  softfailed: {stats.softfailed}",
        f"  skipped:    {stats.skipped}",
        f"  todo:       {stats.todo}",
    ]
    if stats.hooks_failed:
        lines.append(f"Hooks failed: {stats.hooks_failed}")
    lines.extend([f"Duration: {summary.duration:.1f} ms", "=" * 60])
    return "\n".join(lines) + "\n"


def format_results_text(results: Mapping[str, PoolResult]) -> str:
    """
    One line per file, plus a line for every test that failed or soft-failed
    and every file that couldn't produce a report.
    """
    lines: list[str] = []
    for file_path, result in results.items():
        if result.execution_error is not None:
            lines.append(f"ERROR {file_path} [{result.state}]")
            lines.append(f"    {result.execution_error.type}: {result.execution_error.message}")
            continue

        report = result.report
        marker = "PASS " if result.passed else "FAIL "
        lines.append(f"{marker}{file_path} :: {report.description} ({result.duration:.1f} ms)")
        for outcome in report.tests:
            if outcome.status not in ("failed", "softfailed"):
                continue
            message = outcome.error.message if outcome.error is not None else ""
            lines.append(f"    {outcome.status}: {outcome.description}: {message}")
            if outcome.failed_hooks:
                lines.append(f"        after failed {', '.join(outcome.failed_hooks)}")
        for hook in report.hooks:
            if hook.status == "failed" and hook.error is not None:
                lines.append(f"    hook failed: {hook.description}: {hook.error.message}")
    return "\n".join(lines) + "\n" if lines else ""
