# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Per-sandbox output capture.

Many test files run at the same time. If they all wrote straight to stdout
their output would interleave into nonsense, so each sandbox gets its own
Console and its own `print`. Calls are rendered to text immediately (so
later mutation of the printed objects doesn't change what was logged) and
appended to a list. After the run, replay_logs writes them out file by file.

The console is passed into the sandbox by reference. Nothing here touches
sys.stdout or any process-wide state until replay time.
"""

import sys
import threading
import time
from typing import Any, Iterable, Optional, TextIO

from veve.engine.models import LogEntry


def _render(args: tuple[Any, ...], sep: str = " ") -> str:
    return sep.join(str(arg) for arg in args)


class Console:
    """Log-capturing stand-in for console output inside a sandbox."""

    def __init__(self) -> None:
        self._entries: list[LogEntry] = []
        self._timers: dict[str, float] = {}
        self._counts: dict[str, int] = {}
        # sync test bodies run in worker threads and may log concurrently
        self._lock = threading.Lock()

    @property
    def logs(self) -> tuple[LogEntry, ...]:
        with self._lock:
            return tuple(self._entries)

    def _append(self, level: str, message: str) -> None:
        entry = LogEntry(level=level, message=message, timestamp=time.time())
        with self._lock:
            self._entries.append(entry)

    def log(self, *args: Any) -> None:
        self._append("log", _render(args))

    def info(self, *args: Any) -> None:
        self._append("info", _render(args))

    def debug(self, *args: Any) -> None:
        self._append("debug", _render(args))

    def warn(self, *args: Any) -> None:
        self._append("warn", _render(args))

    warning = warn

    def error(self, *args: Any) -> None:
        self._append("error", _render(args))

    def table(self, rows: Iterable[Any]) -> None:
        self._append("table", "\n".join(str(row) for row in rows))

    def clear(self) -> None:
        self._append("clear", "")

    def assert_(self, condition: Any, *args: Any) -> None:
        if not condition:
            self._append("error", _render(("Assertion failed:",) + args))

    def count(self, label: str = "default") -> None:
        with self._lock:
            self._counts[label] = self._counts.get(label, 0) + 1
            current = self._counts[label]
        self._append("count", f"{label}: {current}")

    def time(self, label: str = "default") -> None:
        with self._lock:
            self._timers[label] = time.perf_counter()

    def time_end(self, label: str = "default") -> None:
        with self._lock:
            started = self._timers.pop(label, None)
        if started is not None:
            elapsed_ms = (time.perf_counter() - started) * 1000.0
            self._append("time_end", f"{label}: {elapsed_ms:.3f}ms")

    def print(
        self,
        *args: Any,
        sep: Optional[str] = " ",
        end: Optional[str] = "\n",
        file: Optional[TextIO] = None,
        flush: bool = False,
    ) -> None:
        """Drop-in for the builtin print. Output to stderr is captured as an error."""
        level = "error" if file is sys.stderr else "log"
        message = _render(args, " " if sep is None else sep)
        trailing = "\n" if end is None else end
        # the entry is a line already; keep only non-newline endings
        if trailing != "\n":
            message += trailing
        self._append(level, message)


def replay_logs(
    logs: Iterable[LogEntry],
    stream: Optional[TextIO] = None,
    header: Optional[str] = None,
) -> None:
    """Write captured entries to `stream` (stdout by default), in capture order."""
    out = stream if stream is not None else sys.stdout
    entries = list(logs)
    if not entries:
        return
    if header:
        out.write(f"{header}\n")
    for entry in entries:
        if entry.level == "clear":
            out.write("console.clear() was called\n")
            continue
        prefix = "" if entry.level == "log" else f"[{entry.level}] "
        out.write(f"{prefix}{entry.message}\n")
    out.flush()
