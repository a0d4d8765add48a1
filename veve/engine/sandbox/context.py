# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
The injection table that becomes a sandbox's global namespace.

Every test file is evaluated in a brand-new dict of globals built from an
explicit, enumerated table:

  - process:   a frozen snapshot of env, argv, cwd and platform. A copy, not
               a live view, so one file changing os.environ doesn't leak
               into what another file sees through `process`.
  - timers:    sleep, monotonic, perf_counter. sleep blocks when called from
               a sync body (which runs in its own thread) and returns an
               awaitable when called on the event loop, so both
               `sleep(1)` and `await sleep(1)` do what they read as.
  - output:    console and print, both bound to the file's own Console
  - mocks:     Fn and spy_on. Spies made through the injected spy_on are
               tracked and restored when the sandbox is discarded.
  - extras:    whatever the caller passed as extra_globals
  - the registration API, bound to the file's one SuiteRuntime

The namespace is discarded after one execution; nothing is reused across
files. This is fault containment, not a security boundary: imports, the
filesystem and the real os module are all still reachable.
"""

import asyncio
import builtins
import os
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Awaitable, Mapping, Optional

from veve.engine.runtime.suite import SuiteRuntime
from veve.engine.sandbox.console import Console
from veve.engine.sandbox.mocks import Fn, Spy, spy_on


@dataclass(frozen=True)
class ProcessSnapshot:
    """Read-only copy of the host process metadata a test file may inspect."""

    env: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    argv: tuple[str, ...] = ()
    cwd: str = ""
    platform: str = ""

    @classmethod
    def capture(cls) -> "ProcessSnapshot":
        return cls(
            env=MappingProxyType(dict(os.environ)),
            argv=tuple(sys.argv),
            cwd=os.getcwd(),
            platform=sys.platform,
        )


def sleep(seconds: float) -> Optional[Awaitable[None]]:
    """Sleep for `seconds`: blocking off the loop, awaitable on it."""
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        time.sleep(seconds)
        return None
    return asyncio.sleep(seconds)


class SandboxContext:
    """
    Builds the globals for one test file's evaluation.

    Core entries always win over extra_globals, so a caller can't
    accidentally replace `run` or `console` with something else.
    """

    def __init__(
        self,
        file_path: str,
        runtime: SuiteRuntime,
        console: Console,
        process: Optional[ProcessSnapshot] = None,
        extra_globals: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.file_path = file_path
        self.runtime = runtime
        self.console = console
        self.process = process or ProcessSnapshot.capture()
        self.extra_globals = dict(extra_globals or {})
        self.spies: list[Spy] = []

    def spy_on(self, target: Any, name: str) -> Spy:
        spy = spy_on(target, name)
        self.spies.append(spy)
        return spy

    def restore_spies(self) -> int:
        """Undo every spy this sandbox installed, newest first. Returns how many."""
        count = len(self.spies)
        while self.spies:
            self.spies.pop().restore()
        return count

    def injection_table(self) -> dict[str, Any]:
        table: dict[str, Any] = {
            "process": self.process,
            "sleep": sleep,
            "monotonic": time.monotonic,
            "perf_counter": time.perf_counter,
            "console": self.console,
            "print": self.console.print,
            "Fn": Fn,
            "spy_on": self.spy_on,
        }
        table.update(self.runtime.api())
        return table

    def build_namespace(self) -> dict[str, Any]:
        path = Path(self.file_path)
        namespace: dict[str, Any] = {
            "__builtins__": builtins,
            "__name__": f"veve_sandbox.{path.stem}",
            "__file__": str(path),
            "__doc__": None,
        }
        namespace.update(self.extra_globals)
        namespace.update(self.injection_table())
        return namespace
