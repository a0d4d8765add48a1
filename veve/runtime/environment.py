# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Interpreter and host checks run before any test file is touched.

veve is written against Python 3.11, so the CLI turns an older interpreter
away with RUNTIME_ERROR rather than letting it surface as a SandboxCrash in
whichever file happens to run first.
"""

import os
import platform
import sys
from typing import NamedTuple

MINIMUM_PYTHON = (3, 11)


class SystemInfo(NamedTuple):
    """What `veve info` reports about the host."""

    python_version: str
    implementation: str
    platform: str
    architecture: str
    hostname: str
    # parallel batch size used when run.max_parallel_tests is unset
    cpu_count: int


def get_python_version() -> tuple[int, int, int]:
    return sys.version_info[:3]


def check_minimum_python() -> None:
    """
    Raises:
        RuntimeError: the running interpreter is older than MINIMUM_PYTHON.
    """
    running = get_python_version()
    if running[:2] < MINIMUM_PYTHON:
        required = ".".join(str(part) for part in MINIMUM_PYTHON)
        raise RuntimeError(
            f"veve needs Python {required} or newer to evaluate test files; "
            f"found {'.'.join(str(part) for part in running)}"
        )


def get_system_info() -> SystemInfo:
    return SystemInfo(
        python_version=platform.python_version(),
        implementation=platform.python_implementation(),
        platform=platform.system(),
        architecture=platform.machine(),
        hostname=platform.node(),
        cpu_count=os.cpu_count() or 4,
    )
