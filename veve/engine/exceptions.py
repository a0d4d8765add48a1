# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Exceptions raised by the execution engine.

Only some of these ever reach a caller. Test and hook failures are converted
into outcomes inside the runtime; file-level failures (compile errors, crashes
during registration, file timeouts, malformed reports) are converted into a
PoolResult's execution_error. The classes exist so those conversions, and the
people reading the results, can tell which kind of failure they're looking at.
"""


class VeveError(Exception):
    """Base for everything the engine raises on purpose."""


class BenchmarkConfigurationError(VeveError):
    """Invalid benchmark options. Raised before the function is ever called."""


class RegistrationError(VeveError):
    """A test file used the registration API incorrectly (bad options, late registration)."""


class CompileError(VeveError):
    """
    The compile service could not produce runnable code for a file.

    This is a build error, not a test failure: nothing in the file ran.
    """

    def __init__(self, file_path: str, message: str) -> None:
        super().__init__(f"Failed to compile {file_path}: {message}")
        self.file_path = file_path


class SandboxCrash(VeveError):
    """An exception escaped while the test file's top-level code was being evaluated."""


class ExecutionTimeout(VeveError):
    """A whole file exceeded its hard timeout. The sandbox was abandoned."""

    def __init__(self, file_path: str, timeout_ms: float) -> None:
        super().__init__(f"{file_path} exceeded {timeout_ms:g} ms")
        self.file_path = file_path
        self.timeout_ms = timeout_ms


class TestTimeout(VeveError):
    """A single test or hook attempt lost its race against its own timeout."""

    __test__ = False  # not a pytest test class

    def __init__(self, description: str, timeout_ms: float) -> None:
        super().__init__(f"{description} exceeded {timeout_ms:g} ms")
        self.description = description
        self.timeout_ms = timeout_ms


class MalformedReport(VeveError):
    """The runtime handed back something that isn't a TestReport. Never trusted."""
