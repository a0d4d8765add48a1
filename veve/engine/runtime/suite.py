# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
The registration API a test file sees.

One SuiteRuntime is created per sandbox and its bound methods are injected as
globals, so a test file reads like this:

    should("math helpers")

    @before_each
    def reset():
        cache.clear()

    @it("adds", retry=2)
    def _():
        assert add(1, 2) == 3

    each([(1, 1, 2), (2, 3, 5)], "add(%d, %d) == %d", lambda a, b, c: ...)

    run()

Every registration function that takes a body can be called with the body
or used as a decorator. Registration is synchronous top-level code; run()
only records that the file wants its tests executed. The execution unit
awaits execute() after the whole file has been evaluated.
"""

import dataclasses
import functools
from typing import Any, Callable, Iterable, Optional

from veve.engine.exceptions import MalformedReport, RegistrationError
from veve.engine.models import (
    HOOK_KINDS,
    HookDescriptor,
    TestDescriptor,
    TestOptions,
    TestReport,
)
from veve.engine.runtime.executor import RuntimeDefaults, SuiteExecutor
from veve.logging.logger import get_logger

logger = get_logger(__name__)

_OPTION_NAMES = frozenset(f.name for f in dataclasses.fields(TestOptions))


def _noop() -> None:
    return None


def _format_description(template: str, args: tuple[Any, ...]) -> str:
    """Fill an each() description from one table row: {} fields or % placeholders."""
    if "{" in template:
        try:
            return template.format(*args)
        except (IndexError, KeyError, ValueError):
            return template
    if "%" in template:
        try:
            return template % args
        except (TypeError, ValueError):
            return template
    return template


def build_options(options: dict[str, Any]) -> TestOptions:
    """
    Validate keyword options from a registration call into TestOptions.

    Raises:
        RegistrationError: unknown option names or out-of-range values.
    """
    unknown = set(options) - _OPTION_NAMES
    if unknown:
        raise RegistrationError(f"Unknown test option(s): {', '.join(sorted(unknown))}")

    built = TestOptions(**options)
    if not isinstance(built.retry, int) or isinstance(built.retry, bool) or built.retry < 0:
        raise RegistrationError(f"retry must be a non-negative integer, got {built.retry!r}")
    if built.timeout is not None and built.timeout <= 0:
        raise RegistrationError(f"timeout must be positive, got {built.timeout!r}")
    return built


class SuiteRuntime:
    """
    Collects one file's tests and hooks, then runs them once.

    Tests land in one of four lists depending on how they were registered:
    regular, sequential, only, and sequential-only. Hooks are keyed by kind;
    registering the same kind twice replaces the first one.
    """

    def __init__(
        self,
        description: str = "Unnamed suite",
        defaults: Optional[RuntimeDefaults] = None,
    ) -> None:
        self.description = description
        self.defaults = defaults or RuntimeDefaults()
        self.tests: list[TestDescriptor] = []
        self.sequence_tests: list[TestDescriptor] = []
        self.only_tests: list[TestDescriptor] = []
        self.sequence_only_tests: list[TestDescriptor] = []
        self.hooks: dict[str, HookDescriptor] = {}
        self.run_requested = False
        self._started = False

    @property
    def registered_count(self) -> int:
        return (
            len(self.tests)
            + len(self.sequence_tests)
            + len(self.only_tests)
            + len(self.sequence_only_tests)
        )

    def _ensure_open(self) -> None:
        if self._started:
            raise RegistrationError("Cannot register tests after the suite has started running")

    def _add(
        self,
        description: str,
        fn: Optional[Callable[..., Any]],
        options: dict[str, Any],
        *,
        only: bool = False,
        sequential: bool = False,
    ) -> Any:
        if fn is None:
            def decorator(body: Callable[..., Any]) -> Callable[..., Any]:
                self._add(description, body, options, only=only, sequential=sequential)
                return body

            return decorator

        self._ensure_open()
        if not callable(fn):
            raise RegistrationError(f"Test body for {description!r} is not callable")

        built = build_options(options)
        if sequential and not built.sequential:
            built = dataclasses.replace(built, sequential=True)

        descriptor = TestDescriptor(description=str(description), body=fn, options=built)
        if only:
            target = self.sequence_only_tests if built.sequential else self.only_tests
        else:
            target = self.sequence_tests if built.sequential else self.tests
        target.append(descriptor)
        return fn

    # -- tests -------------------------------------------------------------

    def it(self, description: str, fn: Optional[Callable[..., Any]] = None, **options: Any) -> Any:
        return self._add(description, fn, options)

    def sequence(self, description: str, fn: Optional[Callable[..., Any]] = None, **options: Any) -> Any:
        return self._add(description, fn, options, sequential=True)

    def only(self, description: str, fn: Optional[Callable[..., Any]] = None, **options: Any) -> Any:
        return self._add(description, fn, options, only=True)

    def skip(self, description: str, fn: Optional[Callable[..., Any]] = None, **options: Any) -> Any:
        return self._add(description, fn, {**options, "skip": True})

    def todo(self, description: str, **options: Any) -> None:
        self._add(description, _noop, {**options, "todo": True})

    def fail(self, description: str, fn: Optional[Callable[..., Any]] = None, **options: Any) -> Any:
        """Register a soft-fail test: its failure is recorded but doesn't fail the suite."""
        return self._add(description, fn, {**options, "soft_fail": True})

    def bench(self, description: str, fn: Optional[Callable[..., Any]] = None, **options: Any) -> Any:
        return self._add(description, fn, {**options, "bench": True})

    def retry(
        self,
        count: int,
        description: str,
        fn: Optional[Callable[..., Any]] = None,
        **options: Any,
    ) -> Any:
        return self._add(description, fn, {**options, "retry": count})

    def timeout(
        self,
        timeout_ms: float,
        description: str,
        fn: Optional[Callable[..., Any]] = None,
        **options: Any,
    ) -> Any:
        return self._add(description, fn, {**options, "timeout": timeout_ms})

    def it_if(
        self,
        condition: Any,
        description: str,
        fn: Optional[Callable[..., Any]] = None,
        **options: Any,
    ) -> Any:
        return self._add(description, fn, {**options, "condition": condition})

    def each(
        self,
        table: Iterable[Any],
        description: str,
        fn: Optional[Callable[..., Any]] = None,
        **options: Any,
    ) -> Any:
        """Register one test per row. Rows that aren't tuples or lists are passed as a single argument."""
        if fn is None:
            def decorator(body: Callable[..., Any]) -> Callable[..., Any]:
                self.each(table, description, body, **options)
                return body

            return decorator

        for row in table:
            args = tuple(row) if isinstance(row, (tuple, list)) else (row,)
            self._add(
                _format_description(description, args),
                functools.partial(fn, *args),
                options,
            )
        return fn

    def should(self, description: str) -> None:
        self.description = str(description)

    # -- hooks -------------------------------------------------------------

    def _hook(self, kind: str, fn: Optional[Callable[..., Any]], options: dict[str, Any]) -> Any:
        if fn is None:
            def decorator(body: Callable[..., Any]) -> Callable[..., Any]:
                self._hook(kind, body, options)
                return body

            return decorator

        self._ensure_open()
        if not callable(fn):
            raise RegistrationError(f"{kind} hook is not callable")
        if kind in self.hooks:
            logger.debug("Hook replaced", extra={"kind": kind, "suite": self.description})
        self.hooks[kind] = HookDescriptor(kind=kind, body=fn, options=build_options(options))
        return fn

    def before_all(self, fn: Optional[Callable[..., Any]] = None, **options: Any) -> Any:
        return self._hook("before_all", fn, options)

    def before_each(self, fn: Optional[Callable[..., Any]] = None, **options: Any) -> Any:
        return self._hook("before_each", fn, options)

    def after_all(self, fn: Optional[Callable[..., Any]] = None, **options: Any) -> Any:
        return self._hook("after_all", fn, options)

    def after_each(self, fn: Optional[Callable[..., Any]] = None, **options: Any) -> Any:
        return self._hook("after_each", fn, options)

    # -- running -----------------------------------------------------------

    def run(self) -> None:
        """Called by the test file, last. Marks the suite as ready to execute."""
        if self.run_requested:
            raise RegistrationError("run() was already called for this file")
        self.run_requested = True

    async def execute(self) -> TestReport:
        """
        Execute every registered test once and return the report.

        Raises:
            MalformedReport: the file never called run(), so there is no
                report to produce.
            RegistrationError: execute() was already called.
        """
        if not self.run_requested:
            raise MalformedReport("No report produced: call run() at the end of the test file")
        if self._started:
            raise RegistrationError("Suite has already been executed")
        self._started = True

        executor = SuiteExecutor(
            description=self.description,
            tests=self.tests,
            sequence_tests=self.sequence_tests,
            only_tests=self.only_tests,
            sequence_only_tests=self.sequence_only_tests,
            hooks=self.hooks,
            defaults=self.defaults,
        )
        return await executor.run()

    def api(self) -> dict[str, Callable[..., Any]]:
        """The registration functions, bound to this runtime, keyed by their global names."""
        names = (
            "it", "bench", "each", "sequence", "only", "skip", "todo", "retry",
            "timeout", "it_if", "fail", "should", "run", *HOOK_KINDS,
        )
        return {name: getattr(self, name) for name in names}
