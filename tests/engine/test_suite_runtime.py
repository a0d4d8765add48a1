# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Tests for the registration API a test file sees.

These exercise SuiteRuntime directly, without a sandbox: which list each
registration lands in, option validation, the decorator forms, each()
expansion, hook replacement, and the run()/execute() handshake.
"""

import asyncio

import pytest

from veve.engine.exceptions import MalformedReport, RegistrationError
from veve.engine.runtime.suite import SuiteRuntime, build_options


def _noop() -> None:
    pass


class TestRegistrationLists:
    def test_it_goes_to_parallel_list(self) -> None:
        runtime = SuiteRuntime()
        runtime.it("a", _noop)
        assert [t.description for t in runtime.tests] == ["a"]
        assert runtime.registered_count == 1

    def test_sequence_goes_to_sequential_list(self) -> None:
        runtime = SuiteRuntime()
        runtime.sequence("a", _noop)
        assert runtime.tests == []
        assert [t.description for t in runtime.sequence_tests] == ["a"]
        assert runtime.sequence_tests[0].options.sequential is True

    def test_sequential_option_on_it(self) -> None:
        runtime = SuiteRuntime()
        runtime.it("a", _noop, sequential=True)
        assert len(runtime.sequence_tests) == 1

    def test_only_lists(self) -> None:
        runtime = SuiteRuntime()
        runtime.only("a", _noop)
        runtime.only("b", _noop, sequential=True)
        assert [t.description for t in runtime.only_tests] == ["a"]
        assert [t.description for t in runtime.sequence_only_tests] == ["b"]

    def test_shorthands_set_options(self) -> None:
        runtime = SuiteRuntime()
        runtime.skip("skipped", _noop)
        runtime.todo("later")
        runtime.fail("flaky", _noop)
        runtime.bench("fast", _noop, iterations=10)
        runtime.retry(3, "retried", _noop)
        runtime.timeout(50, "bounded", _noop)
        runtime.it_if(False, "conditional", _noop)

        options = {t.description: t.options for t in runtime.tests}
        assert options["skipped"].skip is True
        assert options["later"].todo is True
        assert options["flaky"].soft_fail is True
        assert options["fast"].bench is True
        assert options["fast"].iterations == 10
        assert options["retried"].retry == 3
        assert options["bounded"].timeout == 50
        assert options["conditional"].condition is False


class TestDecoratorForm:
    def test_it_as_decorator_returns_body(self) -> None:
        runtime = SuiteRuntime()

        @runtime.it("decorated", retry=1)
        def body() -> None:
            pass

        assert callable(body)
        assert runtime.tests[0].body is body
        assert runtime.tests[0].options.retry == 1

    def test_skip_as_decorator_keeps_body(self) -> None:
        runtime = SuiteRuntime()

        @runtime.skip("not now")
        def body() -> None:
            pass

        assert runtime.tests[0].body is body
        assert runtime.tests[0].options.skip is True

    def test_hook_as_bare_decorator(self) -> None:
        runtime = SuiteRuntime()

        @runtime.before_each
        def setup() -> None:
            pass

        assert runtime.hooks["before_each"].body is setup


class TestEach:
    def test_one_test_per_row_with_formatted_description(self) -> None:
        runtime = SuiteRuntime()
        runtime.each([(1, 2, 3), (2, 3, 5)], "add(%d, %d) == %d", lambda a, b, c: None)
        assert [t.description for t in runtime.tests] == ["add(1, 2) == 3", "add(2, 3) == 5"]

    def test_brace_template(self) -> None:
        runtime = SuiteRuntime()
        runtime.each(["x", "y"], "row {}", lambda value: None)
        assert [t.description for t in runtime.tests] == ["row x", "row y"]

    def test_rows_are_bound_as_arguments(self) -> None:
        seen = []
        runtime = SuiteRuntime()
        runtime.each([(1, 2)], "pair", lambda a, b: seen.append((a, b)))
        runtime.tests[0].body()
        assert seen == [(1, 2)]

    def test_each_as_decorator(self) -> None:
        runtime = SuiteRuntime()

        @runtime.each([1, 2, 3], "value {}")
        def check(value: int) -> None:
            assert value > 0

        assert len(runtime.tests) == 3

    def test_bad_template_falls_back_to_raw_description(self) -> None:
        runtime = SuiteRuntime()
        runtime.each([(1,)], "needs two %d %d", lambda a: None)
        assert runtime.tests[0].description == "needs two %d %d"


class TestOptionValidation:
    def test_unknown_option_rejected(self) -> None:
        with pytest.raises(RegistrationError, match="Unknown test option"):
            build_options({"retries": 2})

    def test_negative_retry_rejected(self) -> None:
        runtime = SuiteRuntime()
        with pytest.raises(RegistrationError, match="retry"):
            runtime.retry(-1, "bad", _noop)

    def test_non_positive_timeout_rejected(self) -> None:
        runtime = SuiteRuntime()
        with pytest.raises(RegistrationError, match="timeout"):
            runtime.timeout(0, "bad", _noop)

    def test_non_callable_body_rejected(self) -> None:
        runtime = SuiteRuntime()
        with pytest.raises(RegistrationError, match="not callable"):
            runtime.it("bad", "not a function")  # type: ignore[arg-type]


class TestHooks:
    def test_second_registration_replaces_first(self) -> None:
        runtime = SuiteRuntime()

        def first() -> None:
            pass

        def second() -> None:
            pass

        runtime.before_all(first)
        runtime.before_all(second)
        assert runtime.hooks["before_all"].body is second

    def test_should_sets_description(self) -> None:
        runtime = SuiteRuntime()
        runtime.should("math helpers")
        assert runtime.description == "math helpers"


class TestRunHandshake:
    def test_execute_without_run_is_malformed(self) -> None:
        runtime = SuiteRuntime()
        runtime.it("a", _noop)
        with pytest.raises(MalformedReport, match="run\\(\\)"):
            asyncio.run(runtime.execute())

    def test_run_twice_rejected(self) -> None:
        runtime = SuiteRuntime()
        runtime.run()
        with pytest.raises(RegistrationError):
            runtime.run()

    def test_no_registration_after_execution_started(self) -> None:
        runtime = SuiteRuntime()
        runtime.it("a", _noop)
        runtime.run()
        asyncio.run(runtime.execute())
        with pytest.raises(RegistrationError):
            runtime.it("late", _noop)

    def test_execute_only_once(self) -> None:
        runtime = SuiteRuntime()
        runtime.run()
        asyncio.run(runtime.execute())
        with pytest.raises(RegistrationError):
            asyncio.run(runtime.execute())

    def test_empty_suite_passes(self) -> None:
        runtime = SuiteRuntime(description="empty")
        runtime.run()
        report = asyncio.run(runtime.execute())
        assert report.status == "passed"
        assert report.stats.total == 0
        assert report.description == "empty"

    def test_api_exposes_bound_names(self) -> None:
        runtime = SuiteRuntime()
        api = runtime.api()
        for name in ("it", "bench", "each", "only", "skip", "todo", "run", "before_all", "after_each"):
            assert name in api
        api["it"]("via api", _noop)
        assert runtime.tests[0].description == "via api"
