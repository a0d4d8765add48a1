# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
CLI smoke tests.

CLI tests must verify:
  - commands execute
  - exit codes are correct
  - help text exists

We use subprocess to test the actual CLI entrypoint the way a user would.
This catches issues that unit tests miss, like broken imports or entrypoint
registration.
"""

import json
import subprocess
import sys
from pathlib import Path
from typing import Callable

import pytest

WriteFile = Callable[[str, str], str]


def _run_cli(*args: str) -> subprocess.CompletedProcess[str]:
    """Run `veve` with the given arguments and capture output."""
    return subprocess.run(
        [sys.executable, "-m", "veve.cli.main", *args],
        capture_output=True,
        text=True,
        timeout=60,
    )


class TestHelpTexts:
    @pytest.mark.parametrize("subcommand", ["run", "info"])
    def test_subcommand_help_exits_zero(self, subcommand: str) -> None:
        result = _run_cli(subcommand, "--help")
        assert result.returncode == 0
        assert "usage" in result.stdout.lower()

    def test_root_help_exits_with_usage_error(self) -> None:
        result = _run_cli()
        assert result.returncode == 4


class TestInfo:
    def test_info_runs_without_config(self) -> None:
        result = _run_cli("info")
        assert result.returncode == 0
        assert "System information" in result.stderr

    def test_log_level_option_is_accepted(self) -> None:
        result = _run_cli("info", "--log-level", "DEBUG")
        assert result.returncode == 0

    def test_nonexistent_config_returns_config_error(self) -> None:
        result = _run_cli("info", "--config", "/nonexistent/path.yaml")
        assert result.returncode == 2

    def test_invalid_config_returns_config_error(self, invalid_config_file: Path) -> None:
        result = _run_cli("info", "--config", str(invalid_config_file))
        assert result.returncode == 2

    def test_valid_config_is_accepted(self, tmp_config_file: Path) -> None:
        result = _run_cli("info", "--config", str(tmp_config_file))
        assert result.returncode == 0


class TestRun:
    def test_passing_file_exits_zero_and_replays_output(self, write_test_file: WriteFile) -> None:
        path = write_test_file("hello_test.py", """\
            should("greeting")

            @it("says hello")
            def _():
                print("hello from the sandbox")

            run()
        """)

        result = _run_cli("run", path)

        assert result.returncode == 0
        assert "hello from the sandbox" in result.stdout
        assert f"PASS {path}" in result.stdout
        assert "VEVE RUN SUMMARY" in result.stdout

    def test_failing_file_exits_one(self, write_test_file: WriteFile) -> None:
        ok = write_test_file("ok_test.py", "it('fine', lambda: None)\nrun()\n")
        bad = write_test_file("bad_test.py", "raise RuntimeError('broken file')\n")

        result = _run_cli("run", ok, bad)

        assert result.returncode == 1
        assert f"ERROR {bad}" in result.stdout
        assert "broken file" in result.stdout

    def test_output_option_writes_results(
        self, write_test_file: WriteFile, tmp_path: Path
    ) -> None:
        path = write_test_file("json_test.py", "it('fine', lambda: None)\nrun()\n")
        output = tmp_path / "out" / "results.json"

        result = _run_cli("run", path, "--output", str(output))

        assert result.returncode == 0
        document = json.loads(output.read_text(encoding="utf-8"))
        assert document["summary"]["files"] == 1
        assert document["results"][0]["file_path"] == path

    def test_timeout_option(self, write_test_file: WriteFile) -> None:
        path = write_test_file("hang_test.py", """\
            @it("hangs")
            async def _():
                await sleep(30)

            run()
        """)

        result = _run_cli("run", path, "--timeout", "300")

        assert result.returncode == 1
        assert "exceeded 300 ms" in result.stdout

    def test_non_positive_timeout_is_usage_error(self, write_test_file: WriteFile) -> None:
        path = write_test_file("any_test.py", "run()\n")
        result = _run_cli("run", path, "--timeout", "0")
        assert result.returncode == 4

    def test_config_file_is_applied(self, write_test_file: WriteFile, tmp_path: Path) -> None:
        config = tmp_path / "veve.yaml"
        config.write_text('run:\n  extra_globals:\n    STAGE: "ci"\n', encoding="utf-8")
        path = write_test_file("stage_test.py", """\
            @it("sees STAGE")
            def _():
                assert STAGE == "ci"

            run()
        """)

        result = _run_cli("run", path, "--config", str(config))
        assert result.returncode == 0
