# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Tests for per-sandbox output capture and replay.
"""

import io
import sys
import threading

from veve.engine.sandbox.console import Console, replay_logs


class TestCapture:
    def test_levels_are_recorded_in_order(self) -> None:
        console = Console()
        console.log("a", 1)
        console.info("b")
        console.warn("c")
        console.error("d")

        assert [(e.level, e.message) for e in console.logs] == [
            ("log", "a 1"),
            ("info", "b"),
            ("warn", "c"),
            ("error", "d"),
        ]

    def test_message_is_rendered_at_call_time(self) -> None:
        console = Console()
        items = [1]
        console.log(items)
        items.append(2)
        assert console.logs[0].message == "[1]"

    def test_print_respects_sep_and_stderr(self) -> None:
        console = Console()
        console.print("x", "y", sep="-")
        console.print("oops", file=sys.stderr)
        assert console.logs[0].message == "x-y"
        assert console.logs[0].level == "log"
        assert console.logs[1].level == "error"

    def test_print_keeps_non_newline_end(self) -> None:
        console = Console()
        console.print("no newline", end="")
        console.print("dots", end="...")
        assert console.logs[0].message == "no newline"
        assert console.logs[1].message == "dots..."

    def test_count_and_assert(self) -> None:
        console = Console()
        console.count("hits")
        console.count("hits")
        console.assert_(True, "never shown")
        console.assert_(False, "shown")

        messages = [e.message for e in console.logs]
        assert messages == ["hits: 1", "hits: 2", "Assertion failed: shown"]

    def test_time_end_without_time_is_ignored(self) -> None:
        console = Console()
        console.time_end("missing")
        console.time("t")
        console.time_end("t")
        assert len(console.logs) == 1
        assert console.logs[0].message.startswith("t: ")

    def test_logs_is_a_snapshot(self) -> None:
        console = Console()
        console.log("one")
        snapshot = console.logs
        console.log("two")
        assert len(snapshot) == 1

    def test_threads_can_log_concurrently(self) -> None:
        console = Console()

        def spam() -> None:
            for _ in range(200):
                console.log("x")

        threads = [threading.Thread(target=spam) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        assert len(console.logs) == 800


class TestReplay:
    def test_replay_writes_header_and_prefixes(self) -> None:
        console = Console()
        console.log("plain")
        console.error("bad")
        stream = io.StringIO()

        replay_logs(console.logs, stream=stream, header="--- file.py ---")

        assert stream.getvalue() == "--- file.py ---\nplain\n[error] bad\n"

    def test_nothing_written_for_empty_logs(self) -> None:
        stream = io.StringIO()
        replay_logs((), stream=stream, header="--- empty ---")
        assert stream.getvalue() == ""

    def test_clear_is_replayed_as_a_note(self) -> None:
        console = Console()
        console.clear()
        stream = io.StringIO()
        replay_logs(console.logs, stream=stream)
        assert "clear" in stream.getvalue()
