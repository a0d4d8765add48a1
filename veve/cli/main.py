# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
CLI entrypoint for veve.

Every operation is a subcommand of `veve`. The global options (--config,
--log-level) are inherited by every subcommand through argparse's parent
parser mechanism.

Usage:
    veve run tests/math_test.py tests/io_test.py
    veve run tests/*_test.py --max-concurrency 4 --output results.json
    veve info --config veve.yaml
"""

import argparse
import sys
from typing import Optional, Sequence

from veve.cli.commands import handle_info, handle_run
from veve.cli.exit_codes import USAGE_ERROR


def _build_global_parser() -> argparse.ArgumentParser:
    """
    Build the parent parser with global options.

    add_help=False so help text doesn't collide between the parent and the
    subcommand parsers.
    """
    parent = argparse.ArgumentParser(add_help=False)
    parent.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to YAML configuration file.",
    )
    parent.add_argument(
        "--log-level",
        type=str,
        default=None,
        dest="log_level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Engine log verbosity (overrides global.log_level from the config).",
    )
    return parent


def _register_subcommands(
    subparsers: argparse._SubParsersAction,  # type: ignore[type-arg]
    parent: argparse.ArgumentParser,
) -> None:
    run_parser = subparsers.add_parser(
        "run", parents=[parent], help="Execute test files and report the results."
    )
    run_parser.add_argument("files", nargs="+", help="Test files to execute, in order.")
    run_parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Hard per-file timeout in milliseconds (overrides run.timeout_ms).",
    )
    run_parser.add_argument(
        "--max-concurrency",
        type=int,
        default=None,
        dest="max_concurrency",
        help="Max files executing at once (overrides run.max_concurrency).",
    )
    run_parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Write the JSON results document here (overrides run.output_file).",
    )
    run_parser.set_defaults(func=handle_run)

    info_parser = subparsers.add_parser(
        "info", parents=[parent], help="Display environment and config info."
    )
    info_parser.set_defaults(func=handle_info)


def main(argv: Optional[Sequence[str]] = None) -> None:
    """
    Main CLI entrypoint. This is what pyproject.toml's [project.scripts] points to.

    Parses the command line, calls the chosen subcommand's handler and exits
    with its return code. No subcommand means help plus USAGE_ERROR.
    """
    parent = _build_global_parser()

    root_parser = argparse.ArgumentParser(
        prog="veve",
        description="veve: isolated, concurrent test runner.",
        parents=[parent],
    )
    subparsers = root_parser.add_subparsers(dest="command")
    _register_subcommands(subparsers, parent)

    args = root_parser.parse_args(argv)

    if not hasattr(args, "func") or args.func is None:
        root_parser.print_help()
        sys.exit(USAGE_ERROR)

    exit_code = args.func(args)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
