# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Subcommand handlers for the veve CLI.

Each function here corresponds to one CLI subcommand and returns an exit
code. Engine diagnostics go through the structured logger on stderr; stdout
carries only what the test files printed (replayed file by file after the
run) and the human-readable summary.
"""

import argparse
import dataclasses
import logging
import sys
from pathlib import Path
from typing import Optional

from veve.cli.exit_codes import (
    CONFIG_ERROR,
    RUNTIME_ERROR,
    SUCCESS,
    TEST_FAILURE,
    USAGE_ERROR,
)
from veve.config.exceptions import ConfigError
from veve.config.loader import default_config, load_config
from veve.config.schema import VeveConfig
from veve.logging.logger import get_logger, set_package_level
from veve.runtime.environment import check_minimum_python


def _load_config(
    args: argparse.Namespace,
    command_name: str,
) -> tuple[int, Optional[VeveConfig], logging.Logger]:
    """
    The shared setup every command needs: check the interpreter, load config,
    apply log settings.

    Returns (exit_code, config, logger). If exit_code is not SUCCESS the
    caller should return it immediately.
    """
    logger = get_logger(f"veve.cli.{command_name}", log_level=args.log_level or "INFO")

    try:
        check_minimum_python()
    except RuntimeError as err:
        logger.error("Unsupported interpreter", extra={"error": str(err)})
        return RUNTIME_ERROR, None, logger

    if args.config is None:
        config = default_config()
        logger.debug("No config provided, running with defaults", extra={"command": command_name})
    else:
        try:
            config = load_config(Path(args.config))
        except ConfigError as err:
            logger.error(
                "Configuration error",
                extra={"command": command_name, "error": str(err)},
            )
            return CONFIG_ERROR, None, logger

    log_level = args.log_level or config.global_config.log_level
    log_file = Path(config.global_config.log_file) if config.global_config.log_file else None
    try:
        set_package_level(log_level, log_file=log_file)
    except ValueError as err:
        logger.error("Configuration error", extra={"command": command_name, "error": str(err)})
        return CONFIG_ERROR, None, logger

    return SUCCESS, config, logger


def handle_run(args: argparse.Namespace) -> int:
    """Execute the given test files, replay their output, report, and exit 0/1."""
    exit_code, config, logger = _load_config(args, "run")
    if exit_code != SUCCESS:
        return exit_code

    if args.timeout is not None and args.timeout <= 0:
        logger.error("--timeout must be positive", extra={"timeout": args.timeout})
        return USAGE_ERROR
    if args.max_concurrency is not None and args.max_concurrency < 1:
        logger.error(
            "--max-concurrency must be at least 1",
            extra={"max_concurrency": args.max_concurrency},
        )
        return USAGE_ERROR

    try:
        from veve.engine.pool.core import Pool
        from veve.engine.reporting.summary import summarize_results
        from veve.engine.reporting.writer import (
            JsonReporter,
            format_results_text,
            format_summary_text,
        )
        from veve.engine.runner.unit import options_from_config
        from veve.engine.sandbox.console import replay_logs

        options = options_from_config(config)
        overrides = {}
        if args.timeout is not None:
            overrides["timeout"] = args.timeout
        if args.max_concurrency is not None:
            overrides["max_concurrency"] = args.max_concurrency
        if overrides:
            options = dataclasses.replace(options, **overrides)

        output = args.output or config.run.output_file
        reporter = JsonReporter(Path(output)) if output else None

        logger.info(
            "Run started",
            extra={
                "files": len(args.files),
                "timeout_ms": options.timeout,
                "max_concurrency": options.max_concurrency,
                "output": output,
            },
        )

        pool = Pool(options=options, reporter=reporter)
        pool_exit = pool.run_sync(args.files)

        for file_path, result in pool.results.items():
            replay_logs(result.logs, stream=sys.stdout, header=f"--- {file_path} ---")

        summary = summarize_results(pool.results)
        sys.stdout.write(format_results_text(pool.results))
        sys.stdout.write(format_summary_text(summary))
        sys.stdout.flush()

        logger.info(
            "Run finished",
            extra={
                "files": summary.files,
                "files_failed": summary.files_failed,
                "execution_errors": summary.execution_errors,
                "exit_code": pool_exit,
            },
        )
        return SUCCESS if pool_exit == 0 else TEST_FAILURE

    except Exception as err:
        logger.error("Run failed", extra={"error": str(err)}, exc_info=True)
        return RUNTIME_ERROR


def handle_info(args: argparse.Namespace) -> int:
    """Display environment and configuration information."""
    exit_code, config, logger = _load_config(args, "info")
    if exit_code != SUCCESS:
        return exit_code

    from veve import __version__
    from veve.runtime.environment import get_system_info

    system_info = get_system_info()

    logger.info(
        "System information",
        extra={
            "veve_version": __version__,
            "python_version": system_info.python_version,
            "implementation": system_info.implementation,
            "platform": system_info.platform,
            "architecture": system_info.architecture,
            "hostname": system_info.hostname,
            "cpu_count": system_info.cpu_count,
            "config": args.config,
            "project_name": config.global_config.project_name,
            "timeout_ms": config.run.timeout_ms,
            "test_timeout_ms": config.run.test_timeout_ms,
            "max_concurrency": config.run.max_concurrency,
        },
    )
    return SUCCESS
