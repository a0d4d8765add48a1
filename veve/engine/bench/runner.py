# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Benchmark runner.

Runs a candidate function over and over and reduces the timings to
BenchmarkMetrics. Two phases:

  1. Warmup: `warmup` calls with the timings thrown away, so first-call
     costs (imports, caches, JIT-ish lazy setup) don't skew the numbers.
  2. Measurement: time one call at a time with perf_counter until either
     `iterations` samples are in or the time budget runs out. Running out of
     time sets timed_out but keeps every sample collected so far; partial
     results are still results.

Sync functions run their whole warmup + measurement loop in a worker thread
so they don't freeze the event loop (and with it every other test file).
Async functions are awaited on the loop, one call at a time.

An exception from the function under test is not swallowed. The caller
(the suite runtime) turns it into a failed outcome.
"""

import time
from dataclasses import dataclass
from typing import Any, Callable

from veve.engine.bench.stats import reduce_samples
from veve.engine.exceptions import BenchmarkConfigurationError
from veve.engine.models import BenchmarkMetrics
from veve.logging.logger import get_logger
from veve.utils.callables import is_async_callable, run_in_thread

logger = get_logger(__name__)


@dataclass(frozen=True)
class BenchmarkOptions:
    """Benchmark knobs. timeout is the measurement-phase budget in milliseconds."""

    iterations: int = 1000
    warmup: int = 10
    timeout: float = 30_000.0
    confidence: float = 0.95


def validate_options(options: BenchmarkOptions) -> BenchmarkOptions:
    """
    Reject options that can't produce a meaningful benchmark.

    Raises:
        BenchmarkConfigurationError: on any invalid field. Nothing is run.
    """
    if not isinstance(options.iterations, int) or options.iterations <= 0:
        raise BenchmarkConfigurationError(
            f"iterations must be a positive integer, got {options.iterations!r}"
        )
    if not 0 < options.confidence < 1:
        raise BenchmarkConfigurationError(
            f"confidence must be strictly between 0 and 1, got {options.confidence!r}"
        )
    if not isinstance(options.warmup, int) or options.warmup < 0:
        raise BenchmarkConfigurationError(
            f"warmup must be a non-negative integer, got {options.warmup!r}"
        )
    if options.timeout <= 0:
        raise BenchmarkConfigurationError(
            f"timeout must be positive, got {options.timeout!r}"
        )
    return options


def _now_ms() -> float:
    return time.perf_counter() * 1000.0


def _sync_loop(fn: Callable[[], Any], options: BenchmarkOptions) -> tuple[list[float], bool]:
    for _ in range(options.warmup):
        fn()

    samples: list[float] = []
    started = _now_ms()
    while len(samples) < options.iterations:
        if _now_ms() - started > options.timeout:
            return samples, True
        begin = _now_ms()
        fn()
        samples.append(_now_ms() - begin)
    return samples, False


async def _async_loop(fn: Callable[[], Any], options: BenchmarkOptions) -> tuple[list[float], bool]:
    for _ in range(options.warmup):
        await fn()

    samples: list[float] = []
    started = _now_ms()
    while len(samples) < options.iterations:
        if _now_ms() - started > options.timeout:
            return samples, True
        begin = _now_ms()
        await fn()
        samples.append(_now_ms() - begin)
    return samples, False


async def run_benchmark(
    fn: Callable[[], Any],
    options: BenchmarkOptions | None = None,
) -> BenchmarkMetrics:
    """
    Benchmark fn and return its metrics.

    Args:
        fn: Zero-argument callable, sync or async.
        options: Benchmark knobs; defaults are used when omitted.

    Returns:
        BenchmarkMetrics over the collected samples. samples == 0 means no
        data was collected (the budget ran out before the first call).

    Raises:
        BenchmarkConfigurationError: invalid options, raised before fn runs.
    """
    options = validate_options(options or BenchmarkOptions())

    if is_async_callable(fn):
        samples, timed_out = await _async_loop(fn, options)
    else:
        samples, timed_out = await run_in_thread(_sync_loop, fn, options, name="veve-bench")

    metrics = reduce_samples(samples, timed_out, options.confidence)

    logger.debug(
        "Benchmark finished",
        extra={
            "samples": metrics.samples,
            "iterations": options.iterations,
            "timed_out": metrics.timed_out,
            "mean_latency_ms": round(metrics.mean_latency, 6),
        },
    )

    return metrics
