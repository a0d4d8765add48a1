# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Sample reduction for benchmarks.

Turns a list of per-call latencies (milliseconds) into the numbers a
benchmark report shows: mean, median, p95, population standard deviation,
throughput and a confidence interval around the mean.

The confidence interval uses a t critical value from a small lookup table
keyed on degrees of freedom:

    df > 120  -> 1.96
    df > 60   -> 2.0
    df > 30   -> 2.042
    df > 15   -> 2.131
    otherwise -> 2.262

That table is only right for 95% confidence. Any other level falls back to
the normal approximation, 1.96. It's coarse, but it's monotone in df and
always at least as wide as the normal interval, which is what matters for
"is this change noise or not".

Everything here is a pure function over its inputs.
"""

import math
import time
from typing import Optional, Sequence

from veve.engine.models import BenchmarkMetrics, ConfidenceInterval

_T_TABLE_95: tuple[tuple[int, float], ...] = (
    (120, 1.96),
    (60, 2.0),
    (30, 2.042),
    (15, 2.131),
)
_T_SMALL_SAMPLE_95 = 2.262
_NORMAL_Z = 1.96


def mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def population_std_dev(values: Sequence[float], avg: Optional[float] = None) -> float:
    if not values:
        return 0.0
    if avg is None:
        avg = mean(values)
    return math.sqrt(sum((x - avg) ** 2 for x in values) / len(values))


def percentile(sorted_values: Sequence[float], p: float) -> float:
    """
    Nearest-rank percentile of an already sorted sequence.

    The index is ceil(n * p) - 1, so a fractional rank always rounds up to
    the next sample. p=0.5 over four samples picks the second one; p=0.95
    over ten samples picks the tenth.
    """
    if not sorted_values:
        return 0.0
    index = math.ceil(len(sorted_values) * p) - 1
    index = min(max(index, 0), len(sorted_values) - 1)
    return sorted_values[index]


def t_critical_value(degrees_of_freedom: int, confidence: float) -> float:
    """Look up the t critical value, see the module docstring for the table."""
    if not math.isclose(confidence, 0.95):
        return _NORMAL_Z
    for threshold, value in _T_TABLE_95:
        if degrees_of_freedom > threshold:
            return value
    return _T_SMALL_SAMPLE_95


def confidence_interval(
    avg: float,
    std_dev: float,
    sample_count: int,
    confidence: float,
) -> ConfidenceInterval:
    if sample_count <= 0:
        return ConfidenceInterval()
    t_value = t_critical_value(sample_count - 1, confidence)
    margin = t_value * std_dev / math.sqrt(sample_count)
    return ConfidenceInterval(lower=avg - margin, upper=avg + margin)


def empty_metrics(timed_out: bool = True) -> BenchmarkMetrics:
    """All-zero metrics for a run that collected no samples."""
    return BenchmarkMetrics(
        mean_latency=0.0,
        median_latency=0.0,
        p95_latency=0.0,
        std_dev=0.0,
        ops_per_second=0.0,
        confidence_interval=ConfidenceInterval(),
        samples=0,
        timestamp=time.time(),
        timed_out=timed_out,
    )


def reduce_samples(
    samples: Sequence[float],
    timed_out: bool,
    confidence: float,
) -> BenchmarkMetrics:
    """
    Reduce raw latency samples to BenchmarkMetrics.

    An empty sample list gives empty_metrics with timed_out forced on, since
    the only way to end up with no samples is running out of time.
    """
    if not samples:
        return empty_metrics(timed_out=True)

    ordered = sorted(samples)
    avg = mean(samples)
    std_dev = population_std_dev(samples, avg)

    return BenchmarkMetrics(
        mean_latency=avg,
        median_latency=percentile(ordered, 0.5),
        p95_latency=percentile(ordered, 0.95),
        std_dev=std_dev,
        # A mean of exactly 0 only happens with a clock too coarse to see the call
        ops_per_second=len(samples) / (avg / 1000) if avg > 0 else 0.0,
        confidence_interval=confidence_interval(avg, std_dev, len(samples), confidence),
        samples=len(samples),
        timestamp=time.time(),
        timed_out=timed_out,
    )
