"""Flake statistics: flake rate, Wilson score interval and the flakiness gate.

All functions are pure and never raise on non-negative input; zero-sample
input yields zero rates and a ``(0, 0)`` interval.
"""

import math
from dataclasses import dataclass

from qaai.models.flake import FlakeConfig, FlakeStats

# Two-sided z-scores for the supported confidence levels
_Z_SCORES = {
    0.90: 1.645,
    0.95: 1.96,
    0.99: 2.576,
}


@dataclass(frozen=True)
class Interval:
    lower: float
    upper: float


def z_score(confidence_level: float) -> float:
    """Return the z-score for ``confidence_level``.

    0.95 maps to 1.96; any level not in the table is treated as 99%.
    """
    for level, z in _Z_SCORES.items():
        if math.isclose(level, confidence_level):
            return z
    return _Z_SCORES[0.99]


def flake_rate(passed: int, failed: int, flaky: int) -> float:
    """Percentage of unstable outcomes (failed + flaky) among all outcomes."""
    total = passed + failed + flaky
    if total == 0:
        return 0.0
    return (failed + flaky) / total * 100


def confidence_interval(successes: int, total: int, confidence_level: float = 0.95) -> Interval:
    """Wilson score interval for the binomial proportion ``successes / total``."""
    if total == 0:
        return Interval(0.0, 0.0)

    p = successes / total
    z = z_score(confidence_level)
    z2 = z * z

    denominator = 1 + z2 / total
    center = p + z2 / (2 * total)
    margin = z * math.sqrt((p * (1 - p) + z2 / (4 * total)) / total)

    return Interval(
        lower=max(0.0, (center - margin) / denominator),
        upper=min(1.0, (center + margin) / denominator),
    )


def is_flaky(stats: FlakeStats, config: FlakeConfig | None = None) -> bool:
    """Decide whether a test's outcome history is statistically flaky.

    A test that only passes or only fails is never flaky: a consistently
    failing test is a bug.
    """
    config = config or FlakeConfig()
    unstable = stats.failed + stats.flaky

    if stats.total < config.min_runs:
        return False
    if stats.passed == 0 or unstable < config.min_failures:
        return False
    if flake_rate(stats.passed, stats.failed, stats.flaky) < config.flake_rate_threshold:
        return False

    ci = confidence_interval(unstable, stats.total, config.confidence_level)
    return ci.lower > 0 and ci.upper < 1
