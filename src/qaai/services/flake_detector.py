"""Flake detection over per-test execution history.

A flaky test is one whose outcome changes between executions without a code
change. The verdict comes from :func:`qaai.services.statistics.is_flaky`;
this module adds the windowed history lookup, failure pattern diagnostics
and a human-readable recommendation.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from qaai.models.enums import RiskLevel, TestStatus
from qaai.models.execution import TestExecutionRecord
from qaai.models.flake import (
    Confidence,
    FailurePatterns,
    FlakeAnalysis,
    FlakeConfig,
    FlakeStats,
    FlakeSummary,
    IntervalPercent,
)
from qaai.repositories.execution_repo import ExecutionHistory
from qaai.services.statistics import confidence_interval, flake_rate, is_flaky

logger = logging.getLogger(__name__)

INSUFFICIENT_DATA = "insufficient_data"

HIGH_RISK_RATE = 30.0
MEDIUM_RISK_RATE = 15.0

_UNSTABLE = {TestStatus.FAILED, TestStatus.FLAKY}


def risk_level(rate: float) -> RiskLevel:
    if rate > HIGH_RISK_RATE:
        return RiskLevel.HIGH
    if rate > MEDIUM_RISK_RATE:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def compute_stats(records: list[TestExecutionRecord]) -> FlakeStats:
    counts = {status: 0 for status in TestStatus}
    for record in records:
        if record.status in counts:
            counts[record.status] += 1

    total = len(records)
    durations = sum(record.duration_ms or 0 for record in records)
    return FlakeStats(
        total=total,
        passed=counts[TestStatus.PASSED],
        failed=counts[TestStatus.FAILED],
        flaky=counts[TestStatus.FLAKY],
        skipped=counts[TestStatus.SKIPPED],
        avg_duration_ms=durations / total if total else 0.0,
    )


def _utc_hour(moment: datetime) -> int:
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.hour


def analyze_failure_patterns(records: list[TestExecutionRecord]) -> FailurePatterns:
    """Streak, alternation and hour-of-day diagnostics over ordered records."""
    if len(records) < 2:
        return FailurePatterns(has_pattern=False)

    max_streak = 0
    streak = 0
    for record in records:
        if record.status in _UNSTABLE:
            streak += 1
            max_streak = max(max_streak, streak)
        else:
            streak = 0

    flips = {(TestStatus.PASSED, TestStatus.FAILED), (TestStatus.FAILED, TestStatus.PASSED)}
    alternations = sum(
        1 for prev, curr in zip(records, records[1:]) if (prev.status, curr.status) in flips
    )
    alternation_rate = alternations / (len(records) - 1)

    failures_by_hour: dict[int, int] = {}
    for record in records:
        if record.status in _UNSTABLE:
            hour = _utc_hour(record.created_at)
            failures_by_hour[hour] = failures_by_hour.get(hour, 0) + 1

    return FailurePatterns(
        has_pattern=max_streak > 2 or alternation_rate > 0.5,
        max_consecutive_failures=max_streak,
        alternation_rate=round(alternation_rate, 2),
        time_pattern=failures_by_hour or None,
    )


def generate_recommendation(flaky: bool, rate: float, patterns: FailurePatterns) -> str:
    if not flaky:
        return "Test appears stable. Continue monitoring."

    recommendations = []
    level = risk_level(rate)
    if level is RiskLevel.HIGH:
        recommendations.append("High flake rate detected. Investigate test logic and dependencies.")
    elif level is RiskLevel.MEDIUM:
        recommendations.append("Moderate flake rate. Review test for timing issues or race conditions.")
    else:
        recommendations.append("Low flake rate. Monitor for patterns.")

    if patterns.max_consecutive_failures > 3:
        recommendations.append("Consecutive failures detected. Check for environmental issues.")
    if patterns.alternation_rate > 0.5:
        recommendations.append("Alternating pass/fail pattern suggests timing or state issues.")
    if patterns.time_pattern:
        recommendations.append("Time-based failure pattern detected. Check for time-dependent logic.")

    return " ".join(recommendations)


class FlakeDetector:
    """Flakiness verdicts for single tests and whole projects."""

    def __init__(self, history: ExecutionHistory, config: FlakeConfig | None = None):
        self.history = history
        self.config = config or FlakeConfig()

    async def analyze_test_flakiness(
        self,
        test_case_id: str,
        config: FlakeConfig | None = None,
        now: datetime | None = None,
    ) -> FlakeAnalysis:
        config = config or self.config
        since = (now or datetime.now(timezone.utc)) - timedelta(days=config.time_window_days)
        records = await self.history.records_for_test_case(test_case_id, since)

        if not records:
            return FlakeAnalysis(
                test_case_id=test_case_id,
                is_flaky=False,
                reason=INSUFFICIENT_DATA,
                stats=FlakeStats(),
            )

        stats = compute_stats(records)
        flaky = is_flaky(stats, config)
        rate = flake_rate(stats.passed, stats.failed, stats.flaky)
        ci = confidence_interval(stats.failed + stats.flaky, stats.total, config.confidence_level)
        patterns = analyze_failure_patterns(records)

        return FlakeAnalysis(
            test_case_id=test_case_id,
            is_flaky=flaky,
            flake_rate=round(rate, 2),
            stats=stats,
            confidence=Confidence(
                level=config.confidence_level,
                interval=IntervalPercent(
                    lower=round(ci.lower * 100, 2),
                    upper=round(ci.upper * 100, 2),
                ),
            ),
            patterns=patterns,
            recommendation=generate_recommendation(flaky, rate, patterns),
        )

    async def analyze_project_flakiness(
        self,
        project_id: str,
        config: FlakeConfig | None = None,
        now: datetime | None = None,
    ) -> list[FlakeAnalysis]:
        """Flaky tests of a project, highest flake rate first.

        A test whose history cannot be analyzed is logged and skipped.
        """
        test_cases = await self.history.test_cases_for_project(project_id)

        results = []
        for test_case in test_cases:
            try:
                analysis = await self.analyze_test_flakiness(test_case.test_case_id, config, now)
            except Exception:
                logger.exception("Failed to analyze test %s", test_case.test_case_id)
                continue
            if analysis.is_flaky:
                results.append(
                    analysis.model_copy(update={"title": test_case.title, "suite_id": test_case.suite_id})
                )

        results.sort(key=lambda a: a.flake_rate, reverse=True)
        logger.info("Project %s: %d flaky of %d tests", project_id, len(results), len(test_cases))
        return results

    async def get_flake_summary(
        self,
        project_id: str,
        time_window_days: int | None = None,
        now: datetime | None = None,
    ) -> FlakeSummary:
        """Risk buckets over the windowed per-test flake aggregate."""
        days = time_window_days or self.config.time_window_days
        since = (now or datetime.now(timezone.utc)) - timedelta(days=days)
        rates = await self.history.flaky_test_rates(project_id, since, self.config.min_runs)

        summary = FlakeSummary(total_flaky=len(rates))
        if not rates:
            return summary

        summary.avg_flake_rate = round(sum(r.flake_rate for r in rates) / len(rates), 2)
        for entry in rates:
            level = risk_level(entry.flake_rate)
            if level is RiskLevel.HIGH:
                summary.high_risk += 1
            elif level is RiskLevel.MEDIUM:
                summary.medium_risk += 1
            else:
                summary.low_risk += 1
        return summary
