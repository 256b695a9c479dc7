"""Tests for flake detection over execution history."""

from datetime import datetime, timedelta, timezone

import pytest

from qaai.models.enums import RiskLevel
from qaai.models.execution import TestCaseRef, TestExecutionRecord
from qaai.models.flake import FailurePatterns, FlakeConfig
from qaai.repositories.execution_repo import ExecutionHistoryRepository
from qaai.services.flake_detector import (
    INSUFFICIENT_DATA,
    FlakeDetector,
    analyze_failure_patterns,
    compute_stats,
    generate_recommendation,
    risk_level,
)

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def _records(*statuses, start=NOW):
    return [
        TestExecutionRecord(
            test_case_id="tc_1",
            run_id=f"run_{i}",
            status=status,
            duration_ms=100 * (i + 1),
            created_at=start + timedelta(hours=i),
        )
        for i, status in enumerate(statuses)
    ]


async def _seed_test(history, statuses, title="Login works"):
    suite_id = await history.suite()
    test_case_id = await history.test_case(suite_id, title=title)
    await history.outcomes(test_case_id, statuses, now=NOW)
    return test_case_id


def test_risk_levels():
    assert risk_level(40.0) is RiskLevel.HIGH
    assert risk_level(30.0) is RiskLevel.MEDIUM
    assert risk_level(20.0) is RiskLevel.MEDIUM
    assert risk_level(15.0) is RiskLevel.LOW


def test_compute_stats_counts_and_average():
    stats = compute_stats(_records("passed", "failed", "flaky", "skipped"))
    assert stats.total == 4
    assert stats.passed == 1
    assert stats.failed == 1
    assert stats.flaky == 1
    assert stats.skipped == 1
    assert stats.avg_duration_ms == 250.0


def test_patterns_need_two_records():
    assert analyze_failure_patterns(_records("failed")) == FailurePatterns(has_pattern=False)


def test_patterns_streak():
    patterns = analyze_failure_patterns(_records("passed", "failed", "failed", "flaky", "passed"))
    assert patterns.max_consecutive_failures == 3
    assert patterns.has_pattern is True
    assert patterns.alternation_rate == 0.25


def test_patterns_hour_histogram_in_utc():
    start = datetime(2026, 3, 10, 9, 0, tzinfo=timezone(timedelta(hours=2)))
    patterns = analyze_failure_patterns(_records("failed", "passed", "failed", start=start))
    assert patterns.time_pattern == {7: 1, 9: 1}


def test_recommendation_for_stable_test():
    assert generate_recommendation(False, 50.0, FailurePatterns()) == "Test appears stable. Continue monitoring."


def test_recommendation_combines_findings():
    patterns = FailurePatterns(has_pattern=True, max_consecutive_failures=4, alternation_rate=0.1)
    text = generate_recommendation(True, 20.0, patterns)
    assert text.startswith("Moderate flake rate.")
    assert "Consecutive failures detected" in text
    assert "Alternating" not in text


@pytest.mark.asyncio
async def test_alternating_history_is_flaky(history, session_factory):
    test_case_id = await _seed_test(history, ["passed", "failed", "passed", "failed", "passed"])

    async with session_factory() as session:
        detector = FlakeDetector(ExecutionHistoryRepository(session))
        analysis = await detector.analyze_test_flakiness(test_case_id, now=NOW)

    assert analysis.is_flaky is True
    assert analysis.flake_rate == 40.0
    assert analysis.stats.total == 5
    assert analysis.patterns.alternation_rate == 1.0
    assert analysis.patterns.max_consecutive_failures == 1
    assert analysis.recommendation.startswith("High flake rate detected.")
    assert "Alternating pass/fail pattern" in analysis.recommendation
    assert analysis.confidence.level == 0.95
    assert 0 < analysis.confidence.interval.lower < 40.0 < analysis.confidence.interval.upper < 100


@pytest.mark.asyncio
async def test_no_history_is_insufficient_data(history, session_factory):
    suite_id = await history.suite()
    test_case_id = await history.test_case(suite_id)

    async with session_factory() as session:
        analysis = await FlakeDetector(ExecutionHistoryRepository(session)).analyze_test_flakiness(
            test_case_id, now=NOW
        )

    assert analysis.is_flaky is False
    assert analysis.reason == INSUFFICIENT_DATA
    assert analysis.stats.total == 0
    assert analysis.confidence is None


@pytest.mark.asyncio
async def test_window_excludes_old_records(history, session_factory):
    test_case_id = await _seed_test(history, ["failed", "failed", "passed"])

    async with session_factory() as session:
        detector = FlakeDetector(ExecutionHistoryRepository(session))
        # Window starts exactly at the newest record
        narrow = await detector.analyze_test_flakiness(
            test_case_id, FlakeConfig(time_window_days=1), now=NOW + timedelta(hours=23)
        )

    assert narrow.stats.total == 1
    assert narrow.stats.passed == 1


@pytest.mark.asyncio
async def test_flaky_rates_window_includes_its_start(history, session_factory):
    await history.project()
    statuses = ["failed", "passed", "failed", "passed", "failed", "passed"]
    test_case_id = await _seed_test(history, statuses)
    oldest = NOW - timedelta(hours=len(statuses))

    async with session_factory() as session:
        repo = ExecutionHistoryRepository(session)
        at_edge = await repo.flaky_test_rates("proj_1", since=oldest, min_runs=5)
        past_edge = await repo.flaky_test_rates("proj_1", since=oldest + timedelta(seconds=1), min_runs=5)

    assert [(r.test_case_id, r.total_runs) for r in at_edge] == [(test_case_id, 6)]
    assert past_edge == []


@pytest.mark.asyncio
async def test_project_analysis_sorted_and_filtered(history, session_factory):
    await history.project()
    worst = await _seed_test(history, ["failed", "passed", "failed", "passed", "failed", "passed"], "Checkout")
    mild = await _seed_test(history, ["failed", "passed", "passed", "failed", "passed", "passed"], "Search")
    await _seed_test(history, ["passed"] * 6, "Home page")

    async with session_factory() as session:
        flaky = await FlakeDetector(ExecutionHistoryRepository(session)).analyze_project_flakiness("proj_1", now=NOW)

    assert [a.test_case_id for a in flaky] == [worst, mild]
    assert flaky[0].title == "Checkout"
    assert flaky[0].suite_id is not None
    assert flaky[0].flake_rate >= flaky[1].flake_rate


class BrokenHistory:
    """History double that fails for one test case."""

    def __init__(self, records):
        self.records = records

    async def test_cases_for_project(self, project_id):
        return [
            TestCaseRef(test_case_id="tc_bad", title="Broken", suite_id="s1"),
            TestCaseRef(test_case_id="tc_1", title="Flaky", suite_id="s1"),
        ]

    async def records_for_test_case(self, test_case_id, since):
        if test_case_id == "tc_bad":
            raise RuntimeError("corrupt history")
        return self.records


@pytest.mark.asyncio
async def test_project_analysis_skips_failing_tests():
    history = BrokenHistory(_records("passed", "failed", "passed", "failed", "passed"))
    flaky = await FlakeDetector(history).analyze_project_flakiness("proj_1", now=NOW + timedelta(days=1))
    assert [a.test_case_id for a in flaky] == ["tc_1"]


@pytest.mark.asyncio
async def test_flake_summary_buckets(history, session_factory):
    await history.project()
    # 50%, 2/7 = 28.57%, 1/8 = 12.5%
    await _seed_test(history, ["failed", "passed"] * 3, "High")
    await _seed_test(history, ["failed", "passed", "failed", "passed", "passed", "passed", "passed"], "Medium")
    await _seed_test(history, ["failed"] + ["passed"] * 7, "Low")
    # Never passed, excluded from the aggregate
    await _seed_test(history, ["failed"] * 6, "Broken")
    # Too few runs
    await _seed_test(history, ["failed", "passed", "failed"], "Short")

    async with session_factory() as session:
        summary = await FlakeDetector(ExecutionHistoryRepository(session)).get_flake_summary("proj_1", now=NOW)

    assert summary.total_flaky == 3
    assert summary.high_risk == 1
    assert summary.medium_risk == 1
    assert summary.low_risk == 1
    assert summary.avg_flake_rate == pytest.approx(round((50.0 + 28.57 + 12.5) / 3, 2))


@pytest.mark.asyncio
async def test_flake_summary_empty_project(history, session_factory):
    await history.project()
    async with session_factory() as session:
        summary = await FlakeDetector(ExecutionHistoryRepository(session)).get_flake_summary("proj_1", now=NOW)
    assert summary.model_dump() == {
        "total_flaky": 0,
        "avg_flake_rate": 0.0,
        "high_risk": 0,
        "medium_risk": 0,
        "low_risk": 0,
    }
