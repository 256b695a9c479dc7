"""Markdown rendering of run results for GitHub check runs and issues."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from qaai.models.enums import TestStatus

_UNSTABLE = {TestStatus.FAILED, TestStatus.ERROR}


@dataclass(frozen=True)
class ReportedTest:
    title: str
    status: str
    duration_ms: int | None = None
    error_text: str | None = None


def check_run_conclusion(tests: list[ReportedTest]) -> str:
    return "failure" if any(t.status in _UNSTABLE for t in tests) else "success"


def format_check_run(tests: list[ReportedTest]) -> tuple[str, str]:
    """Return ``(title, summary)`` for a completed check run."""
    passed = [t for t in tests if t.status == TestStatus.PASSED]
    failed = [t for t in tests if t.status in _UNSTABLE]
    skipped = [t for t in tests if t.status == TestStatus.SKIPPED]
    duration_s = sum(t.duration_ms or 0 for t in tests) / 1000

    lines: list[str] = []
    lines.append("## Test Results")
    lines.append("")
    lines.append(f"- **Passed:** {len(passed)}")
    lines.append(f"- **Failed:** {len(failed)}")
    lines.append(f"- **Skipped:** {len(skipped)}")
    lines.append(f"- **Total:** {len(tests)}")
    lines.append(f"- **Duration:** {duration_s:.2f}s")
    lines.append("")

    if failed:
        lines.append("## Failed Tests")
        lines.append("")
        for idx, test in enumerate(failed, 1):
            lines.append(f"### {idx}. {test.title}")
            lines.append("")
            lines.append(f"**Error:** {_first_line(test.error_text)}")
            lines.append("")
            if test.error_text:
                lines.append("<details>")
                lines.append("<summary>Output</summary>")
                lines.append("")
                lines.append("```")
                lines.append(test.error_text)
                lines.append("```")
                lines.append("")
                lines.append("</details>")
                lines.append("")

    if passed:
        lines.append("## Passed Tests")
        lines.append("")
        for test in passed:
            lines.append(f"- {test.title}")
        lines.append("")

    if failed:
        title = f"{len(failed)} test{'s' if len(failed) > 1 else ''} failed"
    else:
        title = f"All {len(passed)} tests passed"
    return title, "\n".join(lines)


def failure_issue_title(test_title: str) -> str:
    return f"Test Failure: {test_title}"


def format_failure_issue(
    test: ReportedTest,
    run_id: str,
    timestamp: datetime,
    pr_url: str | None = None,
) -> tuple[str, str]:
    """Return ``(title, body)`` for an issue about a single failed test."""
    lines: list[str] = []
    lines.append("## Test Failure Report")
    lines.append("")
    lines.append(f"**Test:** {test.title}")
    lines.append(f"**Status:** {test.status}")
    lines.append(f"**PR:** {pr_url or 'N/A'}")
    lines.append(f"**Run ID:** {run_id}")
    lines.append(f"**Timestamp:** {timestamp.isoformat()}")
    lines.append("")
    lines.append("### Error Message")
    lines.append("")
    lines.append("```")
    lines.append(test.error_text or "Unknown error")
    lines.append("```")
    lines.append("")
    lines.append("### Test Details")
    lines.append("")
    lines.append(f"- **Duration:** {f'{test.duration_ms}ms' if test.duration_ms is not None else 'N/A'}")
    lines.append("")
    lines.append("### Suggested Actions")
    lines.append("")
    lines.append("- Review the error message and output")
    lines.append("- Check recent changes in the PR")
    lines.append("- Verify test environment configuration")
    lines.append("")
    lines.append("---")
    lines.append("")
    lines.append(f"*This issue was automatically created by QAAI (run {run_id})*")
    return failure_issue_title(test.title), "\n".join(lines)


def format_flaky_issue(
    test_title: str,
    flake_rate: float,
    failures: int,
    total_runs: int,
    recommendation: str,
    threshold: float,
) -> tuple[str, str]:
    """Return ``(title, body)`` for an issue about a flaky test."""
    lines: list[str] = []
    lines.append("## Flaky Test Report")
    lines.append("")
    lines.append(f"**Test:** {test_title}")
    lines.append(f"**Failure Rate:** {flake_rate}% ({failures}/{total_runs} runs)")
    lines.append("")
    lines.append("### Analysis")
    lines.append("")
    lines.append(
        f"This test has failed {failures} times out of {total_runs} runs "
        f"({flake_rate}% failure rate), indicating it may be flaky."
    )
    lines.append("")
    lines.append(recommendation)
    lines.append("")
    lines.append("### Recommended Actions")
    lines.append("")
    lines.append("- [ ] Review test for race conditions")
    lines.append("- [ ] Check for timing dependencies")
    lines.append("- [ ] Verify test isolation")
    lines.append("")
    lines.append("---")
    lines.append("")
    lines.append(f"*Detection threshold: {threshold}% failure rate*")
    return f"Flaky Test Detected: {test_title}", "\n".join(lines)


def _first_line(text: str | None) -> str:
    if not text:
        return "Unknown error"
    return text.strip().splitlines()[0] if text.strip() else "Unknown error"
