"""Read-only access to test execution history.

The flake detector and coverage tracker only ever read through
:class:`ExecutionHistory`; :class:`ExecutionHistoryRepository` is the
SQLAlchemy implementation over ``run_tests``/``runs``/``test_cases``.
"""

from datetime import datetime
from typing import Protocol

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from qaai.db.models.run import RunRow, RunTestRow
from qaai.db.models.suite import SuiteRow
from qaai.db.models.test_case import TestCaseRow
from qaai.models.enums import TestStatus
from qaai.models.execution import FlakyTestRate, RunRef, TestCaseRef, TestExecutionRecord


class ExecutionHistory(Protocol):
    async def records_for_test_case(
        self, test_case_id: str, since: datetime
    ) -> list[TestExecutionRecord]: ...

    async def records_for_runs(self, run_ids: list[str]) -> list[TestExecutionRecord]: ...

    async def test_cases_for_project(self, project_id: str) -> list[TestCaseRef]: ...

    async def recent_runs(self, project_id: str, limit: int) -> list[RunRef]: ...

    async def runs_since(self, project_id: str, since: datetime) -> list[RunRef]: ...

    async def flaky_test_rates(
        self, project_id: str, since: datetime, min_runs: int = 5
    ) -> list[FlakyTestRate]: ...


_RECORD_COLUMNS = (
    RunTestRow.test_case_id,
    RunTestRow.run_id,
    RunTestRow.status,
    RunTestRow.duration_ms,
    RunTestRow.created_at,
    RunTestRow.logs,
)


class ExecutionHistoryRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def records_for_test_case(
        self, test_case_id: str, since: datetime
    ) -> list[TestExecutionRecord]:
        """Records for one test case created at or after ``since``, newest first."""
        stmt = (
            select(*_RECORD_COLUMNS)
            .where(
                RunTestRow.test_case_id == test_case_id,
                RunTestRow.created_at >= since,
            )
            .order_by(RunTestRow.created_at.desc(), RunTestRow.run_test_id.desc())
        )
        result = await self.session.execute(stmt)
        return [TestExecutionRecord.model_validate(row) for row in result.all()]

    async def records_for_runs(self, run_ids: list[str]) -> list[TestExecutionRecord]:
        if not run_ids:
            return []
        stmt = (
            select(*_RECORD_COLUMNS)
            .where(RunTestRow.run_id.in_(run_ids))
            .order_by(RunTestRow.created_at.desc())
        )
        result = await self.session.execute(stmt)
        return [TestExecutionRecord.model_validate(row) for row in result.all()]

    async def test_cases_for_project(self, project_id: str) -> list[TestCaseRef]:
        stmt = (
            select(TestCaseRow.test_case_id, TestCaseRow.title, TestCaseRow.suite_id)
            .join(SuiteRow, SuiteRow.suite_id == TestCaseRow.suite_id)
            .where(SuiteRow.project_id == project_id)
            .order_by(TestCaseRow.created_at)
        )
        result = await self.session.execute(stmt)
        return [TestCaseRef.model_validate(row) for row in result.all()]

    async def recent_runs(self, project_id: str, limit: int) -> list[RunRef]:
        """The ``limit`` most recent runs of a project, newest first."""
        stmt = (
            select(RunRow.run_id, RunRow.created_at)
            .where(RunRow.project_id == project_id)
            .order_by(RunRow.created_at.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return [RunRef.model_validate(row) for row in result.all()]

    async def runs_since(self, project_id: str, since: datetime) -> list[RunRef]:
        """Runs of a project created at or after ``since``, oldest first."""
        stmt = (
            select(RunRow.run_id, RunRow.created_at)
            .where(RunRow.project_id == project_id, RunRow.created_at >= since)
            .order_by(RunRow.created_at.asc())
        )
        result = await self.session.execute(stmt)
        return [RunRef.model_validate(row) for row in result.all()]

    async def flaky_test_rates(
        self, project_id: str, since: datetime, min_runs: int = 5
    ) -> list[FlakyTestRate]:
        """Windowed per-test aggregate of tests that both passed and failed.

        Keeps tests with more than ``min_runs`` executions, at least one pass
        and at least one hard failure inside the window.
        """
        total = func.count(RunTestRow.run_test_id)
        passed = func.sum(case((RunTestRow.status == TestStatus.PASSED, 1), else_=0))
        failed = func.sum(case((RunTestRow.status == TestStatus.FAILED, 1), else_=0))
        flaky = func.sum(case((RunTestRow.status == TestStatus.FLAKY, 1), else_=0))

        stmt = (
            select(
                TestCaseRow.test_case_id,
                TestCaseRow.title,
                TestCaseRow.suite_id,
                total.label("total_runs"),
                passed.label("passed_count"),
                failed.label("failed_count"),
                flaky.label("flaky_count"),
            )
            .join(SuiteRow, SuiteRow.suite_id == TestCaseRow.suite_id)
            .join(RunTestRow, RunTestRow.test_case_id == TestCaseRow.test_case_id)
            .where(SuiteRow.project_id == project_id, RunTestRow.created_at >= since)
            .group_by(TestCaseRow.test_case_id, TestCaseRow.title, TestCaseRow.suite_id)
            .having(total > min_runs, passed > 0, failed > 0)
        )
        result = await self.session.execute(stmt)

        rates = []
        for row in result.all():
            unstable = (row.failed_count or 0) + (row.flaky_count or 0)
            rates.append(
                FlakyTestRate(
                    test_case_id=row.test_case_id,
                    title=row.title,
                    suite_id=row.suite_id,
                    total_runs=row.total_runs,
                    passed_count=row.passed_count or 0,
                    failed_count=row.failed_count or 0,
                    flaky_count=row.flaky_count or 0,
                    flake_rate=round(unstable / row.total_runs * 100, 2) if row.total_runs else 0.0,
                )
            )
        return rates
