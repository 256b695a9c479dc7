"""Worker that executes a run's test cases and reports the results."""

import logging
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from qaai.config import settings
from qaai.db.models.project import ProjectRow
from qaai.db.models.run import RunRow, RunTestRow
from qaai.errors.exceptions import CollaboratorError, PayloadError
from qaai.integrations.artifacts import guess_content_type
from qaai.integrations.executor import ExecutionOutcome, TestDefinition
from qaai.models.enums import RunStatus, TestStatus
from qaai.models.job import JobModel
from qaai.repositories.project_repo import ProjectRepository
from qaai.repositories.run_repo import GitHubIssueRepository, RunRepository
from qaai.repositories.test_case_repo import TestCaseRepository
from qaai.services.id_generator import ISSUE, RUN_TEST, generate_id
from qaai.services.result_formatter import (
    ReportedTest,
    check_run_conclusion,
    format_check_run,
    format_failure_issue,
)
from qaai.workers.base import BaseWorker

logger = logging.getLogger(__name__)

_UNSTABLE = {TestStatus.FAILED, TestStatus.ERROR}


def artifact_column(name: str) -> str | None:
    """``run_tests`` path column an artifact file belongs in, if any."""
    lower = name.lower()
    if lower.endswith(".har"):
        return "har_path"
    if lower.endswith(".xml"):
        return "junit_path"
    if lower.endswith((".mp4", ".webm")):
        return "video_path"
    if lower.endswith((".png", ".jpg", ".jpeg")):
        return "screenshot_path"
    if lower.endswith(".zip"):
        return "trace_path"
    return None


def run_status(outcomes: list[str], crashed: int) -> RunStatus:
    """Final run status: error when the executor crashed on every test."""
    if outcomes and crashed == len(outcomes):
        return RunStatus.ERROR
    if any(status in _UNSTABLE for status in outcomes):
        return RunStatus.FAILED
    return RunStatus.PASSED


class RunWorker(BaseWorker):
    """Execute every test case of a run and record one result per case."""

    async def process(self, job: JobModel, session: AsyncSession) -> dict:
        run_id = self.require(job.payload, "run_id")

        run = await RunRepository(session).get(run_id)
        if run is None:
            raise PayloadError(f"Unknown run {run_id}")
        project = await ProjectRepository(session).get(run.project_id)
        if project is None:
            raise PayloadError(f"Unknown project {run.project_id}")

        run.status = RunStatus.RUNNING
        run.started_at = datetime.now(timezone.utc)
        await session.flush()

        base_url = project.app_base_url or settings.app_base_url
        test_cases = await TestCaseRepository(session).list_by_suites(run.suite_ids or [])
        logger.info("Run %s: executing %d test cases against %s", run_id, len(test_cases), base_url)

        results: list[tuple[str, ReportedTest]] = []
        crashed = 0
        for test_case in test_cases:
            try:
                outcome = await self.deps.executor.execute(TestDefinition.model_validate(test_case), base_url)
            except CollaboratorError as exc:
                logger.error("Executor crashed on %s: %s", test_case.test_case_id, exc.message)
                outcome = ExecutionOutcome(status=TestStatus.ERROR, duration_ms=0, error_text=exc.message)
                crashed += 1

            run_test_id = generate_id(RUN_TEST)
            paths = await self._store_artifacts(run_id, run_test_id, outcome)
            session.add(
                RunTestRow(
                    run_test_id=run_test_id,
                    run_id=run_id,
                    test_case_id=test_case.test_case_id,
                    status=outcome.status,
                    attempt=1,
                    duration_ms=outcome.duration_ms,
                    logs=outcome.logs or None,
                    error_text=outcome.error_text,
                    **paths,
                )
            )
            results.append(
                (
                    run_test_id,
                    ReportedTest(
                        title=test_case.title,
                        status=outcome.status,
                        duration_ms=outcome.duration_ms,
                        error_text=outcome.error_text,
                    ),
                )
            )

        reported = [test for _, test in results]
        run.status = run_status([t.status for t in reported], crashed)
        run.finished_at = datetime.now(timezone.utc)
        await session.flush()
        logger.info("Run %s finished: %s", run_id, run.status)

        await self._report_check_run(run, project, reported)
        issues = await self._open_issues(session, run, project, results)

        return {
            "run_id": run_id,
            "status": str(run.status),
            "tests": len(reported),
            "failed": sum(1 for t in reported if t.status in _UNSTABLE),
            "issues": issues,
        }

    async def _store_artifacts(self, run_id: str, run_test_id: str, outcome: ExecutionOutcome) -> dict[str, str]:
        paths: dict[str, str] = {}
        for name, blob in outcome.artifacts.items():
            key = await self.deps.artifacts.put(
                f"runs/{run_id}/{run_test_id}/{name}", blob, guess_content_type(name)
            )
            column = artifact_column(name)
            if column and column not in paths:
                paths[column] = key
        return paths

    async def _report_check_run(self, run: RunRow, project: ProjectRow, reported: list[ReportedTest]) -> None:
        head_sha = (run.meta or {}).get("head_sha")
        if not head_sha or not (project.github_repo_owner and project.github_repo_name):
            return

        title, summary = format_check_run(reported)
        try:
            await self.deps.github(project.github_token).create_check_run(
                project.github_repo_owner,
                project.github_repo_name,
                name=settings.github_check_name,
                head_sha=head_sha,
                conclusion=check_run_conclusion(reported),
                title=title,
                summary=summary,
            )
        except CollaboratorError as exc:
            logger.warning("Check run for %s not posted: %s", run.run_id, exc.message)

    async def _open_issues(
        self,
        session: AsyncSession,
        run: RunRow,
        project: ProjectRow,
        results: list[tuple[str, ReportedTest]],
    ) -> int:
        """Open one issue per failed test unless an open issue already has its title."""
        if not project.auto_create_issues or not (project.github_repo_owner and project.github_repo_name):
            return 0

        owner, repo = project.github_repo_owner, project.github_repo_name
        github = self.deps.github(project.github_token)
        issues = GitHubIssueRepository(session)
        labels = project.issue_labels or settings.github_issue_labels
        now = datetime.now(timezone.utc)

        opened = 0
        for run_test_id, test in results:
            if test.status not in _UNSTABLE:
                continue
            title, body = format_failure_issue(test, run.run_id, now, (run.meta or {}).get("pr_url"))
            try:
                existing = await github.search_issues(owner, repo, f'"{title}" in:title is:open')
                if any(item.get("title") == title for item in existing):
                    logger.info("Issue for %r already open", test.title)
                    continue
                created = await github.create_issue(owner, repo, title, body, labels)
            except CollaboratorError as exc:
                logger.warning("Issue for %r not opened: %s", test.title, exc.message)
                continue

            await issues.create(
                issue_id=generate_id(ISSUE),
                run_test_id=run_test_id,
                project_id=project.project_id,
                issue_number=created["number"],
                issue_url=created["url"],
                issue_title=title,
            )
            opened += 1
        return opened
