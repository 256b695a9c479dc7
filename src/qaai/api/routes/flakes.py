"""Flake analysis endpoints."""

from datetime import datetime, timezone

from fastapi import APIRouter, Query

from qaai.config import settings
from qaai.dependencies import DBSession
from qaai.errors.exceptions import NotFoundError
from qaai.models.flake import FlakeAnalyzeRequest, FlakeConfig
from qaai.repositories.execution_repo import ExecutionHistoryRepository
from qaai.repositories.project_repo import ProjectRepository
from qaai.repositories.test_case_repo import TestCaseRepository
from qaai.services.flake_detector import FlakeDetector

router = APIRouter(prefix="/analytics/flakes", tags=["Analytics"])


async def _require_project(db, project_id: str) -> None:
    if await ProjectRepository(db).get(project_id) is None:
        raise NotFoundError("Project", project_id)


@router.get("")
async def get_flakes(
    db: DBSession,
    project_id: str = Query(..., min_length=1),
    test_case_id: str | None = None,
    time_window: int = Query(settings.flake_time_window_days, ge=1),
) -> dict:
    """Single-test analysis when ``test_case_id`` is given, else a project overview."""
    await _require_project(db, project_id)
    config = FlakeConfig(time_window_days=time_window)
    detector = FlakeDetector(ExecutionHistoryRepository(db), config)

    if test_case_id:
        if await TestCaseRepository(db).get_in_project(test_case_id, project_id) is None:
            raise NotFoundError("Test case", test_case_id)
        analysis = await detector.analyze_test_flakiness(test_case_id)
        return analysis.model_dump(mode="json")

    flaky_tests = await detector.analyze_project_flakiness(project_id)
    summary = await detector.get_flake_summary(project_id)
    return {
        "summary": summary.model_dump(mode="json"),
        "flaky_tests": [a.model_dump(mode="json") for a in flaky_tests],
        "time_window": time_window,
    }


@router.post("/analyze")
async def analyze_flakes(body: FlakeAnalyzeRequest, db: DBSession) -> dict:
    await _require_project(db, body.project_id)
    detector = FlakeDetector(ExecutionHistoryRepository(db), body.options)

    flaky_tests = await detector.analyze_project_flakiness(body.project_id)
    summary = await detector.get_flake_summary(body.project_id)
    return {
        "success": True,
        "summary": summary.model_dump(mode="json"),
        "flaky_tests": [a.model_dump(mode="json") for a in flaky_tests],
        "analyzed_at": datetime.now(timezone.utc).isoformat(),
    }
