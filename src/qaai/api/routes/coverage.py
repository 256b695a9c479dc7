"""Route coverage endpoints."""

from fastapi import APIRouter, Query

from qaai.config import settings
from qaai.dependencies import DBSession
from qaai.errors.exceptions import NotFoundError
from qaai.models.coverage import CoverageReportRequest
from qaai.repositories.execution_repo import ExecutionHistoryRepository
from qaai.repositories.project_repo import ProjectRepository
from qaai.services.coverage_tracker import CoverageTracker

router = APIRouter(prefix="/analytics/coverage", tags=["Analytics"])


@router.get("")
async def get_coverage(
    db: DBSession,
    project_id: str = Query(..., min_length=1),
    trend_days: int = Query(30, ge=1),
    include_trends: bool = True,
) -> dict:
    """Report without a route inventory: every route seen is a discovered route."""
    if await ProjectRepository(db).get(project_id) is None:
        raise NotFoundError("Project", project_id)

    tracker = CoverageTracker(ExecutionHistoryRepository(db), settings.coverage_recent_runs)
    report = await tracker.generate_coverage_report(
        project_id,
        critical_paths=settings.coverage_critical_paths,
        include_trends=include_trends,
        trend_days=trend_days,
    )
    return report.model_dump(mode="json")


@router.post("")
async def coverage_report(body: CoverageReportRequest, db: DBSession) -> dict:
    if await ProjectRepository(db).get(body.project_id) is None:
        raise NotFoundError("Project", body.project_id)

    tracker = CoverageTracker(ExecutionHistoryRepository(db), settings.coverage_recent_runs)
    report = await tracker.generate_coverage_report(
        body.project_id,
        defined_routes=body.defined_routes,
        critical_paths=body.critical_paths if body.critical_paths is not None else settings.coverage_critical_paths,
        include_trends=body.include_trends,
        trend_days=body.trend_days,
    )
    return report.model_dump(mode="json")
