"""Pydantic models for route coverage reports."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

DISCOVERED = "discovered"
UNCATEGORIZED = "uncategorized"


class Route(BaseModel):
    """An HTTP (method, path) pair seen in a log or capture."""

    model_config = ConfigDict(frozen=True)

    method: str
    path: str


class CapturedRoute(Route):
    status_code: int | None = None
    response_time: float | None = None
    timestamp: str | None = None


class RouteDefinition(BaseModel):
    """One entry of the caller-supplied route inventory."""

    model_config = ConfigDict(extra="forbid")

    method: str
    path: str
    category: str = UNCATEGORIZED


class RouteCoverage(BaseModel):
    method: str
    path: str
    tested: bool
    test_count: int = 0
    category: str = UNCATEGORIZED


class RouteCoverageResult(BaseModel):
    total_routes: int = 0
    tested_routes: int = 0
    untested_routes: int = 0
    coverage_percentage: float = 0.0
    routes: list[RouteCoverage] = Field(default_factory=list)
    discovered_routes: list[RouteCoverage] = Field(default_factory=list)


class CategorySummary(BaseModel):
    total: int = 0
    tested: int = 0
    untested: int = 0
    coverage: float = 0.0


class TrendPoint(BaseModel):
    date: datetime
    routes_covered: int


class CoverageSummary(BaseModel):
    total_routes: int
    tested_routes: int
    untested_routes: int
    coverage_percentage: float
    discovered_routes: int
    untested_critical: int


class CoverageReport(BaseModel):
    summary: CoverageSummary
    by_category: dict[str, CategorySummary]
    routes: list[RouteCoverage]
    untested_critical: list[RouteCoverage]
    discovered_routes: list[RouteCoverage]
    trends: list[TrendPoint] | None = None
    generated_at: datetime


class CoverageReportRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    project_id: str
    defined_routes: list[RouteDefinition] = Field(default_factory=list)
    critical_paths: list[str] | None = None
    include_trends: bool = True
    trend_days: int = Field(30, ge=1)
