"""Route and API endpoint coverage from test executions.

Routes are mined from free-text execution logs (and, when available,
HAR-like network captures), normalized with
:func:`qaai.services.route_normalizer.normalize_route_path`, and matched
against a caller-supplied route inventory.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta, timezone
from typing import Any
from urllib.parse import urlsplit

from qaai.errors.exceptions import ValidationError
from qaai.models.coverage import (
    DISCOVERED,
    UNCATEGORIZED,
    CapturedRoute,
    CategorySummary,
    CoverageReport,
    CoverageSummary,
    Route,
    RouteCoverage,
    RouteCoverageResult,
    RouteDefinition,
    TrendPoint,
)
from qaai.repositories.execution_repo import ExecutionHistory
from qaai.services.route_normalizer import normalize_route_path, route_key

logger = logging.getLogger(__name__)

ROUTE_PATTERN = re.compile(r"(GET|POST|PUT|PATCH|DELETE|HEAD|OPTIONS)\s+(/\S*)", re.IGNORECASE)
ASSET_PATTERN = re.compile(r"\.(js|css|png|jpg|jpeg|gif|svg|ico|woff|woff2|ttf)$", re.IGNORECASE)

DEFAULT_CRITICAL_PATHS = ["/api/auth", "/api/payment", "/api/users"]


def _log_text(result: Any) -> str:
    if isinstance(result, Mapping):
        return result.get("logs") or result.get("stdout") or ""
    return getattr(result, "logs", None) or ""


def extract_routes_from_logs(test_results: Iterable[Any]) -> list[Route]:
    """Distinct ``METHOD /path`` occurrences across the results' logs, in order of first appearance."""
    seen: dict[tuple[str, str], Route] = {}
    for result in test_results:
        logs = _log_text(result)
        if not logs or not isinstance(logs, str):
            continue
        for match in ROUTE_PATTERN.finditer(logs):
            method, path = match.group(1).upper(), match.group(2)
            seen.setdefault((method, path), Route(method=method, path=path))
    return list(seen.values())


def _as_mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _typed(value: Any, kind: type | tuple[type, ...]) -> Any:
    if isinstance(value, bool) or not isinstance(value, kind):
        return None
    return value


def extract_routes_from_network_capture(capture: Mapping[str, Any] | None) -> list[CapturedRoute]:
    """Distinct requests from a HAR-like capture, skipping static assets.

    The first occurrence of each ``METHOD:path`` keeps its status code,
    response time and start timestamp. Malformed entries are ignored and
    ill-typed metadata is dropped.
    """
    entries = _as_mapping(_as_mapping(capture).get("log")).get("entries")
    if not isinstance(entries, list):
        return []

    routes: dict[str, CapturedRoute] = {}
    for entry in entries:
        if not isinstance(entry, Mapping):
            continue
        request = _as_mapping(entry.get("request"))
        url = request.get("url")
        method = request.get("method")
        if not isinstance(url, str) or not isinstance(method, str) or not url or not method:
            continue

        try:
            path = urlsplit(url).path
        except ValueError:
            continue
        if not path.startswith("/") or ASSET_PATTERN.search(path):
            continue

        key = f"{method.upper()}:{path}"
        if key in routes:
            continue
        response = _as_mapping(entry.get("response"))
        routes[key] = CapturedRoute(
            method=method.upper(),
            path=path,
            status_code=_typed(response.get("status"), int),
            response_time=_typed(entry.get("time"), (int, float)),
            timestamp=_typed(entry.get("startedDateTime"), str),
        )
    return list(routes.values())


def get_coverage_summary_by_category(routes: Iterable[RouteCoverage]) -> dict[str, CategorySummary]:
    summary: dict[str, CategorySummary] = {}
    for route in routes:
        bucket = summary.setdefault(route.category or UNCATEGORIZED, CategorySummary())
        bucket.total += 1
        if route.tested:
            bucket.tested += 1
        else:
            bucket.untested += 1

    for bucket in summary.values():
        bucket.coverage = bucket.tested / bucket.total * 100 if bucket.total else 0.0
    return summary


def get_untested_critical_routes(
    routes: Iterable[RouteCoverage], critical_paths: Iterable[str]
) -> list[RouteCoverage]:
    """Untested routes whose ``"METHOD path"`` matches any critical pattern."""
    try:
        patterns = [re.compile(p) for p in critical_paths]
    except re.error as exc:
        raise ValidationError(f"Invalid critical path pattern: {exc}") from exc

    return [
        route
        for route in routes
        if not route.tested and any(p.search(f"{route.method} {route.path}") for p in patterns)
    ]


class CoverageTracker:
    """Coverage reports over the most recent runs of a project."""

    def __init__(self, history: ExecutionHistory, recent_runs: int = 10):
        self.history = history
        self.recent_runs = recent_runs

    async def calculate_route_coverage(
        self, project_id: str, defined_routes: Iterable[RouteDefinition] = ()
    ) -> RouteCoverageResult:
        defined = list(defined_routes)
        runs = await self.history.recent_runs(project_id, self.recent_runs)
        if not runs:
            return RouteCoverageResult(
                total_routes=len(defined),
                untested_routes=len(defined),
            )

        records = await self.history.records_for_runs([run.run_id for run in runs])

        hits: dict[str, RouteCoverage] = {}
        for record in records:
            for route in extract_routes_from_logs([record]):
                key = route_key(route.method, route.path)
                hit = hits.setdefault(
                    key,
                    RouteCoverage(
                        method=route.method,
                        path=normalize_route_path(route.path),
                        tested=True,
                        category=DISCOVERED,
                    ),
                )
                hit.test_count += 1

        routes = []
        defined_keys = set()
        for definition in defined:
            key = route_key(definition.method, definition.path)
            defined_keys.add(key)
            hit = hits.get(key)
            routes.append(
                RouteCoverage(
                    method=definition.method.upper(),
                    path=definition.path,
                    tested=hit is not None,
                    test_count=hit.test_count if hit else 0,
                    category=definition.category or UNCATEGORIZED,
                )
            )

        discovered = [hit for key, hit in hits.items() if key not in defined_keys]
        routes.extend(discovered)

        if defined:
            total = len(defined)
            tested = sum(1 for route in routes[:total] if route.tested)
        else:
            total = len(discovered)
            tested = total

        return RouteCoverageResult(
            total_routes=total,
            tested_routes=tested,
            untested_routes=total - tested,
            coverage_percentage=tested / total * 100 if total else 0.0,
            routes=routes,
            discovered_routes=discovered,
        )

    async def get_route_coverage_trends(
        self, project_id: str, days: int = 30, now: datetime | None = None
    ) -> list[TrendPoint]:
        """Cumulative distinct-route count after each run in the window, oldest first."""
        since = (now or datetime.now(timezone.utc)) - timedelta(days=days)
        runs = await self.history.runs_since(project_id, since)

        seen: set[str] = set()
        trends = []
        for run in runs:
            records = await self.history.records_for_runs([run.run_id])
            for route in extract_routes_from_logs(records):
                seen.add(route_key(route.method, route.path))
            trends.append(TrendPoint(date=run.created_at, routes_covered=len(seen)))
        return trends

    async def generate_coverage_report(
        self,
        project_id: str,
        defined_routes: Iterable[RouteDefinition] = (),
        critical_paths: Iterable[str] | None = None,
        include_trends: bool = True,
        trend_days: int = 30,
    ) -> CoverageReport:
        coverage = await self.calculate_route_coverage(project_id, defined_routes)
        by_category = get_coverage_summary_by_category(coverage.routes)
        untested_critical = get_untested_critical_routes(
            coverage.routes,
            DEFAULT_CRITICAL_PATHS if critical_paths is None else critical_paths,
        )
        trends = await self.get_route_coverage_trends(project_id, trend_days) if include_trends else None

        logger.info(
            "Coverage for project %s: %d/%d routes (%.1f%%)",
            project_id,
            coverage.tested_routes,
            coverage.total_routes,
            coverage.coverage_percentage,
        )

        return CoverageReport(
            summary=CoverageSummary(
                total_routes=coverage.total_routes,
                tested_routes=coverage.tested_routes,
                untested_routes=coverage.untested_routes,
                coverage_percentage=round(coverage.coverage_percentage, 2),
                discovered_routes=len(coverage.discovered_routes),
                untested_critical=len(untested_critical),
            ),
            by_category=by_category,
            routes=coverage.routes,
            untested_critical=untested_critical,
            discovered_routes=coverage.discovered_routes,
            trends=trends,
            generated_at=datetime.now(timezone.utc),
        )
