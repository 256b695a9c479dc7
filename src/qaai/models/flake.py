"""Pydantic models for flake analysis results."""

from pydantic import BaseModel, ConfigDict, Field


class FlakeConfig(BaseModel):
    """Thresholds for the flakiness verdict.

    Defaults: at least 5 runs, at least 2 unstable outcomes, a flake rate of
    10% or more, and a 95% Wilson interval that excludes both 0 and 1.
    """

    model_config = ConfigDict(extra="forbid")

    min_runs: int = Field(5, ge=1)
    time_window_days: int = Field(30, ge=1)
    flake_rate_threshold: float = Field(10.0, ge=0, le=100)
    min_failures: int = Field(2, ge=0)
    confidence_level: float = Field(0.95, gt=0, lt=1)


class FlakeStats(BaseModel):
    total: int = 0
    passed: int = 0
    failed: int = 0
    flaky: int = 0
    skipped: int = 0
    avg_duration_ms: float = 0.0


class IntervalPercent(BaseModel):
    lower: float
    upper: float


class Confidence(BaseModel):
    level: float
    interval: IntervalPercent


class FailurePatterns(BaseModel):
    has_pattern: bool = False
    max_consecutive_failures: int = 0
    alternation_rate: float = 0.0
    time_pattern: dict[int, int] | None = None


class FlakeAnalysis(BaseModel):
    test_case_id: str
    is_flaky: bool
    reason: str | None = None
    flake_rate: float = 0.0
    stats: FlakeStats
    confidence: Confidence | None = None
    patterns: FailurePatterns | None = None
    recommendation: str | None = None
    title: str | None = None
    suite_id: str | None = None


class FlakeSummary(BaseModel):
    total_flaky: int = 0
    avg_flake_rate: float = 0.0
    high_risk: int = 0
    medium_risk: int = 0
    low_risk: int = 0


class FlakeAnalyzeRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    project_id: str
    options: FlakeConfig = Field(default_factory=FlakeConfig)
