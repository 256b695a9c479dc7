"""Read models over test execution history."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class TestExecutionRecord(BaseModel):
    """One outcome of one test case inside one run."""

    __test__ = False

    model_config = ConfigDict(from_attributes=True)

    test_case_id: str | None = None
    run_id: str
    status: str
    duration_ms: int | None = None
    created_at: datetime
    logs: str | None = None


class TestCaseRef(BaseModel):
    __test__ = False

    model_config = ConfigDict(from_attributes=True)

    test_case_id: str
    title: str
    suite_id: str


class RunRef(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    run_id: str
    created_at: datetime


class FlakyTestRate(BaseModel):
    """A row of the windowed per-test flake aggregate."""

    test_case_id: str
    title: str
    suite_id: str
    total_runs: int
    passed_count: int
    failed_count: int
    flaky_count: int
    flake_rate: float
