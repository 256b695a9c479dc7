"""String enums shared by the job queue, the runner and the analytics services."""

from enum import StrEnum


class JobKind(StrEnum):
    PLAN = "plan"
    GENERATE = "generate"
    RUN = "run"


class JobStatus(StrEnum):
    QUEUED = "queued"
    RUNNING = "running"
    DONE = "done"
    ERROR = "error"


class TestStatus(StrEnum):
    __test__ = False

    QUEUED = "queued"
    RUNNING = "running"
    PASSED = "passed"
    FAILED = "failed"
    FLAKY = "flaky"
    SKIPPED = "skipped"
    ERROR = "error"


class RunStatus(StrEnum):
    QUEUED = "queued"
    RUNNING = "running"
    PASSED = "passed"
    FAILED = "failed"
    ERROR = "error"


class RunTrigger(StrEnum):
    MANUAL = "manual"
    PR = "pr"
    SCHEDULE = "schedule"
    API = "api"


class PlanStatus(StrEnum):
    DRAFT = "draft"
    COMPLETED = "completed"
    GENERATED = "generated"


class TestSource(StrEnum):
    __test__ = False

    AI = "ai"
    MANUAL = "manual"


class RiskLevel(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
