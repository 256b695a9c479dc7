"""SQLAlchemy ORM models - import all to register with Base.metadata."""

from qaai.db.models.job import JobRow
from qaai.db.models.project import ProjectRow
from qaai.db.models.suite import SuiteRow
from qaai.db.models.test_case import TestCaseRow
from qaai.db.models.plan import PlanRow
from qaai.db.models.run import RunRow, RunTestRow
from qaai.db.models.github_issue import GitHubIssueRow

__all__ = [
    "JobRow",
    "ProjectRow",
    "SuiteRow",
    "TestCaseRow",
    "PlanRow",
    "RunRow",
    "RunTestRow",
    "GitHubIssueRow",
]
