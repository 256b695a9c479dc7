"""GitHub issues opened for failing tests."""

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from qaai.db.base import Base, TimestampMixin


class GitHubIssueRow(Base, TimestampMixin):
    __tablename__ = "github_issues"

    issue_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    run_test_id: Mapped[str] = mapped_column(String(128), ForeignKey("run_tests.run_test_id"), nullable=False, index=True)
    project_id: Mapped[str] = mapped_column(String(128), ForeignKey("projects.project_id"), nullable=False, index=True)
    issue_number: Mapped[int] = mapped_column(Integer, nullable=False)
    issue_url: Mapped[str] = mapped_column(String(500), nullable=False)
    issue_title: Mapped[str] = mapped_column(String(500), nullable=False)
