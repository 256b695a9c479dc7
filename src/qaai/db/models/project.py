"""Project table."""

from sqlalchemy import JSON, Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from qaai.db.base import Base, TimestampMixin


class ProjectRow(Base, TimestampMixin):
    __tablename__ = "projects"

    project_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    name: Mapped[str] = mapped_column(String(300), nullable=False)
    repo_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    app_base_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    github_repo_owner: Mapped[str | None] = mapped_column(String(200), nullable=True)
    github_repo_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    github_token: Mapped[str | None] = mapped_column(String(500), nullable=True)
    auto_create_issues: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    issue_labels: Mapped[list | None] = mapped_column(JSON, nullable=True)
