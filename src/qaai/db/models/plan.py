"""AI test plan table."""

from sqlalchemy import JSON, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from qaai.db.base import Base, TimestampMixin


class PlanRow(Base, TimestampMixin):
    __tablename__ = "plans"

    plan_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    project_id: Mapped[str] = mapped_column(String(128), ForeignKey("projects.project_id"), nullable=False, index=True)
    suite_id: Mapped[str | None] = mapped_column(String(128), ForeignKey("suites.suite_id"), nullable=True)
    pr_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    spec_md: Mapped[str | None] = mapped_column(Text, nullable=True)
    plan_json: Mapped[dict] = mapped_column(JSON, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")
