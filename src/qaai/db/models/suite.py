"""Test suite table."""

from sqlalchemy import JSON, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from qaai.db.base import Base, TimestampMixin


class SuiteRow(Base, TimestampMixin):
    __tablename__ = "suites"

    suite_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    project_id: Mapped[str] = mapped_column(String(128), ForeignKey("projects.project_id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(300), nullable=False)
    tags: Mapped[list | None] = mapped_column(JSON, nullable=True)
