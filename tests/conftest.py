"""Shared test fixtures."""

from datetime import datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from qaai.db.base import Base
# Import all models to register with Base.metadata
import qaai.db.models  # noqa: F401
from qaai.db.models.project import ProjectRow
from qaai.db.models.run import RunRow, RunTestRow
from qaai.db.models.suite import SuiteRow
from qaai.db.models.test_case import TestCaseRow
from qaai.integrations.artifacts import LocalArtifactStore
from qaai.workers.queue import JobStore


@pytest.fixture
async def db_engine():
    """Create an in-memory SQLite async engine for testing."""
    engine = create_async_engine("sqlite+aiosqlite:///", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def job_store(session_factory):
    return JobStore(session_factory, worker_id="worker-test-1")


@pytest.fixture
def artifact_store(tmp_path):
    return LocalArtifactStore(root=tmp_path / "artifacts", secret="test-secret", url_base="http://test/api/v1/artifacts")


@pytest.fixture
def app(db_engine, session_factory, artifact_store):
    """Create a test application instance with in-memory DB."""
    from qaai.main import create_app

    _app = create_app()
    _app.state.db_engine = db_engine
    _app.state.db_session_factory = session_factory
    _app.state.job_store = JobStore(session_factory, worker_id="api-test")
    _app.state.artifact_store = artifact_store
    return _app


@pytest.fixture
async def client(app):
    """Async HTTP test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


class History:
    """Seeds projects, suites, test cases, runs and results."""

    def __init__(self, session_factory):
        self.session_factory = session_factory
        self._seq = 0

    def _next(self, prefix: str) -> str:
        self._seq += 1
        return f"{prefix}{self._seq}"

    async def add(self, *rows) -> None:
        async with self.session_factory() as session:
            session.add_all(rows)
            await session.commit()

    async def project(self, project_id: str = "proj_1", **kwargs) -> str:
        await self.add(ProjectRow(project_id=project_id, name=kwargs.pop("name", "Demo"), **kwargs))
        return project_id

    async def suite(self, project_id: str = "proj_1", suite_id: str | None = None) -> str:
        suite_id = suite_id or self._next("suite_")
        await self.add(SuiteRow(suite_id=suite_id, project_id=project_id, name="Suite"))
        return suite_id

    async def test_case(self, suite_id: str, title: str = "Login works", test_case_id: str | None = None) -> str:
        test_case_id = test_case_id or self._next("tc_")
        await self.add(
            TestCaseRow(test_case_id=test_case_id, suite_id=suite_id, title=title, steps=["open /login"])
        )
        return test_case_id

    async def run(self, project_id: str = "proj_1", created_at: datetime | None = None, **kwargs) -> str:
        run_id = kwargs.pop("run_id", None) or self._next("run_")
        await self.add(
            RunRow(
                run_id=run_id,
                project_id=project_id,
                created_at=created_at or datetime.now(timezone.utc),
                **kwargs,
            )
        )
        return run_id

    async def result(
        self,
        run_id: str,
        test_case_id: str | None,
        status: str,
        created_at: datetime | None = None,
        logs: str | None = None,
        duration_ms: int = 100,
    ) -> str:
        run_test_id = self._next("rt_")
        await self.add(
            RunTestRow(
                run_test_id=run_test_id,
                run_id=run_id,
                test_case_id=test_case_id,
                status=status,
                duration_ms=duration_ms,
                logs=logs,
                created_at=created_at or datetime.now(timezone.utc),
            )
        )
        return run_test_id

    async def outcomes(self, test_case_id: str, statuses: list[str], project_id: str = "proj_1", now=None) -> None:
        """One run per outcome, oldest first, an hour apart, ending at ``now``."""
        now = now or datetime.now(timezone.utc)
        for i, status in enumerate(statuses):
            at = now - timedelta(hours=len(statuses) - i)
            run_id = await self.run(project_id, created_at=at)
            await self.result(run_id, test_case_id, status, created_at=at)


@pytest.fixture
def history(session_factory):
    return History(session_factory)
