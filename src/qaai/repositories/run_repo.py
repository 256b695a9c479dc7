"""Run, run-test and GitHub issue repositories."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from qaai.db.models.github_issue import GitHubIssueRow
from qaai.db.models.run import RunRow, RunTestRow
from qaai.repositories.base import BaseRepository


class RunRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, RunRow)

    async def get(self, run_id: str) -> RunRow | None:
        return await self.get_by_id("run_id", run_id)


class RunTestRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, RunTestRow)

    async def list_by_run(self, run_id: str) -> list[RunTestRow]:
        stmt = select(RunTestRow).where(RunTestRow.run_id == run_id).order_by(RunTestRow.created_at)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())


class GitHubIssueRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, GitHubIssueRow)
