"""Plan and suite repositories."""

from sqlalchemy.ext.asyncio import AsyncSession

from qaai.db.models.plan import PlanRow
from qaai.db.models.suite import SuiteRow
from qaai.repositories.base import BaseRepository


class PlanRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, PlanRow)

    async def get(self, plan_id: str) -> PlanRow | None:
        return await self.get_by_id("plan_id", plan_id)


class SuiteRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, SuiteRow)

    async def get(self, suite_id: str) -> SuiteRow | None:
        return await self.get_by_id("suite_id", suite_id)
