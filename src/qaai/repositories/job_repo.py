"""Job queue repository.

Every method is a single statement; callers own the transaction.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from qaai.db.models.job import JobRow
from qaai.models.enums import JobStatus
from qaai.repositories.base import BaseRepository

_RETURNED = (
    JobRow.id,
    JobRow.kind,
    JobRow.payload,
    JobRow.status,
    JobRow.attempts,
    JobRow.last_error,
    JobRow.scheduled_at,
    JobRow.locked_by,
    JobRow.locked_at,
)


class JobRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, JobRow)

    async def get(self, job_id: int) -> JobRow | None:
        return await self.get_by_id("id", job_id)

    async def insert(self, kind: str, payload: dict[str, Any], now: datetime) -> JobRow:
        return await self.create(
            kind=kind,
            payload=payload,
            status=JobStatus.QUEUED,
            attempts=0,
            scheduled_at=now,
        )

    async def claim_next(self, worker_id: str, max_attempts: int, now: datetime):
        """Flip the oldest eligible queued row to running and return it.

        The candidate sub-select takes ``FOR UPDATE SKIP LOCKED`` on
        PostgreSQL; the outer ``status = 'queued'`` predicate keeps the
        statement a compare-and-swap where row locks are unavailable.
        """
        candidate = (
            select(JobRow.id)
            .where(JobRow.status == JobStatus.QUEUED, JobRow.attempts < max_attempts)
            .order_by(JobRow.scheduled_at, JobRow.id)
            .limit(1)
            .with_for_update(skip_locked=True)
            .scalar_subquery()
        )
        stmt = (
            update(JobRow)
            .where(JobRow.id == candidate, JobRow.status == JobStatus.QUEUED)
            .values(status=JobStatus.RUNNING, locked_by=worker_id, locked_at=now)
            .returning(*_RETURNED)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.first()

    async def set_done(self, job_id: int) -> int:
        stmt = (
            update(JobRow)
            .where(JobRow.id == job_id, JobRow.status != JobStatus.DONE)
            .values(status=JobStatus.DONE)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def set_error(self, job_id: int, message: str) -> int:
        stmt = (
            update(JobRow)
            .where(JobRow.id == job_id, JobRow.status != JobStatus.DONE)
            .values(
                status=JobStatus.ERROR,
                last_error=message,
                attempts=JobRow.attempts + 1,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def count_by_status(self) -> dict[str, int]:
        stmt = select(JobRow.status, func.count(JobRow.id)).group_by(JobRow.status)
        result = await self.session.execute(stmt)
        return {status: count for status, count in result.all()}

    async def delete_done_before(self, cutoff: datetime) -> int:
        stmt = (
            delete(JobRow)
            .where(JobRow.status == JobStatus.DONE, JobRow.scheduled_at < cutoff)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def requeue_errors_before(self, cutoff: datetime, max_attempts: int, now: datetime) -> int:
        stmt = (
            update(JobRow)
            .where(
                JobRow.status == JobStatus.ERROR,
                JobRow.attempts < max_attempts,
                JobRow.scheduled_at <= cutoff,
            )
            .values(status=JobStatus.QUEUED, scheduled_at=now, locked_by=None, locked_at=None)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def release_locks_before(self, cutoff: datetime) -> int:
        stmt = (
            update(JobRow)
            .where(JobRow.status == JobStatus.RUNNING, JobRow.locked_at < cutoff)
            .values(status=JobStatus.QUEUED, locked_by=None, locked_at=None)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount
