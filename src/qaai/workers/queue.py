"""Durable job queue backed by the ``jobs_queue`` table.

Each public operation runs in its own transaction. Storage failures surface
as :class:`StoreError` so the dispatcher can treat them as transient.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from qaai.errors.exceptions import StoreError
from qaai.models.enums import JobKind, JobStatus
from qaai.models.job import JobModel, JobStats
from qaai.repositories.job_repo import JobRepository

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3
ERROR_MAX_LENGTH = 5000

# asyncpg raises bare OSError subclasses when the server refuses or drops a
# connection; SQLAlchemy does not wrap those.
STORE_FAILURES = (SQLAlchemyError, OSError)


def truncate_error(message: str | None, limit: int = ERROR_MAX_LENGTH) -> str:
    if not message:
        return "Unknown error"
    return message[:limit]


class JobStore:
    """Concurrency-safe work queue bound to one worker identity."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        worker_id: str,
        max_attempts: int = MAX_ATTEMPTS,
        error_max_length: int = ERROR_MAX_LENGTH,
    ):
        self.session_factory = session_factory
        self.worker_id = worker_id
        self.max_attempts = max_attempts
        self.error_max_length = error_max_length

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    async def enqueue(
        self,
        kind: JobKind,
        payload: dict[str, Any] | None = None,
        session: AsyncSession | None = None,
    ) -> int:
        """Insert a queued job and return its id.

        With ``session`` the row joins the caller's transaction and becomes
        visible when the caller commits.
        """
        kind = JobKind(kind)
        if session is not None:
            row = await JobRepository(session).insert(kind, payload or {}, self._now())
            logger.info("Enqueued %s job %s", kind, row.id)
            return row.id

        try:
            async with self.session_factory() as own_session:
                row = await JobRepository(own_session).insert(kind, payload or {}, self._now())
                job_id = row.id
                await own_session.commit()
        except STORE_FAILURES as exc:
            raise StoreError("enqueue", str(exc)) from exc

        logger.info("Enqueued %s job %s", kind, job_id)
        return job_id

    async def acquire_next(self) -> JobModel | None:
        """Atomically claim the oldest eligible queued job, or return None."""
        try:
            async with self.session_factory() as session:
                row = await JobRepository(session).claim_next(
                    self.worker_id, self.max_attempts, self._now()
                )
                await session.commit()
        except STORE_FAILURES as exc:
            raise StoreError("acquire_next", str(exc)) from exc

        if row is None:
            return None
        return JobModel.model_validate(dict(row._mapping))

    async def mark_done(self, job_id: int) -> None:
        """Transition to done. Repeating the call is a no-op."""
        try:
            async with self.session_factory() as session:
                updated = await JobRepository(session).set_done(job_id)
                await session.commit()
        except STORE_FAILURES as exc:
            raise StoreError("mark_done", str(exc)) from exc

        if not updated:
            logger.debug("Job %s already done or missing", job_id)

    async def mark_error(self, job_id: int, message: str | None) -> None:
        """Transition to error, bump ``attempts`` and store a truncated message."""
        truncated = truncate_error(message, self.error_max_length)
        try:
            async with self.session_factory() as session:
                updated = await JobRepository(session).set_error(job_id, truncated)
                await session.commit()
        except STORE_FAILURES as exc:
            raise StoreError("mark_error", str(exc)) from exc

        if not updated:
            logger.warning("Job %s not marked as error (done or missing)", job_id)

    async def get(self, job_id: int) -> JobModel | None:
        try:
            async with self.session_factory() as session:
                row = await JobRepository(session).get(job_id)
        except STORE_FAILURES as exc:
            raise StoreError("get", str(exc)) from exc
        return JobModel.model_validate(row) if row else None

    async def stats(self) -> JobStats:
        try:
            async with self.session_factory() as session:
                counts = await JobRepository(session).count_by_status()
        except STORE_FAILURES as exc:
            raise StoreError("stats", str(exc)) from exc
        return JobStats(**{status.value: counts.get(status.value, 0) for status in JobStatus})

    async def cleanup_older_than(self, days: int) -> int:
        """Delete done jobs scheduled more than ``days`` ago; returns the count."""
        cutoff = self._now() - timedelta(days=days)
        try:
            async with self.session_factory() as session:
                deleted = await JobRepository(session).delete_done_before(cutoff)
                await session.commit()
        except STORE_FAILURES as exc:
            raise StoreError("cleanup_older_than", str(exc)) from exc

        if deleted:
            logger.info("Deleted %d done jobs older than %d days", deleted, days)
        return deleted

    async def requeue_errored(self, older_than: timedelta, max_attempts: int | None = None) -> int:
        """Move retryable error jobs back to queued.

        Only jobs with ``attempts < max_attempts`` scheduled at least
        ``older_than`` ago are touched. Never called by the dispatcher; the
        caller decides when a retry is due.
        """
        now = self._now()
        limit = max_attempts if max_attempts is not None else self.max_attempts
        try:
            async with self.session_factory() as session:
                count = await JobRepository(session).requeue_errors_before(now - older_than, limit, now)
                await session.commit()
        except STORE_FAILURES as exc:
            raise StoreError("requeue_errored", str(exc)) from exc

        if count:
            logger.info("Requeued %d errored jobs", count)
        return count

    async def reclaim_stale(self, lease: timedelta) -> int:
        """Return running jobs whose lock is older than ``lease`` to the queue.

        Lease expiry for workers that died mid-job. Never called by the
        dispatcher.
        """
        try:
            async with self.session_factory() as session:
                count = await JobRepository(session).release_locks_before(self._now() - lease)
                await session.commit()
        except STORE_FAILURES as exc:
            raise StoreError("reclaim_stale", str(exc)) from exc

        if count:
            logger.warning("Reclaimed %d stale running jobs", count)
        return count
