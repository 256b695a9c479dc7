"""Worker loop: poll the job store, route each job to its handler, record the outcome.

One job is in flight per dispatcher. Scale out by running more worker
processes against the same database; acquisition is atomic at the store.
"""

import asyncio
import contextlib
import logging
import time
import traceback
from collections.abc import Awaitable, Callable, Mapping

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from qaai.errors.exceptions import PayloadError, StoreError
from qaai.logging_config import bind_job_context, clear_context
from qaai.models.enums import JobKind
from qaai.models.job import JobModel
from qaai.workers.base import BaseWorker
from qaai.workers.queue import JobStore
from qaai.workers.registry import validate_registry

logger = logging.getLogger(__name__)


class Dispatcher:
    def __init__(
        self,
        store: JobStore,
        registry: Mapping[JobKind, BaseWorker],
        session_factory: async_sessionmaker[AsyncSession],
        poll_interval: float = 3.0,
        stats_interval: float = 60.0,
        cleanup_interval: float = 3600.0,
        retention_days: int = 30,
        clock: Callable[[], float] = time.monotonic,
    ):
        validate_registry(registry)
        self.store = store
        self.registry = registry
        self.session_factory = session_factory
        self.poll_interval = poll_interval
        self.stats_interval = stats_interval
        self.cleanup_interval = cleanup_interval
        self.retention_days = retention_days
        self._clock = clock
        self._stopping = asyncio.Event()
        self._last_stats = clock()
        self._last_cleanup = clock()

    def stop(self) -> None:
        """Ask the loop to exit once the in-flight job, if any, is settled."""
        self._stopping.set()

    @property
    def stopping(self) -> bool:
        return self._stopping.is_set()

    async def run_forever(self) -> None:
        logger.info(
            "Dispatcher %s started (poll interval %.1fs)", self.store.worker_id, self.poll_interval
        )
        while not self._stopping.is_set():
            processed = await self.run_once()
            await self.housekeeping()
            if not processed:
                with contextlib.suppress(asyncio.TimeoutError):
                    await asyncio.wait_for(self._stopping.wait(), timeout=self.poll_interval)
        logger.info("Dispatcher %s stopped", self.store.worker_id)

    async def run_once(self) -> bool:
        """Acquire and process at most one job; True when a job was processed."""
        try:
            job = await self.store.acquire_next()
        except StoreError as exc:
            logger.warning("Job acquisition failed, retrying next tick: %s", exc.message)
            return False

        if job is None:
            return False

        bind_job_context(job.id, job.kind, self.store.worker_id)
        try:
            await self._process(job)
        finally:
            clear_context()
        return True

    async def _process(self, job: JobModel) -> None:
        logger.info("Processing job %s of kind %r (attempt %d)", job.id, job.kind, job.attempts + 1)
        started = time.monotonic()
        try:
            result = await self._dispatch(job)
        except Exception:
            logger.exception("Job %s failed", job.id)
            await self._settle(self.store.mark_error(job.id, traceback.format_exc()), job, "mark_error")
            return

        await self._settle(self.store.mark_done(job.id), job, "mark_done")
        logger.info("Job %s completed in %.2fs: %s", job.id, time.monotonic() - started, result)

    async def _dispatch(self, job: JobModel) -> dict:
        try:
            kind = JobKind(job.kind)
        except ValueError:
            raise PayloadError(f"Unknown job kind: {job.kind}") from None

        handler = self.registry[kind]
        async with self.session_factory() as session:
            result = await handler.process(job, session)
            await session.commit()
        return result

    @staticmethod
    async def _settle(outcome: Awaitable[None], job: JobModel, operation: str) -> None:
        # The job stays running when the store is unreachable here
        try:
            await outcome
        except StoreError as exc:
            logger.error("Could not %s job %s: %s", operation, job.id, exc.message)

    async def housekeeping(self) -> None:
        """Periodic stats logging and retention cleanup; failures are logged only."""
        now = self._clock()

        if now - self._last_stats >= self.stats_interval:
            self._last_stats = now
            try:
                stats = await self.store.stats()
            except StoreError as exc:
                logger.warning("Job stats unavailable: %s", exc.message)
            else:
                logger.info(
                    "Job stats: queued=%d running=%d done=%d error=%d",
                    stats.queued,
                    stats.running,
                    stats.done,
                    stats.error,
                )

        if now - self._last_cleanup >= self.cleanup_interval:
            self._last_cleanup = now
            try:
                await self.store.cleanup_older_than(self.retention_days)
            except StoreError as exc:
                logger.warning("Job cleanup failed: %s", exc.message)
