"""FastAPI dependency injection providers."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from qaai.workers.queue import JobStore


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Yield a database session from the app's session factory."""
    session_factory = request.app.state.db_session_factory
    async with session_factory() as session:
        yield session


def get_job_store(request: Request) -> JobStore:
    """Job store bound to the API's own identity; the API never acquires jobs."""
    return request.app.state.job_store


DBSession = Annotated[AsyncSession, Depends(get_db)]
Store = Annotated[JobStore, Depends(get_job_store)]
