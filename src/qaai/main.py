"""FastAPI application factory and lifespan management."""

import logging
import os
import socket
from contextlib import asynccontextmanager

from fastapi import FastAPI

from qaai.config import settings
from qaai.db.engine import create_all_tables, create_db_engine, create_session_factory
from qaai.integrations.artifacts import LocalArtifactStore
from qaai.logging_config import configure_logging
from qaai.workers.queue import JobStore

# Configure logging at import time
configure_logging(component="server", log_level=settings.log_level, json_output=not settings.local_mode)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application startup and shutdown resources."""
    db_url = settings.effective_database_url
    engine = create_db_engine(db_url)

    # Auto-create tables for SQLite (local dev)
    if "sqlite" in db_url:
        await create_all_tables(engine)
        logger.info("SQLite tables created (local mode)")

    session_factory = create_session_factory(engine)
    app.state.db_engine = engine
    app.state.db_session_factory = session_factory
    app.state.job_store = JobStore(
        session_factory,
        worker_id=f"api-{socket.gethostname()}-{os.getpid()}",
        max_attempts=settings.job_max_attempts,
        error_max_length=settings.job_error_max_length,
    )
    app.state.artifact_store = LocalArtifactStore()

    logger.info("QAAI API started (db=%s)", "sqlite" if "sqlite" in db_url else "postgresql")
    yield

    await engine.dispose()
    logger.info("QAAI API shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="QAAI Runner API",
        version="0.1.0",
        description="Job queue and test reliability analytics for AI-planned E2E tests.",
        lifespan=lifespan,
    )

    from qaai.api.middleware.trace_id import TraceIdMiddleware
    app.add_middleware(TraceIdMiddleware)

    from qaai.errors.handlers import register_exception_handlers
    register_exception_handlers(app)

    from qaai.api.router import api_router
    app.include_router(api_router)

    return app


app = create_app()
