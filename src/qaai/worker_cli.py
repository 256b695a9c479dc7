"""CLI entry point for the QAAI background worker."""

import argparse
import asyncio
import logging
import os
import signal
import socket
import time


def build_worker_id() -> str:
    return f"worker-{socket.gethostname()}-{os.getpid()}-{int(time.time())}"


async def run_worker(once: bool = False) -> None:
    from qaai.config import settings
    from qaai.db.engine import create_all_tables, create_db_engine, create_session_factory
    from qaai.integrations.artifacts import LocalArtifactStore
    from qaai.integrations.executor import CommandTestExecutor
    from qaai.integrations.llm import LLMClient
    from qaai.workers.base import WorkerDeps
    from qaai.workers.dispatcher import Dispatcher
    from qaai.workers.queue import JobStore
    from qaai.workers.registry import build_registry

    logger = logging.getLogger("qaai.worker")

    db_url = settings.effective_database_url
    engine = create_db_engine(db_url)
    if "sqlite" in db_url:
        await create_all_tables(engine)
    session_factory = create_session_factory(engine)

    store = JobStore(
        session_factory,
        worker_id=build_worker_id(),
        max_attempts=settings.job_max_attempts,
        error_max_length=settings.job_error_max_length,
    )
    deps = WorkerDeps(
        store=store,
        llm=LLMClient(),
        executor=CommandTestExecutor(),
        artifacts=LocalArtifactStore(),
    )
    dispatcher = Dispatcher(
        store,
        build_registry(deps),
        session_factory,
        poll_interval=settings.worker_poll_interval_ms / 1000,
        stats_interval=settings.worker_stats_interval_s,
        cleanup_interval=settings.job_cleanup_interval_s,
        retention_days=settings.job_retention_days,
    )

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, dispatcher.stop)

    logger.info("Worker %s starting", store.worker_id)
    try:
        if once:
            await dispatcher.run_once()
        else:
            await dispatcher.run_forever()
    finally:
        await engine.dispose()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="qaai-worker",
        description="QAAI worker: processes plan, generate and run jobs",
    )
    parser.add_argument(
        "--local",
        action="store_true",
        help="Local dev mode: SQLite database with auto-created tables",
    )
    parser.add_argument("--once", action="store_true", help="Process at most one job and exit")
    args = parser.parse_args(argv)

    if args.local:
        os.environ["QAAI_LOCAL_MODE"] = "1"

    from qaai.config import settings
    from qaai.logging_config import configure_logging

    configure_logging(component="worker", log_level=settings.log_level, json_output=not settings.local_mode)
    asyncio.run(run_worker(once=args.once))


if __name__ == "__main__":
    main()
