"""Structured logging for the API server and the worker process.

Both processes log through stdlib ``logging``; structlog renders the
records and merges the per-job or per-request context bound below.
"""

import logging
import sys

import structlog

_QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "httpx", "httpcore", "asyncio")


def _add_component(component: str):
    def processor(logger, method_name, event_dict):
        event_dict.setdefault("component", component)
        return event_dict

    return processor


def configure_logging(component: str, log_level: str = "info", json_output: bool = False) -> None:
    """Route stdlib and structlog output through one stdout handler.

    Args:
        component: ``server`` or ``worker``; stamped on every line.
        log_level: debug/info/warning/error.
        json_output: JSON lines for collectors, otherwise coloured console.
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    pre_chain = [
        structlog.contextvars.merge_contextvars,
        _add_component(component),
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    )

    structlog.configure(
        processors=pre_chain + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.processors.format_exc_info,
                renderer,
            ],
        )
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_job_context(job_id: int, job_kind: str, worker_id: str) -> None:
    """Tag every log line emitted while this job runs."""
    structlog.contextvars.bind_contextvars(job_id=job_id, job_kind=job_kind, worker_id=worker_id)


def bind_request_context(trace_id: str, project_id: str | None = None) -> None:
    structlog.contextvars.bind_contextvars(trace_id=trace_id)
    if project_id:
        structlog.contextvars.bind_contextvars(project_id=project_id)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
