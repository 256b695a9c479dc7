"""Worker registry mapping job kinds to handler instances."""

from collections.abc import Mapping

from qaai.models.enums import JobKind
from qaai.workers.base import BaseWorker, WorkerDeps


def validate_registry(registry: Mapping[JobKind, BaseWorker]) -> None:
    """Fail fast when a job kind has no handler."""
    missing = [kind.value for kind in JobKind if kind not in registry]
    if missing:
        raise RuntimeError(f"No worker registered for job kind(s): {', '.join(missing)}")


def build_registry(deps: WorkerDeps) -> dict[JobKind, BaseWorker]:
    from qaai.workers.generate_worker import GenerateWorker
    from qaai.workers.plan_worker import PlanWorker
    from qaai.workers.run_worker import RunWorker

    registry: dict[JobKind, BaseWorker] = {
        JobKind.PLAN: PlanWorker(deps),
        JobKind.GENERATE: GenerateWorker(deps),
        JobKind.RUN: RunWorker(deps),
    }
    validate_registry(registry)
    return registry
