"""Base worker interface and the collaborators handed to every worker."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from qaai.config import settings
from qaai.errors.exceptions import PayloadError
from qaai.integrations.artifacts import ArtifactStore
from qaai.integrations.executor import TestExecutor
from qaai.integrations.github import GitHubClient
from qaai.integrations.llm import LLMClient
from qaai.models.job import JobModel
from qaai.workers.queue import JobStore

logger = logging.getLogger(__name__)


@dataclass
class WorkerDeps:
    store: JobStore
    llm: LLMClient
    executor: TestExecutor
    artifacts: ArtifactStore
    github_factory: Callable[[str | None], GitHubClient] = field(default=lambda token: GitHubClient(token=token))

    def github(self, token: str | None = None) -> GitHubClient:
        """GitHub client for a project token, falling back to the global one."""
        return self.github_factory(token or settings.github_token)


class BaseWorker(ABC):
    """Abstract base class for job handlers.

    ``process`` writes through ``session`` and never commits; the dispatcher
    commits once the handler returns, so domain rows and follow-on jobs land
    together.
    """

    def __init__(self, deps: WorkerDeps):
        self.deps = deps

    @abstractmethod
    async def process(self, job: JobModel, session: AsyncSession) -> dict:
        """Process a job and return a short result summary."""
        ...

    @staticmethod
    def require(payload: dict, key: str):
        value = payload.get(key)
        if not value:
            raise PayloadError(f"payload must include {key}", details={"missing": key})
        return value
