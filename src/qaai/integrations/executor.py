"""Test execution backends.

A :class:`TestExecutor` runs one test case against an application base URL
and reports its outcome plus any artifact blobs it produced. The shipped
backend, :class:`CommandTestExecutor`, hands the test definition to an
external command (a Playwright wrapper in practice) as JSON on stdin.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import shlex
import shutil
import tempfile
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, Field

from qaai.config import settings
from qaai.errors.exceptions import CollaboratorError
from qaai.models.enums import TestStatus

logger = logging.getLogger(__name__)

ARTIFACT_DIR_ENV = "QAAI_ARTIFACT_DIR"
BASE_URL_ENV = "QAAI_BASE_URL"
LOG_TAIL = 4000


class TestDefinition(BaseModel):
    __test__ = False

    model_config = ConfigDict(from_attributes=True)

    test_case_id: str
    title: str
    steps: list[Any] = Field(default_factory=list)


@dataclass
class ExecutionOutcome:
    status: TestStatus
    duration_ms: int
    logs: str = ""
    error_text: str | None = None
    artifacts: dict[str, bytes] = field(default_factory=dict)


class TestExecutor(Protocol):
    __test__ = False

    async def execute(self, test_case: TestDefinition, base_url: str) -> ExecutionOutcome: ...


class CommandTestExecutor:
    """Run each test through an external command.

    Exit code 0 is a pass, any other exit code a failure, and a timeout an
    error. Files the command writes into ``$QAAI_ARTIFACT_DIR`` are returned
    as artifacts keyed by file name.
    """

    __test__ = False

    def __init__(self, command: str | None = None, timeout: float | None = None):
        self.command = shlex.split(command or settings.executor_command)
        self.timeout = timeout or settings.executor_timeout_s

    async def execute(self, test_case: TestDefinition, base_url: str) -> ExecutionOutcome:
        artifact_dir = tempfile.mkdtemp(prefix="qaai-artifacts-")
        env = {**os.environ, ARTIFACT_DIR_ENV: artifact_dir, BASE_URL_ENV: base_url}
        stdin = json.dumps({**test_case.model_dump(mode="json"), "base_url": base_url}).encode()

        started = time.monotonic()
        try:
            try:
                proc = await asyncio.create_subprocess_exec(
                    *self.command,
                    stdin=asyncio.subprocess.PIPE,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                    env=env,
                )
            except OSError as exc:
                raise CollaboratorError("executor", f"cannot start {self.command[0]}: {exc}") from exc

            try:
                stdout, stderr = await asyncio.wait_for(proc.communicate(stdin), timeout=self.timeout)
            except asyncio.TimeoutError:
                proc.kill()
                await proc.wait()
                logger.warning("Test %s timed out after %.0fs", test_case.test_case_id, self.timeout)
                return ExecutionOutcome(
                    status=TestStatus.ERROR,
                    duration_ms=_elapsed_ms(started),
                    error_text=f"Timed out after {self.timeout:.0f}s",
                    artifacts=_collect_artifacts(artifact_dir),
                )

            logs = stdout.decode(errors="replace")
            err = stderr.decode(errors="replace")
            passed = proc.returncode == 0
            return ExecutionOutcome(
                status=TestStatus.PASSED if passed else TestStatus.FAILED,
                duration_ms=_elapsed_ms(started),
                logs=logs + err,
                error_text=None if passed else (err or logs)[-LOG_TAIL:] or f"Exit code {proc.returncode}",
                artifacts=_collect_artifacts(artifact_dir),
            )
        finally:
            shutil.rmtree(artifact_dir, ignore_errors=True)


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


def _collect_artifacts(directory: str) -> dict[str, bytes]:
    return {path.name: path.read_bytes() for path in sorted(Path(directory).iterdir()) if path.is_file()}
