"""Pydantic models for queued jobs."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from qaai.models.enums import JobKind, JobStatus


class JobModel(BaseModel):
    """Snapshot of a ``jobs_queue`` row.

    ``kind`` stays a plain string so rows written by an older producer with
    a kind this worker does not know still load; the dispatcher rejects them.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int
    kind: str
    payload: dict[str, Any] = Field(default_factory=dict)
    status: JobStatus
    attempts: int = 0
    last_error: str | None = None
    scheduled_at: datetime | None = None
    locked_by: str | None = None
    locked_at: datetime | None = None


class JobStats(BaseModel):
    queued: int = 0
    running: int = 0
    done: int = 0
    error: int = 0


class EnqueueRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    kind: JobKind
    payload: dict[str, Any] = Field(default_factory=dict)


class EnqueueResponse(BaseModel):
    job_id: int
    kind: JobKind
    status: JobStatus = JobStatus.QUEUED


class RequeueRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    older_than_minutes: int = Field(0, ge=0)
    max_attempts: int = Field(3, ge=1)


class ReclaimRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    lease_minutes: int = Field(30, ge=1)
