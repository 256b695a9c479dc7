"""Job queue endpoints: enqueue, inspect and operator recovery actions."""

from datetime import timedelta

from fastapi import APIRouter

from qaai.dependencies import Store
from qaai.errors.exceptions import NotFoundError
from qaai.models.job import EnqueueRequest, EnqueueResponse, ReclaimRequest, RequeueRequest

router = APIRouter(prefix="/jobs", tags=["Jobs"])


@router.post("", status_code=202)
async def enqueue_job(body: EnqueueRequest, store: Store) -> dict:
    job_id = await store.enqueue(body.kind, body.payload)
    return EnqueueResponse(job_id=job_id, kind=body.kind).model_dump(mode="json")


@router.get("/stats")
async def job_stats(store: Store) -> dict:
    stats = await store.stats()
    return stats.model_dump(mode="json")


@router.post("/requeue")
async def requeue_errored(body: RequeueRequest, store: Store) -> dict:
    """Move retryable error jobs back to the queue."""
    count = await store.requeue_errored(timedelta(minutes=body.older_than_minutes), body.max_attempts)
    return {"requeued": count}


@router.post("/reclaim")
async def reclaim_stale(body: ReclaimRequest, store: Store) -> dict:
    """Release running jobs whose lock outlived the lease."""
    count = await store.reclaim_stale(timedelta(minutes=body.lease_minutes))
    return {"reclaimed": count}


@router.get("/{job_id}")
async def get_job(job_id: int, store: Store) -> dict:
    job = await store.get(job_id)
    if job is None:
        raise NotFoundError("Job", str(job_id))
    return job.model_dump(mode="json")
