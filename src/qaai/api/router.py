"""Master API router mounted at /api/v1."""

from fastapi import APIRouter

from qaai.api.routes import artifacts, coverage, flakes, health, jobs

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(health.router, tags=["Health"])
api_router.include_router(jobs.router)
api_router.include_router(flakes.router)
api_router.include_router(coverage.router)
api_router.include_router(artifacts.router)
