"""Signed artifact downloads."""

from fastapi import APIRouter, Request
from fastapi.responses import Response

from qaai.errors.exceptions import ForbiddenError
from qaai.integrations.artifacts import guess_content_type

router = APIRouter(prefix="/artifacts", tags=["Artifacts"])


@router.get("/{key:path}")
async def download_artifact(key: str, expires: int, signature: str, request: Request) -> Response:
    store = request.app.state.artifact_store
    if not store.verify_signature(key, expires, signature):
        raise ForbiddenError("Invalid or expired artifact signature")

    data = await store.get(key)
    return Response(content=data, media_type=guess_content_type(key))
