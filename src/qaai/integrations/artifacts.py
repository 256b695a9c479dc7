"""Artifact storage for traces, videos, screenshots and HAR captures."""

from __future__ import annotations

import asyncio
import hashlib
import hmac
import logging
import shutil
import time
from pathlib import Path, PurePosixPath
from typing import Protocol
from urllib.parse import quote, urlencode

from qaai.config import settings
from qaai.errors.exceptions import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

CONTENT_TYPES = {
    ".zip": "application/zip",
    ".mp4": "video/mp4",
    ".webm": "video/webm",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".har": "application/json",
    ".json": "application/json",
    ".xml": "application/xml",
}


def guess_content_type(name: str) -> str:
    return CONTENT_TYPES.get(PurePosixPath(name).suffix.lower(), "application/octet-stream")


class ArtifactStore(Protocol):
    async def put(self, key: str, data: bytes, content_type: str | None = None) -> str: ...

    async def get(self, key: str) -> bytes: ...

    def signed_url(self, key: str, expires_in: int | None = None) -> str: ...

    async def delete_prefix(self, prefix: str) -> int: ...


def _check_key(key: str) -> PurePosixPath:
    path = PurePosixPath(key)
    if not key or path.is_absolute() or ".." in path.parts:
        raise ValidationError(f"Invalid artifact key: {key!r}")
    return path


class LocalArtifactStore:
    """Filesystem-backed store with HMAC-SHA256 signed download URLs."""

    def __init__(self, root: str | Path | None = None, secret: str | None = None, url_base: str | None = None):
        self.root = Path(root or settings.artifact_dir)
        self.secret = (secret or settings.artifact_signing_secret).encode()
        self.url_base = (url_base or settings.artifact_url_base).rstrip("/")

    def _path(self, key: str) -> Path:
        return self.root.joinpath(*_check_key(key).parts)

    async def put(self, key: str, data: bytes, content_type: str | None = None) -> str:
        path = self._path(key)

        def _write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)

        await asyncio.to_thread(_write)
        logger.debug("Stored artifact %s (%d bytes, %s)", key, len(data), content_type or guess_content_type(key))
        return key

    async def get(self, key: str) -> bytes:
        path = self._path(key)
        if not path.is_file():
            raise NotFoundError("Artifact", key)
        return await asyncio.to_thread(path.read_bytes)

    def _signature(self, key: str, expires: int) -> str:
        return hmac.new(self.secret, f"{key}:{expires}".encode(), hashlib.sha256).hexdigest()

    def signed_url(self, key: str, expires_in: int | None = None, now: float | None = None) -> str:
        _check_key(key)
        ttl = expires_in if expires_in is not None else settings.artifact_url_ttl_s
        expires = int(now if now is not None else time.time()) + ttl
        query = urlencode({"expires": expires, "signature": self._signature(key, expires)})
        return f"{self.url_base}/{quote(key)}?{query}"

    def verify_signature(self, key: str, expires: int, signature: str, now: float | None = None) -> bool:
        if expires < (now if now is not None else time.time()):
            return False
        return hmac.compare_digest(self._signature(key, expires), signature)

    async def delete_prefix(self, prefix: str) -> int:
        """Remove every artifact under ``prefix``; returns the number of files removed."""
        path = self._path(prefix)
        if path.is_file():
            await asyncio.to_thread(path.unlink)
            return 1
        if not path.is_dir():
            return 0

        count = sum(1 for p in path.rglob("*") if p.is_file())
        await asyncio.to_thread(shutil.rmtree, path)
        logger.info("Deleted %d artifacts under %s", count, prefix)
        return count
