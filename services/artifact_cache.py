# -*- coding: utf-8 -*-
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from db import BlobStore
from errors import StorageError
from models import VIDEO_MIME
from providers.base import JobId

log = logging.getLogger(__name__)


@dataclass(slots=True)
class Artifact:
    """Stored result for one job id."""

    job_id: JobId
    data: bytes
    size: int
    content_type: str
    uploaded_at: str | None = None


class ArtifactCache:
    """
    Namespaced view over a BlobStore: one artifact per job id, last write wins.

    Write/read failures raise StorageError and are not retried here;
    ``exists`` degrades to False because callers always have the provider to fall back on.
    """

    def __init__(self, store: BlobStore, *, namespace: str = "videos", url_prefix: str = "/cache") -> None:
        self._store = store
        self._namespace = namespace.strip("/")
        self._url_prefix = url_prefix.rstrip("/")

    def key_for(self, job_id: JobId) -> str:
        return f"{self._namespace}/{job_id}"

    def locator_url(self, job_id: JobId) -> str:
        return f"{self._url_prefix}/{job_id}"

    async def put(self, job_id: JobId, data: bytes, content_type: str = VIDEO_MIME) -> str:
        """Store ``data`` for ``job_id`` and return the cache-relative locator URL."""
        metadata: dict[str, Any] = {
            "jobId": job_id,
            "contentType": content_type,
            "size": len(data),
            "uploadedAt": datetime.now(timezone.utc).isoformat(),
        }
        try:
            await self._store.set(self.key_for(job_id), data, metadata)
        except Exception as exc:
            log.error("Failed to store video: job_id=%s error=%s", job_id, exc)
            raise StorageError("Failed to store video in blob storage") from exc

        log.info("Video stored in cache: job_id=%s size=%d", job_id, len(data))
        return self.locator_url(job_id)

    async def get(self, job_id: JobId) -> bytes | None:
        """Bytes for ``job_id``; None means never stored, StorageError means store unreachable."""
        try:
            data = await self._store.get(self.key_for(job_id))
        except Exception as exc:
            log.error("Failed to get video from cache: job_id=%s error=%s", job_id, exc)
            raise StorageError("Failed to retrieve video from blob storage") from exc

        if data is None:
            log.debug("Video not found in cache: job_id=%s", job_id)
        return data

    async def get_artifact(self, job_id: JobId) -> Artifact | None:
        data = await self.get(job_id)
        if data is None:
            return None
        try:
            meta = await self._store.get_metadata(self.key_for(job_id)) or {}
        except Exception as exc:
            raise StorageError("Failed to read video metadata from blob storage") from exc
        return Artifact(
            job_id=job_id,
            data=data,
            size=len(data),
            content_type=meta.get("contentType") or VIDEO_MIME,
            uploaded_at=meta.get("uploadedAt"),
        )

    async def exists(self, job_id: JobId) -> bool:
        """Metadata-only presence probe. Probe failures are reported as absence."""
        try:
            metadata = await self._store.get_metadata(self.key_for(job_id))
        except Exception as exc:
            log.error("Failed to check video existence: job_id=%s error=%s", job_id, exc)
            return False
        return metadata is not None

    async def list_job_ids(self) -> list[JobId]:
        prefix = f"{self._namespace}/"
        try:
            keys = await self._store.list_keys(prefix)
        except Exception as exc:
            raise StorageError("Failed to list videos in blob storage") from exc
        return [k[len(prefix):] for k in keys if k.startswith(prefix)]
