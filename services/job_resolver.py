# -*- coding: utf-8 -*-
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

from errors import GenerationError
from models import JobStatus
from providers.base import JobId, VideoProvider
from services.artifact_cache import ArtifactCache
from services.completion_worker import CompletionWorker
from utils.validators import validate_job_id

log = logging.getLogger(__name__)


class Dispatcher(Protocol):
    def dispatch(self, job_id: JobId) -> bool:
        """Schedule background completion without waiting for it."""


@dataclass(slots=True)
class Resolution:
    """Best known state of one job."""

    job_id: JobId
    status: JobStatus
    locator_url: str | None = None
    error: str | None = None
    cached: bool = False
    completed_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"jobId": self.job_id, "status": self.status.value}
        if self.status is JobStatus.COMPLETED:
            out["videoUrl"] = self.locator_url
            out["cached"] = self.cached
            if self.completed_at:
                out["completedAt"] = self.completed_at
        else:
            out["error"] = self.error
        return out


class JobStatusResolver:
    """
    Entry point used by the status-polling endpoint.

    Order per call: validate -> cache probe -> provider status. A completed job
    with no cached artifact is handed to the dispatcher and answered immediately
    with the provider-backed URL.
    """

    def __init__(
        self,
        cache: ArtifactCache,
        provider: VideoProvider,
        worker: CompletionWorker,
        dispatcher: Dispatcher,
        *,
        provider_url_prefix: str = "/provider",
    ) -> None:
        self._cache = cache
        self._provider = provider
        self._worker = worker
        self._dispatcher = dispatcher
        self._provider_url_prefix = provider_url_prefix.rstrip("/")

    def provider_url(self, job_id: JobId) -> str:
        return f"{self._provider_url_prefix}/{job_id}"

    async def resolve(self, job_id: JobId) -> Resolution:
        validate_job_id(job_id)

        if await self._cache.exists(job_id):
            log.debug("Video already in cache: job_id=%s", job_id)
            return Resolution(
                job_id=job_id,
                status=JobStatus.COMPLETED,
                locator_url=self._cache.locator_url(job_id),
                cached=True,
            )

        status = await self._provider.get_status(job_id)

        if status.status is JobStatus.FAILED:
            return Resolution(job_id=job_id, status=JobStatus.FAILED, error=status.error or "generation failed")

        if status.status is not JobStatus.COMPLETED:
            return Resolution(job_id=job_id, status=status.status)

        if not status.content_available():
            # завершено, но забрать нечего: это ошибка, а не успех
            raise GenerationError(
                "Video generation completed but content is no longer retrievable",
                "CONTENT_EXPIRED",
            )

        scheduled = self._dispatcher.dispatch(job_id)
        log.info("Video completed: job_id=%s caching_scheduled=%s", job_id, scheduled)
        return Resolution(
            job_id=job_id,
            status=JobStatus.COMPLETED,
            locator_url=self.provider_url(job_id),
            completed_at=status.completed_at,
        )

    def trigger_completion(self, job_id: JobId) -> bool:
        """Force (re)caching through the same background path; False when the queue is full."""
        validate_job_id(job_id)
        return self._dispatcher.dispatch(job_id)

    async def complete_now(self, job_id: JobId) -> str:
        """Run the worker inline and return the cache URL. Errors propagate."""
        validate_job_id(job_id)
        return await self._worker.process(job_id)
