# -*- coding: utf-8 -*-
from __future__ import annotations

import logging
import time
from typing import Optional

from providers.base import JobId, VideoProvider
from services.artifact_cache import ArtifactCache
from services.media_tools import DEFAULT_PROFILE, CompressionProfile, Transcoder

log = logging.getLogger(__name__)


class CompletionWorker:
    """
    Materializes a finished job: download -> (optional) compress -> store.

    The three steps are strictly sequential. Errors propagate from ``process``;
    the background queue is what absorbs them.
    """

    def __init__(
        self,
        provider: VideoProvider,
        cache: ArtifactCache,
        transcoder: Optional[Transcoder] = None,
        *,
        profile: CompressionProfile = DEFAULT_PROFILE,
    ) -> None:
        self._provider = provider
        self._cache = cache
        self._transcoder = transcoder
        self._profile = profile

    async def process(self, job_id: JobId) -> str:
        """Return the cache locator URL of the stored artifact."""
        started = time.monotonic()
        log.info("Processing video: job_id=%s", job_id)

        raw = await self._provider.download(job_id)
        log.info(
            "Video downloaded: job_id=%s size=%d (%.2f MB) download_ms=%d",
            job_id, len(raw), len(raw) / 1024 / 1024, (time.monotonic() - started) * 1000,
        )

        data = raw
        if self._transcoder is not None:
            t0 = time.monotonic()
            data = await self._transcoder.compress(raw, self._profile)
            log.info(
                "Video compressed: job_id=%s %d -> %d bytes compression_ms=%d",
                job_id, len(raw), len(data), (time.monotonic() - t0) * 1000,
            )

        t0 = time.monotonic()
        url = await self._cache.put(job_id, data)
        log.info(
            "Video stored: job_id=%s url=%s store_ms=%d total_ms=%d",
            job_id, url, (time.monotonic() - t0) * 1000, (time.monotonic() - started) * 1000,
        )
        return url
