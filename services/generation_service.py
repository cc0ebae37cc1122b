# -*- coding: utf-8 -*-
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from config import Settings
from db import SqliteBlobStore
from providers.base import SubmitResult, VideoProvider
from providers.models import DEFAULT_MODEL, GenerationParams
from providers.sora_provider import SoraProvider
from services.artifact_cache import ArtifactCache
from services.completion_worker import CompletionWorker
from services.job_resolver import JobStatusResolver
from services.media_tools import Transcoder
from services.prompt_template import render_dream_prompt
from services.work_queue import CompletionQueue
from utils.validators import validate_prompt

log = logging.getLogger("services.generation_service")


@dataclass(slots=True)
class Pipeline:
    """Everything a request handler needs, built once at process start."""

    provider: VideoProvider
    cache: ArtifactCache
    worker: CompletionWorker
    queue: CompletionQueue
    resolver: JobStatusResolver
    store: Optional[SqliteBlobStore] = None
    default_model: str = DEFAULT_MODEL

    async def start(self) -> None:
        if self.store is not None:
            await self.store.migrate()
        await self.queue.start()

    async def stop(self) -> None:
        await self.queue.stop()


def build_pipeline(settings: Settings, *, provider: Optional[VideoProvider] = None) -> Pipeline:
    """Wire provider, cache, transcoder, worker pool and resolver from settings."""
    if provider is None:
        provider = SoraProvider(
            settings.OPENAI_API_KEY,
            base_url=settings.OPENAI_BASE_URL,
            retry_policy=settings.retry_policy(),
            timeout=settings.HTTP_TIMEOUT,
            download_timeout=settings.DOWNLOAD_TIMEOUT,
        )

    store = SqliteBlobStore(settings.BLOB_DB_PATH)
    cache = ArtifactCache(store, namespace=settings.CACHE_NAMESPACE, url_prefix=settings.CACHE_URL_PREFIX)

    transcoder: Optional[Transcoder] = None
    if settings.TRANSCODE_ENABLED:
        ffmpeg, ffprobe = settings.ffmpeg_bins()
        transcoder = Transcoder(ffmpeg, ffprobe, log_commands=settings.FFMPEG_LOG_CMD)
    else:
        log.info("Transcoding disabled; raw provider bytes will be cached")

    worker = CompletionWorker(provider, cache, transcoder, profile=settings.compression_profile())
    queue = CompletionQueue(worker, concurrency=settings.WORKER_CONCURRENCY, max_size=settings.WORK_QUEUE_SIZE)
    resolver = JobStatusResolver(
        cache,
        provider,
        worker,
        queue,
        provider_url_prefix=settings.PROVIDER_URL_PREFIX,
    )
    return Pipeline(
        provider=provider,
        cache=cache,
        worker=worker,
        queue=queue,
        resolver=resolver,
        store=store,
        default_model=settings.SORA_MODEL,
    )


async def create_video(
    provider: VideoProvider,
    *,
    prompt: str,
    use_template: bool = False,
    model: Optional[str] = None,
    seconds: Optional[str] = None,
    size: Optional[str] = None,
    default_model: Optional[str] = None,
) -> SubmitResult:
    """
    Validate the prompt and submit a generation job.
    With ``use_template`` the notes are wrapped into the dream prompt template first.
    ``default_model`` applies when the request names no model.
    """
    notes = validate_prompt(prompt)
    text = render_dream_prompt(notes) if use_template else notes
    params = GenerationParams(prompt=text, model=model or default_model, seconds=seconds, size=size)
    result = await provider.submit(params)
    log.info("Video creation request successful: job_id=%s", result.job_id)
    return result
