# -*- coding: utf-8 -*-
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol

from models import JobStatus
from providers.models import GenerationParams

JobId = str


@dataclass(slots=True)
class SubmitResult:
    """Returned by a successful submission."""

    job_id: JobId
    status: JobStatus
    created_at: str


@dataclass(slots=True)
class ProviderStatus:
    """Represents a provider job state snapshot."""

    job_id: JobId
    status: JobStatus
    progress: int = 0
    error: str | None = None
    created_at: str | None = None
    completed_at: str | None = None
    expires_at: datetime | None = None

    def content_available(self, now: datetime | None = None) -> bool:
        """True when the job is completed and its content has not expired yet."""
        if self.status is not JobStatus.COMPLETED:
            return False
        if self.expires_at is None:
            return True
        return self.expires_at > (now or datetime.now(timezone.utc))


class VideoProvider(Protocol):
    """Common contract for video generation providers."""

    async def submit(self, params: GenerationParams) -> SubmitResult:
        """Submit a generation job."""

    async def get_status(self, job_id: JobId) -> ProviderStatus:
        """Return latest job status supplied by the provider."""

    async def download(self, job_id: JobId) -> bytes:
        """Return raw bytes of a completed job."""
