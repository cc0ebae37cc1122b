from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import pytest

from errors import GenerationError
from models import JobStatus
from providers.base import ProviderStatus, SubmitResult
from services.artifact_cache import ArtifactCache


class MemoryStore:
    """In-memory BlobStore that records every call."""

    def __init__(self) -> None:
        self.blobs: dict[str, tuple[bytes, dict[str, Any]]] = {}
        self.calls: list[tuple[str, str]] = []
        self.fail: set[str] = set()

    def _record(self, op: str, key: str) -> None:
        self.calls.append((op, key))
        if op in self.fail:
            raise OSError(f"{op} unavailable")

    async def set(self, key, data, metadata):
        self._record("set", key)
        self.blobs[key] = (bytes(data), dict(metadata))

    async def get(self, key):
        self._record("get", key)
        item = self.blobs.get(key)
        return item[0] if item else None

    async def get_metadata(self, key):
        self._record("get_metadata", key)
        item = self.blobs.get(key)
        return dict(item[1]) if item else None

    async def list_keys(self, prefix=""):
        self._record("list_keys", prefix)
        return sorted(k for k in self.blobs if k.startswith(prefix))


class FakeProvider:
    """Provider double: per-job status table, canned download bytes, call log."""

    def __init__(self) -> None:
        self.statuses: dict[str, ProviderStatus] = {}
        self.content: dict[str, bytes] = {}
        self.calls: list[tuple[str, str]] = []
        self.submitted: list = []
        self.download_error: Exception | None = None
        self.download_gate = None

    def set_status(self, job_id: str, status: JobStatus, *, error: str | None = None, expires_at=None) -> None:
        self.statuses[job_id] = ProviderStatus(
            job_id=job_id,
            status=status,
            error=error,
            completed_at="2025-01-01T00:00:00+00:00" if status is JobStatus.COMPLETED else None,
            expires_at=expires_at,
        )

    async def submit(self, params):
        self.calls.append(("submit", params.prompt))
        self.submitted.append(params)
        return SubmitResult(job_id="video_ab12cd34ef", status=JobStatus.PENDING, created_at="2025-01-01T00:00:00+00:00")

    async def get_status(self, job_id):
        self.calls.append(("get_status", job_id))
        if job_id not in self.statuses:
            raise GenerationError("Video job not found", "NOT_FOUND", status=404)
        return self.statuses[job_id]

    async def download(self, job_id):
        self.calls.append(("download", job_id))
        if self.download_gate is not None:
            await self.download_gate.wait()
        if self.download_error is not None:
            raise self.download_error
        return self.content.get(job_id, b"raw-" + job_id.encode() * 4)


class FakeTranscoder:
    def __init__(self) -> None:
        self.calls: list[bytes] = []

    async def compress(self, raw, profile=None):
        self.calls.append(raw)
        return b"small:" + raw[:4]


class FakeDispatcher:
    def __init__(self, accept: bool = True) -> None:
        self.dispatched: list[str] = []
        self.accept = accept

    def dispatch(self, job_id):
        self.dispatched.append(job_id)
        return self.accept


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def cache(memory_store) -> ArtifactCache:
    return ArtifactCache(memory_store)


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def transcoder() -> FakeTranscoder:
    return FakeTranscoder()


@pytest.fixture
def dispatcher() -> FakeDispatcher:
    return FakeDispatcher()


@pytest.fixture
def past() -> datetime:
    return datetime(2000, 1, 1, tzinfo=timezone.utc)
