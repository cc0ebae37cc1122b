# -*- coding: utf-8 -*-
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional, TypeVar

import httpx

from errors import GenerationError
from models import JobStatus
from providers.base import JobId, ProviderStatus, SubmitResult, VideoProvider
from providers.models import GenerationParams
from utils.retry import DEFAULT_POLICY, RetryPolicy, execute

T = TypeVar("T")

log = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1"


def _map_status(val: Any) -> JobStatus:
    s = str(val or "").lower()
    if s in ("queued", "pending"):
        return JobStatus.PENDING
    if s in ("in_progress", "processing", "running"):
        return JobStatus.PROCESSING
    if s in ("completed", "succeeded", "success"):
        return JobStatus.COMPLETED
    if s in ("failed", "error", "cancelled", "canceled"):
        return JobStatus.FAILED
    return JobStatus.PENDING


def _ts_to_datetime(value: Any) -> datetime | None:
    if isinstance(value, (int, float)) and value > 0:
        return datetime.fromtimestamp(value, tz=timezone.utc)
    return None


def _ts_to_iso(value: Any) -> str | None:
    dt = _ts_to_datetime(value)
    return dt.isoformat() if dt else None


def _error_text(err: Any) -> str | None:
    """Sora отдаёт ошибку строкой или объектом {code, message}."""
    if not err:
        return None
    if isinstance(err, dict):
        return str(err.get("message") or err.get("code") or err)
    return str(err)


def _error_from_response(resp: httpx.Response, fallback_message: str) -> GenerationError:
    """Достаём message/code из тела ошибки OpenAI; код провайдера сохраняем."""
    message, code = fallback_message, "API_ERROR"
    try:
        data = resp.json()
        err = data.get("error") if isinstance(data, dict) else None
        if isinstance(err, dict):
            message = err.get("message") or message
            code = err.get("code") or code
        elif isinstance(err, str):
            message = err
    except ValueError:
        pass
    return GenerationError(message, code, status=resp.status_code)


class SoraProvider(VideoProvider):
    """Video generation provider backed by the OpenAI videos API."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        retry_policy: RetryPolicy = DEFAULT_POLICY,
        timeout: float = 60.0,
        download_timeout: float = 300.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._retry_policy = retry_policy
        self._timeout = timeout
        self._download_timeout = download_timeout
        self._transport = transport
        self._sleep = sleep
        if not api_key:
            log.warning("OPENAI_API_KEY is not configured; provider calls will fail")

    # -------------------------- PROVIDER API ---------------------------

    async def submit(self, params: GenerationParams) -> SubmitResult:
        """POST /videos: returns the new job id with status pending."""
        headers = self._headers(json_body=True)
        payload = params.to_payload()
        log.info("Creating video job: prompt_length=%d model=%s", len(params.prompt), params.model)

        async def _once() -> dict[str, Any]:
            async with self._client(self._timeout) as http:
                r = await http.post("/videos", headers=headers, json=payload)
            if r.status_code >= 400:
                log.error("Sora submit failed %s: %s", r.status_code, r.text)
                raise _error_from_response(r, "Failed to create video job")
            return self._json(r)

        data = await self._with_retry(_once)
        job_id = data.get("id")
        if not job_id:
            raise GenerationError("Provider returned no job id", "INVALID_RESPONSE")

        created = _ts_to_iso(data.get("created_at")) or datetime.now(timezone.utc).isoformat()
        log.info("Video job created: job_id=%s", job_id)
        return SubmitResult(job_id=job_id, status=JobStatus.PENDING, created_at=created)

    async def get_status(self, job_id: JobId) -> ProviderStatus:
        """GET /videos/{id}. 404 -> GenerationError("NOT_FOUND"), never retried."""
        headers = self._headers()
        log.debug("Checking video status: job_id=%s", job_id)

        async def _once() -> dict[str, Any]:
            async with self._client(self._timeout) as http:
                r = await http.get(f"/videos/{job_id}", headers=headers)
            if r.status_code == 404:
                raise GenerationError("Video job not found", "NOT_FOUND", status=404)
            if r.status_code >= 400:
                log.error("Sora status failed %s: %s", r.status_code, r.text)
                raise _error_from_response(r, "Failed to get video status")
            return self._json(r)

        data = await self._with_retry(_once)
        status = ProviderStatus(
            job_id=str(data.get("id") or job_id),
            status=_map_status(data.get("status")),
            progress=int(data.get("progress") or 0),
            error=_error_text(data.get("error")),
            created_at=_ts_to_iso(data.get("created_at")),
            completed_at=_ts_to_iso(data.get("completed_at")),
            expires_at=_ts_to_datetime(data.get("expires_at")),
        )
        log.debug("Video status retrieved: job_id=%s status=%s", job_id, status.status)
        return status

    async def download(self, job_id: JobId) -> bytes:
        """GET /videos/{id}/content: raw bytes of a completed job."""
        headers = self._headers()
        log.info("Downloading video: job_id=%s", job_id)

        async def _once() -> bytes:
            async with self._client(self._download_timeout) as http:
                r = await http.get(f"/videos/{job_id}/content", headers=headers)
            if r.status_code >= 400:
                log.error("Sora download failed %s for job_id=%s", r.status_code, job_id)
                raise GenerationError("Failed to download video", "DOWNLOAD_ERROR", status=r.status_code)
            return r.content

        body = await self._with_retry(_once)
        log.info("Video downloaded: job_id=%s size=%d", job_id, len(body))
        return body

    # ---------------------------- HELPERS -----------------------------

    async def _with_retry(self, operation: Callable[[], Awaitable[T]]) -> T:
        async def _guarded() -> T:
            try:
                return await operation()
            except httpx.TransportError as exc:
                raise GenerationError(f"Network error: {exc}", "NETWORK_ERROR", retryable=True) from exc

        return await execute(_guarded, self._retry_policy, sleep=self._sleep)

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=httpx.Timeout(timeout),
            transport=self._transport,
            follow_redirects=True,
        )

    def _headers(self, *, json_body: bool = False) -> dict[str, str]:
        if not self._api_key:
            raise GenerationError("OPENAI_API_KEY is not configured", "MISSING_CREDENTIALS")
        headers = {"Authorization": f"Bearer {self._api_key}"}
        if json_body:
            headers["Content-Type"] = "application/json"
        return headers

    @staticmethod
    def _json(resp: httpx.Response) -> dict[str, Any]:
        try:
            data = resp.json()
        except ValueError as exc:
            log.error("Sora response non-json: %s", resp.text)
            raise GenerationError("Provider returned invalid JSON", "INVALID_RESPONSE") from exc
        if not isinstance(data, dict):
            raise GenerationError("Provider returned unexpected payload", "INVALID_RESPONSE")
        return data
