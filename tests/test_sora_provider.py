import asyncio
import json

import httpx
import pytest

from errors import GenerationError
from models import JobStatus
from providers.models import GenerationParams
from providers.sora_provider import SoraProvider


def _provider(handler, api_key="sk-test"):
    calls = []
    delays = []

    def _recording(request):
        calls.append(request)
        return handler(request, len(calls))

    async def _sleep(delay):
        delays.append(delay)

    provider = SoraProvider(
        api_key,
        base_url="https://api.test/v1",
        transport=httpx.MockTransport(_recording),
        sleep=_sleep,
    )
    return provider, calls, delays


def test_submit_sends_enhanced_prompt():
    def handler(request, n):
        return httpx.Response(200, json={"id": "video_ab12cd34ef", "status": "queued", "created_at": 1700000000})

    provider, calls, _ = _provider(handler)
    params = GenerationParams(prompt="A serene dream of floating through cherry blossom trees", seconds=8)
    result = asyncio.run(provider.submit(params))

    assert result.job_id == "video_ab12cd34ef"
    assert result.status is JobStatus.PENDING
    assert result.created_at == "2023-11-14T22:13:20+00:00"

    request = calls[0]
    assert request.method == "POST"
    assert request.url.path == "/v1/videos"
    assert request.headers["Authorization"] == "Bearer sk-test"
    body = json.loads(request.content)
    assert body["prompt"] == "Cinematic dream sequence: A serene dream of floating through cherry blossom trees"
    assert body["model"] == "sora-2"
    assert body["seconds"] == "8"


def test_missing_credentials_make_no_request():
    provider, calls, _ = _provider(lambda request, n: httpx.Response(200, json={}), api_key="")

    with pytest.raises(GenerationError) as exc_info:
        asyncio.run(provider.submit(GenerationParams(prompt="A long enough prompt")))

    assert exc_info.value.code == "MISSING_CREDENTIALS"
    assert calls == []


def test_provider_error_code_is_preserved():
    def handler(request, n):
        return httpx.Response(400, json={"error": {"message": "Prompt rejected", "code": "moderation_blocked"}})

    provider, calls, _ = _provider(handler)
    with pytest.raises(GenerationError) as exc_info:
        asyncio.run(provider.submit(GenerationParams(prompt="A long enough prompt")))

    assert exc_info.value.code == "moderation_blocked"
    assert exc_info.value.message == "Prompt rejected"
    assert exc_info.value.status == 400
    assert len(calls) == 1


def test_status_not_found_is_not_retried():
    provider, calls, delays = _provider(lambda request, n: httpx.Response(404, json={"error": "nope"}))

    with pytest.raises(GenerationError) as exc_info:
        asyncio.run(provider.get_status("video_ab12cd34ef"))

    assert exc_info.value.code == "NOT_FOUND"
    assert len(calls) == 1
    assert delays == []


def test_status_retries_server_errors():
    def handler(request, n):
        if n == 1:
            return httpx.Response(503, text="unavailable")
        return httpx.Response(
            200,
            json={"id": "video_ab12cd34ef", "status": "completed", "progress": 100, "completed_at": 1700000000},
        )

    provider, calls, delays = _provider(handler)
    status = asyncio.run(provider.get_status("video_ab12cd34ef"))

    assert status.status is JobStatus.COMPLETED
    assert status.progress == 100
    assert status.completed_at == "2023-11-14T22:13:20+00:00"
    assert status.content_available()
    assert len(calls) == 2
    assert delays == [1.0]


def test_network_errors_exhaust_retries():
    def handler(request, n):
        raise httpx.ConnectError("connection refused", request=request)

    provider, calls, delays = _provider(handler)
    with pytest.raises(GenerationError) as exc_info:
        asyncio.run(provider.get_status("video_ab12cd34ef"))

    assert exc_info.value.code == "NETWORK_ERROR"
    assert len(calls) == 3
    assert delays == [1.0, 2.0]


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("queued", JobStatus.PENDING),
        ("in_progress", JobStatus.PROCESSING),
        ("completed", JobStatus.COMPLETED),
        ("failed", JobStatus.FAILED),
        ("something-new", JobStatus.PENDING),
    ],
)
def test_status_mapping(raw, expected):
    provider, _, _ = _provider(lambda request, n: httpx.Response(200, json={"id": "video_ab12cd34ef", "status": raw}))
    assert asyncio.run(provider.get_status("video_ab12cd34ef")).status is expected


def test_failed_status_carries_provider_error():
    body = {"id": "video_ab12cd34ef", "status": "failed", "error": {"code": "policy", "message": "policy violation"}}
    provider, _, _ = _provider(lambda request, n: httpx.Response(200, json=body))

    status = asyncio.run(provider.get_status("video_ab12cd34ef"))
    assert status.status is JobStatus.FAILED
    assert status.error == "policy violation"


def test_expired_content_is_not_available():
    body = {"id": "video_ab12cd34ef", "status": "completed", "expires_at": 946684800}
    provider, _, _ = _provider(lambda request, n: httpx.Response(200, json=body))

    status = asyncio.run(provider.get_status("video_ab12cd34ef"))
    assert status.status is JobStatus.COMPLETED
    assert status.content_available() is False


def test_download_returns_bytes():
    def handler(request, n):
        assert request.url.path == "/v1/videos/video_ab12cd34ef/content"
        return httpx.Response(200, content=b"\x00\x00mp4")

    provider, _, _ = _provider(handler)
    assert asyncio.run(provider.download("video_ab12cd34ef")) == b"\x00\x00mp4"


def test_download_client_error_is_not_retried():
    provider, calls, _ = _provider(lambda request, n: httpx.Response(403, text="forbidden"))

    with pytest.raises(GenerationError) as exc_info:
        asyncio.run(provider.download("video_ab12cd34ef"))

    assert exc_info.value.code == "DOWNLOAD_ERROR"
    assert len(calls) == 1


def test_download_server_error_is_retried():
    provider, calls, _ = _provider(lambda request, n: httpx.Response(500, text="boom"))

    with pytest.raises(GenerationError) as exc_info:
        asyncio.run(provider.download("video_ab12cd34ef"))

    assert exc_info.value.code == "DOWNLOAD_ERROR"
    assert len(calls) == 3


def test_generation_params_normalization():
    params = GenerationParams(prompt="  dream  ", model="unknown", seconds="7", size="999x999")
    assert params.prompt == "dream"
    assert params.model == "sora-2"
    assert params.seconds is None
    assert params.size is None
    assert params.to_payload() == {"model": "sora-2", "prompt": "Cinematic dream sequence: dream"}

    assert GenerationParams(prompt="x", model="sora-2-pro", seconds="12s", size="1280x720").to_payload() == {
        "model": "sora-2-pro",
        "prompt": "Cinematic dream sequence: x",
        "seconds": "12",
        "size": "1280x720",
    }
