import asyncio

import pytest

from config import Settings
from db import SqliteBlobStore
from errors import GenerationError, StorageError, TranscodeError, ValidationError, error_payload
from providers.sora_provider import SoraProvider
from services.generation_service import build_pipeline, create_video
from services.media_tools import Transcoder
from services.prompt_template import PLACEHOLDER, is_prompt_rendered, render_dream_prompt


def test_create_video_validates_before_submitting(provider):
    with pytest.raises(ValidationError):
        asyncio.run(create_video(provider, prompt="   tiny   "))
    assert provider.calls == []


def test_create_video_with_template(provider):
    result = asyncio.run(create_video(provider, prompt="I was flying over a city of glass", use_template=True))

    assert result.job_id == "video_ab12cd34ef"
    [params] = provider.submitted
    assert "I was flying over a city of glass" in params.prompt
    assert is_prompt_rendered(params.prompt)
    assert params.model == "sora-2"


def test_render_dream_prompt_rejects_empty_notes():
    with pytest.raises(ValidationError, match="cannot be empty"):
        render_dream_prompt("  ")
    assert not is_prompt_rendered(PLACEHOLDER)


def test_build_pipeline_wires_settings(tmp_path):
    cfg = Settings(
        OPENAI_API_KEY="sk-test",
        SORA_MODEL="sora-2-pro",
        BLOB_DB_PATH=str(tmp_path / "blobs.sqlite3"),
        CACHE_NAMESPACE="clips",
        CACHE_URL_PREFIX="/files",
        PROVIDER_URL_PREFIX="/upstream",
        TRANSCODE_ENABLED=False,
    )
    pipeline = build_pipeline(cfg)

    assert isinstance(pipeline.provider, SoraProvider)
    assert isinstance(pipeline.store, SqliteBlobStore)
    assert pipeline.default_model == "sora-2-pro"
    assert pipeline.cache.key_for("video_abc1234567") == "clips/video_abc1234567"
    assert pipeline.cache.locator_url("video_abc1234567") == "/files/video_abc1234567"
    assert pipeline.resolver.provider_url("video_abc1234567") == "/upstream/video_abc1234567"

    async def scenario():
        await pipeline.start()
        running = pipeline.queue.running
        await pipeline.stop()
        return running

    assert asyncio.run(scenario()) is True
    assert (tmp_path / "blobs.sqlite3").exists()


def test_build_pipeline_with_transcoding(provider, tmp_path):
    cfg = Settings(BLOB_DB_PATH=str(tmp_path / "b.sqlite3"), TRANSCODE_ENABLED=True, VIDEO_CRF=30)
    pipeline = build_pipeline(cfg, provider=provider)

    assert pipeline.provider is provider
    assert isinstance(pipeline.worker._transcoder, Transcoder)
    assert pipeline.worker._profile.crf == 30


def test_settings_helpers():
    cfg = Settings(
        OPENAI_API_KEY="abc",
        RETRY_MAX_ATTEMPTS=5,
        RETRY_INITIAL_DELAY=0.5,
        FFMPEG_PRESET="fast",
        FFMPEG_PATH="/opt/ff/ffmpeg",
        FFPROBE_PATH="/opt/ff/ffprobe",
    )

    assert cfg.api_key_problem() == 'OPENAI_API_KEY must start with "sk-"'
    assert Settings(OPENAI_API_KEY="").api_key_problem() == "OPENAI_API_KEY environment variable is not set"
    assert Settings(OPENAI_API_KEY="sk-live").api_key_problem() is None

    policy = cfg.retry_policy()
    assert (policy.max_attempts, policy.initial_delay) == (5, 0.5)
    assert cfg.compression_profile().preset == "fast"
    assert cfg.ffmpeg_bins() == ("/opt/ff/ffmpeg", "/opt/ff/ffprobe")


@pytest.mark.parametrize(
    "error, status, code",
    [
        (ValidationError("Invalid job ID format"), 400, "VALIDATION_ERROR"),
        (GenerationError("Video job not found", "NOT_FOUND", status=404), 404, "NOT_FOUND"),
        (GenerationError("Prompt rejected", "moderation_blocked", status=400), 502, "moderation_blocked"),
        (StorageError("Failed to store video in blob storage"), 500, "STORAGE_ERROR"),
        (TranscodeError("Input is not a decodable video"), 500, "TRANSCODE_ERROR"),
        (RuntimeError("boom"), 500, "UNKNOWN_ERROR"),
    ],
)
def test_error_payload(error, status, code):
    got_status, payload = error_payload(error)
    assert got_status == status
    assert payload["code"] == code
    assert payload["error"]
