# -*- coding: utf-8 -*-
from __future__ import annotations

import os
from pathlib import Path
from typing import Tuple

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from services.media_tools import CompressionProfile
from utils.retry import RetryPolicy

# Загружаем .env до чтения переменных
load_dotenv()

# ---------- Вспомогательные функции ----------

def _coalesce_env(*names: str, default: str = "") -> str:
    """Берём первое непустое значение из списка имён переменных окружения."""
    for n in names:
        v = os.getenv(n, "")
        if isinstance(v, str) and v.strip():
            return v.strip()
    return default


def _env_flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "y")


def _resolve_executable(p: str, fallback: str) -> str:
    """
    Пустое значение -> fallback (ожидается, что бинарник есть в PATH).
    Иначе раскрываем ~ и переменные окружения.
    """
    p = (p or "").strip().strip('"').strip("'")
    if not p:
        return fallback
    return str(Path(os.path.expandvars(os.path.expanduser(p))))


# ---------- Модель конфигурации ----------

class Settings(BaseModel):
    """Application-level configuration derived from environment variables."""

    # Общие
    APP_ENV: str = os.getenv("APP_ENV", "dev")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", 8080))

    # Провайдер генерации (OpenAI Sora)
    OPENAI_API_KEY: str = _coalesce_env("OPENAI_API_KEY", "SORA_API_KEY")
    OPENAI_BASE_URL: str = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
    SORA_MODEL: str = os.getenv("SORA_MODEL", "sora-2")
    HTTP_TIMEOUT: float = float(os.getenv("HTTP_TIMEOUT", 60))
    DOWNLOAD_TIMEOUT: float = float(os.getenv("DOWNLOAD_TIMEOUT", 300))

    # Ретраи сетевых вызовов
    RETRY_MAX_ATTEMPTS: int = int(os.getenv("RETRY_MAX_ATTEMPTS", 3))
    RETRY_INITIAL_DELAY: float = float(os.getenv("RETRY_INITIAL_DELAY", 1.0))
    RETRY_MAX_DELAY: float = float(os.getenv("RETRY_MAX_DELAY", 10.0))
    RETRY_BACKOFF_FACTOR: float = float(os.getenv("RETRY_BACKOFF_FACTOR", 2.0))

    # Кэш артефактов
    BLOB_DB_PATH: str = os.getenv("BLOB_DB_PATH", os.path.join(os.getcwd(), "blobs.sqlite3"))
    CACHE_NAMESPACE: str = os.getenv("CACHE_NAMESPACE", "videos")
    CACHE_URL_PREFIX: str = os.getenv("CACHE_URL_PREFIX", "/cache")
    PROVIDER_URL_PREFIX: str = os.getenv("PROVIDER_URL_PREFIX", "/provider")

    # Фоновая обработка
    WORKER_CONCURRENCY: int = int(os.getenv("WORKER_CONCURRENCY", 2))
    WORK_QUEUE_SIZE: int = int(os.getenv("WORK_QUEUE_SIZE", 100))

    # Перекодирование
    TRANSCODE_ENABLED: bool = _env_flag("TRANSCODE_ENABLED", "1")
    VIDEO_CRF: int = int(os.getenv("VIDEO_CRF", 23))
    FFMPEG_PRESET: str = os.getenv("FFMPEG_PRESET", "medium")
    VIDEO_MAX_DIMENSION: int = int(os.getenv("VIDEO_MAX_DIMENSION", 854))
    AUDIO_BITRATE: str = os.getenv("AUDIO_BITRATE", "64k")
    FFMPEG_PATH: str = Field(default_factory=lambda: _resolve_executable(os.getenv("FFMPEG_PATH", ""), "ffmpeg"))
    FFPROBE_PATH: str = Field(default_factory=lambda: _resolve_executable(os.getenv("FFPROBE_PATH", ""), "ffprobe"))
    FFMPEG_LOG_CMD: bool = _env_flag("FFMPEG_LOG_CMD")

    # ---------- Утилиты ----------
    def retry_policy(self) -> RetryPolicy:
        """Политика ретраев для всех вызовов провайдера."""
        return RetryPolicy(
            max_attempts=self.RETRY_MAX_ATTEMPTS,
            initial_delay=self.RETRY_INITIAL_DELAY,
            max_delay=self.RETRY_MAX_DELAY,
            backoff_factor=self.RETRY_BACKOFF_FACTOR,
        )

    def compression_profile(self) -> CompressionProfile:
        return CompressionProfile(
            crf=self.VIDEO_CRF,
            preset=self.FFMPEG_PRESET,
            max_dimension=self.VIDEO_MAX_DIMENSION,
            audio_bitrate=self.AUDIO_BITRATE,
        )

    def ffmpeg_bins(self) -> Tuple[str, str]:
        """Пути до ffmpeg/ffprobe (с учётом .env/PATH)."""
        return self.FFMPEG_PATH, self.FFPROBE_PATH

    def api_key_problem(self) -> str | None:
        """Вернёт описание проблемы с ключом провайдера или None, если ключ выглядит корректно."""
        if not self.OPENAI_API_KEY:
            return "OPENAI_API_KEY environment variable is not set"
        if not self.OPENAI_API_KEY.startswith("sk-"):
            return 'OPENAI_API_KEY must start with "sk-"'
        return None


settings = Settings()
