# -*- coding: utf-8 -*-
from __future__ import annotations

"""
services/media_tools.py

Перекодирование готовых роликов перед кэшированием:
- CompressionProfile: CRF/preset/максимальная сторона/битрейт аудио
- Transcoder.compress: байты -> H.264/AAC mp4 с faststart, не больше max_dimension по длинной стороне
- probe_streams: какие потоки есть у файла (через ffprobe)
"""

import asyncio
import json
import logging
import shutil
import subprocess
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Tuple

from errors import TranscodeError

log = logging.getLogger(__name__)

_PRESETS = (
    "ultrafast", "superfast", "veryfast", "faster", "fast",
    "medium", "slow", "slower", "veryslow",
)


@dataclass(frozen=True, slots=True)
class CompressionProfile:
    """Size/quality trade-off for re-encoded artifacts."""

    crf: int = 23
    preset: str = "medium"
    max_dimension: int = 854
    audio_bitrate: str = "64k"

    def __post_init__(self) -> None:
        if not 0 <= self.crf <= 51:
            raise ValueError(f"crf must be within 0..51, got {self.crf}")
        if self.preset not in _PRESETS:
            raise ValueError(f"Unknown encoder preset: {self.preset}")
        if self.max_dimension <= 0:
            raise ValueError("max_dimension must be positive")
        if not self.audio_bitrate:
            raise ValueError("audio_bitrate is required")


DEFAULT_PROFILE = CompressionProfile()


@dataclass(frozen=True, slots=True)
class TranscodeStats:
    input_size: int
    output_size: int
    duration_ms: int

    @property
    def ratio(self) -> float:
        """Доля сэкономленного размера: 1 - output/input."""
        if self.input_size <= 0:
            return 0.0
        return 1 - self.output_size / self.input_size


# -------- внутренние синхронные helpers --------
def _run_sync(cmd: list[str], *, log_cmd: bool = False) -> subprocess.CompletedProcess:
    """Запускает команду и кидает TranscodeError при ненулевом коде возврата."""
    if log_cmd:
        log.info("[ffmpeg] CMD: %s", " ".join(cmd))
    try:
        # без text=True: ffmpeg печатает теги входного файла в stderr, там бывает не-UTF-8
        proc = subprocess.run(cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE)
    except FileNotFoundError as e:
        raise TranscodeError(
            f"Executable not found: {cmd[0]}. Check FFMPEG_PATH/FFPROBE_PATH."
        ) from e
    except OSError as e:
        raise TranscodeError(f"Cannot start {cmd[0]}: {e}") from e

    if proc.returncode != 0:
        stderr = (proc.stderr or b"").decode("utf-8", errors="replace")
        raise TranscodeError(f"{Path(cmd[0]).name} failed ({proc.returncode}):\n{stderr}")
    return proc


def probe_streams(path: str | Path, ffprobe: str = "ffprobe") -> Tuple[bool, bool]:
    """
    Возвращает (has_video, has_audio).
    Файл, который ffprobe не смог прочитать, даёт TranscodeError.
    """
    cmd = [
        ffprobe,
        "-v", "error",
        "-show_entries", "stream=codec_type",
        "-of", "json",
        str(path),
    ]
    proc = _run_sync(cmd)
    try:
        data = json.loads(proc.stdout or "{}")
    except ValueError as e:
        raise TranscodeError(f"ffprobe returned invalid JSON: {e}") from e

    kinds = {s.get("codec_type") for s in (data.get("streams") or [])}
    return "video" in kinds, "audio" in kinds


def build_compress_command(
    ffmpeg: str,
    src: str | Path,
    dst: str | Path,
    profile: CompressionProfile,
    *,
    has_audio: bool,
) -> list[str]:
    """
    H.264 + AAC, mobile-friendly:
    - длинная сторона не больше max_dimension, пропорции сохраняются, размеры чётные
    - tune fastdecode для слабых устройств
    - +faststart: moov-атом в начале файла для прогрессивного воспроизведения
    """
    m = int(profile.max_dimension)
    vf = (
        f"scale='min({m},iw)':'min({m},ih)'"
        ":force_original_aspect_ratio=decrease:force_divisible_by=2"
    )
    cmd = [
        ffmpeg, "-y",
        "-i", str(src),
        "-map", "0:v:0",
        "-c:v", "libx264",
        "-crf", str(profile.crf),
        "-preset", profile.preset,
        "-tune", "fastdecode",
        "-vf", vf,
        "-pix_fmt", "yuv420p",
    ]
    if has_audio:
        cmd += ["-map", "0:a:0", "-c:a", "aac", "-b:a", profile.audio_bitrate]
    else:
        cmd += ["-an"]
    cmd += ["-movflags", "+faststart", str(dst)]
    return cmd


class Transcoder:
    """Re-encodes raw video bytes with an external ffmpeg binary."""

    def __init__(
        self,
        ffmpeg_path: str = "ffmpeg",
        ffprobe_path: str = "ffprobe",
        *,
        log_commands: bool = False,
        on_stats: Optional[Callable[[TranscodeStats], None]] = None,
    ) -> None:
        self._ffmpeg = ffmpeg_path
        self._ffprobe = ffprobe_path
        self._log_commands = log_commands
        self._on_stats = on_stats

    def is_available(self) -> bool:
        return bool(shutil.which(self._ffmpeg) and shutil.which(self._ffprobe))

    async def compress(self, raw: bytes, profile: CompressionProfile = DEFAULT_PROFILE) -> bytes:
        """Return the re-encoded bytes. Fails with TranscodeError; never retries."""
        if not raw:
            raise TranscodeError("Input video is empty")

        started = time.monotonic()
        input_size = len(raw)
        log.info(
            "Starting compression: input=%d bytes (%.2f MB) crf=%s preset=%s",
            input_size, input_size / 1024 / 1024, profile.crf, profile.preset,
        )

        out = await asyncio.to_thread(self._compress_bytes, raw, profile)

        stats = TranscodeStats(
            input_size=input_size,
            output_size=len(out),
            duration_ms=int((time.monotonic() - started) * 1000),
        )
        log.info(
            "Compression complete: %d -> %d bytes, ratio=%.1f%%, %d ms",
            stats.input_size, stats.output_size, stats.ratio * 100, stats.duration_ms,
        )
        if self._on_stats is not None:
            self._on_stats(stats)
        return out

    def _compress_bytes(self, raw: bytes, profile: CompressionProfile) -> bytes:
        # запись входа и удаление временной папки тоже вне event loop
        with tempfile.TemporaryDirectory(prefix="transcode_") as tmp:
            src = Path(tmp) / "input.mp4"
            dst = Path(tmp) / "output.mp4"
            src.write_bytes(raw)
            return self._compress_file(src, dst, profile)

    def _compress_file(self, src: Path, dst: Path, profile: CompressionProfile) -> bytes:
        has_video, has_audio = probe_streams(src, self._ffprobe)
        if not has_video:
            raise TranscodeError("Input is not a decodable video")

        cmd = build_compress_command(self._ffmpeg, src, dst, profile, has_audio=has_audio)
        _run_sync(cmd, log_cmd=self._log_commands)

        if not dst.is_file():
            raise TranscodeError("ffmpeg produced no output")
        return dst.read_bytes()
