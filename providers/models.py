# -*- coding: utf-8 -*-
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from models import SECONDS_CHOICES, SIZE_CHOICES, SoraModel

DEFAULT_MODEL = SoraModel.SORA_2.value

# Префикс, которым усиливаем пользовательский промпт
PROMPT_PREFIX = "Cinematic dream sequence: "


@dataclass(slots=True)
class GenerationParams:
    """Unified parameter set consumed by video providers."""

    prompt: str
    model: Optional[str] = None
    # "4" | "8" | "12"; всё остальное -> None (провайдер подставит своё)
    seconds: Optional[str] = None
    size: Optional[str] = None

    def __post_init__(self) -> None:
        self.prompt = (self.prompt or "").strip()
        self.model = self._normalize_model(self.model)
        self.seconds = self._normalize_seconds(self.seconds)
        if self.size not in SIZE_CHOICES:
            self.size = None

    @staticmethod
    def _normalize_model(value: Any) -> str:
        v = str(value or "").strip().lower()
        allowed = {m.value for m in SoraModel}
        return v if v in allowed else DEFAULT_MODEL

    @staticmethod
    def _normalize_seconds(value: Any) -> str | None:
        if value is None:
            return None
        # принимаем 8, "8", "8s"
        v = str(value).strip().lower().rstrip("s")
        return v if v in SECONDS_CHOICES else None

    @property
    def enhanced_prompt(self) -> str:
        return f"{PROMPT_PREFIX}{self.prompt}"

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self.model,
            "prompt": self.enhanced_prompt,
        }
        if self.seconds:
            payload["seconds"] = self.seconds
        if self.size:
            payload["size"] = self.size
        return payload
