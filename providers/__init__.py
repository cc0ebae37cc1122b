# -*- coding: utf-8 -*-
"""Provider interfaces and implementations for video generation."""

from providers.base import JobId, ProviderStatus, SubmitResult, VideoProvider
from providers.models import GenerationParams
from providers.sora_provider import SoraProvider

__all__ = [
    "JobId",
    "ProviderStatus",
    "SubmitResult",
    "VideoProvider",
    "GenerationParams",
    "SoraProvider",
]
