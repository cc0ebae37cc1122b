# -*- coding: utf-8 -*-
from enum import StrEnum


class JobStatus(StrEnum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class SoraModel(StrEnum):
    SORA_2 = "sora-2"
    SORA_2_PRO = "sora-2-pro"


# Допустимые значения для параметров видео
SECONDS_CHOICES = ("4", "8", "12")
SIZE_CHOICES = ("720x1280", "1280x720", "1024x1792", "1792x1024")

VIDEO_MIME = "video/mp4"
