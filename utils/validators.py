# -*- coding: utf-8 -*-
"""Input validation for caller-supplied identifiers and prompts."""

from __future__ import annotations

import re

from errors import ValidationError

PROMPT_MIN_LENGTH = 10
PROMPT_MAX_LENGTH = 500
JOB_ID_PATTERN = re.compile(r"video_[A-Za-z0-9]{10,50}")


def validate_job_id(job_id: object) -> str:
    """Return ``job_id`` unchanged or raise ``ValidationError``."""
    if not job_id or not isinstance(job_id, str):
        raise ValidationError("Job ID is required")
    if not JOB_ID_PATTERN.fullmatch(job_id):
        raise ValidationError("Invalid job ID format")
    return job_id


def validate_prompt(prompt: object) -> str:
    """Return the trimmed prompt or raise ``ValidationError``."""
    if not prompt or not isinstance(prompt, str):
        raise ValidationError("Prompt is required")

    trimmed = prompt.strip()
    if len(trimmed) < PROMPT_MIN_LENGTH:
        raise ValidationError(f"Prompt must be at least {PROMPT_MIN_LENGTH} characters")
    if len(trimmed) > PROMPT_MAX_LENGTH:
        raise ValidationError(f"Prompt must be less than {PROMPT_MAX_LENGTH} characters")
    return trimmed
