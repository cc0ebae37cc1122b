# -*- coding: utf-8 -*-
"""Error taxonomy shared by the caching pipeline and its HTTP adapters."""

from __future__ import annotations

from enum import StrEnum
from typing import Any, Tuple


class ErrorKind(StrEnum):
    VALIDATION = "validation"
    GENERATION = "generation"
    STORAGE = "storage"
    TRANSCODE = "transcode"


class PipelineError(Exception):
    """Base class; ``kind`` is the discriminant callers switch on."""

    kind: ErrorKind
    code: str = "UNKNOWN_ERROR"
    retryable: bool = False

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(PipelineError):
    """Malformed job id or prompt. Never retried."""

    kind = ErrorKind.VALIDATION
    code = "VALIDATION_ERROR"


class GenerationError(PipelineError):
    """Provider rejected the request or reported a job-level failure."""

    kind = ErrorKind.GENERATION

    def __init__(
        self,
        message: str,
        code: str = "API_ERROR",
        *,
        status: int | None = None,
        retryable: bool | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.status = status
        if retryable is None:
            retryable = status is not None and 500 <= status < 600
        self.retryable = retryable


class StorageError(PipelineError):
    """Cache read/write failure. Not retried inside the cache."""

    kind = ErrorKind.STORAGE
    code = "STORAGE_ERROR"


class TranscodeError(PipelineError):
    """Codec engine could not start or the input is not decodable."""

    kind = ErrorKind.TRANSCODE
    code = "TRANSCODE_ERROR"


_KIND_STATUS: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.GENERATION: 502,
    ErrorKind.STORAGE: 500,
    ErrorKind.TRANSCODE: 500,
}
# каждый вид ошибки обязан иметь HTTP-статус
assert set(_KIND_STATUS) == set(ErrorKind)


def error_payload(exc: BaseException) -> Tuple[int, dict[str, Any]]:
    """
    Map any exception to ``(http_status, {"error": ..., "code": ...})``.
    Unknown exception shapes become a 500 with ``UNKNOWN_ERROR``.
    """
    if not isinstance(exc, PipelineError):
        message = str(exc) or "An unknown error occurred"
        return 500, {"error": message, "code": "UNKNOWN_ERROR"}

    status = _KIND_STATUS[exc.kind]
    if exc.kind is ErrorKind.GENERATION and exc.code == "NOT_FOUND":
        status = 404
    return status, {"error": exc.message, "code": exc.code}
