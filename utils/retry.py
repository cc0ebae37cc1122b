# -*- coding: utf-8 -*-
"""Exponential-backoff wrapper for fallible coroutines."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

import httpx

T = TypeVar("T")

log = logging.getLogger(__name__)


def is_transient_error(exc: BaseException) -> bool:
    """
    Ретраим только сетевые сбои и 5xx.
    4xx, ошибки валидации и прочие формы ошибок сразу наверх.
    """
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return 500 <= exc.response.status_code < 600
    if getattr(exc, "retryable", False) is True:
        return True
    status = getattr(exc, "status", None)
    return isinstance(status, int) and 500 <= status < 600


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Governs a single fallible call."""

    max_attempts: int = 3
    initial_delay: float = 1.0
    max_delay: float = 10.0
    backoff_factor: float = 2.0
    retry_predicate: Callable[[BaseException], bool] = is_transient_error

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.initial_delay < 0 or self.max_delay < 0:
            raise ValueError("delays must be non-negative")
        if self.backoff_factor < 1:
            raise ValueError("backoff_factor must be >= 1")

    def delay_for(self, attempt: int) -> float:
        """Пауза после неудачной попытки номер ``attempt`` (с 1)."""
        delay = self.initial_delay * (self.backoff_factor ** (attempt - 1))
        return min(delay, self.max_delay)


DEFAULT_POLICY = RetryPolicy()


async def execute(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy = DEFAULT_POLICY,
    *,
    on_retry: Optional[Callable[[int, BaseException], None]] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Call ``operation`` up to ``policy.max_attempts`` times.

    The error is re-raised as soon as it is not retryable or attempts run out.
    ``on_retry(attempt, error)`` is a diagnostics hook, invoked before each pause.
    """
    attempt = 1
    while True:
        try:
            return await operation()
        except Exception as exc:
            if attempt >= policy.max_attempts or not policy.retry_predicate(exc):
                raise

            delay = policy.delay_for(attempt)
            log.warning(
                "Retry attempt %d/%d in %.2fs: %s",
                attempt, policy.max_attempts, delay, exc,
            )
            if on_retry is not None:
                on_retry(attempt, exc)
            await sleep(delay)
            attempt += 1
