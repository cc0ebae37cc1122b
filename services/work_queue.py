# -*- coding: utf-8 -*-
"""Bounded in-process queue feeding a pool of completion workers."""

from __future__ import annotations

import asyncio
import logging

from providers.base import JobId
from services.completion_worker import CompletionWorker

log = logging.getLogger(__name__)


class CompletionQueue:
    """
    ``dispatch`` never blocks the caller. A full queue rejects the job
    (it stays uncached and the next resolution dispatches it again).
    There is no per-job de-duplication: the same id may be queued twice.
    """

    def __init__(self, worker: CompletionWorker, *, concurrency: int = 2, max_size: int = 100) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self._worker = worker
        self._concurrency = concurrency
        self._queue: asyncio.Queue[JobId] = asyncio.Queue(maxsize=max_size)
        self._tasks: list[asyncio.Task] = []
        self.processed = 0
        self.failed = 0

    @property
    def depth(self) -> int:
        return self._queue.qsize()

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    def dispatch(self, job_id: JobId) -> bool:
        try:
            self._queue.put_nowait(job_id)
        except asyncio.QueueFull:
            log.warning("Completion queue full (%d); job_id=%s not scheduled", self.depth, job_id)
            return False
        log.debug("Completion scheduled: job_id=%s depth=%d", job_id, self.depth)
        return True

    async def start(self) -> None:
        if self._tasks:
            return
        self._tasks = [
            asyncio.create_task(self._worker_loop(i), name=f"completion-worker-{i}")
            for i in range(self._concurrency)
        ]

    async def join(self) -> None:
        """Wait until every queued job has been handled."""
        await self._queue.join()

    async def stop(self) -> None:
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def _worker_loop(self, idx: int) -> None:
        while True:
            job_id = await self._queue.get()
            try:
                await self._worker.process(job_id)
                self.processed += 1
            except Exception:
                # задача остаётся некэшированной; следующий resolve повторит обработку
                self.failed += 1
                log.exception("Background completion failed: worker=%d job_id=%s", idx, job_id)
            finally:
                self._queue.task_done()
