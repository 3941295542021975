"""Bounded in-process job queue consumed by a pool of asyncio workers."""

from __future__ import annotations

import asyncio
import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Deque, Dict, List, Optional

from unified_sync.core.logging import get_logger

log = get_logger("worker")


@dataclass
class WebhookJob:
    event_kind: str
    payload: Dict[str, Any]
    job_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    received_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class DeadLetter:
    job: WebhookJob
    error: str
    failed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


JobHandler = Callable[[WebhookJob], Awaitable[None]]


class WorkerPool:
    """Acknowledged webhooks land here; workers process them in no particular order.

    A job that raises is logged and kept in a bounded dead-letter buffer. Nothing
    is reported back to the webhook caller.
    """

    def __init__(
        self,
        handler: JobHandler,
        workers: int = 4,
        queue_size: int = 1000,
        dead_letter_limit: int = 100,
        shutdown_grace: float = 30.0,
    ):
        self.handler = handler
        self.workers = max(1, workers)
        self.queue: asyncio.Queue[WebhookJob] = asyncio.Queue(maxsize=queue_size)
        self.dead_letters: Deque[DeadLetter] = deque(maxlen=dead_letter_limit)
        self.shutdown_grace = shutdown_grace
        self._tasks: List[asyncio.Task] = []
        self.processed = 0

    @property
    def running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    async def start(self) -> None:
        if self.running:
            return
        self._tasks = [asyncio.create_task(self._worker(n), name=f"webhook-worker-{n}") for n in range(self.workers)]
        log.info(f"Started {self.workers} webhook workers")

    async def stop(self, grace: Optional[float] = None) -> None:
        """Finish queued jobs within the grace period, then cancel the workers.

        Jobs cut off mid-run or still queued afterwards are dead-lettered.
        """
        grace = self.shutdown_grace if grace is None else grace
        if self.running and grace > 0:
            try:
                await self.drain(timeout=grace)
            except asyncio.TimeoutError:
                log.warning(f"Shutdown grace of {grace}s elapsed with {self.queue.qsize()} jobs queued")

        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []

        left = 0
        while not self.queue.empty():
            job = self.queue.get_nowait()
            self.queue.task_done()
            self._dead_letter(job, "unprocessed at shutdown")
            left += 1
        log.info(f"Webhook workers stopped; {left} queued jobs dead-lettered")

    def enqueue(self, job: WebhookJob) -> bool:
        try:
            self.queue.put_nowait(job)
        except asyncio.QueueFull:
            self._dead_letter(job, "queue full")
            return False
        log.debug(f"Enqueued job {job.job_id} kind={job.event_kind} depth={self.queue.qsize()}")
        return True

    async def drain(self, timeout: Optional[float] = None) -> None:
        """Wait until every enqueued job has been handled."""
        await asyncio.wait_for(self.queue.join(), timeout=timeout)

    async def _worker(self, number: int) -> None:
        while True:
            job = await self.queue.get()
            try:
                await self.handler(job)
                self.processed += 1
            except asyncio.CancelledError:
                self._dead_letter(job, "cancelled during shutdown")
                raise
            except Exception as exc:
                log.opt(exception=exc).error(f"Worker {number} failed job {job.job_id} ({job.event_kind})")
                self._dead_letter(job, repr(exc))
            finally:
                self.queue.task_done()

    def _dead_letter(self, job: WebhookJob, error: str) -> None:
        self.dead_letters.append(DeadLetter(job=job, error=error))
        log.error(f"Dead-lettered job {job.job_id} kind={job.event_kind}: {error}")
