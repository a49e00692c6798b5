"""
Extraction Coordinator

Schedules gallery extraction runs on a fixed pool of worker tasks fed by a
queue. An identifier is "running" from the moment it is submitted until its
run ends, whatever the outcome, so at most one run per gallery is ever in
flight. Callers never wait for a run: ``start_extraction`` only submits.
"""

from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, FrozenSet, List, Optional, Set

logger = logging.getLogger(__name__)

Runner = Callable[[str], Awaitable[Any]]


class RunStatus(str, Enum):
    """Extraction run status"""
    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclass
class ExtractionRun:
    """Bookkeeping for one run of one gallery"""
    identifier: str
    status: RunStatus = RunStatus.QUEUED
    queued_at: datetime = field(default_factory=datetime.now)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    error: Optional[str] = None

    def get_execution_time(self) -> Optional[float]:
        if self.started_at is None or self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds()


class ExtractionCoordinator:
    """
    Deduplicating work queue for extraction runs.

    The worker pool is started lazily on first submission, inside whatever
    event loop is running at the time.
    """

    def __init__(
        self,
        runner: Runner,
        workers: int = 2,
        run_timeout: Optional[float] = 180.0,
        max_run_records: int = 500,
    ):
        """
        Args:
            runner: Coroutine function performing one run for an identifier
            workers: Number of concurrent runs across all galleries
            run_timeout: Outer bound on a single run in seconds (None = none)
            max_run_records: Finished run records kept for inspection;
                the oldest are dropped first
        """
        if workers < 1:
            raise ValueError("workers must be >= 1")
        self.runner = runner
        self.workers = workers
        self.run_timeout = run_timeout
        self.max_run_records = max(1, max_run_records)

        self._queue: Optional[asyncio.Queue] = None
        self._worker_tasks: List[asyncio.Task] = []
        self._running: Set[str] = set()
        self._runs: "OrderedDict[str, ExtractionRun]" = OrderedDict()

        self._stats = {
            "submitted": 0,
            "deduplicated": 0,
            "completed": 0,
            "failed": 0,
            "timed_out": 0,
        }

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def start_extraction(self, identifier: str) -> bool:
        """
        Submit a run unless one is already queued or running.

        Returns:
            True if a new run was submitted, False if deduplicated
        """
        if identifier in self._running:
            self._stats["deduplicated"] += 1
            logger.debug(f"[Coordinator] Already running: {identifier[:60]}")
            return False

        self.start()
        self._running.add(identifier)
        self._remember(ExtractionRun(identifier=identifier))
        self._queue.put_nowait(identifier)
        self._stats["submitted"] += 1
        logger.info(
            f"[Coordinator] Queued: {identifier[:60]} "
            f"(in flight={len(self._running)}, workers={self.workers})"
        )
        return True

    def is_running(self, identifier: str) -> bool:
        return identifier in self._running

    @property
    def running(self) -> FrozenSet[str]:
        """Snapshot of identifiers currently queued or running"""
        return frozenset(self._running)

    def get_run(self, identifier: str) -> Optional[ExtractionRun]:
        """Latest run record for ``identifier``"""
        return self._runs.get(identifier)

    def _remember(self, run: ExtractionRun) -> None:
        """Store ``run`` as the latest record, evicting the oldest finished ones"""
        self._runs.pop(run.identifier, None)
        self._runs[run.identifier] = run
        self._trim_runs()

    def _trim_runs(self) -> None:
        while len(self._runs) > self.max_run_records:
            oldest = next(
                (identifier for identifier in self._runs if identifier not in self._running),
                None,
            )
            if oldest is None:
                break
            del self._runs[oldest]

    # ------------------------------------------------------------------
    # Worker pool
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the worker pool if it is not running"""
        if self._queue is None:
            self._queue = asyncio.Queue()
        self._worker_tasks = [t for t in self._worker_tasks if not t.done()]
        while len(self._worker_tasks) < self.workers:
            index = len(self._worker_tasks)
            self._worker_tasks.append(
                asyncio.create_task(self._worker(index), name=f"extraction-worker-{index}")
            )

    async def join(self) -> None:
        """Wait until every submitted run has finished"""
        if self._queue is not None:
            await self._queue.join()

    async def stop(self) -> None:
        """Cancel the workers; queued runs are dropped and released"""
        tasks, self._worker_tasks = self._worker_tasks, []
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass

        if self._queue is not None:
            while not self._queue.empty():
                identifier = self._queue.get_nowait()
                self._running.discard(identifier)
                self._queue.task_done()
        if tasks:
            logger.info("[Coordinator] Workers stopped")

    async def _worker(self, index: int) -> None:
        while True:
            identifier = await self._queue.get()
            try:
                await self._execute(identifier)
            finally:
                self._running.discard(identifier)
                self._trim_runs()
                self._queue.task_done()

    async def _execute(self, identifier: str) -> None:
        """Run once; every failure is contained here"""
        run = self._runs.setdefault(identifier, ExtractionRun(identifier=identifier))
        run.status = RunStatus.RUNNING
        run.started_at = datetime.now()

        try:
            if self.run_timeout is None:
                await self.runner(identifier)
            else:
                await asyncio.wait_for(self.runner(identifier), timeout=self.run_timeout)
        except asyncio.TimeoutError:
            run.status = RunStatus.TIMED_OUT
            run.error = f"timed out after {self.run_timeout}s"
            self._stats["timed_out"] += 1
            logger.error(f"[Coordinator] Run timed out: {identifier[:60]}")
        except Exception as e:
            run.status = RunStatus.FAILED
            run.error = str(e) or e.__class__.__name__
            self._stats["failed"] += 1
            logger.error(f"[Coordinator] Run failed: {identifier[:60]} - {run.error}", exc_info=True)
        else:
            run.status = RunStatus.COMPLETED
            self._stats["completed"] += 1
        finally:
            run.completed_at = datetime.now()

    def get_stats(self) -> Dict[str, Any]:
        return {
            **self._stats,
            "workers": self.workers,
            "in_flight": len(self._running),
            "queued": self._queue.qsize() if self._queue is not None else 0,
            "run_records": len(self._runs),
        }

    def __repr__(self) -> str:
        stats = self.get_stats()
        return (
            f"ExtractionCoordinator("
            f"workers={self.workers}, "
            f"in_flight={stats['in_flight']}, "
            f"completed={stats['completed']}, "
            f"failed={stats['failed']})"
        )
