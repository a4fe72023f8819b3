"""
Repo Search Worker Pool - Runs multi-repo searches off the request path.

ARCHITECTURE:
-------------
    run(payload) ──► idle slot? ──yes──► submit to that slot's worker
                         │
                         no
                         ▼
                  queue full / disabled? ──yes──► resolved empty result
                         │
                         no
                         ▼
                    FIFO queue ──► dispatched when a slot frees up

Each slot owns a single-process executor, so every worker process has its
own Scanner cache. All pool state (slots, queue, in-flight tasks) is mutated
only on the event loop thread: from run(), close(), and the completion
callbacks of submitted work.

A worker whose process dies fails only its in-flight task; the slot gets a
fresh executor and dispatching continues.
"""

import asyncio
import logging
import multiprocessing
from collections import deque
from concurrent.futures import BrokenExecutor, Executor, ProcessPoolExecutor
from dataclasses import dataclass
from functools import partial
from typing import Any, Callable, Deque, Dict, List, Optional

from repo_research.services.multi_search import (
    AggregatedResult,
    RepoSearchRequest,
    search_repos_local,
)
from repo_research.services.scanner import Scanner
from repo_research.services.search_worker import run_search_task


logger = logging.getLogger(__name__)

ExecutorFactory = Callable[[], Executor]


class WorkerPoolError(Exception):
    """Base class for worker pool failures."""


class WorkerPoolClosedError(WorkerPoolError):
    """The pool was closed before the task finished."""


class WorkerCrashedError(WorkerPoolError):
    """The worker running the task died."""


class WorkerStartError(WorkerPoolError):
    """Work could not be handed to a worker at all."""


class WorkerTaskError(WorkerPoolError):
    """The task itself raised inside the worker."""


def default_executor_factory() -> Executor:
    """One worker process per slot, started with the spawn method."""
    return ProcessPoolExecutor(
        max_workers=1,
        mp_context=multiprocessing.get_context("spawn"),
    )


@dataclass
class Task:
    """A unit of pool work and the future its caller awaits."""
    task_id: int
    payload: Any
    future: asyncio.Future


@dataclass
class PoolSlot:
    """One concurrent worker."""
    index: int
    executor: Executor
    busy: bool = False
    task_id: Optional[int] = None


class WorkerPool:
    """
    Fixed-size worker pool with a bounded FIFO queue.

    Saturation is not an error: when no worker is idle and the queue is
    disabled or full, run() hands back an already-resolved empty result.
    """

    def __init__(
        self,
        size: int,
        queue_max: int,
        task_fn: Callable[[Any], Any] = run_search_task,
        executor_factory: Optional[ExecutorFactory] = None,
    ):
        """
        Initialize the pool and start its workers.

        Args:
            size: Number of concurrent workers (at least 1).
            queue_max: Pending-task capacity (0 disables queueing).
            task_fn: Picklable function executed by workers for each payload.
            executor_factory: Builds the executor backing one slot.
        """
        self.size = max(1, int(size))
        self.queue_max = max(0, int(queue_max))
        self._task_fn = task_fn
        self._executor_factory = executor_factory or default_executor_factory

        self._slots: List[PoolSlot] = [
            PoolSlot(index=i, executor=self._executor_factory()) for i in range(self.size)
        ]
        self._queue: Deque[Task] = deque()
        self._inflight: Dict[int, Task] = {}
        self._next_id = 1
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def stats(self) -> Dict[str, Any]:
        """Snapshot of pool occupancy."""
        return {
            "size": self.size,
            "queue_max": self.queue_max,
            "busy": sum(1 for s in self._slots if s.busy),
            "queued": len(self._queue),
            "closed": self._closed,
        }

    def run(self, payload: Any) -> "asyncio.Future[AggregatedResult]":
        """
        Schedule a payload and return a future for its result.

        Must be called from a running event loop.
        """
        loop = asyncio.get_running_loop()
        future = loop.create_future()

        if self._closed:
            future.set_exception(WorkerPoolClosedError("Repo search worker pool is closed"))
            return future

        task = Task(task_id=self._allocate_id(), payload=payload, future=future)

        slot = next((s for s in self._slots if not s.busy), None)
        if slot is not None:
            self._assign(slot, task)
            return future

        if self.queue_max == 0:
            logger.warning("Repo search workers are busy; skipping repo lookup (queue disabled)")
            future.set_result(AggregatedResult.empty(getattr(payload, "query", "")))
            return future

        if len(self._queue) >= self.queue_max:
            logger.warning(f"Repo search queue is full ({self.queue_max}); skipping repo lookup")
            future.set_result(AggregatedResult.empty(getattr(payload, "query", "")))
            return future

        self._queue.append(task)
        return future

    def close(self) -> None:
        """Fail all pending work and stop every worker. Idempotent."""
        if self._closed:
            return
        self._closed = True

        pending = list(self._inflight.values()) + list(self._queue)
        self._inflight.clear()
        self._queue.clear()
        for task in pending:
            if not task.future.done():
                task.future.set_exception(WorkerPoolClosedError("Repo search worker pool closed"))

        for slot in self._slots:
            slot.busy = False
            slot.task_id = None
            slot.executor.shutdown(wait=False, cancel_futures=True)

    def _allocate_id(self) -> int:
        task_id = self._next_id
        self._next_id += 1
        return task_id

    def _assign(self, slot: PoolSlot, task: Task) -> None:
        slot.busy = True
        slot.task_id = task.task_id
        self._inflight[task.task_id] = task

        executor = slot.executor
        try:
            cf = executor.submit(self._task_fn, task.payload)
        except BrokenExecutor as e:
            self._handle_failure(slot, e)
            return
        except Exception as e:
            logger.warning(f"Could not submit to repo search worker {slot.index}: {e}")
            slot.busy = False
            slot.task_id = None
            self._inflight.pop(task.task_id, None)
            if not task.future.done():
                error = WorkerStartError(f"Repo search worker could not start: {e}")
                error.__cause__ = e
                task.future.set_exception(error)
            return

        wrapped = asyncio.wrap_future(cf)
        wrapped.add_done_callback(partial(self._on_done, slot.index, task.task_id, executor))

    def _on_done(self, index: int, task_id: int, executor: Executor, fut: asyncio.Future) -> None:
        if self._closed:
            return
        slot = self._slots[index]
        # A respawned slot may still receive callbacks from its old executor
        if slot.executor is not executor or slot.task_id != task_id:
            return

        if fut.cancelled():
            self._handle_failure(slot, BrokenExecutor("worker future was cancelled"))
            return
        exc = fut.exception()
        if isinstance(exc, BrokenExecutor):
            self._handle_failure(slot, exc)
            return

        slot.busy = False
        slot.task_id = None
        task = self._inflight.pop(task_id, None)
        if task is not None and not task.future.done():
            if exc is not None:
                error = WorkerTaskError(f"Repo search task failed: {exc}")
                error.__cause__ = exc
                task.future.set_exception(error)
            else:
                task.future.set_result(fut.result())

        self._dispatch()

    def _handle_failure(self, slot: PoolSlot, error: BaseException) -> None:
        logger.warning(f"Repo search worker {slot.index} failed; respawning: {error}")

        task_id = slot.task_id
        slot.busy = False
        slot.task_id = None
        slot.executor.shutdown(wait=False, cancel_futures=True)

        task = self._inflight.pop(task_id, None) if task_id is not None else None
        if task is not None and not task.future.done():
            crashed = WorkerCrashedError("Repo search worker failed")
            crashed.__cause__ = error
            task.future.set_exception(crashed)

        if self._closed:
            return
        try:
            slot.executor = self._executor_factory()
        except Exception as e:
            logger.error(f"Could not respawn repo search worker {slot.index}: {e}")
        self._dispatch()

    def _dispatch(self) -> None:
        if self._closed:
            return
        for slot in self._slots:
            if not self._queue:
                break
            if slot.busy:
                continue
            self._assign(slot, self._queue.popleft())


class RepoSearchService:
    """
    Entry point for multi-repo searches.

    Owns the live WorkerPool and its reconfiguration policy: a request for a
    different size or queue capacity closes the current pool and builds a new
    one. When the pool cannot be used at all, searches run in-process.
    """

    def __init__(
        self,
        workers: int = 2,
        queue_max: int = 8,
        use_pool: bool = True,
        executor_factory: Optional[ExecutorFactory] = None,
        scanner: Optional[Scanner] = None,
    ):
        self.workers = workers
        self.queue_max = queue_max
        self.use_pool = use_pool
        self._executor_factory = executor_factory
        self._scanner = scanner or Scanner()
        self._pool: Optional[WorkerPool] = None

    @property
    def pool(self) -> Optional[WorkerPool]:
        return self._pool

    def _get_pool(self, size: int, queue_max: int) -> WorkerPool:
        pool = self._pool
        if pool is None or pool.closed or pool.size != size or pool.queue_max != queue_max:
            if pool is not None:
                pool.close()
            self._pool = WorkerPool(size, queue_max, executor_factory=self._executor_factory)
        return self._pool

    def _downgrade(self, reason: BaseException) -> None:
        logger.warning(f"Repo search worker pool unavailable; searching in-process: {reason}")
        self.use_pool = False
        if self._pool is not None:
            self._pool.close()
            self._pool = None

    async def search(
        self,
        request: RepoSearchRequest,
        workers: Optional[int] = None,
        queue_max: Optional[int] = None,
    ) -> AggregatedResult:
        """
        Run a multi-repo search.

        Raises:
            WorkerPoolError: When the pool closes or the worker fails while
                this request is in flight.
        """
        if self.use_pool:
            size = max(1, int(workers if workers is not None else self.workers))
            capacity = max(0, int(queue_max if queue_max is not None else self.queue_max))
            try:
                pool = self._get_pool(size, capacity)
            except (OSError, NotImplementedError, ImportError) as e:
                self._downgrade(e)
            else:
                try:
                    return await pool.run(request)
                except WorkerStartError as e:
                    self._downgrade(e)

        return await asyncio.to_thread(search_repos_local, request, self._scanner)

    async def aclose(self) -> None:
        if self._pool is not None:
            self._pool.close()
            self._pool = None
