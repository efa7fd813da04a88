"""
=============================================================================
WORKER POOL
=============================================================================

Each accepted connection becomes a task on one bounded queue; a set of
worker threads serves them:

    accept thread ──► submit(serve, (conn,)) ──► [ queue ] ──► worker 0..N

    ┌─────────────────────────────────────────────────────────────────────┐
    │  room in the queue            accepted; a worker is added when all  │
    │                               existing ones are busy (up to max)    │
    │  queue full and block=False   submit() returns False, caller sends  │
    │                               503 Service Unavailable               │
    │  shutdown()                   drain the queue, then one STOP marker │
    │                               per worker                            │
    └─────────────────────────────────────────────────────────────────────┘

A worker stays with its connection for the whole keep-alive session,
including every listing it renders and every file it streams.

=============================================================================
"""

import itertools
import logging
import queue
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional


logger = logging.getLogger(__name__)


# Queued once per worker on shutdown
STOP = object()


@dataclass
class Task:
    func: Callable[..., Any]
    args: tuple = ()
    kwargs: dict = field(default_factory=dict)

    def __call__(self):
        return self.func(*self.args, **self.kwargs)


@dataclass
class _Counters:
    busy: int = 0
    completed: int = 0
    failed: int = 0


class ThreadPool:
    """
    Bounded task queue served by between min_workers and max_workers threads.

        pool = ThreadPool(min_workers=4, max_workers=16)
        pool.start()
        if not pool.submit(serve, args=(conn,), block=False):
            refuse(conn)
        pool.shutdown()
    """

    def __init__(
        self,
        min_workers: int = 4,
        max_workers: int = 16,
        queue_size: int = 100,
        poll_interval: float = 1.0
    ):
        if not 1 <= min_workers <= max_workers:
            raise ValueError(f"Invalid worker bounds: min={min_workers}, max={max_workers}")

        self.min_workers = min_workers
        self.max_workers = max_workers
        self.poll_interval = poll_interval

        self._queue: queue.Queue = queue.Queue(maxsize=queue_size)
        self._threads: list[threading.Thread] = []
        self._counters = _Counters()
        self._lock = threading.Lock()
        self._ids = itertools.count()
        self._accepting = False

    @property
    def is_running(self) -> bool:
        return self._accepting

    def start(self):
        if self._accepting:
            return
        logger.info(f"Starting {self.min_workers} workers (max {self.max_workers})")
        self._accepting = True
        with self._lock:
            self._counters = _Counters()
            for _ in range(self.min_workers):
                self._spawn()

    def submit(
        self,
        func: Callable[..., Any],
        args: tuple = (),
        kwargs: Optional[dict] = None,
        block: bool = True,
        queue_timeout: Optional[float] = None
    ) -> bool:
        """
        Queue func(*args, **kwargs). Returns False when the queue is full.

        Raises:
            RuntimeError: The pool was not started or is shutting down.
        """
        if not self._accepting:
            raise RuntimeError("Thread pool is not running")

        try:
            self._queue.put(Task(func, args, kwargs or {}), block=block, timeout=queue_timeout)
        except queue.Full:
            return False

        with self._lock:
            saturated = self._counters.busy >= len(self._threads)
            if saturated and len(self._threads) < self.max_workers:
                logger.debug(f"All {len(self._threads)} workers busy, adding one")
                self._spawn()
        return True

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Refuse new tasks and stop every worker.

        With wait=True queued tasks run first, for at most `timeout` seconds.
        """
        if not self._threads:
            self._accepting = False
            return

        logger.info("Stopping worker pool")
        self._accepting = False

        if wait:
            deadline = None if timeout is None else time.monotonic() + timeout
            while self._queue.unfinished_tasks:
                if deadline is not None and time.monotonic() > deadline:
                    logger.warning("Tasks still running after shutdown timeout")
                    break
                time.sleep(0.05)

        for _ in self._threads:
            try:
                self._queue.put(STOP, block=False)
            except queue.Full:
                # Workers also exit on their next poll once the pool stopped
                break

        for thread in self._threads:
            thread.join(timeout=2.0)
        self._threads.clear()
        logger.info("Worker pool stopped")

    @property
    def stats(self) -> dict:
        with self._lock:
            counters = self._counters
            return {
                "workers": {"total": len(self._threads), "busy": counters.busy},
                "tasks": {
                    "queued": self._queue.qsize(),
                    "completed": counters.completed,
                    "failed": counters.failed,
                },
            }

    # =========================================================================
    # WORKERS
    # =========================================================================

    def _spawn(self):
        # Caller holds self._lock
        thread = threading.Thread(
            target=self._work,
            name=f"Worker-{next(self._ids)}",
            daemon=True,
        )
        self._threads.append(thread)
        thread.start()

    def _work(self):
        name = threading.current_thread().name
        logger.debug(f"{name} started")

        while True:
            try:
                task = self._queue.get(timeout=self.poll_interval)
            except queue.Empty:
                if self._accepting:
                    continue
                break

            try:
                if task is STOP:
                    break
                self._run(name, task)
            finally:
                self._queue.task_done()

        logger.debug(f"{name} stopped")

    def _run(self, name: str, task: Task):
        with self._lock:
            self._counters.busy += 1
        started = time.monotonic()
        failed = False

        try:
            task()
        except Exception:
            failed = True
            logger.exception(f"{name}: task failed")
        finally:
            with self._lock:
                self._counters.busy -= 1
                if failed:
                    self._counters.failed += 1
                else:
                    self._counters.completed += 1

        logger.debug(f"{name} finished task in {time.monotonic() - started:.3f}s")
