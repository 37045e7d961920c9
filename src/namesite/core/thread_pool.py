"""
=============================================================================
WORKER THREAD POOL
=============================================================================

Connections are handled on worker threads so one slow client cannot stall
the accept loop.

    accept loop                  bounded queue              workers
    ───────────                  ─────────────              ───────
    conn ──► pool.submit() ──►  [ job ][ job ]  ──►  namesite-worker-0  job()
                  │                                  namesite-worker-1  job()
                  └─ queue full → False (server answers 503)

min_workers threads are started up front. Whenever a job is queued while
no worker is idle, one more thread is started, up to max_workers.

Stopping puts one stop marker per worker on the queue. Jobs already queued
ahead of the markers still run.

Handlers share the NameStore through these threads, which is why the store
holds a lock.

=============================================================================
"""

import logging
import queue
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional


logger = logging.getLogger(__name__)


# Pulled off the queue by a worker that should exit
_STOP = object()


@dataclass
class Job:
    """func(*args, **kwargs), queued for a worker."""

    func: Callable[..., Any]
    args: tuple = ()
    kwargs: Dict[str, Any] = field(default_factory=dict)
    queued_at: float = field(default_factory=time.monotonic)

    @property
    def label(self) -> str:
        return getattr(self.func, "__name__", repr(self.func))

    def __call__(self) -> Any:
        return self.func(*self.args, **self.kwargs)


class Worker(threading.Thread):
    """
    One pool thread.

    A job that raises is logged with its traceback and counted in
    ``failed``; the thread carries on with the next job.
    """

    def __init__(
        self,
        jobs: "queue.Queue[Any]",
        closing: threading.Event,
        index: int,
        idle_timeout: float,
    ):
        super().__init__(name=f"namesite-worker-{index}", daemon=True)
        self.jobs = jobs
        self.closing = closing
        self.idle_timeout = idle_timeout
        self.busy = False
        self.completed = 0
        self.failed = 0

    def run(self):
        while True:
            try:
                job = self.jobs.get(timeout=self.idle_timeout)
            except queue.Empty:
                if self.closing.is_set():
                    break
                continue

            if job is _STOP:
                self.jobs.task_done()
                break

            self.busy = True
            try:
                self._run_job(job)
            finally:
                self.busy = False
                self.jobs.task_done()

        logger.debug(f"{self.name} exiting ({self.completed} ok, {self.failed} failed)")

    def _run_job(self, job: Job):
        waited = time.monotonic() - job.queued_at
        try:
            job()
        except Exception:
            self.failed += 1
            logger.exception(f"{self.name}: {job.label} raised (queued {waited:.3f}s)")
        else:
            self.completed += 1


class ThreadPool:
    """
    Bounded pool of Worker threads.

        pool = ThreadPool(min_workers=2, max_workers=16)
        pool.start()
        if not pool.submit(handle, args=(conn,)):
            ...  # overloaded
        pool.shutdown()
    """

    def __init__(
        self,
        min_workers: int = 4,
        max_workers: int = 16,
        queue_size: int = 100,
        idle_timeout: float = 60.0,
    ):
        """
        Args:
            min_workers: Threads started by start()
            max_workers: Most threads the pool will run
            queue_size: Jobs that may wait for a worker
            idle_timeout: How often an idle worker checks for shutdown

        Raises:
            ValueError: min_workers < 1 or max_workers < min_workers
        """
        if min_workers < 1 or max_workers < min_workers:
            raise ValueError(
                f"Invalid worker bounds: min={min_workers}, max={max_workers}"
            )

        self.min_workers = min_workers
        self.max_workers = max_workers
        self.queue_size = queue_size
        self.idle_timeout = idle_timeout

        self._jobs: "queue.Queue[Any]" = queue.Queue(maxsize=queue_size)
        self._closing = threading.Event()
        self._workers: List[Worker] = []
        self._lock = threading.Lock()
        self._running = False

    def start(self):
        with self._lock:
            if self._running:
                return
            self._closing.clear()
            for _ in range(self.min_workers):
                self._spawn()
            self._running = True

        logger.info(
            f"Worker pool started: {self.min_workers}-{self.max_workers} threads, "
            f"queue of {self.queue_size}"
        )

    def _spawn(self) -> Worker:
        # Caller holds self._lock
        worker = Worker(self._jobs, self._closing, len(self._workers), self.idle_timeout)
        self._workers.append(worker)
        worker.start()
        return worker

    def submit(
        self,
        func: Callable[..., Any],
        args: tuple = (),
        kwargs: Optional[dict] = None,
        block: bool = False,
        queue_timeout: Optional[float] = None,
    ) -> bool:
        """
        Queue func(*args, **kwargs) for a worker.

        Returns:
            False when the queue stayed full.

        Raises:
            RuntimeError: start() has not been called, or shutdown() has.
        """
        if not self._running:
            raise RuntimeError("Thread pool is not running")

        try:
            self._jobs.put(Job(func, args, kwargs or {}), block=block, timeout=queue_timeout)
        except queue.Full:
            logger.warning(f"Job queue full ({self.queue_size} waiting), rejecting")
            return False

        self._grow()
        return True

    def _grow(self):
        with self._lock:
            if any(not w.busy for w in self._workers):
                return
            if len(self._workers) >= self.max_workers:
                return
            worker = self._spawn()
        logger.debug(f"All workers busy, started {worker.name}")

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Stop every worker.

        Args:
            wait: Let queued jobs start before stopping
            timeout: Upper bound on that wait, in seconds
        """
        with self._lock:
            if not self._running:
                return
            self._running = False
            workers = list(self._workers)

        logger.info(f"Stopping {len(workers)} workers")

        if wait:
            deadline = None if timeout is None else time.monotonic() + timeout
            while not self._jobs.empty():
                if deadline is not None and time.monotonic() > deadline:
                    logger.warning(f"{self._jobs.qsize()} jobs still queued at shutdown")
                    break
                time.sleep(0.05)

        self._closing.set()
        for _ in workers:
            try:
                self._jobs.put_nowait(_STOP)
            except queue.Full:
                # Workers still notice _closing on their next idle timeout
                break
        for worker in workers:
            worker.join(timeout=2.0)

        with self._lock:
            self._workers.clear()
        logger.info("Worker pool stopped")

    @property
    def worker_count(self) -> int:
        return len(self._workers)

    @property
    def active_workers(self) -> int:
        return sum(1 for w in self._workers if w.busy)

    @property
    def stats(self) -> dict:
        return {
            "workers": len(self._workers),
            "active": self.active_workers,
            "queued": self._jobs.qsize(),
            "completed": sum(w.completed for w in self._workers),
            "failed": sum(w.failed for w in self._workers),
        }
