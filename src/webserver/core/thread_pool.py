"""
=============================================================================
THREAD POOL IMPLEMENTATION
=============================================================================

Runs one task per accepted connection on a pool of worker threads.

=============================================================================
WHY A POOL THAT GROWS WITHOUT LIMIT?
=============================================================================

Each connection task blocks: it reads from the socket, reads a file,
writes the response and appends to the access log. A client that opens a
connection and never sends anything holds its worker for as long as the
read blocks.

With a FIXED pool of N workers, N such clients stall everybody else:

    Workers:  [slow] [slow] [slow] [slow]
    Queue:    conn5, conn6, conn7 ...          ← waiting forever

So the pool here is elastic. Whenever more tasks are queued than there
are idle workers, another worker is started:

    submit(task)
        pending += 1
        if pending > idle  (and under max_workers, if one is set)
            start a new worker

No accepted connection ever waits behind a slow one. Idle workers above
min_workers retire after idle_timeout seconds, so a burst does not leave
hundreds of threads lying around.

=============================================================================
WORKER LIFECYCLE
=============================================================================

    ┌──────────┐   get() task    ┌──────────┐
    │   IDLE   │ ──────────────► │   BUSY   │
    │          │ ◄────────────── │          │
    └──────────┘   task done     └──────────┘
         │
         │ poison pill (None) or idle_timeout with spare workers
         ▼
    ┌──────────┐
    │ STOPPED  │
    └──────────┘

The pending/idle counters are only touched under the pool lock, so
"pending > idle" is always a consistent comparison.

=============================================================================
"""

import logging
import queue
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    """Worker thread states."""
    IDLE = "idle"
    BUSY = "busy"
    STOPPED = "stopped"


@dataclass
class Task:
    """
    A deferred function call: "call func(*args, **kwargs) later".

    Attributes:
        func: The function to execute.
        args: Positional arguments for the function.
        kwargs: Keyword arguments for the function.
        submitted_at: Time the task was submitted.
    """
    func: Callable[..., Any]
    args: tuple = ()
    kwargs: Dict[str, Any] = field(default_factory=dict)
    submitted_at: float = field(default_factory=time.time)


class Worker(threading.Thread):
    """
    Worker thread that pulls tasks off the shared queue.

        1. Wait for a task (up to idle_timeout)
        2. None → exit
           Timed out → exit if the pool has spare workers, else wait again
        3. Run the task, logging (never raising) any exception
        4. Mark it done, back to 1
    """

    def __init__(self, pool: "ThreadPool", worker_id: int):
        # daemon=True: a blocked worker never keeps the process alive
        super().__init__(name=f"Worker-{worker_id}", daemon=True)
        self.pool = pool
        self.worker_id = worker_id
        self.state = WorkerState.IDLE

        self.tasks_completed = 0
        self.tasks_failed = 0

    def run(self):
        logger.debug(f"Worker {self.worker_id} started")

        while True:
            try:
                task = self.pool._task_queue.get(timeout=self.pool.idle_timeout)
            except queue.Empty:
                if self.pool._retire_idle(self):
                    break
                continue

            if task is None:
                # Poison pill
                self.pool._task_queue.task_done()
                self.pool._worker_exited(self)
                break

            self.pool._task_started()
            try:
                self._execute_task(task)
            finally:
                self.pool._task_finished()
                self.pool._task_queue.task_done()

        self.state = WorkerState.STOPPED
        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute_task(self, task: Task):
        """Run one task; a failing task must not kill the worker."""
        self.state = WorkerState.BUSY
        start_time = time.time()

        try:
            task.func(*task.args, **task.kwargs)

            elapsed = time.time() - start_time
            logger.debug(f"Worker {self.worker_id} completed task in {elapsed:.3f}s")
            self.tasks_completed += 1

        except Exception as e:
            elapsed = time.time() - start_time
            logger.exception(
                f"Worker {self.worker_id} task failed after {elapsed:.3f}s: {e}"
            )
            self.tasks_failed += 1

        finally:
            self.state = WorkerState.IDLE


class ThreadPool:
    """
    Elastic thread pool for connection tasks.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      ThreadPool Usage                                │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   pool = ThreadPool()            # unbounded                         │
    │   pool = ThreadPool(max_workers=64)   # capped                       │
    │                                                                      │
    │   pool.start()                                                       │
    │   pool.submit(handler.handle, args=(conn,))                          │
    │   pool.shutdown(wait=False)                                          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    The queue itself is unbounded: submit() never blocks and never
    rejects while the pool is running.
    """

    def __init__(
        self,
        min_workers: int = 4,
        max_workers: Optional[int] = None,
        idle_timeout: float = 60.0,
    ):
        """
        Args:
            min_workers: Workers started up front and never retired.
            max_workers: Upper bound on worker threads, or None for no
                         bound. With a bound, tasks beyond it wait in
                         the queue.
            idle_timeout: Seconds an idle worker above min_workers waits
                          for work before exiting.
        """
        if max_workers is not None and max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        if max_workers is not None and min_workers > max_workers:
            raise ValueError("min_workers cannot exceed max_workers")

        self.min_workers = min_workers
        self.max_workers = max_workers
        self.idle_timeout = idle_timeout

        self._task_queue: "queue.Queue[Optional[Task]]" = queue.Queue()

        # Everything below is guarded by _lock
        self._lock = threading.Lock()
        self._workers: List[Worker] = []
        self._pending = 0
        self._idle = 0
        self._next_worker_id = 0

        self._started = False
        self._shutdown = False

    def start(self):
        """Start the pool with min_workers workers."""
        if self._started:
            return

        logger.info(
            f"Starting thread pool with {self.min_workers} workers "
            f"(max: {self.max_workers or 'unbounded'})"
        )
        self._shutdown = False
        with self._lock:
            for _ in range(self.min_workers):
                self._add_worker()

        self._started = True

    def _add_worker(self) -> Worker:
        """Start a new worker. Caller must hold _lock."""
        worker = Worker(pool=self, worker_id=self._next_worker_id)
        self._next_worker_id += 1
        self._workers.append(worker)
        self._idle += 1
        worker.start()
        return worker

    def _has_capacity(self) -> bool:
        return self.max_workers is None or len(self._workers) < self.max_workers

    def submit(
        self,
        func: Callable[..., Any],
        args: tuple = (),
        kwargs: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """
        Queue a task for execution and return immediately.

        Returns:
            True (the queue is unbounded, so a task is never rejected).

        Raises:
            RuntimeError: If the pool is not started or is shutting down.
        """
        if not self._started:
            raise RuntimeError("Thread pool not started")
        if self._shutdown:
            raise RuntimeError("Thread pool is shutting down")

        task = Task(func=func, args=args, kwargs=kwargs or {})

        with self._lock:
            self._pending += 1
            if self._pending > self._idle and self._has_capacity():
                logger.debug(
                    f"Scaling up: {len(self._workers)} -> {len(self._workers) + 1} workers"
                )
                self._add_worker()

        self._task_queue.put(task)
        return True

    # ─────────────────────────────────────────────────────────────────────────
    # Bookkeeping called from workers
    # ─────────────────────────────────────────────────────────────────────────

    def _task_started(self):
        with self._lock:
            self._pending -= 1
            self._idle -= 1

    def _task_finished(self):
        with self._lock:
            self._idle += 1

    def _worker_exited(self, worker: Worker):
        with self._lock:
            self._idle -= 1
            if worker in self._workers:
                self._workers.remove(worker)

    def _retire_idle(self, worker: Worker) -> bool:
        """Let an idle worker exit if more than min_workers are alive."""
        with self._lock:
            if self._shutdown or len(self._workers) <= self.min_workers:
                return False
            if self._pending >= self._idle:
                # Every idle worker is spoken for
                return False
            self._idle -= 1
            self._workers.remove(worker)
            logger.debug(f"Retiring idle worker {worker.worker_id}")
            return True

    # ─────────────────────────────────────────────────────────────────────────
    # Shutdown
    # ─────────────────────────────────────────────────────────────────────────

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Stop the pool.

        Args:
            wait: Wait for queued tasks to finish before stopping workers.
                  With False, workers still finish the task they are on
                  but nobody waits for them.
            timeout: Maximum seconds to wait for the queue to drain.
        """
        if not self._started:
            return

        logger.info("Shutting down thread pool...")
        self._shutdown = True

        if wait:
            if timeout:
                deadline = time.time() + timeout
                while self._task_queue.unfinished_tasks:
                    if time.time() > deadline:
                        logger.warning("Shutdown timeout, abandoning pending tasks")
                        break
                    time.sleep(0.05)
            else:
                self._task_queue.join()

        with self._lock:
            workers = list(self._workers)

        # One poison pill per worker
        for _ in workers:
            self._task_queue.put(None)

        if wait:
            for worker in workers:
                worker.join(timeout=2.0)

        self._started = False
        logger.info("Thread pool shutdown complete")

    # =========================================================================
    # MONITORING
    # =========================================================================

    @property
    def worker_count(self) -> int:
        with self._lock:
            return len(self._workers)

    @property
    def pending_tasks(self) -> int:
        """Tasks submitted but not yet picked up by a worker."""
        with self._lock:
            return self._pending

    @property
    def stats(self) -> dict:
        with self._lock:
            workers = list(self._workers)
            return {
                "workers": {
                    "total": len(workers),
                    "idle": self._idle,
                    "busy": sum(1 for w in workers if w.state == WorkerState.BUSY),
                },
                "tasks": {
                    "pending": self._pending,
                    "completed": sum(w.tasks_completed for w in workers),
                    "failed": sum(w.tasks_failed for w in workers),
                },
            }
