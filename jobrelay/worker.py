"""Worker threads that deliver jobs, retrying until the write succeeds."""

import queue
import threading
import time
from typing import Callable, List, Optional

from .backoff import BackoffStrategy
from .errors import JobRelayError, QueueFullError
from .gateway import ExternalGateway
from .logging_config import get_logger
from .models import PendingJob
from .store import PendingJobStore

logger = get_logger("jobrelay.worker")

DEFAULT_QUEUE_CAPACITY = 100
POLL_INTERVAL = 0.5


class RetryLoop:
    """Drives one pending job from the writable check to a successful write.

    There is no attempt limit: the loop ends when the write succeeds or
    when ``stop_event`` is set, in which case the job stays in the store
    for the next snapshot.
    """

    def __init__(
        self,
        pending: PendingJob,
        store: PendingJobStore,
        gateway: ExternalGateway,
        backoff: BackoffStrategy,
        stop_event: threading.Event,
        worker_id: int = 0,
    ):
        self.pending = pending.model_copy(deep=True)
        self.store = store
        self.gateway = gateway
        self.backoff = backoff
        self.stop_event = stop_event
        self.worker_id = worker_id

    @property
    def uid(self) -> str:
        return self.pending.job.uid

    def run(self) -> bool:
        """Returns True once written, False if stopped first."""
        while True:
            delay = min(self.backoff.delay(self.pending.attempts), threading.TIMEOUT_MAX)
            if self.stop_event.wait(delay):
                logger.info("Retry loop stopped", uid=self.uid, attempts=self.pending.attempts, worker=self.worker_id)
                return False

            try:
                written = self.attempt()
            except JobRelayError as e:
                self.mark_failed(str(e))
                continue
            except Exception as e:
                logger.exception("Unexpected error while delivering job", uid=self.uid, worker=self.worker_id)
                self.mark_failed(str(e))
                continue

            if written:
                self.store.remove(self.uid)
                logger.info("Data written", uid=self.uid, attempts=self.pending.attempts, worker=self.worker_id)
                return True
            self.mark_failed("object not writable", log=False)

    def attempt(self) -> bool:
        """One pass: revision lookup, writable check, write.

        Returns True when written and False when the object is not
        writable; failures raise JobRelayError.
        """
        revision = self.gateway.latest_revision(self.pending.job)
        if revision and revision != self.uid:
            new_job = self.pending.job.model_copy(update={"uid": revision})
            # DuplicateJobError leaves this job on its old uid; the cycle counts as failed
            self.store.update(self.uid, job=new_job)
            logger.info("Job moved to latest revision", uid=self.uid, revision=revision)
            self.pending.job = new_job

        if not self.gateway.check_writable(self.pending.job):
            return False

        self.gateway.write_data(self.pending.job)
        return True

    def mark_failed(self, error_message: str, log: bool = True) -> None:
        """Count a failed cycle against the job."""
        self.pending.attempts += 1
        self.store.update(self.uid, attempts=self.pending.attempts)
        if log:
            logger.error(
                "Delivery attempt failed",
                uid=self.uid,
                attempts=self.pending.attempts,
                error=error_message,
                worker=self.worker_id,
            )


class Worker(threading.Thread):
    """Pulls jobs off the pool's queue and runs each retry loop to the end."""

    def __init__(self, pool: "WorkerPool", worker_id: int):
        super().__init__(name=f"jobrelay-worker-{worker_id}", daemon=True)
        self.pool = pool
        self.worker_id = worker_id
        self.current_job: Optional[PendingJob] = None

    def run(self) -> None:
        logger.debug("Worker started", worker=self.worker_id)
        stop_event = self.pool.stop_event
        while not stop_event.is_set():
            try:
                pending = self.pool.queue.get(timeout=self.pool.poll_interval)
            except queue.Empty:
                continue
            try:
                self.current_job = pending
                self.pool.run_job(pending, self.worker_id)
            finally:
                self.current_job = None
                self.pool.queue.task_done()
        logger.debug("Worker stopped", worker=self.worker_id)


class WorkerPool:
    """Fixed set of workers fed from a bounded queue."""

    def __init__(
        self,
        store: PendingJobStore,
        gateway: ExternalGateway,
        backoff_factory: Callable[[], BackoffStrategy],
        capacity: int = DEFAULT_QUEUE_CAPACITY,
        min_workers: int = 1,
        max_workers: int = 10,
        poll_interval: float = POLL_INTERVAL,
    ):
        if capacity <= 0:
            raise ValueError("capacity must be > 0")
        if min_workers < 1 or max_workers < min_workers:
            raise ValueError("require 1 <= min_workers <= max_workers")
        self.store = store
        self.gateway = gateway
        self.backoff_factory = backoff_factory
        self.capacity = capacity
        self.min_workers = min_workers
        self.max_workers = max_workers
        self.poll_interval = poll_interval

        self.queue: "queue.Queue[PendingJob]" = queue.Queue(maxsize=capacity)
        self.stop_event = threading.Event()
        self.workers: List[Worker] = []

    def start(self, count: Optional[int] = None) -> int:
        """Launch ``count`` workers, clamped to [min_workers, max_workers]."""
        if self.workers:
            raise RuntimeError("worker pool already started")
        requested = self.max_workers if count is None else count
        count = max(self.min_workers, min(requested, self.max_workers))
        if count != requested:
            logger.warning("Worker count clamped", requested=requested, count=count)

        for i in range(count):
            worker = Worker(self, i + 1)
            worker.start()
            self.workers.append(worker)
        logger.info("Worker pool started", workers=count, capacity=self.capacity)
        return count

    def run_job(self, pending: PendingJob, worker_id: int = 0) -> bool:
        loop = RetryLoop(pending, self.store, self.gateway, self.backoff_factory(), self.stop_event, worker_id)
        return loop.run()

    def submit(self, pending: PendingJob) -> None:
        """Enqueue without blocking; raises QueueFullError when at capacity."""
        try:
            self.queue.put_nowait(pending)
        except queue.Full:
            raise QueueFullError(f"queue is full ({self.capacity} jobs)") from None

    def resubmit(self, pending: PendingJob) -> bool:
        """Enqueue, waiting for capacity. Returns False if the pool stops first."""
        while not self.stop_event.is_set():
            try:
                self.queue.put(pending, timeout=self.poll_interval)
                return True
            except queue.Full:
                continue
        return False

    def stop(self, grace: float = 5.0) -> bool:
        """Signal every worker and wait up to ``grace`` seconds for them.

        Returns True if all workers exited in time.
        """
        self.stop_event.set()
        deadline = time.monotonic() + grace
        for worker in self.workers:
            worker.join(max(0.0, deadline - time.monotonic()))
        alive = [w.worker_id for w in self.workers if w.is_alive()]
        if alive:
            logger.warning("Workers still running after grace period", workers=alive, grace=grace)
        else:
            logger.info("Worker pool stopped", workers=len(self.workers))
        return not alive

    @property
    def queued(self) -> int:
        return self.queue.qsize()
