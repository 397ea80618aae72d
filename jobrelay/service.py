"""Wiring of store, worker pool, gateway and snapshot file."""

import threading
from typing import Optional

from .auth import build_auth_provider
from .backoff import build_backoff
from .config import Settings
from .errors import PersistenceError, QueueFullError
from .gateway import ExternalGateway
from .logging_config import get_logger
from .models import Job, PendingJob
from .persistence import JobSnapshotFile
from .store import PendingJobStore
from .worker import WorkerPool

logger = get_logger("jobrelay.service")


class JobRelay:
    """Accepts jobs and keeps delivering them until each write succeeds."""

    def __init__(
        self,
        settings: Settings,
        gateway: Optional[ExternalGateway] = None,
        store: Optional[PendingJobStore] = None,
        snapshot: Optional[JobSnapshotFile] = None,
    ):
        self.settings = settings
        target = settings.target
        self.store = store or PendingJobStore()
        self.gateway = gateway or ExternalGateway(target, build_auth_provider(target.auth))
        self.snapshot = snapshot or JobSnapshotFile(settings.state_file)
        self.pool = WorkerPool(
            self.store,
            self.gateway,
            lambda: build_backoff(settings.backoff, settings.backoff_max_delay),
            capacity=settings.queue_capacity,
            min_workers=target.min_workers,
            max_workers=target.max_workers,
        )
        self._replay_thread: Optional[threading.Thread] = None

    def start(self, workers: Optional[int] = None) -> int:
        """Restore persisted jobs and launch the workers; returns the number restored."""
        restored = self.store.load(self.snapshot.restore())
        self.pool.start(workers)
        if restored:
            self._replay_thread = threading.Thread(
                target=self._replay, args=(restored,), name="jobrelay-replay", daemon=True
            )
            self._replay_thread.start()
        return len(restored)

    def _replay(self, jobs) -> None:
        for pending in jobs:
            if not self.pool.resubmit(pending):
                break
        logger.info("Restored jobs handed to workers", count=len(jobs))

    def accept(self, job: Job) -> PendingJob:
        """Register and enqueue a new job.

        Raises DuplicateJobError if the uid is pending and QueueFullError
        when the queue is at capacity; a rejected job leaves the store
        unchanged.
        """
        pending = self.store.add(job)
        try:
            self.pool.submit(pending)
        except QueueFullError:
            self.store.remove(job.uid)
            logger.error("No free capacity for job", uid=job.uid, capacity=self.pool.capacity)
            raise
        logger.info("Job accepted", uid=job.uid)
        return pending

    def shutdown(self, grace: Optional[float] = None) -> int:
        """Stop the retry loops, then save what is still pending."""
        grace = self.settings.shutdown_grace if grace is None else grace
        logger.info("Shutting down", pending=len(self.store))
        self.pool.stop(grace)
        try:
            return self.snapshot.save(self.store.snapshot())
        except PersistenceError as e:
            logger.error("Saving pending jobs skipped", error=str(e))
            return 0
