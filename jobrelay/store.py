"""In-memory registry of jobs that are accepted but not yet written."""

import threading
from datetime import datetime
from typing import Iterable, List, Optional

from .errors import DuplicateJobError
from .models import Job, PendingJob


class PendingJobStore:
    """Ordered, lock-guarded collection of pending jobs.

    Every read and write of the collection happens under one lock, held
    only for the in-memory operation. Entries handed out are copies, so
    callers never touch the shared objects.
    """

    def __init__(self):
        self._jobs: List[PendingJob] = []
        self._lock = threading.Lock()

    def _index(self, uid: str) -> Optional[int]:
        for i, pending in enumerate(self._jobs):
            if pending.job.uid == uid:
                return i
        return None

    def add(self, job: Job) -> PendingJob:
        """Append a job with no attempts yet."""
        pending = PendingJob(job=job.model_copy(deep=True), created_at=datetime.utcnow(), attempts=0)
        with self._lock:
            if self._index(job.uid) is not None:
                raise DuplicateJobError(job.uid)
            self._jobs.append(pending)
        return pending.model_copy(deep=True)

    def load(self, jobs: Iterable[PendingJob]) -> List[PendingJob]:
        """Insert previously persisted jobs, keeping their attempts and timestamps.

        Entries whose uid is already present are skipped. Returns the
        entries that were inserted.
        """
        loaded = []
        with self._lock:
            for pending in jobs:
                if self._index(pending.job.uid) is not None:
                    continue
                self._jobs.append(pending.model_copy(deep=True))
                loaded.append(pending.model_copy(deep=True))
        return loaded

    def remove(self, uid: str) -> bool:
        """Remove the first entry for ``uid``; absent uids are not an error."""
        with self._lock:
            index = self._index(uid)
            if index is None:
                return False
            del self._jobs[index]
            return True

    def update(self, uid: str, attempts: Optional[int] = None, job: Optional[Job] = None) -> bool:
        """Record progress of the retry loop that owns ``uid``.

        ``job`` replaces the stored job, which is how a uid rewritten by a
        revision lookup reaches the store. Attempts never decrease. Raises
        DuplicateJobError if the new uid already belongs to another entry.
        """
        with self._lock:
            index = self._index(uid)
            if index is None:
                return False
            if job is not None and job.uid != uid and self._index(job.uid) is not None:
                raise DuplicateJobError(job.uid)
            current = self._jobs[index]
            changes = {}
            if attempts is not None:
                changes["attempts"] = max(current.attempts, attempts)
            if job is not None:
                changes["job"] = job.model_copy(deep=True)
            self._jobs[index] = current.model_copy(update=changes)
            return True

    def get(self, uid: str) -> Optional[PendingJob]:
        with self._lock:
            index = self._index(uid)
            return None if index is None else self._jobs[index].model_copy(deep=True)

    def snapshot(self) -> List[PendingJob]:
        """Deep copy of all entries, in insertion order."""
        with self._lock:
            return [pending.model_copy(deep=True) for pending in self._jobs]

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def __contains__(self, uid: str) -> bool:
        with self._lock:
            return self._index(uid) is not None
