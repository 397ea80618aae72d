"""Snapshot file holding pending jobs across restarts."""

import json
from pathlib import Path
from typing import Any, List, Sequence, Union

from pydantic import TypeAdapter, ValidationError

from .errors import PersistenceError
from .logging_config import get_logger
from .models import PendingJob

logger = get_logger("jobrelay.persistence")

PendingJobList = TypeAdapter(List[PendingJob])


class JobSnapshotFile:
    """JSON array of pending jobs at a fixed path, rewritten on every save."""

    def __init__(self, path: Union[str, Path] = "pending_jobs.json"):
        self.path = Path(path)

    def _write_json(self, data: Any) -> None:
        """Write data to the snapshot path with an atomic rename."""
        temp_file = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(temp_file, "w") as f:
            json.dump(data, f, indent=2, default=str)
        temp_file.replace(self.path)

    def _read_json(self) -> Any:
        with open(self.path, "r") as f:
            return json.load(f)

    def save(self, jobs: Sequence[PendingJob]) -> int:
        """Overwrite the snapshot with ``jobs``; returns the number written."""
        data = [job.model_dump(mode="json", by_alias=True) for job in jobs]
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._write_json(data)
        except OSError as e:
            raise PersistenceError(f"cannot write {self.path}: {e}") from e
        logger.info("Pending jobs saved", filename=str(self.path), count=len(data))
        return len(data)

    def restore(self) -> List[PendingJob]:
        """Read the snapshot.

        A missing file yields no jobs. An unreadable or malformed file is
        logged and also yields no jobs.
        """
        if not self.path.exists():
            return []
        try:
            jobs = PendingJobList.validate_python(self._read_json())
        except (OSError, ValueError, ValidationError) as e:
            logger.error("Cannot restore pending jobs", filename=str(self.path), error=str(e))
            return []
        logger.info("Pending jobs restored", filename=str(self.path), count=len(jobs))
        return jobs
