"""
Job Registry
============

A thread-safe map from job identifier to the handle that cancels the job.
Removal may come from a different thread or task than the one that added the
job; every operation holds the lock only while touching the map, and the
cancellation itself runs after the lock is released.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, List

from upsnap_core.common.utility import LoggerMixin


@dataclass(frozen=True)
class ScheduledJob:
    """
    Handle of one scheduled recurring task.

    Attributes:
        id (str): Job identifier.
        canceller (Callable[[], None]): Stops the job; must tolerate repeated calls.
    """

    id: str
    canceller: Callable[[], None]

    def cancel(self) -> None:
        self.canceller()


class JobRegistry(LoggerMixin):
    """Registry of the currently scheduled jobs."""

    _jobs: Dict[str, ScheduledJob]
    _lock: threading.Lock

    def __init__(self, *, logger: logging.Logger) -> None:
        self._jobs = {}
        self._lock = threading.Lock()
        self._build_logger(logger=logger)

    def add(self, job_id: str, job: ScheduledJob) -> None:
        with self._lock:
            self._jobs[job_id] = job
        self._logger.debug(f"Registered job {job_id}")

    def remove(self, job_id: str) -> bool:
        """
        Cancel and forget a job. Returns False when the id was not registered.
        """
        with self._lock:
            job = self._jobs.pop(job_id, None)

        if job is None:
            return False

        job.cancel()
        self._logger.debug(f"Removed job {job_id}")
        return True

    def entries(self) -> List[ScheduledJob]:
        """Return a snapshot of the registered jobs."""
        with self._lock:
            return list(self._jobs.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def __contains__(self, job_id: object) -> bool:
        with self._lock:
            return job_id in self._jobs
