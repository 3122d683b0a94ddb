"""
Poll Scheduler
==============

Owns the single recurring poll job. Starting, stopping and restarting are
serialized so that back-to-back reconfigurations always end with exactly one
registered job.
"""

import logging
import threading
import uuid
from typing import Optional

from apscheduler.triggers.interval import IntervalTrigger  # type: ignore

from upsnap_core.common.utility import LoggerMixin
from upsnap_core.infrastructure.poller.status_poller import StatusPoller
from upsnap_core.infrastructure.scheduler.job_registry import JobRegistry
from upsnap_core.infrastructure.scheduler.schedule_expression import build_trigger
from upsnap_core.infrastructure.scheduler.scheduler_service import SchedulerService


class PollScheduler(LoggerMixin):
    """
    Schedules the status poller on a configurable expression.

    Args:
        scheduler_service (SchedulerService): Underlying APScheduler wrapper.
        job_registry (JobRegistry): Registry of active jobs.
        poller (StatusPoller): The poller whose ``tick`` is scheduled.
        logger (logging.Logger): Logger instance for logging.
    """

    _scheduler_service: SchedulerService
    _job_registry: JobRegistry
    _poller: StatusPoller
    _expression: Optional[str]
    _lock: threading.RLock

    def __init__(
        self,
        *,
        scheduler_service: SchedulerService,
        job_registry: JobRegistry,
        poller: StatusPoller,
        logger: logging.Logger,
    ) -> None:
        self._scheduler_service = scheduler_service
        self._job_registry = job_registry
        self._poller = poller
        self._expression = None
        self._lock = threading.RLock()
        self._build_logger(logger=logger)

    @property
    def expression(self) -> Optional[str]:
        """The schedule expression of the active job, if any."""
        return self._expression

    def start(self, expression: str) -> str:
        """
        Register the poll job for ``expression``, replacing any active job.

        Raises:
            ValueError: If the expression is malformed; the active job is kept.

        Returns:
            str: The new job identifier.
        """
        trigger = build_trigger(expression, timezone=self._scheduler_service.timezone)

        with self._lock:
            if len(self._job_registry):
                self.stop()

            job_id = uuid.uuid4().hex
            job = self._scheduler_service.schedule_recurring(
                self._poller.tick,
                trigger,
                job_id=job_id,
                run_immediately=isinstance(trigger, IntervalTrigger),
            )
            self._job_registry.add(job_id, job)
            self._expression = expression

        self._logger.info(f"Poll job {job_id} scheduled with {expression}")
        return job_id

    def stop(self) -> None:
        """Cancel every registered job. Safe to call when nothing is scheduled."""
        with self._lock:
            for job in self._job_registry.entries():
                self._job_registry.remove(job.id)
            self._expression = None

    def restart(self, expression: str) -> str:
        """Stop all jobs and start again with ``expression``."""
        with self._lock:
            build_trigger(expression, timezone=self._scheduler_service.timezone)
            self.stop()
            return self.start(expression)
