"""
Scheduler Service
=================

Thin wrapper around APScheduler's ``AsyncIOScheduler`` running recurring jobs
on the current event loop. Job outcomes are reported through scheduler event
listeners: failures at ERROR, skipped fire times (the previous run was still
busy) at WARNING.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List

from apscheduler import events  # type: ignore
from apscheduler.events import JobExecutionEvent, JobSubmissionEvent  # type: ignore
from apscheduler.executors.asyncio import AsyncIOExecutor  # type: ignore
from apscheduler.job import Job  # type: ignore
from apscheduler.jobstores.base import JobLookupError  # type: ignore
from apscheduler.jobstores.memory import MemoryJobStore  # type: ignore
from apscheduler.schedulers.asyncio import AsyncIOScheduler  # type: ignore
from apscheduler.triggers.base import BaseTrigger  # type: ignore

from upsnap_core.common.utility import LoggerMixin
from upsnap_core.infrastructure.scheduler.job_registry import ScheduledJob


class SchedulerService(LoggerMixin):
    """
    Owns one APScheduler instance.

    Every job runs with ``max_instances=1`` and ``coalesce=True``: while a run is
    in progress further fire times are dropped instead of queued.

    Args:
        logger (logging.Logger): Logger instance for logging.
        timezone (str): Timezone used by cron triggers.
    """

    _timezone: str
    _scheduler: AsyncIOScheduler

    def __init__(self, *, logger: logging.Logger, timezone: str = "UTC") -> None:
        self._build_logger(logger=logger)
        self._timezone = timezone

        self._scheduler = AsyncIOScheduler(
            jobstores={"default": MemoryJobStore()},
            executors={"default": AsyncIOExecutor()},
            job_defaults={"coalesce": True, "max_instances": 1},
            timezone=timezone,
        )

        self._scheduler.add_listener(  # type: ignore
            self._job_executed, events.EVENT_JOB_EXECUTED | events.EVENT_JOB_ERROR
        )
        self._scheduler.add_listener(  # type: ignore
            self._job_skipped, events.EVENT_JOB_MAX_INSTANCES
        )

    @property
    def timezone(self) -> str:
        return self._timezone

    @property
    def running(self) -> bool:
        return bool(self._scheduler.running)  # type: ignore

    async def start(self) -> None:
        """Start the scheduler on the running event loop. No-op when already running."""
        if self.running:
            return
        self._scheduler.start()  # type: ignore
        self._logger.info("Scheduler service started")

    async def shutdown(self) -> None:
        """Stop the scheduler without waiting for in-flight runs. No-op when stopped."""
        if not self.running:
            return
        self._scheduler.shutdown(wait=False)  # type: ignore
        self._logger.info("Scheduler service stopped")

    def schedule_recurring(
        self,
        func: Callable[..., Any],
        trigger: BaseTrigger,
        *,
        job_id: str,
        run_immediately: bool = False,
    ) -> ScheduledJob:
        """
        Schedule ``func`` on a recurring trigger.

        Args:
            func (Callable[..., Any]): Coroutine function or callable to run.
            trigger (BaseTrigger): Interval or cron trigger.
            job_id (str): Identifier of the new job.
            run_immediately (bool): Fire once right away instead of waiting for the first period.

        Returns:
            ScheduledJob: Handle whose ``cancel`` removes the job.
        """
        options: Dict[str, Any] = {}
        if run_immediately:
            options["next_run_time"] = datetime.now(timezone.utc)

        job: Job = self._scheduler.add_job(  # type: ignore
            func=func,
            trigger=trigger,
            id=job_id,
            **options,
        )

        self._logger.debug(f"Scheduled recurring task {job.id} with {trigger}")  # type: ignore
        return ScheduledJob(id=job_id, canceller=lambda: self.cancel_task(job_id))

    def cancel_task(self, job_id: str) -> bool:
        """Remove a job. Returns False when it was already gone."""
        try:
            self._scheduler.remove_job(job_id)  # type: ignore
        except JobLookupError:
            self._logger.debug(f"Task {job_id} was already gone")
            return False

        self._logger.debug(f"Cancelled task {job_id}")
        return True

    def job_ids(self) -> List[str]:
        """Identifiers of every job known to the scheduler."""
        return [job.id for job in self._scheduler.get_jobs()]  # type: ignore

    def _job_executed(self, event: JobExecutionEvent) -> None:  # type: ignore
        if event.exception:  # type: ignore
            self._logger.error(
                f"Task {event.job_id} failed with exception: {event.exception}"  # type: ignore
            )
        else:
            self._logger.debug(f"Task {event.job_id} executed successfully")  # type: ignore

    def _job_skipped(self, event: JobSubmissionEvent) -> None:  # type: ignore
        self._logger.warning(
            f"Task {event.job_id} is still running, skipped run at {event.scheduled_run_times}"  # type: ignore
        )
