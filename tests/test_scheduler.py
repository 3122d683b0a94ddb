"""Unit tests for schedule expressions, the job registry and the poll scheduler."""

import asyncio
import threading
from datetime import timedelta

import pytest
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from conftest import FakeProbe
from upsnap_core.core.application.events.event_bus import EventBus
from upsnap_core.core.application.registry.device_registry import DeviceRegistry
from upsnap_core.infrastructure.poller.status_poller import StatusPoller
from upsnap_core.infrastructure.scheduler.job_registry import JobRegistry, ScheduledJob
from upsnap_core.infrastructure.scheduler.poll_scheduler import PollScheduler
from upsnap_core.infrastructure.scheduler.schedule_expression import (
    build_trigger,
    parse_duration,
)
from upsnap_core.infrastructure.scheduler.scheduler_service import SchedulerService


class TestScheduleExpression:
    """Tests for schedule expression parsing."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("3s", timedelta(seconds=3)),
            ("500ms", timedelta(milliseconds=500)),
            ("1m30s", timedelta(seconds=90)),
            ("2h", timedelta(hours=2)),
        ],
    )
    def test_parse_duration(self, text, expected):
        assert parse_duration(text) == expected

    @pytest.mark.parametrize("text", ["", "3", "3x", "0s", "-1s", "s"])
    def test_parse_duration_rejects(self, text):
        with pytest.raises(ValueError):
            parse_duration(text)

    def test_every_expression(self):
        trigger = build_trigger("@every 3s")

        assert isinstance(trigger, IntervalTrigger)
        assert trigger.interval == timedelta(seconds=3)

    def test_bare_duration(self):
        assert isinstance(build_trigger("10s"), IntervalTrigger)

    def test_five_field_cron(self):
        assert isinstance(build_trigger("*/5 * * * *"), CronTrigger)

    def test_six_field_cron(self):
        assert isinstance(build_trigger("*/10 * * * * *"), CronTrigger)

    @pytest.mark.parametrize("expression", ["", "@every", "@every soon", "* * *", "61 * * * *"])
    def test_malformed_expressions(self, expression):
        with pytest.raises(ValueError):
            build_trigger(expression)


class TestJobRegistry:
    """Tests for the job registry."""

    def test_add_remove_entries(self, logger):
        registry = JobRegistry(logger=logger)
        cancelled = []

        registry.add("a", ScheduledJob(id="a", canceller=lambda: cancelled.append("a")))
        registry.add("b", ScheduledJob(id="b", canceller=lambda: cancelled.append("b")))

        assert len(registry) == 2
        assert "a" in registry
        assert registry.remove("a") == True
        assert cancelled == ["a"]
        assert [job.id for job in registry.entries()] == ["b"]

    def test_remove_unknown_is_false(self, logger):
        registry = JobRegistry(logger=logger)

        assert registry.remove("missing") == False

    def test_concurrent_add_and_remove(self, logger):
        """Mutations from many threads leave a consistent map."""
        registry = JobRegistry(logger=logger)

        def worker(prefix: str) -> None:
            for i in range(200):
                job_id = f"{prefix}-{i}"
                registry.add(job_id, ScheduledJob(id=job_id, canceller=lambda: None))
                if i % 2 == 0:
                    registry.remove(job_id)

        threads = [threading.Thread(target=worker, args=(str(n),)) for n in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(registry) == 8 * 100
        assert len(registry.entries()) == 8 * 100


@pytest.fixture
def poller(logger):
    return StatusPoller(
        registry=DeviceRegistry(logger=logger),
        devices_repository=None,
        probe=FakeProbe(),
        event_bus=EventBus(logger=logger),
        logger=logger,
    )


class TestPollScheduler:
    """Tests for the poll job lifecycle."""

    @pytest.mark.asyncio
    async def test_start_registers_one_job(self, logger, poller):
        service = SchedulerService(logger=logger)
        jobs = JobRegistry(logger=logger)
        scheduler = PollScheduler(
            scheduler_service=service, job_registry=jobs, poller=poller, logger=logger
        )
        await service.start()

        job_id = scheduler.start("@every 1h")

        assert [job.id for job in jobs.entries()] == [job_id]
        assert service.job_ids() == [job_id]
        assert scheduler.expression == "@every 1h"
        await service.shutdown()

    @pytest.mark.asyncio
    async def test_back_to_back_restarts_leave_one_job(self, logger, poller):
        service = SchedulerService(logger=logger)
        jobs = JobRegistry(logger=logger)
        scheduler = PollScheduler(
            scheduler_service=service, job_registry=jobs, poller=poller, logger=logger
        )
        await service.start()

        scheduler.start("@every 1h")
        scheduler.restart("@every 2h")
        last = scheduler.restart("*/5 * * * *")

        assert len(jobs) == 1
        assert service.job_ids() == [last]
        await service.shutdown()

    @pytest.mark.asyncio
    async def test_stop_is_idempotent(self, logger, poller):
        service = SchedulerService(logger=logger)
        jobs = JobRegistry(logger=logger)
        scheduler = PollScheduler(
            scheduler_service=service, job_registry=jobs, poller=poller, logger=logger
        )
        await service.start()
        scheduler.start("@every 1h")

        scheduler.stop()
        scheduler.stop()

        assert len(jobs) == 0
        assert service.job_ids() == []
        assert scheduler.expression is None
        await service.shutdown()

    @pytest.mark.asyncio
    async def test_invalid_restart_keeps_current_job(self, logger, poller):
        service = SchedulerService(logger=logger)
        jobs = JobRegistry(logger=logger)
        scheduler = PollScheduler(
            scheduler_service=service, job_registry=jobs, poller=poller, logger=logger
        )
        await service.start()
        job_id = scheduler.start("@every 1h")

        with pytest.raises(ValueError):
            scheduler.restart("every now and then")

        assert service.job_ids() == [job_id]
        assert scheduler.expression == "@every 1h"
        await service.shutdown()

    @pytest.mark.asyncio
    async def test_interval_job_ticks_the_poller(self, logger, poller):
        service = SchedulerService(logger=logger)
        scheduler = PollScheduler(
            scheduler_service=service,
            job_registry=JobRegistry(logger=logger),
            poller=poller,
            logger=logger,
        )
        await service.start()

        scheduler.start("@every 100ms")
        await asyncio.sleep(0.35)
        scheduler.stop()

        assert poller.ticks >= 2
        await service.shutdown()
