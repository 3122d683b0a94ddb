"""
Parsing of poll schedule expressions into APScheduler triggers.

Accepted forms:

- ``@every <duration>`` such as ``@every 3s`` or ``@every 1m30s``
- a bare duration such as ``10s``
- a five field crontab (``*/5 * * * *``)
- a six field crontab with a leading seconds field (``*/10 * * * * *``)

Durations are sequences of ``<number><unit>`` with units ``ms``, ``s``, ``m`` and ``h``.
"""

import re
from datetime import timedelta
from typing import Union

from apscheduler.triggers.cron import CronTrigger  # type: ignore
from apscheduler.triggers.interval import IntervalTrigger  # type: ignore

EVERY_PREFIX = "@every"

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h)")
_DURATION_FULL = re.compile(r"^(?:\d+(?:\.\d+)?(?:ms|s|m|h))+$")

_UNIT_SECONDS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}

Trigger = Union[IntervalTrigger, CronTrigger]


def parse_duration(text: str) -> timedelta:
    """
    Parse a duration such as ``3s``, ``500ms`` or ``1h30m``.

    Raises:
        ValueError: If the text is not a positive duration.
    """
    value = text.strip()
    if not _DURATION_FULL.match(value):
        raise ValueError(f"not a duration: {text!r}")

    seconds = sum(
        float(amount) * _UNIT_SECONDS[unit]
        for amount, unit in _DURATION_PART.findall(value)
    )
    if seconds <= 0:
        raise ValueError(f"duration must be positive: {text!r}")

    return timedelta(seconds=seconds)


def build_trigger(expression: str, *, timezone: str = "UTC") -> Trigger:
    """
    Build the APScheduler trigger for a schedule expression.

    Raises:
        ValueError: If the expression is empty or malformed.
    """
    value = expression.strip()
    if not value:
        raise ValueError("empty schedule expression")

    if value.startswith(EVERY_PREFIX):
        interval = parse_duration(value[len(EVERY_PREFIX) :])
        return IntervalTrigger(seconds=interval.total_seconds(), timezone=timezone)

    fields = value.split()
    match len(fields):
        case 1:
            interval = parse_duration(value)
            return IntervalTrigger(seconds=interval.total_seconds(), timezone=timezone)
        case 5:
            return CronTrigger.from_crontab(value, timezone=timezone)
        case 6:
            second, minute, hour, day, month, day_of_week = fields
            return CronTrigger(
                second=second,
                minute=minute,
                hour=hour,
                day=day,
                month=month,
                day_of_week=day_of_week,
                timezone=timezone,
            )
        case _:
            raise ValueError(f"unsupported schedule expression: {expression!r}")
