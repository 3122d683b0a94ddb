"""
Use cases for resolving and persisting the singleton settings record.

Every setting follows the same precedence: an explicit environment override,
then the stored value, then the built-in default. Resolution is a pure function
so it can be tested without a process environment or a store.
"""

import logging
from typing import Any, Dict, Mapping, Optional, TypeVar

from upsnap_core.common.results import Result, ResultHandler
from upsnap_core.common.utility import LoggerMixin
from upsnap_core.core.application.errors.application_errors import (
    ApplicationSettingsErrors,
)
from upsnap_core.core.domain.entities.settings_entity import (
    DEFAULT_INTERVAL,
    DEFAULT_NOTIFICATIONS,
    DEFAULT_SCAN_RANGE,
    SettingsEntity,
)
from upsnap_core.core.domain.repositories.settings_repository import (
    SettingsRepository,
)
from upsnap_core.infrastructure.scheduler.schedule_expression import build_trigger

ENV_INTERVAL = "UPSNAP_INTERVAL"
ENV_NOTIFICATIONS = "UPSNAP_NOTIFICATIONS"
ENV_SCAN_RANGE = "UPSNAP_SCAN_RANGE"

_TRUE_VALUES = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE_VALUES = {"0", "f", "F", "FALSE", "false", "False"}

T = TypeVar("T")


def resolve(env: Optional[T], stored: Optional[T], default: T) -> T:
    """
    Pick the effective value: a non-empty override, else a non-empty stored value, else the default.
    """
    if env is not None and env != "":
        return env
    if stored is not None and stored != "":
        return stored
    return default


def parse_bool(value: str) -> bool:
    """
    Parse a strict boolean literal.

    Raises:
        ValueError: For anything outside the accepted literals.
    """
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"invalid boolean literal {value!r}")


def settings_from_raw(
    raw: Optional[Dict[str, Any]],
    env: Mapping[str, str],
) -> Result[SettingsEntity, ApplicationSettingsErrors.ConfigError]:
    """
    Resolve effective settings from a raw stored record and an environment mapping.

    Args:
        raw (Optional[Dict[str, Any]]): The stored settings record, if any.
        env (Mapping[str, str]): Environment overrides.

    Returns:
        Result[SettingsEntity, ConfigError]: The effective settings or the first invalid value.
    """
    raw = raw or {}

    stored_notifications = raw.get("notifications")
    env_notifications: Optional[bool] = None
    raw_env_notifications = env.get(ENV_NOTIFICATIONS, "")
    if raw_env_notifications != "":
        try:
            env_notifications = parse_bool(raw_env_notifications)
        except ValueError as e:
            return ResultHandler.fail(
                ApplicationSettingsErrors.ConfigError(
                    ENV_NOTIFICATIONS, raw_env_notifications, str(e)
                )
            )
    if stored_notifications is not None and not isinstance(stored_notifications, bool):
        stored_notifications = None

    interval = resolve(
        env.get(ENV_INTERVAL) or None,
        str(raw.get("interval") or "") or None,
        DEFAULT_INTERVAL,
    )
    try:
        build_trigger(interval)
    except ValueError as e:
        name = ENV_INTERVAL if env.get(ENV_INTERVAL) else "interval"
        return ResultHandler.fail(
            ApplicationSettingsErrors.ConfigError(name, interval, str(e))
        )

    return ResultHandler.ok(
        SettingsEntity(
            id=str(raw.get("id") or ""),
            interval=interval,
            notifications=resolve(
                env_notifications, stored_notifications, DEFAULT_NOTIFICATIONS
            ),
            scan_range=resolve(
                env.get(ENV_SCAN_RANGE) or None,
                str(raw.get("scan_range") or "") or None,
                DEFAULT_SCAN_RANGE,
            ),
        )
    )


class ImportSettingsUseCase(LoggerMixin):
    """
    Use case run once at startup: resolve the effective settings and write them back.

    Args:
        settings_repository (SettingsRepository): Repository for the settings record.
        logger (logging.Logger): Logger instance for logging operations.
    """

    _settings_repository: SettingsRepository

    def __init__(
        self,
        *,
        settings_repository: SettingsRepository,
        logger: logging.Logger,
    ) -> None:
        self._settings_repository = settings_repository
        self._build_logger(logger=logger)

    async def execute(
        self, env: Mapping[str, str]
    ) -> Result[SettingsEntity, ApplicationSettingsErrors.ConfigError]:
        """
        Execute the use case.

        Args:
            env (Mapping[str, str]): Environment overrides.

        Returns:
            Result[SettingsEntity, ConfigError]: The saved effective settings or the parse error.
        """
        self._logger.debug("Executing ImportSettingsUseCase.")

        raw = await self._settings_repository.get_raw_settings()
        result = settings_from_raw(raw, env)

        if result.success == False:
            self._logger.error(f"Invalid settings: {result.error.details}")
            return result

        settings = await self._settings_repository.save_settings(result.value)

        self._logger.debug(f"Ping interval set to {settings.interval}")
        self._logger.debug(f"Notifications set to {settings.notifications}")
        return ResultHandler.ok(settings)


class LoadSettingsUseCase(LoggerMixin):
    """
    Use case for re-reading the stored settings after they changed at runtime.

    Environment overrides are not applied here; they were folded into the
    stored record at startup and later edits of the record take effect.
    """

    _settings_repository: SettingsRepository

    def __init__(
        self,
        *,
        settings_repository: SettingsRepository,
        logger: logging.Logger,
    ) -> None:
        self._settings_repository = settings_repository
        self._build_logger(logger=logger)

    async def execute(
        self,
    ) -> Result[SettingsEntity, ApplicationSettingsErrors.ConfigError]:
        self._logger.debug("Executing LoadSettingsUseCase.")
        raw = await self._settings_repository.get_raw_settings()
        return settings_from_raw(raw, {})
