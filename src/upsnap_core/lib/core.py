"""
UpSnap Core Library
===================

This module provides the main entry point of the device-monitoring and power-control core. It wires the record store, device registry, status poller, scheduler and network services together and exposes the three request operations the HTTP layer forwards: wake, shutdown and scan.

Classes:
--------
- UpSnapCore: Main entry point, owning the lifecycle of the poll job and the store subscriptions.

Usage:
------
- Instantiate `UpSnapCore` with the async `create` method, or the constructor for custom collaborators.
- Call `start()` once (or use `async with`) before serving requests.
- Register callbacks for status changes with `on_device_status_changed`.
"""

import logging
import os
from pathlib import Path
from types import TracebackType
from typing import Callable, Dict, Mapping, Optional, Type, Union

from dotenv import dotenv_values

from upsnap_core.common.results import Result
from upsnap_core.common.utility import ColorFormatter, LoggerMixin
from upsnap_core.core.application.errors.application_errors import (
    ApplicationDevicesErrors,
    ApplicationPowerErrors,
)
from upsnap_core.core.application.events.device_events import (
    DeviceShutdownSentEvent,
    DeviceStatusChangedEvent,
    DeviceWakeSentEvent,
)
from upsnap_core.core.application.events.event_bus import EventBus
from upsnap_core.core.application.events.record_events import RecordChangedEvent
from upsnap_core.core.application.registry.device_registry import DeviceRegistry
from upsnap_core.core.application.use_cases.devices_use_cases import (
    RefreshDeviceRegistryUseCase,
    ResetDeviceStatesUseCase,
    ScanNetworkUseCase,
    ShutdownDeviceUseCase,
    WakeDeviceUseCase,
)
from upsnap_core.core.application.use_cases.settings_use_cases import (
    ImportSettingsUseCase,
    LoadSettingsUseCase,
)
from upsnap_core.core.domain.entities.device_entity import DeviceEntity
from upsnap_core.core.domain.entities.scan_entity import ScanReportEntity
from upsnap_core.core.domain.entities.settings_entity import SettingsEntity
from upsnap_core.core.domain.repositories.record_store import (
    DEVICES_COLLECTION,
    SETTINGS_COLLECTION,
    RecordStore,
)
from upsnap_core.infrastructure.network.network_scanner import (
    NeighborTable,
    NetworkScanner,
)
from upsnap_core.infrastructure.network.probe import PingProbe, ReachabilityProbe
from upsnap_core.infrastructure.network.shutdown_dispatcher import ShutdownDispatcher
from upsnap_core.infrastructure.network.wake_sender import WakeSender
from upsnap_core.infrastructure.poller.status_poller import StatusPoller
from upsnap_core.infrastructure.scheduler.job_registry import JobRegistry
from upsnap_core.infrastructure.scheduler.poll_scheduler import PollScheduler
from upsnap_core.infrastructure.scheduler.scheduler_service import SchedulerService
from upsnap_core.infrastructure.store.adapters.devices.devices_adapter import (
    StoreDevicesAdapter,
)
from upsnap_core.infrastructure.store.adapters.settings.settings_adapter import (
    StoreSettingsAdapter,
)


class UpSnapCore(LoggerMixin):
    """
    Main entry point of the core.

    Args:
        store (RecordStore): External record store holding devices and settings.
        logger (logging.Logger): Logger instance for logging.
        env (Mapping[str, str]): Environment overrides for the settings.
        probe (ReachabilityProbe): Probe used by the poller and the scanner.
        wake_sender (WakeSender): Magic packet sender.
        shutdown_dispatcher (ShutdownDispatcher): Remote shutdown sender.
        scanner (NetworkScanner): Subnet scanner.
        probe_timeout (float): Per-device probe limit within a poll tick, in seconds.
        poll_workers (int): Maximum number of device probes in flight during one poll tick.

    Registry refreshes and reconfiguration follow the change hooks of ``store``.
    ``HttpRecordStore`` only reports mutations made through that same instance,
    so records edited elsewhere (for example in the store's admin UI) are picked
    up on the next ``refresh_devices`` or ``reconfigure`` call, not automatically.
    """

    _store: RecordStore
    _env: Mapping[str, str]
    _event_bus: EventBus
    _registry: DeviceRegistry
    _job_registry: JobRegistry
    _scheduler_service: SchedulerService
    _poller: StatusPoller
    _poll_scheduler: PollScheduler
    _settings: Optional[SettingsEntity]
    _unsubscribe_store: Optional[Callable[[], None]]
    _started: bool

    def __init__(
        self,
        *,
        store: RecordStore,
        logger: logging.Logger,
        env: Optional[Mapping[str, str]] = None,
        probe: Optional[ReachabilityProbe] = None,
        wake_sender: Optional[WakeSender] = None,
        shutdown_dispatcher: Optional[ShutdownDispatcher] = None,
        scanner: Optional[NetworkScanner] = None,
        probe_timeout: float = 2.0,
        poll_workers: int = 64,
    ) -> None:
        """
        Initialize the core with its collaborators. Nothing runs until ``start``.
        """
        self._logger = logger
        self._store = store
        self._env = env if env is not None else os.environ
        self._settings = None
        self._unsubscribe_store = None
        self._started = False

        probe = probe or PingProbe(logger=logger, timeout=probe_timeout)

        self._event_bus = EventBus(logger=logger)
        self._registry = DeviceRegistry(logger=logger)
        self._job_registry = JobRegistry(logger=logger)
        self._scheduler_service = SchedulerService(logger=logger)
        self._devices_adapter = StoreDevicesAdapter(store=store, logger=logger)
        self._settings_adapter = StoreSettingsAdapter(store=store, logger=logger)
        self._wake_sender = wake_sender or WakeSender(logger=logger)
        self._shutdown_dispatcher = shutdown_dispatcher or ShutdownDispatcher(
            logger=logger
        )
        self._scanner = scanner or NetworkScanner(
            probe=probe,
            neighbor_table=NeighborTable(logger=logger),
            logger=logger,
        )
        self._poller = StatusPoller(
            registry=self._registry,
            devices_repository=self._devices_adapter,
            probe=probe,
            event_bus=self._event_bus,
            logger=logger,
            probe_timeout=probe_timeout,
            workers=poll_workers,
        )
        self._poll_scheduler = PollScheduler(
            scheduler_service=self._scheduler_service,
            job_registry=self._job_registry,
            poller=self._poller,
            logger=logger,
        )

    @classmethod
    async def create(
        cls,
        *,
        store: RecordStore,
        env_file: Optional[Union[str, Path]] = None,
        log_level: int = logging.INFO,
    ) -> "UpSnapCore":
        """
        Create a core reading overrides from the process environment.

        Args:
            store (RecordStore): External record store.
            env_file (Optional[Union[str, Path]]): Optional dotenv file layered under the process environment.
            log_level (int, optional): Logging level. Defaults to logging.INFO.

        Returns:
            UpSnapCore: Initialized, not yet started, core.
        """
        logger = cls.build_logger(log_level=log_level)

        env: Dict[str, str] = {}
        if env_file is not None:
            env.update(
                {k: v for k, v in dotenv_values(env_file).items() if v is not None}
            )
        env.update(os.environ)

        return cls(store=store, logger=logger, env=env)

    @staticmethod
    def build_logger(log_level: int = logging.INFO) -> logging.Logger:
        """
        Build and configure a logger for the core.

        Args:
            log_level (int, optional): Logging level. Defaults to logging.INFO.

        Returns:
            logging.Logger: Configured logger instance.
        """
        logger = logging.getLogger("UpSnap")
        handler = logging.StreamHandler()
        formatter = ColorFormatter(
            "[%(asctime)s] [%(name)s] [%(levelname)s] %(message)s",
            use_color=handler.stream.isatty(),
        )
        handler.setFormatter(formatter)

        if not logger.hasHandlers():
            logger.addHandler(handler)

        logger.setLevel(log_level)

        return logger

    def get_logger(self) -> logging.Logger:
        return self._logger

    @property
    def settings(self) -> Optional[SettingsEntity]:
        """Effective settings, available after ``start``."""
        return self._settings

    @property
    def registry(self) -> DeviceRegistry:
        return self._registry

    @property
    def jobs(self) -> JobRegistry:
        return self._job_registry

    @property
    def poller(self) -> StatusPoller:
        return self._poller

    async def start(self) -> None:
        """
        Import settings, reset device states, start polling and subscribe to store changes.

        Raises:
            RuntimeError: If an environment override or stored setting is malformed.
        """
        if self._started:
            self._logger.warning("UpSnapCore is already started")
            return

        imported = await ImportSettingsUseCase(
            settings_repository=self._settings_adapter, logger=self._logger
        ).execute(self._env)

        if imported.success == False:
            raise RuntimeError(f"Invalid configuration: {imported.error.details}")

        self._apply_settings(imported.value)

        await ResetDeviceStatesUseCase(
            devices_repository=self._devices_adapter,
            registry=self._registry,
            logger=self._logger,
        ).execute()

        await self._scheduler_service.start()
        self._poll_scheduler.start(imported.value.interval)
        self._unsubscribe_store = self._store.subscribe(self._on_record_changed)
        self._started = True

        self._logger.info("UpSnapCore started")

    async def refresh_devices(self) -> None:
        """Rebuild the device registry from the store."""
        await RefreshDeviceRegistryUseCase(
            devices_repository=self._devices_adapter,
            registry=self._registry,
            logger=self._logger,
        ).execute()

    async def reconfigure(self) -> None:
        """
        Re-read the stored settings and restart the poll job with them.

        An invalid stored interval is logged and the running job is kept.
        """
        loaded = await LoadSettingsUseCase(
            settings_repository=self._settings_adapter, logger=self._logger
        ).execute()

        if loaded.success == False:
            self._logger.error(
                f"Ignoring settings change: {loaded.error.details}"
            )
            return

        self._apply_settings(loaded.value)
        await self.refresh_devices()
        self._poll_scheduler.restart(loaded.value.interval)

    async def _on_record_changed(self, event: RecordChangedEvent) -> None:
        if event.collection == SETTINGS_COLLECTION:
            if event.action in ("create", "update"):
                await self.reconfigure()
        elif event.collection == DEVICES_COLLECTION:
            await self.refresh_devices()

    def _apply_settings(self, settings: SettingsEntity) -> None:
        self._settings = settings
        self._poller.notifications = settings.notifications

    async def wake(
        self, device_id: str
    ) -> Result[
        DeviceEntity,
        Union[
            ApplicationDevicesErrors.DeviceRetrievalError,
            ApplicationDevicesErrors.InvalidAddressError,
            ApplicationPowerErrors.WakeSendError,
        ],
    ]:
        """
        Send a Wake-on-LAN packet to a device.

        Args:
            device_id (str): The ID of the device to wake.
        """
        response = await WakeDeviceUseCase(
            devices_repository=self._devices_adapter,
            wake_sender=self._wake_sender,
            event_bus=self._event_bus,
            logger=self._logger,
        ).execute(device_id)

        if response.success == False:
            self._logger.error(
                f"Error waking device {device_id}: {response.error.code} - {response.error.details}"
            )

        return response

    async def shutdown(
        self, device_id: str
    ) -> Result[
        DeviceEntity,
        Union[
            ApplicationDevicesErrors.DeviceRetrievalError,
            ApplicationPowerErrors.ShutdownNotConfiguredError,
            ApplicationPowerErrors.ConnectError,
            ApplicationPowerErrors.AuthError,
            ApplicationPowerErrors.CommandError,
        ],
    ]:
        """
        Shut a device down over its remote session.

        Args:
            device_id (str): The ID of the device to shut down.
        """
        response = await ShutdownDeviceUseCase(
            devices_repository=self._devices_adapter,
            shutdown_dispatcher=self._shutdown_dispatcher,
            event_bus=self._event_bus,
            logger=self._logger,
        ).execute(device_id)

        if response.success == False:
            self._logger.error(
                f"Error shutting down device {device_id}: {response.error.code} - {response.error.details}"
            )

        return response

    async def scan(
        self, subnet: Optional[str] = None
    ) -> Result[ScanReportEntity, ApplicationDevicesErrors.InvalidAddressError]:
        """
        Scan a subnet, or the configured scan range when none is given.

        Args:
            subnet (Optional[str]): Network in CIDR notation.
        """
        default_range = self._settings.scan_range if self._settings else ""
        return await ScanNetworkUseCase(
            scanner=self._scanner, logger=self._logger
        ).execute(subnet, default_range)

    def on_device_status_changed(
        self, callback: Callable[[DeviceStatusChangedEvent], None]
    ) -> Callable[[], None]:
        """
        Register a callback for status transitions written by the poller.

        Only fires while notifications are enabled.

        Returns:
            Callable[[], None]: Removes the callback.
        """
        return self._event_bus.subscribe(DeviceStatusChangedEvent, callback)

    def on_device_wake_sent(
        self, callback: Callable[[DeviceWakeSentEvent], None]
    ) -> Callable[[], None]:
        return self._event_bus.subscribe(DeviceWakeSentEvent, callback)

    def on_device_shutdown_sent(
        self, callback: Callable[[DeviceShutdownSentEvent], None]
    ) -> Callable[[], None]:
        return self._event_bus.subscribe(DeviceShutdownSentEvent, callback)

    async def close(self) -> None:
        """
        Detach from store changes, stop the poll job and shut the scheduler down.
        """
        if self._unsubscribe_store is not None:
            self._unsubscribe_store()
            self._unsubscribe_store = None

        self._poll_scheduler.stop()
        await self._scheduler_service.shutdown()
        self._started = False

        self._logger.info("UpSnapCore poll job and scheduler closed.")

    async def __aenter__(self: "UpSnapCore") -> "UpSnapCore":
        """
        Async context manager entry. Starts the core and returns self.
        """
        await self.start()
        return self

    async def __aexit__(
        self: "UpSnapCore",
        exc_type: Optional[Type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        """
        Async context manager exit. Stops polling and the scheduler.
        """
        await self.close()
