"""
Remote shutdown over the system OpenSSH client.

The client runs in batch mode, so a missing or rejected key fails fast instead
of prompting. Exit status 255 is reserved by ssh for its own failures; every
other non-zero status comes from the remote command.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Sequence, Union

from upsnap_core.common.results import Result, ResultHandler
from upsnap_core.common.utility import LoggerMixin
from upsnap_core.core.application.errors.application_errors import (
    ApplicationPowerErrors,
)
from upsnap_core.core.domain.entities.device_entity import DeviceEntity

SSH_FAILURE_STATUS = 255

_AUTH_FAILURE_MARKERS = (
    "Permission denied",
    "Authentication failed",
    "Too many authentication failures",
)
# The session dropped after the command started, which is what a halting host does.
_SESSION_CLOSED_MARKER = "closed by remote host"


@dataclass(frozen=True)
class CommandOutcome:
    """Exit status and captured output of a finished command."""

    returncode: int
    stdout: str = ""
    stderr: str = ""


CommandRunner = Callable[[Sequence[str], float], Awaitable[CommandOutcome]]


async def run_command(args: Sequence[str], timeout: float) -> CommandOutcome:
    """
    Run a command and capture its output.

    Raises:
        asyncio.TimeoutError: If the command outlives ``timeout``; it is killed first.
        OSError: If the executable cannot be started.
    """
    process = await asyncio.create_subprocess_exec(
        *args,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        raise

    return CommandOutcome(
        returncode=process.returncode if process.returncode is not None else -1,
        stdout=stdout.decode(errors="replace"),
        stderr=stderr.decode(errors="replace"),
    )


class ShutdownDispatcher(LoggerMixin):
    """
    Opens an authenticated remote session to a device and issues its shutdown command.

    Args:
        logger (logging.Logger): Logger instance for logging.
        runner (CommandRunner): Executes the ssh command line; replaceable in tests.
        connect_timeout (int): Seconds ssh may spend establishing the session.
        timeout (float): Overall limit for the whole session.
    """

    _runner: CommandRunner
    _connect_timeout: int
    _timeout: float

    def __init__(
        self,
        *,
        logger: logging.Logger,
        runner: CommandRunner = run_command,
        connect_timeout: int = 5,
        timeout: float = 30.0,
    ) -> None:
        self._runner = runner
        self._connect_timeout = connect_timeout
        self._timeout = timeout
        self._build_logger(logger=logger)

    def build_command(self, device: DeviceEntity) -> List[str]:
        """Return the ssh command line that shuts ``device`` down."""
        command = [
            "ssh",
            "-o",
            "BatchMode=yes",
            "-o",
            "StrictHostKeyChecking=accept-new",
            "-o",
            f"ConnectTimeout={self._connect_timeout}",
            "-p",
            str(device.ssh_port),
        ]
        if device.ssh_key:
            command += ["-i", device.ssh_key]
        command += [f"{device.ssh_user}@{device.ip}", device.shutdown_cmd]
        return command

    async def shutdown(
        self, device: DeviceEntity
    ) -> Result[
        DeviceEntity,
        Union[
            ApplicationPowerErrors.ShutdownNotConfiguredError,
            ApplicationPowerErrors.ConnectError,
            ApplicationPowerErrors.AuthError,
            ApplicationPowerErrors.CommandError,
        ],
    ]:
        """
        Shut the device down.

        Returns:
            Result[DeviceEntity, ...]: The device on success, otherwise the failure kind.
        """
        if not device.ip:
            return ResultHandler.fail(
                ApplicationPowerErrors.ShutdownNotConfiguredError(device.id, "ip")
            )
        if not device.ssh_user:
            return ResultHandler.fail(
                ApplicationPowerErrors.ShutdownNotConfiguredError(device.id, "ssh_user")
            )

        self._logger.info(f"Shutting down {device.name or device.id} at {device.ip}")

        try:
            outcome = await self._runner(self.build_command(device), self._timeout)
        except asyncio.TimeoutError:
            self._logger.error(f"Shutdown session to {device.ip} timed out")
            return ResultHandler.fail(
                ApplicationPowerErrors.ConnectError(
                    device.ip, f"timed out after {self._timeout}s"
                )
            )
        except OSError as e:
            self._logger.error(f"Cannot start ssh client: {e}")
            return ResultHandler.fail(ApplicationPowerErrors.ConnectError(device.ip, str(e)))

        return self._interpret(device, outcome)

    def _interpret(
        self, device: DeviceEntity, outcome: CommandOutcome
    ) -> Result[
        DeviceEntity,
        Union[
            ApplicationPowerErrors.ConnectError,
            ApplicationPowerErrors.AuthError,
            ApplicationPowerErrors.CommandError,
        ],
    ]:
        stderr = outcome.stderr.strip()

        if outcome.returncode == 0:
            self._logger.info(f"Shutdown command accepted by {device.ip}")
            return ResultHandler.ok(device)

        if outcome.returncode == SSH_FAILURE_STATUS:
            if _SESSION_CLOSED_MARKER in stderr:
                self._logger.debug(f"{device.ip} closed the session while shutting down")
                return ResultHandler.ok(device)
            if any(marker in stderr for marker in _AUTH_FAILURE_MARKERS):
                self._logger.error(f"Authentication rejected by {device.ip}")
                return ResultHandler.fail(
                    ApplicationPowerErrors.AuthError(device.ip, device.ssh_user)
                )
            reason = stderr.splitlines()[-1] if stderr else "ssh failed"
            self._logger.error(f"Could not connect to {device.ip}: {reason}")
            return ResultHandler.fail(ApplicationPowerErrors.ConnectError(device.ip, reason))

        self._logger.error(
            f"Shutdown command on {device.ip} exited with {outcome.returncode}"
        )
        return ResultHandler.fail(
            ApplicationPowerErrors.CommandError(device.ip, outcome.returncode, stderr)
        )
