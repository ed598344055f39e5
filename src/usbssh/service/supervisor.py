"""Supervision of the dropbear SSH server process.

dropbear forks into the background and writes its own pid file before the
launch command returns. Liveness is the presence of that pid file, which
keeps the check cheap enough for UI polling. Stopping verifies the process is
actually gone before the pid file is removed.
"""

import asyncio
import logging
import signal
from pathlib import Path

from usbssh.config.models import PlatformConfig, ServiceConfig
from usbssh.config.paths import get_keys_dir, get_logs_path
from usbssh.service.base import ServiceState, ServiceStatus, StartResult, StopResult
from usbssh.service.commands import launch_detaching, run_command
from usbssh.service.errors import StartFailedError, StopTimeoutError
from usbssh.service.pid import (
    is_process_alive,
    read_pid_file,
    remove_pid_file,
    send_signal,
)
from usbssh.service.platform import PlatformCapabilities

logger = logging.getLogger(__name__)

DEVPTS_PATH = Path("/dev/pts")
TERM_POLLS = 20
KILL_POLLS = 10


class ProcessSupervisor:
    """Starts, checks and stops the SSH server.

    Example:
        supervisor = ProcessSupervisor(config.platform, capabilities)
        await supervisor.start(service_config)
        supervisor.is_running()
        await supervisor.stop(force=False)
    """

    def __init__(
        self,
        platform: PlatformConfig,
        capabilities: PlatformCapabilities,
        *,
        log_path: Path | None = None,
        devpts_path: Path = DEVPTS_PATH,
        term_polls: int = TERM_POLLS,
        kill_polls: int = KILL_POLLS,
    ):
        """Initialize the supervisor.

        Args:
            platform: Paths of the binary, data directory and pid file.
            capabilities: Platform capabilities (devpts handling).
            log_path: File receiving the server's stderr. Defaults to
                ``<home>/logs/dropbear.log``.
            devpts_path: Mount point for pseudoterminals.
            term_polls: Liveness checks after SIGTERM.
            kill_polls: Liveness checks after SIGKILL.
        """
        self._platform = platform
        self._capabilities = capabilities
        self._log_path = log_path or get_logs_path() / "dropbear.log"
        self._devpts_path = devpts_path
        self._term_polls = term_polls
        self._kill_polls = kill_polls

    @property
    def pid_path(self) -> Path:
        return self._platform.pid_path

    @property
    def keys_dir(self) -> Path:
        return get_keys_dir(self._platform.data_dir.expanduser())

    def is_running(self) -> bool:
        """Check whether the server's pid file exists.

        The pid itself is not verified here; a leftover pid file keeps
        reporting "running" until a stop confirms the process is gone.
        """
        return self.pid_path.exists()

    def status(self) -> ServiceStatus:
        if not self.is_running():
            return ServiceStatus(state=ServiceState.STOPPED)
        pid = read_pid_file(self.pid_path)
        message = None if pid is not None else "pid file unreadable"
        return ServiceStatus(state=ServiceState.RUNNING, pid=pid, message=message)

    def build_command(self, config: ServiceConfig) -> list[str]:
        """Build the dropbear command line for the given preferences."""
        cmd = [
            str(self._platform.resolve_dropbear()),
            "-E",  # log to stderr
            "-R",  # create host keys as required
            "-p",
            str(config.port),
            "-P",
            str(self.pid_path),
        ]
        if config.allow_no_password:
            cmd.append("-n")
        return cmd

    async def start(self, config: ServiceConfig) -> StartResult:
        """Launch the SSH server.

        Args:
            config: Preferences snapshot (port, passwordless login).

        Returns:
            STARTED, or ALREADY_RUNNING when the pid file is present.

        Raises:
            StartFailedError: If the launch command is missing or exits non-zero.
        """
        if self.is_running():
            logger.debug("ssh_server_already_running")
            return StartResult.ALREADY_RUNNING

        if self._capabilities.needs_devpts:
            await self._ensure_devpts()

        data_dir = self._platform.data_dir.expanduser()
        try:
            self.keys_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StartFailedError(
                f"Could not create key directory {self.keys_dir}: {e}"
            ) from e

        cmd = self.build_command(config)
        logger.info(
            "ssh_server_launching",
            extra={"ssh.port": config.port, "ssh.no_password": config.allow_no_password},
        )
        try:
            returncode = await launch_detaching(
                *cmd, cwd=data_dir, log_path=self._log_path
            )
        except OSError as e:
            raise StartFailedError(f"Could not run {cmd[0]}: {e}") from e

        if returncode != 0:
            raise StartFailedError(f"SSH server exited with status {returncode}")

        logger.info("ssh_server_started", extra={"ssh.port": config.port})
        return StartResult.STARTED

    async def stop(self, force: bool = False) -> StopResult:
        """Stop the SSH server.

        Sends SIGTERM and waits; with ``force``, escalates to SIGKILL when the
        process outlives the graceful window.

        Args:
            force: Escalate to SIGKILL if SIGTERM is not enough.

        Returns:
            STOPPED, or NOT_RUNNING when there is no pid file.

        Raises:
            StopTimeoutError: If the process cannot be confirmed dead. The pid
                file is left in place so ``is_running`` keeps telling the truth.
        """
        if not self.is_running():
            return StopResult.NOT_RUNNING

        pid = read_pid_file(self.pid_path)
        if pid is None:
            logger.warning(
                "ssh_server_pid_unreadable",
                extra={"file.path": str(self.pid_path), "stop.force": force},
            )
            # No pid to signal, so death can't be confirmed either way. A
            # forced stop clears the stale file so the next start can proceed.
            if force:
                remove_pid_file(self.pid_path)
            raise StopTimeoutError(f"Unreadable pid file: {self.pid_path}")

        send_signal(pid, signal.SIGTERM)
        exited = await self._wait_for_exit(pid, self._term_polls)

        if not exited and force:
            logger.warning("ssh_server_force_kill", extra={"process.pid": pid})
            send_signal(pid, signal.SIGKILL)
            exited = await self._wait_for_exit(pid, self._kill_polls)

        if not exited:
            raise StopTimeoutError(f"dropbear process {pid} did not exit")

        remove_pid_file(self.pid_path)
        logger.info("ssh_server_stopped", extra={"process.pid": pid})
        return StopResult.STOPPED

    async def _wait_for_exit(self, pid: int, polls: int) -> bool:
        for _ in range(polls):
            if not is_process_alive(pid):
                return True
            await asyncio.sleep(self._platform.poll_interval)
        return not is_process_alive(pid)

    async def _ensure_devpts(self) -> None:
        """Mount devpts if the mount point is missing.

        An SSH server needs pseudoterminals; some firmware boots without them.
        """
        if self._devpts_path.is_dir():
            return
        try:
            self._devpts_path.mkdir(parents=True, exist_ok=True)
            returncode, _, stderr = await run_command(
                "mount", "-t", "devpts", "devpts", str(self._devpts_path)
            )
        except OSError as e:
            logger.warning("devpts_mount_failed", extra={"error.message": str(e)})
            return
        if returncode != 0:
            logger.warning(
                "devpts_mount_failed",
                extra={"error.message": stderr.strip(), "process.returncode": returncode},
            )
