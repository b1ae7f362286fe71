"""
Archive Reachability

Checks whether the remote archive endpoint accepts connections, and
offers blocking waits for it to become reachable or unreachable.

The waits have no timeout on purpose: the appliance may be away from its
network for days.
"""

import logging
import shlex
import socket
import time
from pathlib import Path
from typing import Callable, Optional, Tuple

from core.retry import Retrier
from device.interfaces.command_interface import CommandError, CommandRunner


class SocketProbe:
    """
    Probe the endpoint with a plain TCP connection.

    Used when no external probe command is configured.
    """

    def __init__(self, host: str, port: int, timeout: float = 3.0):
        self.host = host
        self.port = port
        self.timeout = timeout
        self.logger = logging.getLogger(__name__)

    def __call__(self) -> bool:
        try:
            with socket.create_connection((self.host, self.port), timeout=self.timeout):
                return True
        except (socket.timeout, OSError):
            # Network unavailable, timeout, or DNS lookup failed
            return False


class CommandProbe:
    """
    Probe the endpoint with the external probe command.

    Contract: exit 0 = reachable, anything else = unreachable.
    """

    def __init__(
        self,
        runner: CommandRunner,
        command: str,
        endpoint: str,
        timeout: Optional[float] = 30.0,
    ):
        self.runner = runner
        self.args = shlex.split(command) + [endpoint]
        self.timeout = timeout
        self.logger = logging.getLogger(__name__)

    def __call__(self) -> bool:
        try:
            return self.runner.run(self.args, timeout=self.timeout).ok
        except CommandError as e:
            self.logger.warning(f"Reachability probe unavailable: {e}")
            return False


class ReachabilityMonitor:
    """
    Polls the archive endpoint.

    Responsibilities:
    - Single reachability check
    - Wait until reachable (forever)
    - Wait until unreachable (forever, tolerant of flaky probes)
    - Honour simulated-transition sentinel files used by test harnesses

    Usage:
        monitor = ReachabilityMonitor(probe, retrier,
                                      reachable_sentinel, unreachable_sentinel)
        monitor.wait_until_reachable()
        ... archive ...
        monitor.wait_until_unreachable()
    """

    def __init__(
        self,
        probe: Callable[[], bool],
        retrier: Retrier,
        reachable_sentinel: Optional[Path] = None,
        unreachable_sentinel: Optional[Path] = None,
        poll_interval: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
        logger: Optional[logging.Logger] = None,
    ):
        self.probe = probe
        self.retrier = retrier
        self.reachable_sentinel = reachable_sentinel
        self.unreachable_sentinel = unreachable_sentinel
        self.poll_interval = poll_interval
        self.sleep = sleep
        self.logger = logger or logging.getLogger(__name__)

    def is_reachable(self) -> bool:
        """
        Check the endpoint once.

        Returns:
            True if the probe reports the archive reachable

        Note:
            Probe exceptions are logged and treated as unreachable.
        """
        try:
            return bool(self.probe())
        except Exception as e:
            self.logger.debug(f"Reachability probe error: {e}")
            return False

    def wait_until_reachable(self, on_poll: Optional[Callable[[], None]] = None) -> None:
        """
        Block until the archive is reachable.

        Args:
            on_poll: Called once per poll (e.g. gadget health check)
        """
        self.logger.info("Waiting for archive to be reachable...")
        while True:
            if self._consume_sentinel(self.reachable_sentinel):
                self.logger.info("Simulating archive is reachable")
                return

            if self.is_reachable():
                self.logger.info("Archive is reachable")
                return

            if on_poll is not None:
                on_poll()
            self.sleep(self.poll_interval)

    def wait_until_unreachable(
        self,
        on_poll: Optional[Callable[[], None]] = None,
    ) -> None:
        """
        Block until the archive is no longer reachable.

        A failed probe is retried through the Retry Executor before the
        archive is considered gone, so one flaky check does not end the
        wait early.

        Args:
            on_poll: Called once per poll (e.g. gadget health check)
        """
        self.logger.info("Waiting for archive to be unreachable...")
        while True:
            if self._consume_sentinel(self.unreachable_sentinel):
                self.logger.info("Simulating archive is unreachable")
                return

            if not self.retrier.run(self.is_reachable, "reachability probe"):
                self.logger.info("Archive is no longer reachable")
                return

            if on_poll is not None:
                on_poll()
            self.sleep(self.poll_interval)

    def get_status(self) -> Tuple[bool, str]:
        """
        Get human-readable reachability status.

        Returns:
            Tuple of (is_reachable, status_string)
        """
        reachable = self.is_reachable()
        status = "Archive reachable" if reachable else "Archive unreachable"
        return reachable, status

    def _consume_sentinel(self, sentinel: Optional[Path]) -> bool:
        """Check for a simulation sentinel, deleting it if present"""
        if sentinel is None or not sentinel.exists():
            return False
        try:
            sentinel.unlink()
        except FileNotFoundError:
            pass
        return True
