"""
Command Transport

Runs the external archive script over the snapshot view.
The script does the actual copying to the remote archive and deletes
each clip from the view once it is safely stored.
"""

import logging
import os
import shlex
import time
from pathlib import Path
from typing import Optional

from archive.interfaces.transport_interface import (
    TransportError,
    TransportInterface,
    TransportResult,
)
from device.interfaces.command_interface import CommandError, CommandRunner


class CommandTransport(TransportInterface):
    """
    Transport backed by an external command.

    Invoked as `<command> <view> <list> <trigger dir> <trigger list>`.

    Usage:
        transport = CommandTransport(runner, "/root/bin/archive-clips.sh")
        result = transport.transfer(view, list_file, trigger_dir, trigger_list)
    """

    def __init__(
        self,
        runner: CommandRunner,
        command: str,
        timeout: Optional[float] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize command transport.

        Args:
            runner: Command runner
            command: Transport command line (arguments are appended)
            timeout: Seconds before the transport is killed (None = no limit)
        """
        self.runner = runner
        self.args = shlex.split(command)
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)

    def transfer(
        self,
        view_root: Path,
        list_file: Path,
        trigger_dir: Path,
        trigger_list: Path,
    ) -> TransportResult:
        args = self.args + [
            str(view_root),
            str(list_file),
            str(trigger_dir),
            str(trigger_list),
        ]

        self.logger.info(f"Starting transport: {self.args[0]}")
        start_time = time.time()

        try:
            result = self.runner.run(args, timeout=self.timeout)
        except CommandError as e:
            raise TransportError(str(e)) from e

        elapsed = time.time() - start_time

        if result.timed_out:
            self.logger.error(f"Transport timed out after {elapsed:.0f}s")
            return TransportResult(
                success=False,
                returncode=result.returncode,
                elapsed_seconds=elapsed,
                error_message="transport timed out",
            )

        if not result.ok:
            self.logger.warning(
                f"Transport exited {result.returncode} after {elapsed:.0f}s: "
                f"{result.stderr.strip()}"
            )
            return TransportResult(
                success=False,
                returncode=result.returncode,
                elapsed_seconds=elapsed,
                error_message=f"transport exited {result.returncode}",
            )

        self.logger.info(f"Transport finished in {elapsed:.0f}s")
        return TransportResult(
            success=True,
            returncode=0,
            elapsed_seconds=elapsed,
        )

    def is_available(self) -> bool:
        return bool(self.args) and os.access(self.args[0], os.X_OK)
