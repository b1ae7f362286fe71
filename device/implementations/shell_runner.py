"""
Shell Command Runner

Real CommandRunner backed by subprocess.
"""

import logging
import subprocess
from typing import Optional, Sequence

from device.interfaces.command_interface import (
    CommandError,
    CommandResult,
    CommandRunner,
)


class ShellCommandRunner(CommandRunner):
    """
    Runs commands on the host system.

    Output is captured so it can be written to the service log; commands
    never inherit the terminal.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def run(
        self,
        args: Sequence[str],
        timeout: Optional[float] = None,
    ) -> CommandResult:
        """Run a command, converting timeouts into a failed result"""
        args = [str(arg) for arg in args]
        self.logger.debug(f"Running: {' '.join(args)}")

        try:
            completed = subprocess.run(
                args,
                capture_output=True,
                text=True,
                timeout=timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            self.logger.warning(f"Command timed out after {timeout}s: {args[0]}")
            return CommandResult(
                args=args,
                returncode=124,  # Same status coreutils timeout(1) uses
                stdout=_decode(e.stdout),
                stderr=_decode(e.stderr),
                timed_out=True,
            )
        except (FileNotFoundError, PermissionError) as e:
            raise CommandError(f"Cannot execute {args[0]}: {e}") from e

        if completed.returncode != 0:
            self.logger.debug(
                f"{args[0]} exited {completed.returncode}: "
                f"{completed.stderr.strip()}"
            )

        return CommandResult(
            args=args,
            returncode=completed.returncode,
            stdout=completed.stdout,
            stderr=completed.stderr,
        )


def _decode(output) -> str:
    """TimeoutExpired carries bytes even when text=True was requested"""
    if output is None:
        return ""
    if isinstance(output, bytes):
        return output.decode(errors="replace")
    return output
