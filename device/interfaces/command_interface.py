"""
Command Runner Interface - Abstract System Layer

Every external collaborator (mount, fsck, gadget scripts, transport,
notification sender) is an opaque command with an exit-status contract.
Controllers depend on this interface, not on subprocess, so the whole
archive cycle can run against a simulated system in tests.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Sequence


@dataclass
class CommandResult:
    """
    Result of running one external command.

    Attributes:
        args: Command line that was run
        returncode: Exit status (0 = success by convention)
        stdout: Captured standard output
        stderr: Captured standard error
        timed_out: True if the command was killed after its timeout
    """

    args: Sequence[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        """True if the command exited 0 within its timeout"""
        return self.returncode == 0 and not self.timed_out


class CommandError(Exception):
    """
    Raised when a command cannot be started at all.

    A non-zero exit status is NOT an error at this level; it is reported
    through CommandResult.returncode and the caller decides.
    """


class CommandRunner(ABC):
    """
    Abstract base class for running external commands.

    Implementations: ShellCommandRunner (real), MockCommandRunner (simulated).
    """

    @abstractmethod
    def run(
        self,
        args: Sequence[str],
        timeout: Optional[float] = None,
    ) -> CommandResult:
        """
        Run a command and wait for it.

        Args:
            args: Program and arguments
            timeout: Seconds before the command is killed (None = no limit)

        Returns:
            CommandResult. A timeout yields timed_out=True and a non-zero
            returncode rather than an exception.

        Raises:
            CommandError: If the program cannot be executed
        """
