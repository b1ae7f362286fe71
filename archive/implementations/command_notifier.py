"""
Command Notifier

Sends session notifications through the external push-message script.
"""

import logging
import shlex
from typing import Optional

from archive.constants import NOTIFY_TIMEOUT
from archive.interfaces.notifier_interface import NotifierInterface
from device.interfaces.command_interface import CommandError, CommandRunner


class CommandNotifier(NotifierInterface):
    """
    Notifier backed by an external command, invoked as
    `<command> <title> <message>`.
    """

    def __init__(
        self,
        runner: CommandRunner,
        command: str,
        logger: Optional[logging.Logger] = None,
    ):
        self.runner = runner
        self.args = shlex.split(command) if command else []
        self.logger = logger or logging.getLogger(__name__)

    def send(self, title: str, message: str) -> bool:
        if not self.args:
            return False

        try:
            result = self.runner.run(
                self.args + [title, message],
                timeout=NOTIFY_TIMEOUT,
            )
        except CommandError as e:
            self.logger.warning(f"Notification not sent: {e}")
            return False

        if not result.ok:
            self.logger.warning(
                f"Notification command exited {result.returncode}: "
                f"{result.stderr.strip()}"
            )
            return False

        self.logger.debug(f"Notification sent: {message}")
        return True
