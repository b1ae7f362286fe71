"""
Archive Factory

Factory for the transport and notifier, and for a fully wired
session controller.
Follows the same pattern as device/factory.py.
"""

import logging
from typing import Literal

from archive.controllers.session_controller import ArchiveSessionController
from archive.implementations.command_notifier import CommandNotifier
from archive.implementations.command_transport import CommandTransport
from archive.implementations.mock_notifier import MockNotifier
from archive.implementations.mock_transport import MockTransport
from archive.interfaces.notifier_interface import NotifierInterface
from archive.interfaces.transport_interface import TransportInterface
from device.controllers.mount_manager import MountManager
from device.interfaces.command_interface import CommandRunner
from storage.factory import StorageFactory

# Type alias for better type hints
ArchiveMode = Literal["auto", "real", "mock"]


class ArchiveFactory:
    """
    Factory for archive components.

    Usage:
        session = ArchiveFactory.create_session(config, runner, mounts)

        # Force mock mode (useful for testing)
        session = ArchiveFactory.create_session(config, runner, mounts, mode="mock")
    """

    _logger = logging.getLogger(__name__)

    @classmethod
    def create_transport(
        cls,
        config,
        runner: CommandRunner,
        mode: ArchiveMode = "auto",
    ) -> TransportInterface:
        """
        Create a clip transport.

        Args:
            config: ArchiveConfig
            runner: Command runner for the transport script
            mode: "auto"/"real" (external script) or "mock"

        Returns:
            TransportInterface implementation
        """
        if mode == "mock":
            cls._logger.info("Creating Mock Transport (forced)")
            return MockTransport()

        transport = CommandTransport(
            runner,
            config.transport_command,
            timeout=config.transport_timeout_seconds,
        )
        if not transport.is_available():
            # Still returned: the script may be installed later, and each
            # session reports the failure
            cls._logger.warning(
                f"Transport command not executable: {config.transport_command}"
            )
        else:
            cls._logger.info("Creating Command Transport")
        return transport

    @classmethod
    def create_notifier(
        cls,
        config,
        runner: CommandRunner,
        mode: ArchiveMode = "auto",
    ) -> NotifierInterface:
        if mode == "mock":
            cls._logger.info("Creating Mock Notifier (forced)")
            return MockNotifier()
        return CommandNotifier(runner, config.notify_command)

    @classmethod
    def create_session(
        cls,
        config,
        runner: CommandRunner,
        mount_manager: MountManager,
        mode: ArchiveMode = "auto",
    ) -> ArchiveSessionController:
        """
        Wire a session controller from config.

        Returns:
            ArchiveSessionController
        """
        return ArchiveSessionController(
            config,
            ledger=StorageFactory.create_ledger(config, runner),
            view=StorageFactory.create_view(config, runner, mount_manager, mode),
            reclaimer=StorageFactory.create_reclaimer(config, runner),
            transport=cls.create_transport(config, runner, mode),
            notifier=cls.create_notifier(config, runner, mode),
        )
