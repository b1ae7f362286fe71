"""
Device Factory

Factory for the command runner and the controllers built on it.
Selects the real shell runner or the simulated one.
"""

import logging
from typing import Literal

from core.retry import Retrier
from device.controllers.gadget_controller import GadgetController
from device.controllers.mount_manager import MountManager
from device.implementations.mock_runner import MockCommandRunner
from device.implementations.shell_runner import ShellCommandRunner
from device.interfaces.command_interface import CommandRunner
from storage.models.clip import MountPoint

# Type alias for better type hints
DeviceMode = Literal["auto", "real", "mock"]


class DeviceFactory:
    """
    Factory for device-level components.

    Usage:
        runner = DeviceFactory.create_runner(config)
        mounts = DeviceFactory.create_mount_manager(config, runner)
        gadget = DeviceFactory.create_gadget(config, runner, mounts)

        # Testing without root
        runner = DeviceFactory.create_runner(config, mode="mock")
    """

    _logger = logging.getLogger(__name__)

    @classmethod
    def create_runner(cls, config, mode: DeviceMode = "auto") -> CommandRunner:
        """
        Create a command runner.

        Args:
            config: ArchiveConfig (used to wire the mock's gadget simulation)
            mode: "auto"/"real" (shell) or "mock" (simulation)

        Returns:
            CommandRunner implementation
        """
        if mode == "mock":
            cls._logger.info("Creating Mock Command Runner (forced)")
            return MockCommandRunner(
                gadget_enable_command=config.gadget_enable_command,
                gadget_disable_command=config.gadget_disable_command,
                lun_file=config.gadget_lun_file,
                backing_image=config.cam_backing_image,
                watched_targets=[config.cam_mount_point],
            )

        # Commands always exist on the appliance, no fallback needed
        cls._logger.info("Creating Shell Command Runner")
        return ShellCommandRunner()

    @staticmethod
    def cam_mount_point(config) -> MountPoint:
        """The capture filesystem described by config"""
        return MountPoint(
            name=config.cam_mount_name,
            backing_image=config.cam_backing_image,
            target=config.cam_mount_point,
        )

    @classmethod
    def create_mount_manager(
        cls,
        config,
        runner: CommandRunner,
        retrier: Retrier,
    ) -> MountManager:
        return MountManager(
            runner,
            retrier=retrier,
            mount_timeout=config.mount_timeout_seconds,
            fsck_timeout=config.fsck_timeout_seconds,
            partition_suffix=config.fsck_partition_suffix,
        )

    @classmethod
    def create_gadget(
        cls,
        config,
        runner: CommandRunner,
        mount_manager: MountManager,
    ) -> GadgetController:
        return GadgetController(
            runner,
            mount_manager,
            cls.cam_mount_point(config),
            enable_command=config.gadget_enable_command,
            disable_command=config.gadget_disable_command,
            lun_file=config.gadget_lun_file,
        )
