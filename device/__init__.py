"""
Device Module

Block device, mount and USB gadget control for the archiver.

Every system command goes through a CommandRunner, so the whole module
runs against MockCommandRunner in tests and in --mock mode.

Public API:
    - DeviceFactory: Factory for the runner and controllers
    - CommandRunner: Command execution contract
    - MountManager: Mount/unmount and consistency checks
    - GadgetController: Expose/retract the backing image

Usage:
    from device import DeviceFactory

    runner = DeviceFactory.create_runner(config)
    mounts = DeviceFactory.create_mount_manager(config, runner, retrier)
    gadget = DeviceFactory.create_gadget(config, runner, mounts)
"""

from device.controllers.gadget_controller import GadgetController
from device.controllers.mount_manager import MountManager
from device.factory import DeviceFactory
from device.interfaces.command_interface import (
    CommandError,
    CommandResult,
    CommandRunner,
)

__all__ = [
    "CommandError",
    "CommandResult",
    "CommandRunner",
    "DeviceFactory",
    "GadgetController",
    "MountManager",
]
