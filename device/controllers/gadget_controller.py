"""
Gadget Controller

Turns the USB mass-storage emulation on and off, so the capture source
sees the backing image as directly attached media.

The backing image must never be mounted locally while it is exposed:
two writers on one filesystem corrupt it.
"""

import logging
import shlex
from pathlib import Path
from typing import Optional

from device.controllers.mount_manager import MountManager
from device.interfaces.command_interface import CommandError, CommandRunner
from storage.constants import UnmountResult
from storage.models.clip import MountPoint

GADGET_COMMAND_TIMEOUT = 30.0  # seconds


class GadgetController:
    """
    High-level control of the storage gadget.

    Usage:
        gadget = GadgetController(runner, mounts, cam,
                                  enable_command, disable_command, lun_file)
        gadget.retract()        # capture source loses the disk, fsck runs
        ... mount, archive, unmount ...
        gadget.expose()
    """

    def __init__(
        self,
        runner: CommandRunner,
        mount_manager: MountManager,
        point: MountPoint,
        enable_command: str,
        disable_command: str,
        lun_file: Path,
        logger: Optional[logging.Logger] = None,
    ):
        self.runner = runner
        self.mounts = mount_manager
        self.point = point
        self.enable_args = shlex.split(enable_command)
        self.disable_args = shlex.split(disable_command)
        self.lun_file = Path(lun_file)
        self.logger = logger or logging.getLogger(__name__)

    def expose(self) -> bool:
        """
        Expose the backing image to the capture source.

        Refuses while the image is mounted locally and cannot be unmounted.

        Returns:
            True if the enable command succeeded
        """
        if self.mounts.is_mounted(self.point):
            self.logger.warning(
                f"{self.point} is still mounted locally, unmounting before expose"
            )
            if self.mounts.unmount(self.point) == UnmountResult.FAILED:
                self.logger.error("Refusing to expose a locally mounted image")
                return False

        self.logger.info("Exposing storage to capture source...")
        if not self._run(self.enable_args):
            self.logger.error("Failed to enable storage gadget")
            return False

        self.mounts.invalidate_check(self.point)
        self.logger.info("Storage exposed")
        return True

    def retract(self) -> bool:
        """
        Stop exposing the backing image.

        On success the filesystem is checked, since the capture source may
        have been writing up to this instant.

        Returns:
            True if the disable command succeeded
        """
        self.logger.info("Retracting storage from capture source...")
        if not self._run(self.disable_args):
            self.logger.error("Failed to disable storage gadget")
            return False

        self.logger.info("Storage retracted")
        self.mounts.check_consistency(self.point)
        return True

    def is_exposed(self) -> bool:
        """True if the gadget has any file bound"""
        return bool(self._read_lun())

    def is_exposed_and_correct(self) -> bool:
        """
        True if the gadget is active AND bound to our backing image.

        Detects the emulation silently dropping out (driver or hardware
        fault) so the main loop can repair it.
        """
        bound = self._read_lun()
        if not bound:
            return False
        return Path(bound) == self.point.backing_image

    def repair(self) -> bool:
        """
        Re-establish exposure: retract, check, expose.

        Returns:
            True if the gadget is exposed afterwards
        """
        self.logger.warning("Storage gadget is not exposed correctly, repairing")
        if self.retract():
            self.mounts.prepare_for_exposure(self.point)
        else:
            # Image may still be exposed: no local unmount or fsck
            self.logger.warning("Retract failed during repair, re-enabling as is")
        return self.expose()

    def ensure_exposed(self) -> bool:
        """Repair only if needed"""
        if self.is_exposed_and_correct():
            return True
        return self.repair()

    def _read_lun(self) -> str:
        try:
            return self.lun_file.read_text().strip()
        except OSError:
            return ""

    def _run(self, args) -> bool:
        try:
            result = self.runner.run(args, timeout=GADGET_COMMAND_TIMEOUT)
        except CommandError as e:
            self.logger.error(str(e))
            return False
        if not result.ok:
            self.logger.warning(
                f"{args[0]} exited {result.returncode}: {result.stderr.strip()}"
            )
        return result.ok
