"""
Mount Manager

Idempotent mount/unmount of named mount points, plus the filesystem
consistency check that runs before a backing image is handed to the
capture source.

Single responsibility: local mount state of backing images.
"""

import logging
from typing import Optional, Set

from core.retry import Retrier
from device.interfaces.command_interface import (
    CommandError,
    CommandResult,
    CommandRunner,
)
from storage.constants import UnmountResult
from storage.models.clip import MountPoint

DEFAULT_MOUNT_TIMEOUT = 10.0  # seconds
DEFAULT_FSCK_TIMEOUT = 600.0  # seconds


class MountManager:
    """
    Mounts and unmounts backing images.

    Responsibilities:
    - Check whether a target is mounted
    - Mount with a bounded timeout (callers retry)
    - Unmount, falling back to a lazy unmount
    - Run fsck on a backing image through a loop device

    Nothing here raises on failure: results are returned and logged,
    because the next cycle (or the next boot) restores correctness.

    Usage:
        mounts = MountManager(runner, retrier)
        if mounts.mount_with_retry(cam):
            ...
        mounts.unmount(cam)
    """

    def __init__(
        self,
        runner: CommandRunner,
        retrier: Optional[Retrier] = None,
        mount_timeout: float = DEFAULT_MOUNT_TIMEOUT,
        fsck_timeout: float = DEFAULT_FSCK_TIMEOUT,
        partition_suffix: str = "p1",
        logger: Optional[logging.Logger] = None,
    ):
        self.runner = runner
        self.retrier = retrier or Retrier()
        self.mount_timeout = mount_timeout
        self.fsck_timeout = fsck_timeout
        self.partition_suffix = partition_suffix
        self.logger = logger or logging.getLogger(__name__)

        # Points that passed fsck and have not been written to since
        self._checked: Set[str] = set()

    # =========================================================================
    # MOUNT STATE
    # =========================================================================

    def is_mounted(self, point: MountPoint) -> bool:
        """
        Check if the mount point's target is a mount.

        Returns:
            True if mounted
        """
        result = self._run(["mountpoint", "-q", str(point.target)], timeout=5)
        return result is not None and result.ok

    def ensure_mounted(self, point: MountPoint) -> bool:
        """
        Mount the point unless it already is.

        The mount source comes from fstab. A mount that hangs for more
        than mount_timeout seconds counts as a failure.

        Returns:
            True if the point is mounted afterwards
        """
        if self.is_mounted(point):
            self.logger.debug(f"{point} already mounted")
            return True

        self.logger.info(f"Mounting {point}...")
        result = self._run(["mount", str(point.target)], timeout=self.mount_timeout)

        if result is None:
            return False
        if result.timed_out:
            self.logger.warning(f"Mount of {point} timed out")
            return False
        if not result.ok:
            self.logger.warning(
                f"Mount of {point} failed ({result.returncode}): "
                f"{result.stderr.strip()}"
            )
            return False

        self.logger.info(f"Mounted {point}")
        self._checked.discard(point.name)
        return True

    def mount_with_retry(self, point: MountPoint) -> bool:
        """ensure_mounted, retried through the Retry Executor"""
        mounted = self.retrier.run(
            lambda: self.ensure_mounted(point),
            f"mount {point.name}",
        )
        if not mounted:
            self.logger.error(f"Failed to mount {point}")
        return mounted

    def unmount(self, point: MountPoint) -> UnmountResult:
        """
        Unmount the point, falling back to a lazy unmount.

        A lazy unmount detaches the target immediately and releases the
        device once nothing is using it.

        Returns:
            UnmountResult describing which path succeeded. Never raises.
        """
        if not self.is_mounted(point):
            return UnmountResult.NOT_MOUNTED

        result = self._run(["umount", str(point.target)], timeout=self.mount_timeout)
        if result is not None and result.ok:
            self.logger.info(f"Unmounted {point}")
            return UnmountResult.NORMAL

        self.logger.warning(f"Normal unmount of {point} failed, trying lazy unmount")
        result = self._run(["umount", "-l", str(point.target)], timeout=self.mount_timeout)
        if result is not None and result.ok:
            self.logger.info(f"Lazily unmounted {point}")
            return UnmountResult.LAZY

        self.logger.error(f"Failed to unmount {point}")
        return UnmountResult.FAILED

    # =========================================================================
    # CONSISTENCY CHECK
    # =========================================================================

    def check_consistency(self, point: MountPoint) -> bool:
        """
        Run fsck on the point's backing image through a loop device.

        Failures are logged, never raised: the image is exposed to the
        capture source regardless, since it has no other storage.

        Returns:
            True if fsck reported a clean (or repaired) filesystem
        """
        image = point.backing_image
        self._checked.discard(point.name)
        self.logger.info(f"Checking filesystem on {image}...")

        attach = self._run(
            ["losetup", "--find", "--show", "--partscan", str(image)],
            timeout=30,
        )
        if attach is None or not attach.ok or not attach.stdout.strip():
            self.logger.error(f"Could not attach {image} to a loop device")
            return False

        loop_device = attach.stdout.strip().splitlines()[0]
        try:
            fsck = self._run(
                ["fsck", f"{loop_device}{self.partition_suffix}", "--", "-a"],
                timeout=self.fsck_timeout,
            )
        finally:
            detach = self._run(["losetup", "-d", loop_device], timeout=30)
            if detach is None or not detach.ok:
                self.logger.warning(f"Could not detach {loop_device}")

        if fsck is None:
            return False

        # fsck exit status: 0 clean, 1 errors corrected, anything else bad
        if fsck.returncode in (0, 1) and not fsck.timed_out:
            if fsck.returncode == 1:
                self.logger.info(f"fsck corrected errors on {image}")
            else:
                self.logger.info(f"Filesystem on {image} is clean")
            self._checked.add(point.name)
            return True

        self.logger.error(
            f"fsck failed on {image} ({fsck.returncode}): {fsck.stdout.strip()} "
            f"{fsck.stderr.strip()}"
        )
        return False

    def invalidate_check(self, point: MountPoint) -> None:
        """Forget the last fsck result (the image is being written elsewhere)"""
        self._checked.discard(point.name)

    def prepare_for_exposure(self, point: MountPoint) -> bool:
        """
        Unmount the point and check its filesystem.

        The check is skipped when the last one passed and the point has
        not been mounted since.

        Returns:
            True if the point ended up unmounted (fsck result is only logged)
        """
        result = self.unmount(point)
        if result == UnmountResult.NOT_MOUNTED and point.name in self._checked:
            self.logger.debug(f"{point} unchanged since last check, skipping fsck")
        else:
            self.check_consistency(point)
        return result != UnmountResult.FAILED

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _run(self, args, timeout: Optional[float]) -> Optional[CommandResult]:
        try:
            return self.runner.run(args, timeout=timeout)
        except CommandError as e:
            self.logger.error(str(e))
            return None
