"""
Overlay View

Snapshot view built from an overlay filesystem: the mounted capture
filesystem is the read-only lower layer, a scratch directory on the
backing store holds the upper and work layers. Deleting a file in the
merged view records a whiteout in the upper layer and leaves the clip
on the capture filesystem untouched.
"""

import logging
import shutil
from pathlib import Path
from typing import Optional

from device.controllers.mount_manager import MountManager
from device.interfaces.command_interface import CommandError, CommandRunner
from storage.constants import UnmountResult
from storage.interfaces.view_interface import SnapshotViewInterface, ViewError
from storage.models.clip import MountPoint
from storage.utils.path_utils import ensure_directory

OVERLAY_MOUNT_TIMEOUT = 30.0  # seconds


class OverlayView(SnapshotViewInterface):
    """
    Overlayfs-backed snapshot view.

    Usage:
        view = OverlayView(runner, mounts, Path("/mnt/cam"),
                           Path("/mnt/archive_view"),
                           Path("/backingfiles/archive_scratch"))
        with view as root:
            transport(root)
    """

    def __init__(
        self,
        runner: CommandRunner,
        mount_manager: MountManager,
        lower_dir: Path,
        merged_dir: Path,
        scratch_dir: Path,
        logger: Optional[logging.Logger] = None,
    ):
        self.runner = runner
        self.mounts = mount_manager
        self.lower_dir = Path(lower_dir)
        self.merged_dir = Path(merged_dir)
        self.scratch_dir = Path(scratch_dir)
        self.upper_dir = self.scratch_dir / "upper"
        self.work_dir = self.scratch_dir / "work"
        self.logger = logger or logging.getLogger(__name__)

        self._point = MountPoint(
            name="archive_view",
            backing_image=self.scratch_dir,
            target=self.merged_dir,
        )
        self._built = False

    @property
    def root(self) -> Optional[Path]:
        return self.merged_dir if self._built else None

    def build(self) -> Path:
        """
        Mount the overlay.

        Upper and work directories start empty on every build, so no
        deletion from an earlier session leaks into this one.
        """
        # Leftovers from a crashed session
        self.teardown()

        for directory in (self.upper_dir, self.work_dir):
            shutil.rmtree(directory, ignore_errors=True)
            directory.mkdir(parents=True)
        if not ensure_directory(self.merged_dir):
            raise ViewError(f"Cannot create view mount point {self.merged_dir}")

        options = (
            f"lowerdir={self.lower_dir},"
            f"upperdir={self.upper_dir},"
            f"workdir={self.work_dir}"
        )
        args = ["mount", "-t", "overlay", "overlay", "-o", options, str(self.merged_dir)]

        try:
            result = self.runner.run(args, timeout=OVERLAY_MOUNT_TIMEOUT)
        except CommandError as e:
            raise ViewError(f"Cannot mount overlay: {e}") from e

        if not result.ok:
            raise ViewError(
                f"Overlay mount failed ({result.returncode}): {result.stderr.strip()}"
            )

        self._built = True
        self.logger.info(f"Snapshot view ready at {self.merged_dir}")
        return self.merged_dir

    def teardown(self) -> None:
        """Unmount the overlay (lazily if busy) and discard the layers"""
        outcome = self.mounts.unmount(self._point)
        if outcome == UnmountResult.FAILED:
            self.logger.error(f"Snapshot view {self.merged_dir} is still mounted")
        elif outcome != UnmountResult.NOT_MOUNTED:
            self.logger.debug(f"Snapshot view unmounted ({outcome.value})")

        for directory in (self.upper_dir, self.work_dir):
            shutil.rmtree(directory, ignore_errors=True)
        self._built = False
