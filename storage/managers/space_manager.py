"""
Space Manager

Keeps free space on the capture filesystem above a floor.
Single responsibility: disk space reclaiming only.

The capture source records continuously; when its disk fills it stops.
After each archive session the oldest clips are deleted until free space
exceeds the configured floor, whether or not they were archived.
"""

import fnmatch
import logging
import shlex
import shutil
from pathlib import Path
from typing import Callable, Iterable, Optional

from device.interfaces.command_interface import CommandError, CommandRunner
from storage.models.clip import ReclaimResult
from storage.utils.path_utils import (
    format_size,
    iter_files_by_age,
    remove_empty_directories,
)

TRIM_TIMEOUT = 300.0  # seconds


def free_bytes(path: Path) -> int:
    """Free space of the filesystem holding path"""
    return shutil.disk_usage(path).free


class SpaceReclaimer:
    """
    Deletes files from the mounted capture filesystem to free space.

    Responsibilities:
    - Delete recoverable-error artifacts left by fsck
    - Delete oldest clips until free space exceeds the floor
    - Remove directories emptied by the deletions
    - Return freed blocks to the backing store (fstrim)

    Usage:
        reclaimer = SpaceReclaimer(category_dirs, runner)
        result = reclaimer.clean_up(Path("/mnt/cam"), 5_000_000_000)
        if not result.floor_reached:
            ...
        reclaimer.trim_free_space(Path("/mnt/cam"))
    """

    def __init__(
        self,
        category_dirs: Iterable[str],
        runner: Optional[CommandRunner] = None,
        artifact_pattern: str = "FSCK*.REC",
        trim_command: str = "fstrim",
        disk_free: Callable[[Path], int] = free_bytes,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize space reclaimer.

        Args:
            category_dirs: Clip directories relative to the mount root
            runner: Command runner for fstrim (None disables trimming)
            artifact_pattern: Glob for fsck recovery files at the mount root
            trim_command: Trim command; the mount root is appended
            disk_free: Returns free bytes for a path (injectable for tests)
        """
        self.category_dirs = list(category_dirs)
        self.runner = runner
        self.artifact_pattern = artifact_pattern
        self.trim_command = trim_command
        self.disk_free = disk_free
        self.logger = logger or logging.getLogger(__name__)

    def clean_up(self, mount_root: Path, floor_bytes: int) -> ReclaimResult:
        """
        Reclaim space on the filesystem mounted at mount_root.

        Never fails because the floor could not be reached: the result
        says so and the caller reports it.

        Args:
            mount_root: Where the capture filesystem is mounted
            floor_bytes: Stop deleting once free space exceeds this

        Returns:
            ReclaimResult with counts and free space before/after
        """
        mount_root = Path(mount_root)
        before = self.disk_free(mount_root)
        result = ReclaimResult(
            floor_bytes=floor_bytes,
            free_bytes_before=before,
            free_bytes_after=before,
        )

        self._delete_artifacts(mount_root, result)
        self._delete_oldest(mount_root, floor_bytes, result)

        for directory in self._existing_category_roots(mount_root):
            result.directories_removed += remove_empty_directories(directory)

        result.free_bytes_after = self.disk_free(mount_root)

        if result.floor_reached:
            self.logger.info(
                f"Space reclaimed: {result.files_deleted} file(s), "
                f"{format_size(result.bytes_deleted)}, "
                f"{format_size(result.free_bytes_after)} free"
            )
        else:
            self.logger.warning(
                f"Free space floor not reached: {format_size(result.free_bytes_after)} "
                f"free, floor is {format_size(floor_bytes)}"
            )

        return result

    def trim_free_space(self, mount_root: Path) -> bool:
        """
        Run fstrim on the mounted filesystem.

        Returns:
            True if trim succeeded (failure is logged only)
        """
        if self.runner is None or not self.trim_command:
            return False

        args = shlex.split(self.trim_command) + [str(mount_root)]
        try:
            result = self.runner.run(args, timeout=TRIM_TIMEOUT)
        except CommandError as e:
            self.logger.warning(f"Trim unavailable: {e}")
            return False

        if not result.ok:
            self.logger.warning(
                f"Trim of {mount_root} failed ({result.returncode}): "
                f"{result.stderr.strip()}"
            )
            return False

        self.logger.debug(f"Trimmed {mount_root}")
        return True

    # =========================================================================
    # PRIVATE
    # =========================================================================

    def _delete_artifacts(self, mount_root: Path, result: ReclaimResult) -> None:
        try:
            names = sorted(p.name for p in mount_root.iterdir())
        except OSError as e:
            self.logger.error(f"Cannot list {mount_root}: {e}")
            result.errors += 1
            return

        for name in names:
            if not fnmatch.fnmatch(name, self.artifact_pattern):
                continue
            path = mount_root / name
            try:
                if path.is_dir() and not path.is_symlink():
                    shutil.rmtree(path)
                else:
                    path.unlink()
                result.artifacts_deleted += 1
                self.logger.info(f"Deleted recovery artifact {name}")
            except OSError as e:
                self.logger.error(f"Failed to delete {path}: {e}")
                result.errors += 1

    def _delete_oldest(
        self,
        mount_root: Path,
        floor_bytes: int,
        result: ReclaimResult,
    ) -> None:
        free = self.disk_free(mount_root)
        if free > floor_bytes:
            return

        self.logger.info(
            f"{format_size(free)} free, deleting oldest clips until "
            f"above {format_size(floor_bytes)}"
        )

        files = []
        for directory in self._existing_category_roots(mount_root):
            files.extend(iter_files_by_age(directory))
        files.sort(key=lambda e: (e[0], str(e[2])))

        for _mtime, size, path in files:
            try:
                path.unlink()
            except FileNotFoundError:
                continue
            except OSError as e:
                self.logger.error(f"Failed to delete {path}: {e}")
                result.errors += 1
                continue

            result.files_deleted += 1
            result.bytes_deleted += size
            self.logger.debug(f"Deleted {path.relative_to(mount_root)}")

            if self.disk_free(mount_root) > floor_bytes:
                break

    def _existing_category_roots(self, mount_root: Path):
        for directory in self.category_dirs:
            root = mount_root / directory
            if root.is_dir():
                yield root
