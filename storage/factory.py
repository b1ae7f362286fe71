"""
Storage Factory

Factory for the ledger, snapshot view and space reclaimer.
Follows the same pattern as device/factory.py.
"""

import logging
from typing import Literal

from device.controllers.mount_manager import MountManager
from device.interfaces.command_interface import CommandRunner
from storage.implementations.mock_view import MockView
from storage.implementations.overlay_view import OverlayView
from storage.interfaces.view_interface import SnapshotViewInterface
from storage.managers.ledger_manager import ClipLedger
from storage.managers.space_manager import SpaceReclaimer

# Type alias for better type hints
StorageMode = Literal["auto", "real", "mock"]


class StorageFactory:
    """
    Factory for storage components.

    Usage:
        view = StorageFactory.create_view(config, runner, mounts)

        # Force mock mode (useful for testing)
        view = StorageFactory.create_view(config, runner, mounts, mode="mock")
    """

    _logger = logging.getLogger(__name__)

    @classmethod
    def create_view(
        cls,
        config,
        runner: CommandRunner,
        mount_manager: MountManager,
        mode: StorageMode = "auto",
    ) -> SnapshotViewInterface:
        """
        Create a snapshot view of the capture filesystem.

        Args:
            config: ArchiveConfig
            runner: Command runner for the overlay mount
            mount_manager: Used to unmount the overlay
            mode: "auto"/"real" (overlayfs) or "mock" (copy)

        Returns:
            SnapshotViewInterface implementation
        """
        if mode == "mock":
            cls._logger.info("Creating Mock View (forced)")
            return MockView(config.cam_mount_point, config.archive_scratch_dir)

        # overlayfs is part of the appliance kernel, no fallback needed
        cls._logger.info("Creating Overlay View")
        return OverlayView(
            runner,
            mount_manager,
            lower_dir=config.cam_mount_point,
            merged_dir=config.archive_view_mount_point,
            scratch_dir=config.archive_scratch_dir,
        )

    @classmethod
    def create_ledger(cls, config, runner: CommandRunner) -> ClipLedger:
        return ClipLedger(
            config.ledger_file,
            runner=runner,
            filter_hook=config.filter_hook,
            video_extensions=config.video_file_extensions,
        )

    @classmethod
    def create_reclaimer(cls, config, runner: CommandRunner) -> SpaceReclaimer:
        return SpaceReclaimer(
            config.category_dirs.values(),
            runner=runner,
            artifact_pattern=config.recoverable_artifact_pattern,
            trim_command=config.trim_command,
        )
