"""
Mock View

Snapshot view built by copying the lower tree into a scratch directory.
For development and testing without overlayfs or root.

Symlinks are copied as links, so the copy is as shallow as the real
overlay with respect to linked clips.
"""

import logging
import shutil
from pathlib import Path
from typing import Optional

from storage.interfaces.view_interface import SnapshotViewInterface, ViewError


class MockView(SnapshotViewInterface):
    """
    Copy-based snapshot view.

    Deletions inside the view never reach lower_dir, matching the overlay
    semantics.

    Usage:
        view = MockView(Path("/tmp/cam"), Path("/tmp/scratch"))
        with view as root:
            ...
    """

    def __init__(
        self,
        lower_dir: Path,
        scratch_dir: Path,
        logger: Optional[logging.Logger] = None,
    ):
        self.lower_dir = Path(lower_dir)
        self.scratch_dir = Path(scratch_dir)
        self.merged_dir = self.scratch_dir / "merged"
        self.logger = logger or logging.getLogger(__name__)

        # Build history for tests
        self.build_count = 0
        self.teardown_count = 0
        self._built = False

    @property
    def root(self) -> Optional[Path]:
        return self.merged_dir if self._built else None

    def build(self) -> Path:
        shutil.rmtree(self.merged_dir, ignore_errors=True)
        self.scratch_dir.mkdir(parents=True, exist_ok=True)

        try:
            if self.lower_dir.is_dir():
                shutil.copytree(self.lower_dir, self.merged_dir, symlinks=True)
            else:
                self.merged_dir.mkdir()
        except (OSError, shutil.Error) as e:
            raise ViewError(f"Cannot copy {self.lower_dir}: {e}") from e

        self._built = True
        self.build_count += 1
        self.logger.debug(f"[MOCK] View copied to {self.merged_dir}")
        return self.merged_dir

    def teardown(self) -> None:
        if self._built:
            self.teardown_count += 1
        shutil.rmtree(self.merged_dir, ignore_errors=True)
        self._built = False
