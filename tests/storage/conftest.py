"""
Storage Test Configuration and Fixtures

This file contains pytest fixtures shared across storage tests.
Mirrors the pattern from tests/device/conftest.py.

To use pytest:
    pip install pytest
    pytest tests/storage/
"""

import os
from pathlib import Path

import pytest

from device.implementations.mock_runner import MockCommandRunner
from storage.constants import ClipCategory
from storage.managers.ledger_manager import ClipLedger

CATEGORY_DIRS = {
    ClipCategory.SAVED: "TeslaCam/SavedClips",
    ClipCategory.SENTRY: "TeslaCam/SentryClips",
    ClipCategory.RECENT: "TeslaCam/RecentClips",
    ClipCategory.TRACK_MODE: "TeslaTrackMode",
}


# =============================================================================
# CLIP TREE FIXTURES
# =============================================================================

@pytest.fixture
def category_dirs():
    """Provide the default category directories"""
    return dict(CATEGORY_DIRS)


@pytest.fixture
def cam_root(tmp_path):
    """
    Provide an empty capture filesystem root with category directories.

    Usage:
        def test_something(cam_root, make_clip):
            make_clip(cam_root, "TeslaCam/SavedClips/e1/front.mp4")
    """
    root = tmp_path / "cam"
    for directory in CATEGORY_DIRS.values():
        (root / directory).mkdir(parents=True)
    return root


@pytest.fixture
def make_clip():
    """
    Provide a helper that writes a clip file.

    Args (of the helper):
        root: Tree root
        rel: Relative path
        size: File size in bytes
        mtime: Optional modification time (epoch seconds)
    """
    def _make(root: Path, rel: str, size: int = 200_000, mtime=None) -> Path:
        path = Path(root) / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "wb") as f:
            f.truncate(size)
        if mtime is not None:
            os.utime(path, (mtime, mtime))
        return path

    return _make


# =============================================================================
# COMPONENT FIXTURES
# =============================================================================

@pytest.fixture
def mock_runner():
    """Provide a plain MockCommandRunner"""
    return MockCommandRunner()


@pytest.fixture
def ledger(tmp_path, mock_runner):
    """
    Provide a ClipLedger persisted under tmp_path.

    Usage:
        def test_save(ledger):
            ledger.save({"a", "b"})
    """
    return ClipLedger(tmp_path / "mutable" / "archived-clips.txt", runner=mock_runner)


@pytest.fixture
def fake_disk(tmp_path):
    """
    Provide a disk whose free space is capacity minus the bytes stored
    under the tree it measures.

    Usage:
        disk = fake_disk(capacity=1_000_000)
        reclaimer = SpaceReclaimer(dirs, disk_free=disk)
    """
    def _make(capacity: int):
        def _free(root: Path) -> int:
            used = 0
            for dirpath, _dirnames, filenames in os.walk(root):
                for name in filenames:
                    path = Path(dirpath) / name
                    if not path.is_symlink():
                        used += path.stat().st_size
            return capacity - used

        return _free

    return _make


# =============================================================================
# PYTEST CONFIGURATION
# =============================================================================

def pytest_configure(config):
    """
    Configure pytest with custom markers.

    Same markers as the other test packages for consistency.
    """
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "unit_integration: Unit integration tests")
    config.addinivalue_line("markers", "integration: Full integration tests")
    config.addinivalue_line("markers", "slow: Slow tests (use sparingly)")
