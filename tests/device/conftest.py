"""
Device Test Configuration and Fixtures

Fixtures shared across device tests. Everything runs against
MockCommandRunner, so no root, loop devices or USB gadget are needed.

To use pytest:
    pip install pytest
    pytest tests/device/
"""

from pathlib import Path

import pytest

from core.retry import Retrier
from device.controllers.gadget_controller import GadgetController
from device.controllers.mount_manager import MountManager
from device.implementations.mock_runner import MockCommandRunner
from storage.models.clip import MountPoint

ENABLE_COMMAND = "/root/bin/enable_gadget.sh"
DISABLE_COMMAND = "/root/bin/disable_gadget.sh"


# =============================================================================
# SYSTEM FIXTURES
# =============================================================================

@pytest.fixture
def cam_point(tmp_path):
    """
    Provide the capture filesystem mount point.

    The target is never touched on disk; only the mock tracks it.
    """
    return MountPoint(
        name="cam",
        backing_image=tmp_path / "cam_disk.bin",
        target=Path("/mnt/cam"),
    )


@pytest.fixture
def lun_file(tmp_path):
    """Provide the simulated configfs LUN file path"""
    return tmp_path / "configfs" / "lun.0" / "file"


@pytest.fixture
def mock_runner(cam_point, lun_file):
    """
    Provide a MockCommandRunner wired to the cam mount point.

    Usage:
        def test_something(mock_runner):
            mock_runner.fail(["mount"], times=2)
            ...
            assert mock_runner.violations == []
    """
    return MockCommandRunner(
        gadget_enable_command=ENABLE_COMMAND,
        gadget_disable_command=DISABLE_COMMAND,
        lun_file=lun_file,
        backing_image=cam_point.backing_image,
        watched_targets=[cam_point.target],
    )


@pytest.fixture
def sleeps():
    """Provide a list-backed sleep that records delays"""
    delays = []

    def _sleep(seconds):
        delays.append(seconds)

    _sleep.delays = delays
    return _sleep


# =============================================================================
# CONTROLLER FIXTURES
# =============================================================================

@pytest.fixture
def mount_manager(mock_runner, sleeps):
    """Provide a MountManager with instant retries"""
    return MountManager(
        mock_runner,
        retrier=Retrier(max_attempts=10, delay=1.0, sleep=sleeps),
    )


@pytest.fixture
def gadget(mock_runner, mount_manager, cam_point, lun_file):
    """Provide a GadgetController over the mock runner"""
    return GadgetController(
        mock_runner,
        mount_manager,
        cam_point,
        enable_command=ENABLE_COMMAND,
        disable_command=DISABLE_COMMAND,
        lun_file=lun_file,
    )


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
