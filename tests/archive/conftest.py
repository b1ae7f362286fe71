"""
Archive Test Configuration and Fixtures

Fixtures shared across archive tests: an isolated ArchiveConfig rooted
in tmp_path, a capture filesystem and a session controller
wired to mock collaborators.

To use pytest:
    pip install pytest
    pytest tests/archive/
"""

import logging
import signal
from pathlib import Path

import pytest
import yaml

from archive.controllers.session_controller import ArchiveSessionController
from archive.implementations.mock_notifier import MockNotifier
from archive.implementations.mock_transport import MockTransport
from config.archive_config import ArchiveConfig
from device.implementations.mock_runner import MockCommandRunner
from storage.factory import StorageFactory
from storage.implementations.mock_view import MockView
from storage.managers.space_manager import SpaceReclaimer

ENABLE_COMMAND = "/root/bin/enable_gadget.sh"
DISABLE_COMMAND = "/root/bin/disable_gadget.sh"


def tmp_overrides(tmp_path: Path) -> dict:
    """Config values that keep every file the archiver touches in tmp_path"""
    return {
        "archive_server": "archive.local",
        "probe_command": "",
        "cam_backing_image": str(tmp_path / "cam_disk.bin"),
        "cam_mount_point": str(tmp_path / "cam"),
        "archive_view_mount_point": str(tmp_path / "archive_view"),
        "archive_scratch_dir": str(tmp_path / "scratch"),
        "ledger_file": str(tmp_path / "mutable" / "archived-clips.txt"),
        "simulate_reachable_file": str(tmp_path / "archive_is_reachable"),
        "simulate_unreachable_file": str(tmp_path / "archive_is_unreachable"),
        "lock_file": str(tmp_path / "clip_archiver.lock"),
        "log_dir": str(tmp_path / "logs"),
        "gadget_enable_command": ENABLE_COMMAND,
        "gadget_disable_command": DISABLE_COMMAND,
        "gadget_lun_file": str(tmp_path / "configfs" / "lun.0" / "file"),
        "transport_command": str(tmp_path / "bin" / "archive-clips.sh"),
        "notify_command": "",
        "filter_hook": "",
        "trigger_file_saved": "ARCHIVE_SAVED",
        "trigger_file_sentry": "ARCHIVE_SENTRY",
        "min_clip_size_bytes": 100_000,
        "cam_min_free_bytes": 0,
        "retry_attempts": 2,
        "retry_delay_seconds": 0,
    }


# =============================================================================
# CONFIG FIXTURES
# =============================================================================

@pytest.fixture
def make_config(tmp_path):
    """
    Provide a factory for isolated configs.

    Usage:
        def test_something(make_config):
            config = make_config(filter_hook="/tmp/hook")
    """
    def _make(**overrides) -> ArchiveConfig:
        values = tmp_overrides(tmp_path)
        values.update(overrides)
        return ArchiveConfig(tmp_path / "missing.yaml", overrides=values)

    return _make


@pytest.fixture
def config(make_config):
    """Provide the default isolated config"""
    return make_config()


@pytest.fixture
def write_config_file(tmp_path):
    """
    Provide a helper that writes an isolated YAML config file.

    Usage:
        path = write_config_file(archive_server="")
        main(["--config", str(path)])
    """
    def _write(**overrides) -> Path:
        values = tmp_overrides(tmp_path)
        values.update(overrides)
        path = tmp_path / "archiver.yaml"
        path.write_text(yaml.safe_dump(values))
        return path

    return _write


# =============================================================================
# CLIP TREE FIXTURES
# =============================================================================

@pytest.fixture
def cam_root(config):
    """Provide the capture filesystem root with category directories"""
    root = config.cam_mount_point
    for directory in config.category_dirs.values():
        (root / directory).mkdir(parents=True, exist_ok=True)
    return root


@pytest.fixture
def add_clip(cam_root):
    """
    Provide a helper that writes a clip under the capture root.

    Usage:
        add_clip(SAVED_FRONT)
        add_clip(SENTRY_FRONT, size=1_000)  # Too short to archive
    """
    def _add(rel: str, size: int = 200_000) -> Path:
        path = cam_root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "wb") as f:
            f.truncate(size)
        return path

    return _add


# =============================================================================
# COMPONENT FIXTURES
# =============================================================================

@pytest.fixture
def mock_runner(config):
    """Provide a MockCommandRunner wired to the config's gadget"""
    return MockCommandRunner(
        gadget_enable_command=config.gadget_enable_command,
        gadget_disable_command=config.gadget_disable_command,
        lun_file=config.gadget_lun_file,
        backing_image=config.cam_backing_image,
        watched_targets=[config.cam_mount_point],
    )


@pytest.fixture
def ledger(config, mock_runner):
    return StorageFactory.create_ledger(config, mock_runner)


@pytest.fixture
def view(config):
    return MockView(config.cam_mount_point, config.archive_scratch_dir)


@pytest.fixture
def reclaimer(config, mock_runner):
    """Reclaimer on a disk that is never short of space"""
    return SpaceReclaimer(
        config.category_dirs.values(),
        runner=mock_runner,
        disk_free=lambda _root: 64 * 1024**3,
    )


@pytest.fixture
def notifier():
    return MockNotifier()


@pytest.fixture
def make_session(config, ledger, view, reclaimer, notifier):
    """
    Provide a factory for session controllers with mock collaborators.

    Any collaborator can be replaced by keyword.

    Usage:
        def test_partial(make_session):
            session = make_session(transport=MockTransport(keep={clip}))
    """
    def _make(**kwargs) -> ArchiveSessionController:
        parts = {
            "ledger": ledger,
            "view": view,
            "reclaimer": reclaimer,
            "transport": MockTransport(),
            "notifier": notifier,
        }
        parts.update(kwargs)
        return ArchiveSessionController(config, **parts)

    return _make


# =============================================================================
# PROCESS STATE FIXTURES
# =============================================================================

@pytest.fixture
def restore_process_state():
    """
    Undo the process-wide changes main() makes.

    Removes root logger handlers added during the test and restores
    SIGINT/SIGTERM handlers.
    """
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    sigint = signal.getsignal(signal.SIGINT)
    sigterm = signal.getsignal(signal.SIGTERM)

    yield

    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)
    signal.signal(signal.SIGINT, sigint)
    signal.signal(signal.SIGTERM, sigterm)


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
