"""
Central Configuration File

ALL configuration defaults live here. This is the single source of truth.

Guidelines:
- Environment-style options (ARCHIVE_SERVER, ARCHIVE_SAVEDCLIPS, ...) are
  read from the process environment or a .env file
- Components never import these directly; they receive an ArchiveConfig
  (config/archive_config.py) built from these defaults
- Keep values generic and appliance-agnostic
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    """Read a true/false style environment variable"""
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# =============================================================================
# ARCHIVE ENDPOINT
# =============================================================================

# Address of the remote archive (hostname or IP). Required - no safe default.
ARCHIVE_SERVER = os.getenv("ARCHIVE_SERVER", "")

# Port used by the built-in socket probe when no probe command is configured
ARCHIVE_PORT = int(os.getenv("ARCHIVE_PORT", "445"))  # SMB
REACHABILITY_TIMEOUT = float(os.getenv("REACHABILITY_TIMEOUT", "3"))  # seconds
REACHABILITY_POLL_INTERVAL = 1.0  # seconds

# =============================================================================
# CLIP CATEGORIES
# =============================================================================

# Category inclusion toggles (two included, two excluded by default)
ARCHIVE_SAVEDCLIPS = _env_bool("ARCHIVE_SAVEDCLIPS", True)
ARCHIVE_SENTRYCLIPS = _env_bool("ARCHIVE_SENTRYCLIPS", True)
ARCHIVE_RECENTCLIPS = _env_bool("ARCHIVE_RECENTCLIPS", False)
ARCHIVE_TRACKMODECLIPS = _env_bool("ARCHIVE_TRACKMODECLIPS", False)

# Category directories, relative to the mounted capture filesystem
DIR_SAVEDCLIPS = "TeslaCam/SavedClips"
DIR_SENTRYCLIPS = "TeslaCam/SentryClips"
DIR_RECENTCLIPS = "TeslaCam/RecentClips"
DIR_TRACKMODECLIPS = "TeslaTrackMode"

# Trigger file names per category (empty = no trigger for that category)
TRIGGER_FILE_SAVED = os.getenv("TRIGGER_FILE_SAVED", "")
TRIGGER_FILE_SENTRY = os.getenv("TRIGGER_FILE_SENTRY", "")
TRIGGER_FILE_RECENT = os.getenv("TRIGGER_FILE_RECENT", "")
TRIGGER_FILE_TRACKMODE = os.getenv("TRIGGER_FILE_TRACKMODE", "")

# Clips smaller than this are considered degenerate and are not archived
MIN_CLIP_SIZE_BYTES = int(os.getenv("MIN_CLIP_SIZE_BYTES", str(100 * 1024)))

# Only these extensions are size-checked; companion files always pass
VIDEO_FILE_EXTENSIONS = (".mp4",)

# =============================================================================
# STORAGE / MOUNTS
# =============================================================================

CAM_MOUNT_NAME = "cam"
CAM_BACKING_IMAGE = Path(os.getenv("CAM_BACKING_IMAGE", "/backingfiles/cam_disk.bin"))
CAM_MOUNT_POINT = Path(os.getenv("CAM_MOUNT_POINT", "/mnt/cam"))

MOUNT_TIMEOUT_SECONDS = 10
FSCK_TIMEOUT_SECONDS = 600
FSCK_PARTITION_SUFFIX = "p1"  # First partition of the loop device

# Snapshot view (overlay) locations
ARCHIVE_VIEW_MOUNT_POINT = Path(
    os.getenv("ARCHIVE_VIEW_MOUNT_POINT", "/mnt/archive_view"),
)
ARCHIVE_SCRATCH_DIR = Path(
    os.getenv("ARCHIVE_SCRATCH_DIR", "/backingfiles/archive_scratch"),
)

# Space reclaiming
CAM_MIN_FREE_BYTES = int(
    os.getenv("CAM_MIN_FREE_BYTES", str(5 * 1024 * 1024 * 1024)),  # 5 GB
)
RECOVERABLE_ARTIFACT_PATTERN = "FSCK*.REC"

# =============================================================================
# RETRY CONFIGURATION
# =============================================================================

RETRY_ATTEMPTS = int(os.getenv("RETRY_ATTEMPTS", "10"))
RETRY_DELAY_SECONDS = float(os.getenv("RETRY_DELAY_SECONDS", "1"))

# =============================================================================
# STATE FILES
# =============================================================================

LEDGER_FILE = Path(os.getenv("LEDGER_FILE", "/mutable/archived-clips.txt"))

# Test harness overrides: touch these files to simulate a transition
# /tmp is intentional - sentinels must not survive a reboot
SIMULATE_REACHABLE_FILE = Path(
    os.getenv("SIMULATE_REACHABLE_FILE", "/tmp/archive_is_reachable"),  # noqa: S108
)
SIMULATE_UNREACHABLE_FILE = Path(
    os.getenv("SIMULATE_UNREACHABLE_FILE", "/tmp/archive_is_unreachable"),  # noqa: S108
)

LOCK_FILE = Path(
    os.getenv("LOCK_FILE", "/tmp/clip_archiver.lock"),  # noqa: S108
)

# =============================================================================
# EXTERNAL COMMANDS
# =============================================================================

PROBE_COMMAND = os.getenv("PROBE_COMMAND", "/root/bin/archive-is-reachable.sh")
GADGET_ENABLE_COMMAND = os.getenv("GADGET_ENABLE_COMMAND", "/root/bin/enable_gadget.sh")
GADGET_DISABLE_COMMAND = os.getenv(
    "GADGET_DISABLE_COMMAND",
    "/root/bin/disable_gadget.sh",
)
# configfs attribute holding the file bound to the emulated disk
GADGET_LUN_FILE = Path(
    os.getenv(
        "GADGET_LUN_FILE",
        "/sys/kernel/config/usb_gadget/teslausb/functions/mass_storage.0/lun.0/file",
    ),
)
TRANSPORT_COMMAND = os.getenv("TRANSPORT_COMMAND", "/root/bin/archive-clips.sh")
TRANSPORT_TIMEOUT_SECONDS = None  # Transport may legitimately run for hours
NOTIFY_COMMAND = os.getenv("NOTIFY_COMMAND", "/root/bin/send-push-message")
NOTIFY_TITLE = os.getenv("NOTIFY_TITLE", "Clip Archiver")
FILTER_HOOK = os.getenv("FILTER_HOOK", "/root/bin/archive-filter")
TRIM_COMMAND = "fstrim"

# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================

LOG_DIR = os.getenv("LOG_DIR", "/mutable")
LOG_SERVICE_FILE = "archiveloop.log"
LOG_MAX_LINES = 10_000
LOG_TRIM_INTERVAL_SECONDS = 3600  # 1 hour
