"""
Storage Module Enums

Type definitions for the storage module.
Configuration values live in config/settings.py and reach components
through ArchiveConfig; this module only defines the type system.
"""

from enum import Enum

# =============================================================================
# ENUMS
# =============================================================================


class ClipCategory(Enum):
    """Kinds of footage the capture source produces"""

    SAVED = "saved"  # Event footage saved on request
    SENTRY = "sentry"  # Event footage saved by a trigger
    RECENT = "recent"  # Routine rolling footage
    TRACK_MODE = "trackmode"  # Alternate-mode footage


class UnmountResult(Enum):
    """How an unmount request was satisfied"""

    NOT_MOUNTED = "not_mounted"  # Nothing to do
    NORMAL = "normal"  # Regular umount succeeded
    LAZY = "lazy"  # Fell back to umount -l
    FAILED = "failed"  # Both attempts failed


class SessionState(Enum):
    """Archive session states"""

    IDLE = "idle"
    BUILDING_CANDIDATES = "building_candidates"
    FILTERING = "filtering"
    TRANSPORTING = "transporting"
    RECONCILING = "reconciling"
    CLEANING_UP = "cleaning_up"
