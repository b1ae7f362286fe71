"""
Storage Module

Everything the archiver does with the clips on the capture filesystem.

Architecture mirrors the device module:
- interfaces/: Abstract base classes (contracts)
- implementations/: Concrete implementations (real and mock)
- managers/: Ledger and space reclaiming logic
- models/: Data structures
- utils/: Shared utilities

Public API:
    - ClipLedger: Record of archived clips
    - SpaceReclaimer: Keeps free space above a floor
    - SnapshotViewInterface: Writable view contract
    - ClipCategory: Kinds of footage

Usage:
    from storage import ClipLedger, diff, prune

    ledger = ClipLedger(Path("/mutable/archived-clips.txt"))
    to_archive = diff(candidates, prune(ledger.load(), candidates))

Import StorageFactory from storage.factory (it depends on the device module).
"""

from storage.constants import ClipCategory, SessionState, UnmountResult
from storage.interfaces.view_interface import SnapshotViewInterface, ViewError
from storage.managers.ledger_manager import ClipLedger, diff, intersect, prune
from storage.managers.space_manager import SpaceReclaimer
from storage.models.clip import ArchiveOutcome, MountPoint, ReclaimResult

# Public API (sorted alphabetically)
__all__ = [
    "ArchiveOutcome",
    "ClipCategory",
    "ClipLedger",
    "MountPoint",
    "ReclaimResult",
    "SessionState",
    "SnapshotViewInterface",
    "SpaceReclaimer",
    "UnmountResult",
    "ViewError",
    "diff",
    "intersect",
    "prune",
]
