"""
Clip Models

Data classes describing mount points and archive session results.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Set

from storage.constants import ClipCategory


@dataclass(frozen=True)
class MountPoint:
    """
    A backing image and the directory it is mounted on.

    The image is either mounted locally (for archiving) or exposed to the
    capture source through the USB gadget, never both.
    """

    name: str  # Short identifier: "cam"
    backing_image: Path  # /backingfiles/cam_disk.bin
    target: Path  # /mnt/cam (mount reads the source from fstab)

    def __str__(self) -> str:
        return f"{self.name} ({self.target})"


@dataclass
class ReclaimResult:
    """Outcome of one space reclaiming pass"""

    floor_bytes: int
    free_bytes_before: int
    free_bytes_after: int
    artifacts_deleted: int = 0
    files_deleted: int = 0
    bytes_deleted: int = 0
    directories_removed: int = 0
    errors: int = 0

    @property
    def floor_reached(self) -> bool:
        """True if free space now exceeds the floor"""
        return self.free_bytes_after > self.floor_bytes

    def __repr__(self) -> str:
        return (
            f"ReclaimResult(deleted={self.files_deleted}, "
            f"free={self.free_bytes_after / (1024**3):.2f}GB, "
            f"floor_reached={self.floor_reached})"
        )


@dataclass
class ArchiveOutcome:
    """
    Per-session record of an archive pass.

    newly_archived is what the transport actually removed from the
    snapshot view, which may be less than what it was asked to archive.
    """

    candidate_counts: Dict[ClipCategory, int] = field(default_factory=dict)
    archived_counts: Dict[ClipCategory, int] = field(default_factory=dict)
    to_archive_count: int = 0
    ignored_count: int = 0
    newly_archived: Set[str] = field(default_factory=set)
    transport_invoked: bool = False
    success: bool = True
    ledger_changed: bool = False
    elapsed_seconds: float = 0.0
    reclaim: Optional[ReclaimResult] = None
    trimmed: bool = False
    error: Optional[str] = None

    @property
    def archived_count(self) -> int:
        return len(self.newly_archived)

    @property
    def message(self) -> str:
        """Human-readable summary for notifications"""
        breakdown = ", ".join(
            f"{count} {category.value}"
            for category, count in self.archived_counts.items()
            if count
        )
        summary = f"{self.archived_count} clip(s)"
        if breakdown:
            summary += f" ({breakdown})"

        if not self.transport_invoked and self.success:
            text = f"Nothing to archive ({self.ignored_count} ignored)"
        elif self.success:
            text = f"Archived {summary} in {self.elapsed_seconds:.0f} seconds"
        else:
            text = (
                f"Archiving failed after {self.elapsed_seconds:.0f} seconds, "
                f"archived {summary}"
            )
            if self.error:
                text += f": {self.error}"

        if self.reclaim is not None and not self.reclaim.floor_reached:
            text += ". Free space floor not reached"

        return text
