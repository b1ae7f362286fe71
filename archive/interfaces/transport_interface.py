"""
Transport Interface

Abstract interface for moving clips from the snapshot view to the
remote archive. High-level code depends on this abstraction, not on the
external transport script.

Contract: the transport deletes every clip it has safely archived from
the view. What remains afterwards was not archived.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass
class TransportResult:
    """
    Result of a transport run.

    Attributes:
        success: True if the transport reported full success (exit 0)
        returncode: Exit status of the transport
        elapsed_seconds: Time the transport took
        error_message: Error description (if failed)
    """

    success: bool
    returncode: int = 0
    elapsed_seconds: float = 0.0
    error_message: Optional[str] = None


class TransportError(Exception):
    """Raised when the transport cannot be started at all"""


class TransportInterface(ABC):
    """
    Abstract base class for clip transports.

    Any transport implementation (external script, mock) must implement
    these methods.
    """

    @abstractmethod
    def transfer(
        self,
        view_root: Path,
        list_file: Path,
        trigger_dir: Path,
        trigger_list: Path,
    ) -> TransportResult:
        """
        Archive the clips named in list_file.

        A non-zero exit means partial or no progress. Either way the caller
        reconciles against what is left in the view.

        Args:
            view_root: Root of the snapshot view
            list_file: Clip paths relative to view_root, one per line
            trigger_dir: Directory holding the trigger files
            trigger_list: Category label and trigger path, one per line

        Returns:
            TransportResult

        Raises:
            TransportError: If the transport cannot be started
        """

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the transport can be invoked"""
