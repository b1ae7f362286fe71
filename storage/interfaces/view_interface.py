"""
Snapshot View Interface

Abstract interface for the writable view of the capture filesystem that
the transport works on. Controllers depend on this interface, not on the
overlay or mock implementations.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional


class ViewError(Exception):
    """Raised when a snapshot view cannot be built"""


class SnapshotViewInterface(ABC):
    """
    Abstract base class for snapshot views.

    A view presents the mounted capture filesystem as a tree the transport
    may delete from (a deletion means "archived") without touching the
    underlying clips. Deletions are discarded when the view is torn down.

    Usage:
        with view as root:
            ...  # root is the merged view directory
    """

    @abstractmethod
    def build(self) -> Path:
        """
        Build the view.

        Returns:
            Root directory of the view

        Raises:
            ViewError: If the view cannot be built
        """

    @abstractmethod
    def teardown(self) -> None:
        """
        Tear the view down and discard its changes.

        Safe to call when the view was never built.
        """

    @property
    @abstractmethod
    def root(self) -> Optional[Path]:
        """Root of the built view, None when not built"""

    def __enter__(self) -> Path:
        return self.build()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.teardown()
