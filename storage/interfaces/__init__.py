"""
Storage Interfaces Package

Exposes abstract interfaces that define contracts for storage components.
"""

from storage.interfaces.view_interface import SnapshotViewInterface, ViewError

# Public API (sorted alphabetically)
__all__ = [
    "SnapshotViewInterface",
    "ViewError",
]
