"""
Controllers Package

High-level archive session control.
"""

from archive.controllers.session_controller import (
    ArchiveSessionController,
    TriggerSet,
)

# Public API (sorted alphabetically)
__all__ = [
    "ArchiveSessionController",
    "TriggerSet",
]
