"""
Storage Implementations Package

Exposes concrete snapshot view implementations.
"""

from storage.implementations.mock_view import MockView
from storage.implementations.overlay_view import OverlayView

# Public API (sorted alphabetically)
__all__ = [
    "MockView",
    "OverlayView",
]
