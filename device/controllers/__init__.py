"""
Controllers Package

High-level device controllers for the archiver.
"""

from device.controllers.gadget_controller import GadgetController
from device.controllers.mount_manager import MountManager

# Public API (sorted alphabetically)
__all__ = [
    "GadgetController",
    "MountManager",
]
