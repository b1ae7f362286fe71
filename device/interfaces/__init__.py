"""
Device Interfaces Package

Exposes abstract interfaces that define contracts for device components.
"""

from device.interfaces.command_interface import (
    CommandError,
    CommandResult,
    CommandRunner,
)

# Public API (sorted alphabetically)
__all__ = [
    "CommandError",
    "CommandResult",
    "CommandRunner",
]
