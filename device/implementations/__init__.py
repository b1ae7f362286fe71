"""
Device Implementations Package

Exposes concrete command runner implementations.
"""

from device.implementations.mock_runner import MockCommandRunner
from device.implementations.shell_runner import ShellCommandRunner

# Public API (sorted alphabetically)
__all__ = [
    "MockCommandRunner",
    "ShellCommandRunner",
]
