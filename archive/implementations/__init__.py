"""
Archive Implementations Package

Exposes concrete transport and notifier implementations.
"""

from archive.implementations.command_notifier import CommandNotifier
from archive.implementations.command_transport import CommandTransport
from archive.implementations.mock_notifier import MockNotifier
from archive.implementations.mock_transport import MockTransport

# Public API (sorted alphabetically)
__all__ = [
    "CommandNotifier",
    "CommandTransport",
    "MockNotifier",
    "MockTransport",
]
