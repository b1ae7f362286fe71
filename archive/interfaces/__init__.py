"""
Archive Interfaces Package

Exposes abstract interfaces for the transport and the notifier.
"""

from archive.interfaces.notifier_interface import NotifierInterface
from archive.interfaces.transport_interface import (
    TransportError,
    TransportInterface,
    TransportResult,
)

# Public API (sorted alphabetically)
__all__ = [
    "NotifierInterface",
    "TransportError",
    "TransportInterface",
    "TransportResult",
]
