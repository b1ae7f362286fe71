"""
Archive Module

Moves new clips from the capture filesystem to the remote archive.

Architecture mirrors the device and storage modules:
- interfaces/: Transport and notifier contracts
- implementations/: External-command and mock implementations
- controllers/: Archive session orchestration

Public API:
    - ArchiveFactory: Factory for transport, notifier and session
    - ArchiveSessionController: Runs one archive session
    - TransportInterface: Transport contract
    - NotifierInterface: Notification contract

Usage:
    from archive import ArchiveFactory

    session = ArchiveFactory.create_session(config, runner, mounts)
    outcome = session.run(config.cam_mount_point)
"""

from archive.controllers.session_controller import ArchiveSessionController
from archive.factory import ArchiveFactory
from archive.interfaces.notifier_interface import NotifierInterface
from archive.interfaces.transport_interface import (
    TransportError,
    TransportInterface,
    TransportResult,
)

__all__ = [
    "ArchiveFactory",
    "ArchiveSessionController",
    "NotifierInterface",
    "TransportError",
    "TransportInterface",
    "TransportResult",
]
