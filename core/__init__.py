"""
Core utilities and modules.

Public API:
    - retry / Retrier: Fixed-delay retry of a boolean operation
    - SessionStateMachine: Archive session state tracking
    - InstanceLock / LockResult: Single-instance guard

Usage:
    from core.retry import Retrier

    retrier = Retrier(max_attempts=10, delay=1.0)
    if retrier.run(lambda: mounts.ensure_mounted(cam), "mount cam"):
        print("Mounted")
"""

from core.instance_lock import InstanceLock, LockResult
from core.retry import Retrier, retry
from core.state_machine import SessionStateMachine

__all__ = [
    "InstanceLock",
    "LockResult",
    "Retrier",
    "SessionStateMachine",
    "retry",
]
