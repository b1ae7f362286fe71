"""
Single Instance Lock

Process-wide exclusive lock so only one archiver runs at a time.
A second invocation gets ALREADY_RUNNING immediately instead of blocking.
"""

import fcntl
import logging
import os
from enum import Enum
from pathlib import Path
from typing import Optional


class LockResult(Enum):
    """Outcome of trying to take the instance lock"""

    ACQUIRED = "acquired"
    ALREADY_RUNNING = "already_running"


class InstanceLock:
    """
    Advisory flock(2) on a lock file.

    The kernel releases the lock when the process dies, so a crash or
    power loss never leaves a stale lock behind.

    Usage:
        lock = InstanceLock(Path("/tmp/clip_archiver.lock"))
        if lock.acquire() is LockResult.ALREADY_RUNNING:
            sys.exit(EXIT_ALREADY_RUNNING)
    """

    def __init__(self, path: Path, logger: Optional[logging.Logger] = None):
        self.path = Path(path)
        self.logger = logger or logging.getLogger(__name__)
        self._fd: Optional[int] = None

    def acquire(self) -> LockResult:
        """
        Try to take the lock without blocking.

        Returns:
            LockResult.ACQUIRED or LockResult.ALREADY_RUNNING
        """
        if self._fd is not None:
            return LockResult.ACQUIRED

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.path, os.O_RDWR | os.O_CREAT, 0o644)
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            os.close(fd)
            self.logger.warning(f"Another instance holds {self.path}")
            return LockResult.ALREADY_RUNNING

        # Record our PID for humans; the lock itself is the flock
        os.ftruncate(fd, 0)
        os.write(fd, f"{os.getpid()}\n".encode())
        self._fd = fd
        self.logger.debug(f"Instance lock acquired: {self.path}")
        return LockResult.ACQUIRED

    def release(self) -> None:
        """Release the lock if held"""
        if self._fd is None:
            return
        try:
            fcntl.flock(self._fd, fcntl.LOCK_UN)
        finally:
            os.close(self._fd)
            self._fd = None
        self.logger.debug(f"Instance lock released: {self.path}")

    def __enter__(self) -> LockResult:
        return self.acquire()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
