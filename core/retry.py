"""
Retry Executor

Bounded, fixed-delay retry used by every fragile operation (mounting,
reachability checks) so they all share the same semantics.

The delay never grows. Exhaustion is reported, never raised: the caller
decides whether giving up is fatal.
"""

import logging
import time
from typing import Callable, Optional

DEFAULT_MAX_ATTEMPTS = 10
DEFAULT_DELAY_SECONDS = 1.0


def retry(
    operation: Callable[[], bool],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    delay: float = DEFAULT_DELAY_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
    logger: Optional[logging.Logger] = None,
    description: str = "",
) -> bool:
    """
    Run operation until it succeeds or max_attempts consecutive failures.

    A falsy return value or an exception both count as a failure.

    Args:
        operation: Callable returning True on success
        max_attempts: Total attempts before giving up (at least 1)
        delay: Fixed pause between attempts, in seconds
        sleep: Sleep function (injected by tests)
        logger: Logger for retry messages
        description: Name of the operation for log messages

    Returns:
        True on success, False when attempts are exhausted

    Example:
        if not retry(lambda: mounts.ensure_mounted(cam)):
            logger.error("Could not mount cam")
    """
    logger = logger or logging.getLogger(__name__)
    name = description or getattr(operation, "__name__", "operation")
    attempts = max(1, int(max_attempts))

    for attempt in range(1, attempts + 1):
        try:
            if operation():
                if attempt > 1:
                    logger.info(f"{name} succeeded on attempt {attempt}")
                return True
        except Exception as e:
            logger.warning(f"{name} raised on attempt {attempt}: {e}")

        if attempt < attempts:
            logger.debug(f"{name} failed (attempt {attempt}/{attempts}), retrying")
            sleep(delay)

    logger.warning(f"{name}: attempts exhausted ({attempts})")
    return False


class Retrier:
    """
    Retry executor bound to the configured attempt count and delay.

    Usage:
        retrier = Retrier(max_attempts=config.retry_attempts,
                          delay=config.retry_delay_seconds)
        retrier.run(probe.is_reachable, "reachability probe")
    """

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        delay: float = DEFAULT_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
        logger: Optional[logging.Logger] = None,
    ):
        self.max_attempts = max_attempts
        self.delay = delay
        self.sleep = sleep
        self.logger = logger or logging.getLogger(__name__)

    @classmethod
    def from_config(cls, config, sleep: Callable[[float], None] = time.sleep):
        """Build from an ArchiveConfig"""
        return cls(
            max_attempts=config.retry_attempts,
            delay=config.retry_delay_seconds,
            sleep=sleep,
        )

    def run(self, operation: Callable[[], bool], description: str = "") -> bool:
        """Retry operation with the bound settings"""
        return retry(
            operation,
            max_attempts=self.max_attempts,
            delay=self.delay,
            sleep=self.sleep,
            logger=self.logger,
            description=description,
        )
