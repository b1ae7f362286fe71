"""
Mock Notifier Implementation

Records notifications instead of sending them.
"""

import logging
from typing import List, Tuple

from archive.interfaces.notifier_interface import NotifierInterface


class MockNotifier(NotifierInterface):
    """Mock notifier for testing and --mock runs"""

    def __init__(self, fail: bool = False):
        self.logger = logging.getLogger(__name__)
        self.fail = fail
        self.messages: List[Tuple[str, str]] = []

    def send(self, title: str, message: str) -> bool:
        self.messages.append((title, message))
        self.logger.info(f"[MOCK] Notification: {title}: {message}")
        return not self.fail
