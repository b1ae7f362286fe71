"""
Notifier Interface

Abstract interface for the human-readable session notifications.
"""

from abc import ABC, abstractmethod


class NotifierInterface(ABC):
    """
    Abstract base class for notification senders.

    Delivery is best effort: implementations log failures and return
    False, they never raise.
    """

    @abstractmethod
    def send(self, title: str, message: str) -> bool:
        """
        Send a notification.

        Args:
            title: Short title
            message: Body text

        Returns:
            True if the message was handed off
        """
