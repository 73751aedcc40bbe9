"""Base notifier interface."""

from typing import Protocol


class Notifier(Protocol):
    """Protocol for services that post text into a chat room."""

    def send(self, room: str, text: str) -> None:
        """Post a message to a room.

        Args:
            room: Chat room (channel) identifier
            text: The message text to send

        Raises:
            NotificationError: If the message fails to send
        """
        ...


class NotificationError(Exception):
    """Raised when a notification fails to send."""
    pass
