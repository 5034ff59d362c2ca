"""
Protocol definition for notification backends.

Defines the common interface that all notifiers must implement.
"""

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from rss_webhook.models import Announcement


class NotificationError(Exception):
    """Raised when a notification batch could not be delivered."""

    pass


@runtime_checkable
class Notifier(Protocol):
    """
    Protocol defining the interface for notification backends.

    The @runtime_checkable decorator allows using isinstance() checks
    against this protocol for structural typing validation.
    """

    async def send_batch(
        self,
        announcements: Sequence[Announcement],
        feed_title: str,
        color: int,
    ) -> None:
        """
        Send a batch of announcements as one notification.

        Parameters
        ----------
        announcements : Sequence[Announcement]
            Sanitized items, in delivery order.
        feed_title : str
            Title of the source feed, used for attribution.
        color : int
            Display color for the notification cards.

        Raises
        ------
        NotificationError
            If the batch was not accepted by the backend.
        """
        ...

    async def close(self) -> None:
        """
        Close the notifier and release any resources.

        This method should be called when shutting down the application
        to cleanly close connections and free resources.
        """
        ...
