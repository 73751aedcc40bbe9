"""Consumes digest-ready events and posts them to their rooms."""

import asyncio
import logging

from ..events import DigestReady
from .base import NotificationError, Notifier

logger = logging.getLogger(__name__)


class DigestDelivery:
    """Event listener that hands each digest to a notifier.

    Delivery is fire-and-forget: failures are logged, never raised back into
    the scheduler.
    """

    def __init__(self, notifier: Notifier, dry_run: bool = False):
        self.notifier = notifier
        self.dry_run = dry_run

    async def __call__(self, event: DigestReady) -> None:
        if self.dry_run:
            logger.info(f"DRY RUN - would post to {event.room}:\n{event.text}")
            return

        try:
            await asyncio.to_thread(self.notifier.send, event.room, event.text)
        except NotificationError as e:
            logger.error(
                f"Failed to deliver digest #{event.request_id} to {event.room}: {e}"
            )
