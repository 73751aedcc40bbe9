"""Slack integration: request verification, message events and command replies."""

import asyncio
import hashlib
import hmac
import logging
import re
import time
from concurrent.futures import Future
from typing import Any, Dict, Optional

from .commands import CommandRouter
from .config import settings
from .notifiers.base import NotificationError, Notifier
from .runtime import BotRuntime

logger = logging.getLogger(__name__)

MENTION_PATTERN = re.compile(r"^\s*<@[A-Z0-9]+>[:,]?\s*")


class SlackApp:
    """Turns Slack message events into room activity and command replies."""

    def __init__(
        self,
        runtime: BotRuntime,
        router: CommandRouter,
        notifier: Notifier,
        signing_secret: Optional[str] = None,
    ):
        self.runtime = runtime
        self.router = router
        self.notifier = notifier
        self.signing_secret = signing_secret

    def verify_slack_request(self, headers: Dict[str, str], body: str) -> bool:
        """Verify that request came from Slack with proper signature validation."""
        if not self.signing_secret:
            # In production, this should be an error
            if settings.is_production():
                logger.error("SLACK_SIGNING_SECRET not set in production!")
                return False
            else:
                logger.warning(
                    "SLACK_SIGNING_SECRET not set, skipping verification (dev mode)"
                )
                return True

        timestamp = headers.get("X-Slack-Request-Timestamp", "")
        signature = headers.get("X-Slack-Signature", "")

        if not timestamp or not signature:
            logger.warning("Missing Slack signature headers")
            return False

        try:
            # Check timestamp is recent (within 5 minutes)
            request_timestamp = int(timestamp)
            if abs(time.time() - request_timestamp) > 300:
                logger.warning("Slack request timestamp too old")
                return False
        except ValueError:
            logger.warning("Invalid Slack request timestamp")
            return False

        sig_basestring = f"v0:{timestamp}:{body}"
        expected_signature = (
            "v0="
            + hmac.new(
                self.signing_secret.encode(),
                sig_basestring.encode(),
                hashlib.sha256,
            ).hexdigest()
        )

        is_valid = hmac.compare_digest(expected_signature, signature)
        if not is_valid:
            logger.warning("Invalid Slack request signature")

        return is_valid

    def handle_message_event(self, event_data: Dict[str, Any]) -> Optional[Future]:
        """Queue a message event on the bot loop.

        Returns the future of the queued work, or None for events that are
        ignored (bot messages, edits, events without a channel).
        """
        if event_data.get("type") not in ("message", "app_mention"):
            return None
        if event_data.get("bot_id") or event_data.get("subtype"):
            return None

        room = event_data.get("channel", "")
        if not room:
            return None

        user = event_data.get("user")
        text = self._normalize_text(event_data.get("text", ""))
        future = self.runtime.submit(self._on_message(room, user, text))
        future.add_done_callback(lambda done: self._log_failure(room, done))
        return future

    def _log_failure(self, room: str, future: Future) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.error(f"Error handling message in {room}: {error!r}")

    def _normalize_text(self, text: str) -> str:
        """Treat a leading @-mention of the bot as its command name."""
        stripped, mentioned = MENTION_PATTERN.subn("", text, count=1)
        if mentioned:
            return f"{self.router.bot_name} {stripped}"
        return text

    async def _on_message(self, room: str, user: Optional[str], text: str) -> Optional[str]:
        self.router.service.observe_activity(room)
        reply = await self.router.handle(room, user, text)
        if reply:
            try:
                await asyncio.to_thread(self.notifier.send, room, reply)
            except NotificationError as e:
                logger.error(f"Failed to reply in {room}: {e}")
        return reply
