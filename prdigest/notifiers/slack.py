"""Slack notifier implementation."""

import logging
from typing import Any, Dict, Optional

import requests

from .base import NotificationError

logger = logging.getLogger(__name__)

POST_MESSAGE_URL = "https://slack.com/api/chat.postMessage"


class SlackNotifier:
    """Posts messages to Slack channels with a bot token."""

    def __init__(self, bot_token: str, username: Optional[str] = None):
        """Initialize Slack notifier.

        Args:
            bot_token: Slack bot token (xoxb-...)
            username: Optional display name override
        """
        self.bot_token = bot_token
        self.username = username

    def send(self, room: str, text: str) -> None:
        """Send message to a Slack channel.

        Args:
            room: Slack channel ID
            text: Message text to send

        Raises:
            NotificationError: If the message fails to send
        """
        payload: Dict[str, Any] = {
            "channel": room,
            "text": text,
            "unfurl_links": False,
            "unfurl_media": False,
        }
        if self.username:
            payload["username"] = self.username

        try:
            response = requests.post(
                POST_MESSAGE_URL,
                json=payload,
                timeout=30,
                headers={
                    "Authorization": f"Bearer {self.bot_token}",
                    "Content-Type": "application/json",
                },
            )
            response.raise_for_status()
            result = response.json()
        except ValueError as e:
            raise NotificationError("Slack returned an invalid response") from e
        except requests.exceptions.RequestException as e:
            logger.error(f"Failed to send Slack message to {room}: {e}")
            raise NotificationError(f"Slack notification failed: {e}") from e

        if not isinstance(result, dict) or not result.get("ok"):
            error = result.get("error") if isinstance(result, dict) else result
            raise NotificationError(f"Slack API returned: {error}")

        logger.info(f"Successfully sent Slack message to {room}")
