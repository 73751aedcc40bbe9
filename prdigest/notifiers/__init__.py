"""Notification system for the PR digest bot."""

from .base import NotificationError, Notifier
from .delivery import DigestDelivery
from .slack import SlackNotifier

__all__ = ["DigestDelivery", "NotificationError", "Notifier", "SlackNotifier"]
