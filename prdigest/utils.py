"""Utility functions for the PR digest bot."""

from datetime import datetime, timedelta, timezone
from typing import Optional

STALE_AFTER = timedelta(hours=24)


def format_age(delta: timedelta) -> str:
    """Format an elapsed time the way people say it.

    Rules:
    - under 45 seconds → a few seconds ago
    - under 90 seconds → a minute ago
    - under 45 minutes → N minutes ago
    - under 90 minutes → an hour ago
    - under 22 hours → N hours ago
    - under 36 hours → a day ago
    - under 26 days → N days ago
    - under 45 days → a month ago
    - under 320 days → N months ago
    - otherwise → a year ago / N years ago
    """
    seconds = max(delta.total_seconds(), 0)
    minutes = seconds / 60
    hours = minutes / 60
    days = hours / 24

    if seconds < 45:
        return "a few seconds ago"
    if seconds < 90:
        return "a minute ago"
    if minutes < 45:
        return f"{round(minutes)} minutes ago"
    if minutes < 90:
        return "an hour ago"
    if hours < 22:
        return f"{round(hours)} hours ago"
    if hours < 36:
        return "a day ago"
    if days < 26:
        return f"{round(days)} days ago"
    if days < 45:
        return "a month ago"
    if days < 320:
        return f"{round(days / 30)} months ago"
    if days < 548:
        return "a year ago"
    return f"{round(days / 365)} years ago"


def is_stale(updated_at: datetime, now: Optional[datetime] = None) -> bool:
    """True when ``updated_at`` is more than 24 hours before ``now``."""
    now = now or datetime.now(timezone.utc)
    if updated_at.tzinfo is None:
        updated_at = updated_at.replace(tzinfo=timezone.utc)
    return now - updated_at > STALE_AFTER
