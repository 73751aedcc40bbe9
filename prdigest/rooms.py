"""Tracks which chat rooms the bot can post to."""

import logging
from typing import Iterator, Set

logger = logging.getLogger(__name__)


class RoomTracker:
    """Rooms seen since the process started.

    A room becomes reachable on its first observed message and stays reachable
    until restart.
    """

    def __init__(self) -> None:
        self._reachable: Set[str] = set()

    def observe(self, room: str) -> bool:
        """Record activity in ``room``; True only the first time it is seen."""
        if not room or room in self._reachable:
            return False
        self._reachable.add(room)
        logger.info(f"Room {room} is now reachable")
        return True

    def is_reachable(self, room: str) -> bool:
        return room in self._reachable

    def __contains__(self, room: object) -> bool:
        return room in self._reachable

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._reachable))

    def __len__(self) -> int:
        return len(self._reachable)
