"""Digest-ready events passed from the scheduler to delivery."""

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DigestReady:
    """A rendered digest (or its failure message) addressed to a room."""

    room: str
    text: str
    request_id: Optional[int] = None
    is_error: bool = False


Listener = Callable[[DigestReady], Union[None, Awaitable[None]]]


class EventBus:
    """Fan-out of DigestReady events to registered listeners.

    A failing listener is logged and does not stop the others.
    """

    def __init__(self) -> None:
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    async def publish(self, event: DigestReady) -> None:
        for listener in list(self._listeners):
            try:
                result: Any = listener(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(
                    f"Digest listener failed for room {event.room} "
                    f"(request #{event.request_id}): {e}"
                )
