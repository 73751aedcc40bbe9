"""Persistent subscription store and id counter."""

import logging
from typing import Any, List, Optional, Protocol

import pydantic

from .errors import NotFoundError, ScheduleSyntaxError
from .models import DigestRequest

logger = logging.getLogger(__name__)

SUBSCRIPTIONS_KEY = "prdigest.subscriptions"
NEXT_ID_KEY = "prdigest.next_id"


class KeyValueBackend(Protocol):
    def get(self, key: str) -> Optional[Any]: ...

    def set(self, key: str, value: Any) -> None: ...


class SubscriptionStore:
    """Ordered collection of digest requests backed by a key-value store.

    There is exactly one live list per store instance; ``load`` always returns
    it, so jobs attached to requests survive repeated loads. Every mutation is
    written through before the method returns.
    """

    def __init__(self, backend: KeyValueBackend):
        self.backend = backend
        self._requests: Optional[List[DigestRequest]] = None
        # Records that failed validation are kept verbatim so a write does not
        # silently drop them.
        self._unreadable: List[Any] = []

    def load(self) -> List[DigestRequest]:
        if self._requests is not None:
            return self._requests

        raw = self.backend.get(SUBSCRIPTIONS_KEY)
        if raw is None:
            self._requests = []
            self._save()
            return self._requests

        requests: List[DigestRequest] = []
        for item in raw:
            try:
                requests.append(DigestRequest.rehydrate(item))
            except (pydantic.ValidationError, ScheduleSyntaxError) as e:
                logger.error(f"Skipping unreadable subscription record {item!r}: {e}")
                self._unreadable.append(item)

        self._requests = requests
        logger.info(f"Loaded {len(requests)} subscriptions")
        return self._requests

    def add(self, request: DigestRequest) -> None:
        requests = self.load()
        if any(existing.id == request.id for existing in requests):
            raise ValueError(f"Subscription #{request.id} is already stored")
        requests.append(request)
        self._save()

    def remove(self, request_id: int) -> DigestRequest:
        requests = self.load()
        for index, request in enumerate(requests):
            if request.id == request_id:
                del requests[index]
                self._save()
                return request
        raise NotFoundError(f"No subscription with id {request_id}")

    def get(self, request_id: int) -> DigestRequest:
        for request in self.load():
            if request.id == request_id:
                return request
        raise NotFoundError(f"No subscription with id {request_id}")

    def for_room(self, room: str) -> List[DigestRequest]:
        return [request for request in self.load() if request.room == room]

    def next_id(self) -> int:
        """Allocate the next request id.

        The counter is persisted before the id is handed out and nothing here
        awaits, so concurrent callers on one event loop never share an id.
        """
        current = self.backend.get(NEXT_ID_KEY) or 0
        allocated = int(current) + 1
        self.backend.set(NEXT_ID_KEY, allocated)
        return allocated

    def _save(self) -> None:
        records = [
            request.to_record().model_dump(mode="json")
            for request in self._requests or []
        ]
        self.backend.set(SUBSCRIPTIONS_KEY, records + self._unreadable)
