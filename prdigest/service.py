"""Digest subscriptions: validation, persistence, scheduling and resubscription."""

import logging
from typing import Dict, List, Optional

from .digest import DigestProducer, DigestResult, fetch_failed
from .directory import Directory
from .errors import AuthorizationError
from .events import DigestReady, EventBus
from .models import DigestRequest
from .recurrence import RecurrenceSpec
from .rooms import RoomTracker
from .scheduler import SchedulerEngine
from .subscriptions import SubscriptionStore

logger = logging.getLogger(__name__)


class DigestService:
    """Owns all bot state for one process.

    Every method runs on the event loop thread; the store, the id counter and
    the room set are only touched between awaits, so none of them need locks.
    """

    def __init__(
        self,
        store: SubscriptionStore,
        engine: SchedulerEngine,
        producer: DigestProducer,
        directory: Directory,
        rooms: Optional[RoomTracker] = None,
        bus: Optional[EventBus] = None,
    ):
        self.store = store
        self.engine = engine
        self.producer = producer
        self.directory = directory
        self.rooms = rooms or RoomTracker()
        self.bus = bus or EventBus()

    @property
    def default_frequency(self) -> RecurrenceSpec:
        return self.engine.default_frequency

    def start(self) -> None:
        """Load subscriptions and arm those whose rooms are already reachable."""
        requests = self.store.load()
        armed = sum(self.resubscribe(room) for room in list(self.rooms))
        self.engine.start()
        paused = sum(1 for request in requests if not request.is_active)
        logger.info(
            f"Digest service started: {armed} scheduled, {paused} waiting for "
            "room activity"
        )

    def shutdown(self) -> None:
        self.engine.shutdown()

    def observe_activity(self, room: str) -> int:
        """Note a message in ``room``; the first one arms its paused subscriptions."""
        if not self.rooms.observe(room):
            return 0
        return self.resubscribe(room)

    def resubscribe(self, room: str) -> int:
        armed = 0
        for request in self.store.for_room(room):
            if request.scheduled_job is None:
                self._arm(request)
                armed += 1
        if armed:
            logger.info(f"Resubscribed {armed} digests in room {room}")
        return armed

    async def build_request(
        self,
        user: Optional[str] = None,
        team: Optional[str] = None,
        organization: Optional[str] = None,
        schedule: Optional[str] = None,
    ) -> DigestRequest:
        """Validate command filters into an unsaved request.

        Raises ValidationError (or ScheduleSyntaxError) before anything is stored.
        """
        frequency = RecurrenceSpec.parse(schedule) if schedule is not None else None

        await self.directory.ensure_loaded()
        org_ref = self.directory.resolve_organization(organization) if organization else None
        team_ref = self.directory.resolve_team(team, org_ref) if team else None
        user_ref = await self.directory.resolve_user(user, org_ref) if user else None

        request = DigestRequest.create(user_ref, team_ref, org_ref)
        request.schedule_frequency = frequency
        return request

    def subscribe(
        self, request: DigestRequest, room: str, requested_by: Optional[str]
    ) -> DigestRequest:
        """Store a validated request and schedule it if its room is reachable."""
        request.id = self.store.next_id()
        request.room = room
        request.requested_by = requested_by
        self.store.add(request)
        if self.rooms.is_reachable(room):
            self._arm(request)
        logger.info(
            f"{requested_by} subscribed {room} to #{request.id}: "
            f"{request.describe(default_frequency=self.default_frequency)}"
        )
        return request

    def unsubscribe(self, room: str, request_id: int) -> DigestRequest:
        """Cancel and delete a subscription owned by ``room``."""
        request = self.store.get(request_id)
        if request.room != room:
            raise AuthorizationError(
                f"Subscription #{request_id} belongs to another room"
            )
        if request.scheduled_job is not None:
            self.engine.disarm(request)
        self.store.remove(request_id)
        logger.info(f"Unsubscribed #{request_id} from {room}")
        return request

    def list_room(self, room: str) -> List[DigestRequest]:
        return self.store.for_room(room)

    def list_all(self) -> List[DigestRequest]:
        return list(self.store.load())

    def status(self) -> Dict[str, int]:
        """Counts reported by the health endpoint."""
        requests = self.store.load()
        return {
            "subscriptions": len(requests),
            "active": sum(1 for request in requests if request.is_active),
            "reachable_rooms": len(self.rooms),
        }

    async def run_once(self, request: DigestRequest) -> DigestResult:
        return await self.producer.produce(request)

    def describe(self, request: DigestRequest, omit_default: bool = False) -> str:
        return request.describe(omit_default, default_frequency=self.default_frequency)

    def _arm(self, request: DigestRequest) -> None:
        self.engine.arm(request, lambda: self._fire(request))

    async def _fire(self, request: DigestRequest) -> None:
        """One scheduled run; nothing raised here reaches the scheduler."""
        logger.info(f"Running scheduled digest #{request.id} for {request.room}")
        try:
            result = await self.producer.produce(request)
        except Exception as e:
            logger.error(f"Scheduled digest #{request.id} failed: {e!r}")
            result = DigestResult(fetch_failed(request, e), is_error=True)

        await self.bus.publish(
            DigestReady(
                room=request.room or "",
                text=result.text,
                request_id=request.id,
                is_error=result.is_error,
            )
        )
