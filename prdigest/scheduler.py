"""Binds digest requests to live APScheduler jobs."""

import inspect
import logging
from typing import Any, Callable, Optional

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from .errors import SchedulerError
from .models import DigestRequest
from .recurrence import RecurrenceSpec

logger = logging.getLogger(__name__)

FireCallback = Callable[[], Any]


class SchedulerEngine:
    """Creates and cancels the scheduled job of each digest request.

    The job handle lives on ``request.scheduled_job``; a request with a handle
    is armed. Specs reaching this class have already been validated.
    """

    def __init__(
        self,
        default_frequency: Optional[RecurrenceSpec] = None,
        timezone: Optional[str] = None,
        scheduler: Optional[AsyncIOScheduler] = None,
    ):
        self.default_frequency = default_frequency or RecurrenceSpec.default()
        self.timezone = timezone
        self.scheduler = scheduler or AsyncIOScheduler(timezone=timezone or "UTC")

    def start(self) -> None:
        """Start firing jobs; must be called from the running event loop."""
        if not self.scheduler.running:
            self.scheduler.start()
            logger.info("Scheduler started")

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")

    def arm(self, request: DigestRequest, on_fire: FireCallback) -> Any:
        """Schedule ``on_fire`` on the request's effective frequency."""
        if request.scheduled_job is not None:
            raise SchedulerError(f"Subscription #{request.id} is already scheduled")

        frequency = request.effective_frequency(self.default_frequency)

        async def fire() -> None:
            result = on_fire()
            if inspect.isawaitable(result):
                await result

        job = self.scheduler.add_job(
            fire,
            trigger=frequency.to_trigger(self.timezone),
            id=f"digest-{request.id}",
            name=f"PR digest #{request.id} for {request.room}",
            coalesce=True,
            max_instances=1,
        )
        request.scheduled_job = job
        logger.info(
            f"Scheduled digest #{request.id} for {request.room} ({frequency.render()})"
        )
        return job

    def disarm(self, request: DigestRequest) -> None:
        """Cancel the request's job so it never fires again."""
        job = request.scheduled_job
        if job is None:
            raise SchedulerError(f"Subscription #{request.id} has no scheduled job")

        request.scheduled_job = None
        try:
            job.remove()
        except JobLookupError:
            logger.warning(f"Job for digest #{request.id} was already gone")
        logger.info(f"Cancelled digest #{request.id}")
