"""Background event loop hosting the digest service and its scheduler."""

import asyncio
import logging
import threading
from concurrent.futures import Future
from typing import Any, Coroutine, Optional, TypeVar

from .service import DigestService

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BotRuntime:
    """Runs one asyncio loop in a daemon thread.

    Web request threads never touch bot state directly; they submit
    coroutines here so every mutation happens on the loop thread.
    """

    def __init__(self, service: DigestService):
        self.service = service
        self.loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread is not None:
            return
        self.loop = asyncio.new_event_loop()
        self._thread = threading.Thread(
            target=self._run_loop, name="prdigest-loop", daemon=True
        )
        self._thread.start()
        self.call(self._startup())
        logger.info("Bot runtime started")

    def stop(self) -> None:
        if self.loop is None or self._thread is None:
            return
        self.call(self._shutdown())
        self.loop.call_soon_threadsafe(self.loop.stop)
        self._thread.join(timeout=5)
        self.loop.close()
        self.loop = None
        self._thread = None
        logger.info("Bot runtime stopped")

    def submit(self, coro: Coroutine[Any, Any, T]) -> "Future[T]":
        """Schedule ``coro`` on the loop and return a concurrent future."""
        if self.loop is None:
            coro.close()
            raise RuntimeError("Bot runtime is not running")
        return asyncio.run_coroutine_threadsafe(coro, self.loop)

    def call(self, coro: Coroutine[Any, Any, T], timeout: Optional[float] = 30) -> T:
        """Run ``coro`` on the loop and wait for its result."""
        return self.submit(coro).result(timeout=timeout)

    def _run_loop(self) -> None:
        assert self.loop is not None
        asyncio.set_event_loop(self.loop)
        self.loop.run_forever()

    async def _startup(self) -> None:
        self.service.start()

    async def _shutdown(self) -> None:
        self.service.shutdown()
