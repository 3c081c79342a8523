"""Event source contract and an in-process queue implementation."""
import asyncio
from collections.abc import Awaitable, Callable
from typing import Protocol

import structlog

from indexer.events.types import ChangeEvent

logger = structlog.get_logger()

EventHandler = Callable[[ChangeEvent], Awaitable[None]]


class EventSource(Protocol):
    """Delivers change events to a handler one at a time.

    The handler signals failure by raising; the source decides whether the
    event is redelivered or set aside. close() stops delivery after the
    event in flight, if any, has been handled.
    """

    async def consume(self, handler: EventHandler) -> None:
        """Deliver events to handler until closed."""
        ...

    async def close(self) -> None:
        """Stop delivering and release the subscription."""
        ...


class QueueEventSource:
    """Asyncio queue-backed event source for in-process producers.

    Used when the indexer is embedded in an application that produces
    change events itself rather than reading them from a broker.

    Events that fail handling are not redelivered; they are logged and
    kept in dead_letters.

    Attributes:
        queue_size: Maximum number of pending events.
        poll_interval: Seconds between checks for close while idle.
    """

    def __init__(self, queue_size: int = 100, poll_interval: float = 0.5) -> None:
        """Initialize queue event source.

        Args:
            queue_size: Maximum pending events before publish waits.
            poll_interval: Seconds between checks for close while idle.
        """
        self._queue: asyncio.Queue[ChangeEvent] = asyncio.Queue(maxsize=queue_size)
        self._poll_interval = poll_interval
        self._closed = False
        self._idle = asyncio.Event()
        self._idle.set()
        self._delivered_count = 0
        self._dead_letters: list[ChangeEvent] = []

    @property
    def delivered_events(self) -> int:
        """Number of events handled successfully."""
        return self._delivered_count

    @property
    def dead_letters(self) -> list[ChangeEvent]:
        """Events whose handling raised."""
        return list(self._dead_letters)

    async def publish(self, event: ChangeEvent) -> None:
        """Enqueue an event, waiting if the queue is full.

        Raises:
            RuntimeError: If the source has been closed.
        """
        if self._closed:
            raise RuntimeError("Event source is closed")
        await self._queue.put(event)

    async def join(self) -> None:
        """Wait until every published event has been handled."""
        await self._queue.join()

    async def consume(self, handler: EventHandler) -> None:
        """Deliver queued events to handler until closed.

        Args:
            handler: Coroutine function called once per event.
        """
        self._idle.clear()
        logger.info("queue_source_started")
        try:
            while not self._closed:
                try:
                    event = await asyncio.wait_for(self._queue.get(), timeout=self._poll_interval)
                except TimeoutError:
                    continue

                try:
                    await handler(event)
                    self._delivered_count += 1
                except Exception:
                    logger.exception("event_handling_failed", uri=event.resource_uri)
                    self._dead_letters.append(event)
                finally:
                    self._queue.task_done()
        finally:
            self._idle.set()
            logger.info("queue_source_stopped", delivered=self._delivered_count)

    async def close(self) -> None:
        """Stop consuming once the event in flight has been handled."""
        self._closed = True
        await self._idle.wait()
