"""Redis list-backed event source with redelivery and dead-lettering.

Producers LPUSH notification JSON onto the queue list. Each message is
moved atomically onto a processing list while it is handled and removed
from there once handled, so a crash leaves it recoverable on the next
start. Failed messages are pushed back onto the queue until they have
been attempted max_deliveries times, then parked on a dead-letter list.
"""

import asyncio

import redis.asyncio as redis
import structlog

from indexer.errors import MessageDecodeError
from indexer.events.decoder import decode_message
from indexer.events.source import EventHandler

logger = structlog.get_logger()


class RedisEventSource:
    """Reliable-queue consumer of repository notifications.

    Attributes:
        queue: Name of the list messages are consumed from.
        processing_key: List holding messages being handled.
        dead_key: List holding messages that will not be retried.
        deliveries_key: Hash of delivery attempts per message.
    """

    def __init__(
        self,
        client: redis.Redis,
        queue: str,
        max_deliveries: int = 5,
        poll_timeout: float = 1.0,
        owns_client: bool = False,
    ) -> None:
        """Initialize Redis event source.

        Args:
            client: Redis client created with decode_responses=True.
            queue: Queue list name.
            max_deliveries: Attempts before a message is dead-lettered.
            poll_timeout: Seconds a blocking pop waits before rechecking close.
            owns_client: Close the client when the source is closed.
        """
        if max_deliveries < 1:
            raise ValueError("max_deliveries must be at least 1")

        self._client = client
        self.queue = queue
        self.processing_key = f"{queue}:processing"
        self.dead_key = f"{queue}:dead"
        self.deliveries_key = f"{queue}:deliveries"
        self._max_deliveries = max_deliveries
        self._poll_timeout = poll_timeout
        self._owns_client = owns_client
        self._closed = False
        self._client_closed = False
        self._idle = asyncio.Event()
        self._idle.set()

    @classmethod
    def from_url(
        cls,
        url: str,
        queue: str,
        max_deliveries: int = 5,
        poll_timeout: float = 1.0,
    ) -> "RedisEventSource":
        """Create a source with its own connection pool.

        Args:
            url: Redis URL, e.g. redis://localhost:6379/0.
            queue: Queue list name.
            max_deliveries: Attempts before a message is dead-lettered.
            poll_timeout: Seconds a blocking pop waits before rechecking close.

        Returns:
            Source that closes its client on close().
        """
        client = redis.Redis.from_url(url, decode_responses=True, socket_connect_timeout=5)
        return cls(
            client,
            queue,
            max_deliveries=max_deliveries,
            poll_timeout=poll_timeout,
            owns_client=True,
        )

    async def recover(self) -> int:
        """Return messages abandoned in the processing list to the queue.

        Returns:
            Number of messages recovered.
        """
        count = 0
        while await self._client.lmove(self.processing_key, self.queue, "LEFT", "RIGHT"):
            count += 1
        if count:
            logger.warning("redis_source_recovered", queue=self.queue, count=count)
        return count

    async def consume(self, handler: EventHandler) -> None:
        """Deliver queued notifications to handler until closed.

        Args:
            handler: Coroutine function called once per decoded event.
        """
        self._idle.clear()
        try:
            await self.recover()
            logger.info("redis_source_started", queue=self.queue)

            while not self._closed:
                raw = await self._client.blmove(
                    self.queue,
                    self.processing_key,
                    self._poll_timeout,
                    "RIGHT",
                    "LEFT",
                )
                if raw is None:
                    continue
                await self._deliver(handler, raw)
        finally:
            self._idle.set()
            logger.info("redis_source_stopped", queue=self.queue)

    async def _deliver(self, handler: EventHandler, raw: str) -> None:
        """Decode and handle one message, then ack, retry or dead-letter it."""
        try:
            event = decode_message(raw)
        except MessageDecodeError as e:
            logger.warning("message_undecodable", queue=self.queue, error=str(e))
            await self._dead_letter(raw)
            return

        try:
            await handler(event)
        except Exception:
            logger.exception("event_handling_failed", uri=event.resource_uri)
            await self._retry(raw)
            return

        await self._ack(raw)

    async def _ack(self, raw: str) -> None:
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.lrem(self.processing_key, 1, raw)
            pipe.hdel(self.deliveries_key, raw)
            await pipe.execute()

    async def _retry(self, raw: str) -> None:
        attempts = await self._client.hincrby(self.deliveries_key, raw, 1)
        if attempts >= self._max_deliveries:
            logger.error("message_dead_lettered", queue=self.queue, attempts=attempts)
            await self._dead_letter(raw)
            return

        async with self._client.pipeline(transaction=True) as pipe:
            pipe.lrem(self.processing_key, 1, raw)
            pipe.lpush(self.queue, raw)
            await pipe.execute()
        logger.info("message_requeued", queue=self.queue, attempts=attempts)

    async def _dead_letter(self, raw: str) -> None:
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.lrem(self.processing_key, 1, raw)
            pipe.lpush(self.dead_key, raw)
            pipe.hdel(self.deliveries_key, raw)
            await pipe.execute()

    async def close(self) -> None:
        """Stop consuming and release the connection pool if owned."""
        self._closed = True
        await self._idle.wait()

        if self._owns_client and not self._client_closed:
            self._client_closed = True
            await self._client.aclose()
