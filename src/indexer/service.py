"""Synchronization service wiring the event source to the index."""
import asyncio
from enum import Enum
from types import TracebackType

import httpx
import structlog

from indexer.config import Settings
from indexer.events.router import EventRouter
from indexer.events.source import EventSource
from indexer.events.types import ChangeEvent
from indexer.repository.gateway import ResourceGateway
from indexer.search.gateway import IndexGateway
from indexer.search.schema import IndexSchema

logger = structlog.get_logger()


class ServiceState(str, Enum):
    """Lifecycle state of the synchronization service."""

    STOPPED = "stopped"
    RUNNING = "running"


class SyncService:
    """Keeps the search index in line with repository change events.

    start() establishes the index schema and gateways, run() consumes an
    event source, stop() releases the subscription and HTTP connections.
    One HTTP client and the schema are shared by all event handling.

    Usable as an async context manager that starts and stops the service.
    """

    def __init__(
        self,
        settings: Settings,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize synchronization service.

        Args:
            settings: Indexer configuration.
            client: HTTP client to share. Created on start() if None.
        """
        self._settings = settings
        self._client = client
        self._owns_client = client is None
        self._state = ServiceState.STOPPED
        self._index: IndexGateway | None = None
        self._resources: ResourceGateway | None = None
        self._router: EventRouter | None = None
        self._source: EventSource | None = None
        self._draining: asyncio.Task[None] | None = None

    @property
    def state(self) -> ServiceState:
        """Current lifecycle state."""
        return self._state

    @property
    def schema(self) -> IndexSchema:
        """Schema of the target index once started."""
        if self._index is None:
            raise RuntimeError("Service has not been started")
        return self._index.schema

    async def start(self) -> None:
        """Establish the index schema and build the pipeline.

        Raises:
            RuntimeError: If the service is already running.
            SchemaBootstrapError: If the index cannot be read or created;
                the service stays stopped.
        """
        if self._state is ServiceState.RUNNING:
            raise RuntimeError("Service is already running")

        await self.drained()

        settings = self._settings
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=settings.request_timeout)
            self._owns_client = True

        index = IndexGateway(settings.es_index, client=self._client)
        try:
            schema = await index.open(settings.es_config)
        except Exception:
            await self._release_client()
            raise

        self._index = index
        self._resources = ResourceGateway(
            settings.repository_user,
            settings.repository_pass.get_secret_value(),
            client=self._client,
        )
        self._router = EventRouter(settings.type_prefix, self._resources, index, schema)
        self._state = ServiceState.RUNNING

        logger.info(
            "sync_service_started",
            index=index.index_url,
            type_prefix=settings.type_prefix,
        )

    async def handle(self, event: ChangeEvent) -> None:
        """Handle one change event.

        Args:
            event: Decoded change notification.

        Raises:
            RuntimeError: If the service is not running.
        """
        if self._state is not ServiceState.RUNNING or self._router is None:
            raise RuntimeError("Service is not running")
        await self._router.handle(event)

    async def run(self, source: EventSource) -> None:
        """Consume events from source until it is closed.

        Args:
            source: Event source to subscribe to.

        Raises:
            RuntimeError: If the service is not running.
        """
        if self._state is not ServiceState.RUNNING:
            raise RuntimeError("Service is not running")

        self._source = source
        logger.info("sync_service_consuming")
        await source.consume(self.handle)

    async def stop(self) -> None:
        """Release the subscription and pooled connections.

        Waits up to the shutdown timeout for an event in flight to finish.
        An event still running after that keeps the HTTP client until it
        completes; the client is released in the background. Idempotent.
        """
        closing: asyncio.Future[None] | None = None
        if self._source is not None:
            source, self._source = self._source, None
            closing = asyncio.ensure_future(source.close())
            try:
                await asyncio.wait_for(
                    asyncio.shield(closing), timeout=self._settings.shutdown_timeout
                )
            except TimeoutError:
                logger.warning("shutdown_timeout", timeout_seconds=self._settings.shutdown_timeout)
            else:
                closing = None

        if self._state is ServiceState.STOPPED:
            return

        self._state = ServiceState.STOPPED
        self._router = None
        if closing is None:
            await self._release_client()
        else:
            self._draining = asyncio.create_task(self._release_client_when_idle(closing))
        logger.info("sync_service_stopped")

    async def drained(self) -> None:
        """Wait until an event that outlived stop() has finished."""
        if self._draining is not None:
            await self._draining

    async def _release_client_when_idle(self, closing: asyncio.Future[None]) -> None:
        try:
            await closing
        finally:
            await self._release_client()
            logger.info("sync_service_drained")

    async def _release_client(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "SyncService":
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.stop()
