"""Entry point for the indexer service."""

import asyncio
import contextlib
import sys

import structlog
from pydantic import ValidationError

from indexer.config import Settings
from indexer.errors import SchemaBootstrapError
from indexer.events.redis_source import RedisEventSource
from indexer.lifecycle import GracefulShutdown
from indexer.logging import configure_logging
from indexer.service import SyncService

logger = structlog.get_logger()


async def serve(settings: Settings) -> None:
    """Run the synchronization service until a shutdown signal arrives.

    Consumes the configured queue and exits when SIGTERM/SIGINT is
    received or the consumer stops on its own.

    Args:
        settings: Indexer configuration.
    """
    shutdown = GracefulShutdown()
    shutdown.install_signal_handlers(asyncio.get_running_loop())

    source = RedisEventSource.from_url(
        settings.broker_url,
        settings.queue,
        max_deliveries=settings.max_deliveries,
    )

    try:
        async with SyncService(settings) as service:
            consumer = asyncio.create_task(service.run(source))
            trigger = asyncio.create_task(shutdown.wait_for_trigger())

            await asyncio.wait({consumer, trigger}, return_when=asyncio.FIRST_COMPLETED)
            trigger.cancel()

        # Surfaces a consumer failure such as a lost broker connection.
        await consumer
        await service.drained()
    finally:
        await source.close()


def main() -> None:
    """Entry point for python -m indexer."""
    try:
        settings = Settings()  # type: ignore[call-arg]
    except ValidationError as e:
        configure_logging()
        logger.error("config_invalid", errors=e.errors(include_url=False, include_input=False))
        sys.exit(1)

    configure_logging(debug=settings.debug, json_output=settings.log_json)
    logger.info("indexer_starting", queue=settings.queue, index=settings.es_index)

    try:
        with contextlib.suppress(KeyboardInterrupt):
            asyncio.run(serve(settings))
    except SchemaBootstrapError as e:
        logger.error("startup_failed", error=str(e), url=e.url, status=e.status_code)
        sys.exit(1)

    sys.exit(0)


if __name__ == "__main__":
    main()
