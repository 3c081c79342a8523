"""Signal-driven shutdown coordination."""
import asyncio
import signal

import structlog

logger = structlog.get_logger()


class GracefulShutdown:
    """Signals the consumer to stop taking new events.

    Triggering does not interrupt an event being handled; the consumer
    finishes it before the subscription is released.

    Attributes:
        is_triggered: Whether shutdown has been triggered.
    """

    def __init__(self) -> None:
        self._triggered = False
        self._event = asyncio.Event()

    @property
    def is_triggered(self) -> bool:
        """Check if shutdown has been triggered."""
        return self._triggered

    def trigger(self) -> None:
        """Signal all waiting tasks to begin shutdown.

        Idempotent - calling multiple times has no additional effect.
        """
        if self._triggered:
            return
        logger.info("shutdown_triggered")
        self._triggered = True
        self._event.set()

    def install_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> None:
        """Trigger shutdown on SIGTERM and SIGINT.

        Args:
            loop: Running event loop to register handlers with.
        """
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, self.trigger)

    async def wait_for_trigger(self) -> None:
        """Wait until trigger() is called from another task or a signal."""
        await self._event.wait()
