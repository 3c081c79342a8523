"""Structured logging configuration using structlog."""

import logging
import sys

import structlog
from structlog.types import Processor


def configure_logging(debug: bool = False, json_output: bool = True) -> None:
    """Configure structlog for the indexer process.

    Args:
        debug: Enable debug-level logging, including per-event routing.
        json_output: Render JSON lines; otherwise use the console renderer.
    """
    level = logging.DEBUG if debug else logging.INFO

    renderer: Processor
    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if json_output:
        processors.append(structlog.processors.format_exc_info)
    processors.append(renderer)

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        level=level,
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    # Request lines from the HTTP stack would repeat every per-event log.
    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)
