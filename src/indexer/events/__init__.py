"""Change events: types, decoding, sources and routing."""
from indexer.events.decoder import decode_message
from indexer.events.redis_source import RedisEventSource
from indexer.events.router import EventRouter
from indexer.events.source import EventHandler, EventSource, QueueEventSource
from indexer.events.types import ChangeAction, ChangeEvent

__all__ = [
    "ChangeAction",
    "ChangeEvent",
    "EventHandler",
    "EventRouter",
    "EventSource",
    "QueueEventSource",
    "RedisEventSource",
    "decode_message",
]
