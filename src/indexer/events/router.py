"""Routing of change events into the index synchronization pipeline."""
from typing import assert_never

import structlog

from indexer.events.types import ChangeAction, ChangeEvent
from indexer.repository.gateway import ResourceGateway
from indexer.search.gateway import IndexGateway
from indexer.search.normalizer import normalize
from indexer.search.schema import IndexSchema

logger = structlog.get_logger()


class EventRouter:
    """Applies the admission filter and dispatches events to the gateways.

    Created and modified resources are fetched, normalized and written;
    deleted resources have their document removed without a fetch.
    """

    def __init__(
        self,
        allowed_type_prefix: str,
        resources: ResourceGateway,
        index: IndexGateway,
        schema: IndexSchema,
    ) -> None:
        """Initialize event router.

        Args:
            allowed_type_prefix: An event is handled only if one of its
                resource types starts with this prefix.
            resources: Gateway to the repository.
            index: Gateway to the search index.
            schema: Schema used to normalize documents.
        """
        self._prefix = allowed_type_prefix
        self._resources = resources
        self._index = index
        self._schema = schema

    def should_handle(self, event: ChangeEvent) -> bool:
        """Check the event's resource types against the allowed prefix."""
        return any(t.startswith(self._prefix) for t in event.resource_types)

    async def handle(self, event: ChangeEvent) -> None:
        """Bring the index in line with a single change event.

        Returns once the index mutation has been attempted. Fetch and
        upsert failures propagate to the caller; delete failures do not.

        Args:
            event: Decoded change notification.
        """
        if not self.should_handle(event):
            logger.debug(
                "event_ignored",
                uri=event.resource_uri,
                types=sorted(event.resource_types),
            )
            return

        logger.debug("event_handling", action=event.action.value, uri=event.resource_uri)

        match event.action:
            case ChangeAction.CREATED | ChangeAction.MODIFIED:
                await self._update_document(event.resource_uri)
            case ChangeAction.DELETED:
                await self._index.delete(event.resource_uri)
            case _:
                assert_never(event.action)

    async def _update_document(self, resource_uri: str) -> None:
        """Fetch, normalize and write the document for a resource."""
        representation = await self._resources.fetch(resource_uri)

        if representation is None:
            # Resource was deleted after the event; its delete event will follow.
            logger.debug("update_skipped_tombstone", uri=resource_uri)
            return

        document = normalize(representation, self._schema)
        await self._index.upsert(resource_uri, document)
        logger.info("document_updated", uri=resource_uri, fields=len(document))
