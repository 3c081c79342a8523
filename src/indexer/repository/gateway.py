"""Repository access for current resource representations."""
from typing import Any

import httpx
import structlog

from indexer.errors import ResourceFetchError

logger = structlog.get_logger()

# Content negotiation expected by the repository. Values must match exactly.
ACCEPT_HEADER = 'application/ld+json; profile="http://www.w3.org/ns/json-ld#compacted"'
PREFER_HEADER = (
    'return=representation; omit="http://fedora.info/definitions/v4/repository#ServerManaged"'
)

_REQUEST_HEADERS: dict[str, str] = {
    "Accept": ACCEPT_HEADER,
    "Prefer": PREFER_HEADER,
}


class ResourceGateway:
    """Fetches compact JSON-LD representations of repository resources.

    Server-managed triples are omitted so the representation only holds
    the resource's own properties.
    """

    def __init__(
        self,
        user: str,
        password: str,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        """Initialize resource gateway.

        Args:
            user: Repository user for basic authentication.
            password: Repository password.
            client: Shared HTTP client. A private one is created if None.
            timeout: Request timeout in seconds for a private client.
        """
        self._auth = httpx.BasicAuth(user, password)
        self._owns_client = client is None
        self._client = client if client is not None else httpx.AsyncClient(timeout=timeout)

    async def fetch(self, resource_uri: str) -> dict[str, Any] | None:
        """Fetch the current representation of a resource.

        Args:
            resource_uri: Absolute URI of the resource.

        Returns:
            Parsed representation, or None if the resource is a tombstone.

        Raises:
            ResourceFetchError: If the repository answers with any other
                non-success status or a body that is not a JSON object.
        """
        response = await self._client.get(
            resource_uri,
            headers=_REQUEST_HEADERS,
            auth=self._auth,
        )

        if response.status_code == 410:
            logger.debug("resource_tombstoned", uri=resource_uri)
            return None

        if not response.is_success:
            logger.error("resource_fetch_failed", uri=resource_uri, status=response.status_code)
            raise ResourceFetchError(
                f"Failed to retrieve resource {resource_uri}: {response.status_code}",
                resource_uri,
                response.status_code,
            )

        try:
            representation = response.json()
        except ValueError as e:
            raise ResourceFetchError(
                f"Resource {resource_uri} is not valid JSON", resource_uri, response.status_code
            ) from e

        if not isinstance(representation, dict):
            raise ResourceFetchError(
                f"Resource {resource_uri} is not a JSON object",
                resource_uri,
                response.status_code,
            )

        return representation

    async def close(self) -> None:
        """Release the HTTP client if this gateway created it."""
        if self._owns_client:
            await self._client.aclose()
