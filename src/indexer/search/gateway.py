"""Search engine index access: schema bootstrap and document writes."""

import base64
import json
from importlib import resources
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

import httpx
import structlog

from indexer.errors import IndexWriteError, SchemaBootstrapError
from indexer.search.schema import IndexSchema

logger = structlog.get_logger()

DEFAULT_INDEX_CONFIG = "default_index.json"

_JSON_HEADERS: dict[str, str] = {"Content-Type": "application/json; charset=utf-8"}


def document_id(resource_uri: str) -> str:
    """Derive the document id for a repository resource.

    Only the path of the URI is used, so the same resource reached through
    a different scheme, host or port maps to the same document. The path is
    base64 encoded with the URL-safe alphabet, which keeps distinct paths
    distinct.

    Args:
        resource_uri: Absolute URI of the resource.

    Returns:
        URL-safe document id.
    """
    path = urlsplit(resource_uri).path
    return base64.urlsafe_b64encode(path.encode("utf-8")).decode("ascii")


def load_index_configuration(source: str | None = None) -> dict[str, Any]:
    """Load an index configuration from a file or the packaged default.

    Args:
        source: Path to a JSON configuration file. Uses the built-in
            configuration when None.

    Returns:
        Parsed configuration document.

    Raises:
        SchemaBootstrapError: If the file is missing or not a JSON object.
    """
    try:
        if source is None:
            logger.info("index_config_loading", source="builtin")
            text = resources.files("indexer.search").joinpath(DEFAULT_INDEX_CONFIG).read_text(
                encoding="utf-8"
            )
        else:
            logger.info("index_config_loading", source=source)
            text = Path(source).read_text(encoding="utf-8")
        config = json.loads(text)
    except (OSError, json.JSONDecodeError) as e:
        raise SchemaBootstrapError(
            f"Cannot load index configuration: {e}", source or DEFAULT_INDEX_CONFIG
        ) from e

    if not isinstance(config, dict):
        raise SchemaBootstrapError(
            "Index configuration must be a JSON object", source or DEFAULT_INDEX_CONFIG
        )
    return config


class IndexGateway:
    """HTTP gateway to a single search engine index.

    Call open() before writing; it establishes the index and the schema
    used to normalize documents. Writes replace whole documents keyed by
    the id derived from the resource URI.

    Attributes:
        index_url: Index root URL, always ending in a slash.
    """

    def __init__(
        self,
        index_url: str,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        """Initialize index gateway.

        Args:
            index_url: Root URL of the index.
            client: Shared HTTP client. A private one is created if None.
            timeout: Request timeout in seconds for a private client.
        """
        self.index_url = index_url if index_url.endswith("/") else index_url + "/"
        self._owns_client = client is None
        self._client = client if client is not None else httpx.AsyncClient(timeout=timeout)
        self._schema: IndexSchema | None = None

    @property
    def schema(self) -> IndexSchema:
        """Schema of the index, available once open() succeeded."""
        if self._schema is None:
            raise RuntimeError("Index gateway has not been opened")
        return self._schema

    async def open(self, config_source: str | None = None) -> IndexSchema:
        """Ensure the index exists and derive its schema.

        An existing index is used as-is and its mapping is never
        overwritten. A missing index is created from config_source or the
        built-in configuration.

        Args:
            config_source: Optional path to the configuration for a new index.

        Returns:
            Schema derived from the index mapping.

        Raises:
            SchemaBootstrapError: If the index cannot be read or created.
        """
        config = await self._get_existing_configuration()

        if config is None:
            logger.info("index_missing", index=self.index_url, config=config_source)
            config = load_index_configuration(config_source)
            await self._create_index(config)
        else:
            logger.info("index_found", index=self.index_url)

        self._schema = IndexSchema.from_index_config(config, self.index_url)
        logger.info(
            "index_schema_ready",
            index=self.index_url,
            fields=len(self._schema.supported_fields),
            suggest_fields=sorted(self._schema.suggest_fields),
        )
        return self._schema

    async def _get_existing_configuration(self) -> dict[str, Any] | None:
        """Return the current index configuration, or None if absent."""
        try:
            response = await self._client.get(self.index_url)
        except httpx.HTTPError as e:
            raise SchemaBootstrapError(
                f"Failed to reach index: {e}", self.index_url
            ) from e

        if response.status_code == 404:
            return None

        if not response.is_success:
            raise SchemaBootstrapError(
                f"Failed to retrieve index configuration: {response.status_code}",
                self.index_url,
                response.status_code,
            )

        try:
            config = response.json()
        except ValueError as e:
            raise SchemaBootstrapError(
                "Index configuration is not valid JSON", self.index_url, response.status_code
            ) from e

        if not isinstance(config, dict):
            raise SchemaBootstrapError(
                "Index configuration must be a JSON object", self.index_url
            )
        return config

    async def _create_index(self, config: dict[str, Any]) -> None:
        """Create the index with the given configuration."""
        try:
            response = await self._client.put(
                self.index_url,
                content=json.dumps(config).encode("utf-8"),
                headers=_JSON_HEADERS,
            )
        except httpx.HTTPError as e:
            raise SchemaBootstrapError(
                f"Failed to create index: {e}", self.index_url
            ) from e

        if not response.is_success:
            logger.error(
                "index_create_failed",
                index=self.index_url,
                status=response.status_code,
                body=response.text,
            )
            raise SchemaBootstrapError(
                f"Failed to create index: {response.status_code}",
                self.index_url,
                response.status_code,
            )

        logger.info("index_created", index=self.index_url)

    def document_url(self, doc_id: str) -> str:
        """Address of a document in the index."""
        return f"{self.index_url}_doc/{doc_id}"

    async def upsert(self, resource_uri: str, document: dict[str, Any]) -> None:
        """Create or replace the document for a resource.

        Args:
            resource_uri: Repository URI the document describes.
            document: Normalized document body.

        Raises:
            IndexWriteError: If the search engine rejects the write.
        """
        doc_id = document_id(resource_uri)
        response = await self._client.put(
            self.document_url(doc_id),
            content=json.dumps(document, ensure_ascii=False).encode("utf-8"),
            headers=_JSON_HEADERS,
        )

        if not response.is_success:
            logger.error(
                "document_upsert_failed",
                uri=resource_uri,
                doc_id=doc_id,
                status=response.status_code,
                body=response.text,
            )
            raise IndexWriteError(
                f"Update failure for {resource_uri}: {response.status_code}",
                resource_uri,
                response.status_code,
            )

        logger.debug("document_upserted", uri=resource_uri, doc_id=doc_id)

    async def delete(self, resource_uri: str) -> None:
        """Remove the document for a resource.

        Failures are logged and swallowed: the document may never have been
        written because its creation was filtered out or never observed.

        Args:
            resource_uri: Repository URI of the deleted resource.
        """
        doc_id = document_id(resource_uri)

        try:
            response = await self._client.delete(self.document_url(doc_id))
        except httpx.HTTPError as e:
            logger.warning("document_delete_failed", uri=resource_uri, doc_id=doc_id, error=str(e))
            return

        if not response.is_success:
            logger.warning(
                "document_delete_failed",
                uri=resource_uri,
                doc_id=doc_id,
                status=response.status_code,
            )
            return

        logger.debug("document_deleted", uri=resource_uri, doc_id=doc_id)

    async def close(self) -> None:
        """Release the HTTP client if this gateway created it."""
        if self._owns_client:
            await self._client.aclose()
