"""Exception types raised by the index synchronization pipeline."""


class IndexerError(Exception):
    """Base class for indexer failures."""


class SchemaBootstrapError(IndexerError):
    """Raised when the index configuration cannot be read or created.

    Fatal at startup: the service must not consume events without a schema.
    """

    def __init__(self, message: str, url: str, status_code: int | None = None) -> None:
        """Initialize bootstrap error.

        Args:
            message: Error description.
            url: Index root URL involved.
            status_code: HTTP status returned by the search engine, if any.
        """
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class ResourceFetchError(IndexerError):
    """Raised when a repository resource cannot be retrieved."""

    def __init__(self, message: str, uri: str, status_code: int | None = None) -> None:
        """Initialize fetch error.

        Args:
            message: Error description.
            uri: Resource URI that was requested.
            status_code: HTTP status returned by the repository, if any.
        """
        super().__init__(message)
        self.uri = uri
        self.status_code = status_code


class IndexWriteError(IndexerError):
    """Raised when the search engine rejects a document write."""

    def __init__(self, message: str, uri: str, status_code: int) -> None:
        super().__init__(message)
        self.uri = uri
        self.status_code = status_code


class MessageDecodeError(IndexerError):
    """Raised when a notification message cannot be turned into a ChangeEvent."""
