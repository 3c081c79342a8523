"""Indexer configuration loaded from environment variables."""
from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Indexer configuration loaded from environment variables.

    Fields without a default are required; constructing Settings without
    them raises a validation error and the service does not start.

    The queue and repository credentials are also read from the
    PI_FEDORA_JMS_QUEUE, PI_FEDORA_USER and PI_FEDORA_PASS names used by
    existing deployments.

    Attributes:
        broker_url: Redis URL of the message broker.
        queue: Name of the queue carrying repository notifications.
        es_index: Root URL of the search index.
        es_config: Optional path to the configuration for a new index.
        repository_user: User for repository basic authentication.
        repository_pass: Password for repository basic authentication.
        type_prefix: Only resources with a type starting with this are indexed.
        request_timeout: Seconds before an HTTP request is abandoned.
        max_deliveries: Attempts before a failing message is dead-lettered.
        shutdown_timeout: Seconds to wait for in-flight work on shutdown.
        debug: Enable debug-level logging.
        log_json: Emit JSON log lines instead of console output.
    """

    model_config = SettingsConfigDict(
        env_prefix="PI_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    broker_url: str
    queue: str = Field(validation_alias=AliasChoices("PI_QUEUE", "PI_FEDORA_JMS_QUEUE"))
    es_index: str
    es_config: str | None = None
    repository_user: str = Field(
        validation_alias=AliasChoices("PI_REPOSITORY_USER", "PI_FEDORA_USER")
    )
    repository_pass: SecretStr = Field(
        validation_alias=AliasChoices("PI_REPOSITORY_PASS", "PI_FEDORA_PASS")
    )
    type_prefix: str

    request_timeout: float = 30.0
    max_deliveries: int = 5
    shutdown_timeout: float = 30.0
    debug: bool = False
    log_json: bool = True
