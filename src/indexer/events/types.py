"""Change event types for repository notifications."""
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ChangeAction(str, Enum):
    """Action a repository resource underwent."""

    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"


class ChangeEvent(BaseModel):
    """Immutable notification about a single repository resource.

    Attributes:
        action: What happened to the resource.
        resource_uri: Absolute URI of the resource in the repository.
        resource_types: RDF types of the resource. Membership matters, order
            does not.
    """

    model_config = ConfigDict(frozen=True)

    action: ChangeAction = Field(description="Action on the resource")
    resource_uri: str = Field(description="Repository URI of the resource")
    resource_types: frozenset[str] = Field(
        default_factory=frozenset,
        description="Types of the resource",
    )
