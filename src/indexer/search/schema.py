"""Index schema derived from the search engine mapping."""
from typing import Any

from pydantic import BaseModel, ConfigDict

from indexer.errors import SchemaBootstrapError

SUGGEST_SUFFIX = "_suggest"


class IndexSchema(BaseModel):
    """Fields the index accepts and which of them carry completion companions.

    Built once at startup and shared read-only by every handler.

    Attributes:
        supported_fields: Property names defined in the index mapping.
        suggest_fields: Base names F where F + "_suggest" is also supported.
    """

    model_config = ConfigDict(frozen=True)

    supported_fields: frozenset[str]
    suggest_fields: frozenset[str]

    @classmethod
    def from_properties(cls, names: set[str] | frozenset[str]) -> "IndexSchema":
        """Build a schema from the property names of a mapping.

        Args:
            names: Keys of the mapping's property definitions.

        Returns:
            Schema with suggest fields derived from the _suggest companions.
        """
        suggest = {
            name[: -len(SUGGEST_SUFFIX)]
            for name in names
            if name.endswith(SUGGEST_SUFFIX) and len(name) > len(SUGGEST_SUFFIX)
        }
        return cls(supported_fields=frozenset(names), suggest_fields=frozenset(suggest))

    @classmethod
    def from_index_config(cls, config: dict[str, Any], url: str = "") -> "IndexSchema":
        """Build a schema from a full index configuration document.

        The configuration is accepted with the mappings at top level or
        wrapped under a single index-name key, as returned by GET on the
        index. Property definitions are read from typeless mappings or from
        the single mapping type (e.g. _doc).

        Args:
            config: Index configuration document.
            url: Index root, used for error context.

        Returns:
            Schema derived from the mapping properties.

        Raises:
            SchemaBootstrapError: If no property definitions can be found.
        """
        if "mappings" not in config and len(config) == 1:
            inner = next(iter(config.values()))
            if isinstance(inner, dict):
                config = inner

        mappings = config.get("mappings")
        if not isinstance(mappings, dict):
            raise SchemaBootstrapError("Index configuration has no mappings", url)

        properties = mappings.get("properties")
        if properties is None and len(mappings) == 1:
            type_mapping = next(iter(mappings.values()))
            if isinstance(type_mapping, dict):
                properties = type_mapping.get("properties")

        # An index created without a mapping reports empty mappings.
        if properties is None and not mappings:
            properties = {}

        if not isinstance(properties, dict):
            raise SchemaBootstrapError("Index mappings define no properties", url)

        return cls.from_properties(set(properties))

    def is_supported(self, field: str) -> bool:
        """Check whether a field may be indexed."""
        return field in self.supported_fields

    def needs_suggest(self, field: str) -> bool:
        """Check whether a field gets a completion companion."""
        return field in self.suggest_fields
