"""Projection of repository representations onto the index schema."""
import json
from typing import Any

import structlog

from indexer.search.completion import tokenize
from indexer.search.schema import SUGGEST_SUFFIX, IndexSchema

logger = structlog.get_logger()


def string_value(value: Any) -> str:
    """Render a JSON value as text for completion.

    Args:
        value: Scalar or array from the representation.

    Returns:
        Strings unchanged, everything else in its compact JSON form.
    """
    if isinstance(value, str):
        return value
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def normalize(raw: dict[str, Any], schema: IndexSchema) -> dict[str, Any]:
    """Project a raw representation into an index-legal document.

    Fields missing from the schema and fields with object values are
    dropped with a warning. Fields with a completion companion keep their
    value and gain a <field>_suggest array. The input is not modified.

    Args:
        raw: Compact JSON representation of the resource.
        schema: Fields accepted by the index.

    Returns:
        Document containing only supported, non-object fields.
    """
    document: dict[str, Any] = {}
    completions: dict[str, list[str]] = {}

    for field, value in raw.items():
        if not schema.is_supported(field):
            logger.warning("field_ignored", field=field, value=value, reason="unsupported")
            continue

        if isinstance(value, dict):
            logger.warning("field_ignored", field=field, value=value, reason="object_value")
            continue

        document[field] = value

        if schema.needs_suggest(field):
            completions[field + SUGGEST_SUFFIX] = tokenize(string_value(value))

    # Generated completions replace any stored in the representation.
    document.update(completions)
    return document
