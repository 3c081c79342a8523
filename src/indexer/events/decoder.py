"""Decoding of raw repository notifications into typed change events."""

import json
from typing import Any

import structlog

from indexer.errors import MessageDecodeError
from indexer.events.types import ChangeAction, ChangeEvent

logger = structlog.get_logger()

_EVENT_NS = "http://fedora.info/definitions/v4/event#"

# Creation notifications also carry ResourceModification, so order matters.
ACTION_PRIORITY: tuple[tuple[str, ChangeAction], ...] = (
    (_EVENT_NS + "ResourceDeletion", ChangeAction.DELETED),
    (_EVENT_NS + "ResourceCreation", ChangeAction.CREATED),
    (_EVENT_NS + "ResourceModification", ChangeAction.MODIFIED),
)


def _as_strings(value: object) -> list[str]:
    """Coerce a JSON-LD value that may be a single string or a list.

    Args:
        value: Raw JSON value.

    Returns:
        List of string members, empty if value is missing.
    """
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        return [item for item in value if isinstance(item, str)]
    return []


def _first(data: dict[str, Any], *keys: str) -> object:
    for key in keys:
        if key in data:
            return data[key]
    return None


def determine_action(event_types: list[str]) -> ChangeAction | None:
    """Determine the change action from the activity types of a notification.

    Args:
        event_types: Types listed under the notification's wasGeneratedBy.

    Returns:
        The highest-priority matching action, or None if none is known.
    """
    for activity_type, action in ACTION_PRIORITY:
        if activity_type in event_types:
            return action
    return None


def decode_message(body: str | bytes) -> ChangeEvent:
    """Transform a raw notification body into a ChangeEvent.

    Args:
        body: JSON text of the notification.

    Returns:
        Decoded change event.

    Raises:
        MessageDecodeError: If the body is not a recognizable notification.
    """
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MessageDecodeError(f"Notification is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise MessageDecodeError("Notification must be a JSON object")

    uri = _first(data, "id", "@id")
    if not isinstance(uri, str) or not uri:
        raise MessageDecodeError("Notification has no resource id")

    activity = data.get("wasGeneratedBy")
    if not isinstance(activity, dict):
        raise MessageDecodeError(f"Notification for {uri} has no activity")

    action = determine_action(_as_strings(_first(activity, "type", "@type")))
    if action is None:
        raise MessageDecodeError(f"Notification for {uri} has no known action")

    event = ChangeEvent(
        action=action,
        resource_uri=uri,
        resource_types=frozenset(_as_strings(_first(data, "type", "@type"))),
    )
    logger.debug("message_decoded", action=action.value, uri=uri)
    return event
