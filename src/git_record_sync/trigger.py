"""Decoding of document-store change events into record operations.

A change event carries the document's previous and new state. A delete arrives
with an empty new state, so the record id is taken from the last segment of the
event's resource path instead.
"""

import logging
from typing import Any

from .config import Config
from .constants import APP_NAME
from .engine import SyncEngine
from .models import CommitResult, Delete, Operation, Record, Upsert

logger = logging.getLogger(APP_NAME)


def _string_field(fields: dict[str, Any], name: str) -> str:
    value = fields.get(name) or {}
    if not isinstance(value, dict):
        return ""
    return str(value.get("stringValue") or "")


def record_id_from_resource(resource: str) -> str:
    """Returns the last path segment of a document resource name."""
    segment = resource.rstrip("/").split("/")[-1] if resource else ""
    if not segment:
        raise ValueError(f"Cannot derive a record id from resource '{resource}'")
    return segment


def decode_event(event: dict[str, Any], resource: str) -> Operation:
    """Maps a change event to an Upsert or a Delete.

    Args:
        event (dict[str, Any]): The event payload with `oldValue` / `value`.
        resource (str): The changed document's resource path.

    Returns:
        Operation: Upsert when the new state carries an ID, Delete otherwise.

    Raises:
        ValueError: If a delete's record id cannot be derived from `resource`.
    """
    value = event.get("value") or {}
    fields = value.get("fields") or {}

    record_id = _string_field(fields, "ID")
    if not record_id:
        return Delete(record_id_from_resource(resource))

    return Upsert(
        Record(
            id=record_id,
            first_name=_string_field(fields, "FirstName"),
            last_name=_string_field(fields, "LastName"),
            birthday=_string_field(fields, "Birthday"),
        )
    )


def handle_event(
    event: dict[str, Any],
    resource: str,
    config: Config,
    *,
    deadline: float | None = None,
) -> CommitResult:
    """Decodes a change event and mirrors it with a fresh `SyncEngine`."""
    operation = decode_event(event, resource)
    logger.debug(f"EVENT {resource}: {operation.kind} {operation.record_id}")
    return SyncEngine(config).run(operation, deadline=deadline)
