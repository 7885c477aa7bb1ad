"""
core/ids.py -- Opaque identifier generation and validation.

Every stored entity (user, project, task, sub-task, note) is keyed by a
32-character lowercase hex string (a UUID4 without dashes). Identifiers arrive
from URL paths and request bodies, so every service validates them with
parse_id() before touching a store: a malformed id is InvalidInput, never a
store query that happens to match nothing.
"""

import uuid

from core.errors import InvalidInput


def new_id() -> str:
    return uuid.uuid4().hex


def parse_id(value: str | None, field: str = "id") -> str:
    """Return the canonical form of value or raise InvalidInput.

    Accepts both the dashed and undashed UUID spellings; the canonical form is
    always the undashed lowercase hex string the stores use as primary key.
    """
    if not value:
        raise InvalidInput(f"{field} is required.")
    try:
        return uuid.UUID(value).hex
    except (ValueError, AttributeError, TypeError) as exc:
        raise InvalidInput(f"{field} is not a valid identifier.") from exc
