"""Text codec for the structured payloads kept in the store."""

import json
from typing import Any

from pydantic import BaseModel

EMPTY_PAYLOAD = "{}"


def _to_plain(item: Any) -> Any:
    if isinstance(item, BaseModel):
        return item.model_dump(mode="json")
    if isinstance(item, dict):
        return {k: _to_plain(v) for k, v in item.items()}
    if isinstance(item, (list, tuple)):
        return [_to_plain(v) for v in item]
    return item


def serialize_item(item: Any) -> str:
    """Encode *item* as JSON text.  ``None`` becomes the empty-object sentinel."""
    if item is None:
        return EMPTY_PAYLOAD
    return json.dumps(_to_plain(item), indent=4)


def deserialize_item(text: str | None) -> Any:
    """Decode text written by :func:`serialize_item`.  ``None`` stays ``None``."""
    if text is None:
        return None
    return json.loads(text)
