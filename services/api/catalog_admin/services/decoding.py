"""Decode raw store values into the canonical in-memory shapes.

The Realtime Database returns a JSON array only when a list's integer keys
are dense enough; a sparse list comes back as an object keyed by "0", "2",
... Every read site goes through one of these two functions instead of
branching on the shape inline.
"""

import logging
from typing import Any

logger = logging.getLogger("uvicorn.error")


class DecodeError(ValueError):
    """A stored value has a shape that cannot be rewritten safely."""

    def __init__(self, message: str, *, path: str):
        super().__init__(message)
        self.path = path


def _is_int_key(key: object) -> bool:
    return isinstance(key, str) and key.isdigit()


def decode_sequence(raw: Any, *, path: str = "", strict: bool = False) -> list[dict[str, Any]]:
    """Decode an ordered-array collection.

    - None (absent) -> []
    - list -> the list with holes (None) dropped
    - dict -> values, in numeric key order when every key is an integer
      string, else in the order the store returned them
    - anything else is logged and treated as empty

    With `strict`, a third shape or a non-object element raises DecodeError
    instead of being dropped. Callers that write the sequence back use it.
    """
    where = path or "/"
    if raw is None:
        return []
    if isinstance(raw, list):
        items = [item for item in raw if item is not None]
    elif isinstance(raw, dict):
        if all(_is_int_key(k) for k in raw):
            items = [raw[k] for k in sorted(raw, key=int) if raw[k] is not None]
        else:
            items = [v for v in raw.values() if v is not None]
    else:
        if strict:
            raise DecodeError(f"{where}: expected a list, got {type(raw).__name__}", path=where)
        logger.warning(f"[decode] {where}: expected a list, got {type(raw).__name__}; ignoring")
        return []

    out: list[dict[str, Any]] = []
    for item in items:
        if isinstance(item, dict):
            out.append(item)
        elif strict:
            raise DecodeError(f"{where}: non-object element {item!r}", path=where)
        else:
            logger.warning(f"[decode] {where}: dropping non-object element {item!r}")
    return out


def decode_mapping(raw: Any, *, path: str = "") -> dict[str, Any]:
    """Decode a keyed-map collection.

    - None (absent) -> {}
    - dict -> itself, with null children dropped
    - list (a map whose keys happened to be "0", "1", ...) -> {"0": ..., "1": ...}
    - anything else is logged and treated as empty
    """
    if raw is None:
        return {}
    if isinstance(raw, dict):
        return {str(k): v for k, v in raw.items() if v is not None}
    if isinstance(raw, list):
        return {str(i): v for i, v in enumerate(raw) if v is not None}
    logger.warning(f"[decode] {path or '/'}: expected an object, got {type(raw).__name__}; ignoring")
    return {}
