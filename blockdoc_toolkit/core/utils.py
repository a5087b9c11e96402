from __future__ import annotations

"""Simple reusable helper functions.

These helpers are side-effect-free and contain no I/O; they can be used
across all layers of the toolkit.
"""

from typing import Any, Dict, Optional, Sequence, Tuple, TypeVar
import copy
import logging
import re
import uuid

__all__ = [
    "generate_node_id",
    "generate_slot_id",
    "clamp_insert_index",
    "insert_at",
    "copy_props",
    "camel_to_snake",
    "snake_to_camel",
]

logger = logging.getLogger(__name__)

T = TypeVar("T")


def generate_node_id() -> str:
    """Generate a globally unique node ID."""
    return f"n-{uuid.uuid4().hex}"


def generate_slot_id() -> str:
    """Generate a globally unique slot ID."""
    return f"s-{uuid.uuid4().hex}"


def clamp_insert_index(index: int, length: int) -> int:
    """Return a valid insertion index for a sequence of *length* items.

    Negative or past-the-end indices mean "append".

    Examples:
        >>> clamp_insert_index(-1, 3)
        3
        >>> clamp_insert_index(7, 3)
        3
        >>> clamp_insert_index(1, 3)
        1
    """
    if index < 0 or index >= length:
        return length
    return index


def insert_at(items: Sequence[T], index: int, value: T) -> Tuple[T, ...]:
    """Return a new tuple with *value* inserted at the clamped *index*."""
    out = list(items)
    out.insert(clamp_insert_index(index, len(out)), value)
    return tuple(out)


def copy_props(props: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Return an independent deep copy of a props mapping (``None`` -> ``{}``)."""
    if not props:
        return {}
    return copy.deepcopy(dict(props))


_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def camel_to_snake(name: str) -> str:
    """Convert a camelCase wire key to a snake_case attribute name.

    Examples:
        >>> camel_to_snake("targetSlotId")
        'target_slot_id'
    """
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def snake_to_camel(name: str) -> str:
    """Convert a snake_case attribute name to a camelCase wire key.

    Examples:
        >>> snake_to_camel("target_slot_id")
        'targetSlotId'
    """
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)
