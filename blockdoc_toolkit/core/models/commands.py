from __future__ import annotations

"""Command vocabulary: a closed, serializable tagged union of edits.

Each command is a frozen dataclass whose class attribute ``type`` is the
discriminator used on the wire. Component modules add their own command
classes with :func:`register_command`; the generic engine never needs to
know about them.

Some fields exist only on inverses (``restore_*``). They carry the exact
nodes, slots and property values an edit removed, so that undo puts back
the original identities instead of freshly generated ones.

The module also defines :class:`CommandResult`, the value every dispatch
returns.
"""

from dataclasses import dataclass, field, fields, is_dataclass
import logging
from typing import Any, Callable, ClassVar, Dict, List, Mapping, Optional, Tuple, Type

from blockdoc_toolkit.core.exceptions import CommandFormatError
from blockdoc_toolkit.core.models.document import (
    Document,
    Node,
    Slot,
    node_from_dict,
    node_to_dict,
    slot_from_dict,
    slot_to_dict,
)
from blockdoc_toolkit.core.utils import camel_to_snake, copy_props, snake_to_camel

__all__ = [
    "Command",
    "CommandResult",
    "SlotRestore",
    "InsertNode",
    "RemoveNode",
    "MoveNode",
    "UpdateNodeProps",
    "register_command",
    "command_class",
    "registered_command_types",
    "command_to_dict",
    "command_from_dict",
]

logger = logging.getLogger(__name__)

_COMMAND_CLASSES: Dict[str, Type["Command"]] = {}


@dataclass(frozen=True)
class Command:
    """Base class for all commands. Subclasses set ``type``."""

    type: ClassVar[str] = ""


def register_command(cls: Type[Command]) -> Type[Command]:
    """Class decorator adding a command class to the wire vocabulary.

    Raises:
        ValueError: If the class has no ``type`` or the type is taken
    """
    type_name = getattr(cls, "type", "")
    if not type_name:
        raise ValueError(f"Command class {cls.__name__} does not declare a type")
    existing = _COMMAND_CLASSES.get(type_name)
    if existing is not None and existing is not cls:
        raise ValueError(f"Command type '{type_name}' is already registered by {existing.__name__}")
    _COMMAND_CLASSES[type_name] = cls
    return cls


def command_class(type_name: str) -> Optional[Type[Command]]:
    return _COMMAND_CLASSES.get(type_name)


def registered_command_types() -> List[str]:
    return sorted(_COMMAND_CLASSES)


# ---------------------------------------------------------------------------
# Results and restore payloads
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CommandResult:
    """Result of dispatching a command.

    Attributes
    ----------
    ok
        Whether the command was applied.
    doc
        The new document on success, None on failure.
    inverse
        The command that exactly undoes this one, when there is one.
    structure_changed
        False for property-only edits, letting consumers skip re-layout.
    error
        Human-readable reason on failure, suitable for user feedback.
    """
    ok: bool
    doc: Optional[Document] = None
    inverse: Optional[Command] = None
    structure_changed: bool = False
    error: Optional[str] = None

    @classmethod
    def success(cls, doc: Document, inverse: Optional[Command],
                structure_changed: bool = True) -> "CommandResult":
        return cls(True, doc, inverse, structure_changed, None)

    @classmethod
    def failure(cls, error: str) -> "CommandResult":
        return cls(False, None, None, False, error)


@dataclass(frozen=True)
class SlotRestore:
    """Everything a slot-removing edit took out of the document.

    Attributes
    ----------
    slots
        The removed slots exactly as they were, names and children included.
    positions
        Index of each removed slot in its owner's slot list, ascending.
    nodes
        Every node that lived beneath the removed slots.
    descendant_slots
        Every slot owned by those nodes.
    merges
        The owner's merge list before the edit (tables only).
    header_rows
        The owner's header-row count before the edit (tables only).
    """
    slots: Tuple[Slot, ...] = ()
    positions: Tuple[int, ...] = ()
    nodes: Tuple[Node, ...] = ()
    descendant_slots: Tuple[Slot, ...] = ()
    merges: Optional[Tuple[Dict[str, int], ...]] = None
    header_rows: Optional[int] = None


# ---------------------------------------------------------------------------
# Generic commands
# ---------------------------------------------------------------------------

@register_command
@dataclass(frozen=True)
class InsertNode(Command):
    """Insert *node* (with its own *slots*) into a slot at *index*.

    A negative or past-the-end index appends. ``restore_nodes`` and
    ``restore_slots`` hold every descendant of *node*: the removed subtree on
    the inverse of :class:`RemoveNode`, or the initial children of a
    component created with a subtree.
    """
    type: ClassVar[str] = "InsertNode"

    node: Node
    slots: Tuple[Slot, ...]
    target_slot_id: str
    index: int = -1
    restore_nodes: Tuple[Node, ...] = ()
    restore_slots: Tuple[Slot, ...] = ()


@register_command
@dataclass(frozen=True)
class RemoveNode(Command):
    type: ClassVar[str] = "RemoveNode"

    node_id: str


@register_command
@dataclass(frozen=True)
class MoveNode(Command):
    """Move a node to *index* within *target_slot_id*.

    The index is interpreted after the node has been detached from its
    current slot.
    """
    type: ClassVar[str] = "MoveNode"

    node_id: str
    target_slot_id: str
    index: int = -1


@register_command
@dataclass(frozen=True)
class UpdateNodeProps(Command):
    """Replace the props of a node with *props*."""
    type: ClassVar[str] = "UpdateNodeProps"

    node_id: str
    props: Dict[str, Any] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------

def _slot_tuple(value: Any) -> Tuple[Slot, ...]:
    return tuple(slot_from_dict(v) for v in value or ())


def _node_tuple(value: Any) -> Tuple[Node, ...]:
    return tuple(node_from_dict(v) for v in value or ())


def _merge_tuple(value: Any) -> Optional[Tuple[Dict[str, int], ...]]:
    if value is None:
        return None
    return tuple({k: int(v) for k, v in dict(m).items()} for m in value)


def _restore_from_dict(value: Any) -> Optional[SlotRestore]:
    if value is None:
        return None
    return _decode_dataclass(SlotRestore, value)


# Field name -> decoder; fields not listed are taken as-is
_FIELD_DECODERS: Dict[str, Callable[[Any], Any]] = {
    "node": node_from_dict,
    "slots": _slot_tuple,
    "descendant_slots": _slot_tuple,
    "restore_slots": _slot_tuple,
    "nodes": _node_tuple,
    "restore_nodes": _node_tuple,
    "positions": lambda v: tuple(int(p) for p in v or ()),
    "merges": _merge_tuple,
    "restore_merges": _merge_tuple,
    "restore_children": lambda v: None if v is None else {
        str(k): tuple(str(c) for c in children) for k, children in dict(v).items()
    },
    "restore": _restore_from_dict,
    "props": copy_props,
}


def _encode(value: Any) -> Any:
    if isinstance(value, Node):
        return node_to_dict(value)
    if isinstance(value, Slot):
        return slot_to_dict(value)
    if is_dataclass(value) and not isinstance(value, type):
        return _encode_dataclass(value)
    if isinstance(value, (list, tuple)):
        return [_encode(v) for v in value]
    if isinstance(value, dict):
        return {k: _encode(v) for k, v in value.items()}
    return value


def _encode_dataclass(obj: Any) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for f in fields(obj):
        value = getattr(obj, f.name)
        if value is None:
            continue
        if f.name == "props":
            out["props"] = copy_props(value)
        else:
            out[snake_to_camel(f.name)] = _encode(value)
    return out


def _decode_dataclass(cls: Type[Any], data: Mapping[str, Any]) -> Any:
    known = {f.name for f in fields(cls)}
    kwargs: Dict[str, Any] = {}
    for key, value in data.items():
        if key == "type":
            continue
        name = camel_to_snake(key)
        if name not in known:
            raise CommandFormatError(f"Unknown field '{key}'", command_type=getattr(cls, "type", None))
        decoder = _FIELD_DECODERS.get(name)
        kwargs[name] = decoder(value) if decoder is not None else value
    return cls(**kwargs)


def command_to_dict(command: Command) -> Dict[str, Any]:
    """Encode a command to its JSON-compatible wire form.

    Examples:
        >>> command_to_dict(RemoveNode("n-1"))
        {'type': 'RemoveNode', 'nodeId': 'n-1'}
    """
    out: Dict[str, Any] = {"type": command.type}
    out.update(_encode_dataclass(command))
    return out


def command_from_dict(data: Mapping[str, Any]) -> Command:
    """Decode a command from its wire form.

    Raises:
        CommandFormatError: On an unknown type, unknown field, or a payload
            that does not fit the command's fields
    """
    if not isinstance(data, Mapping):
        raise CommandFormatError("Command must be a mapping")
    type_name = data.get("type")
    cls = _COMMAND_CLASSES.get(type_name) if isinstance(type_name, str) else None
    if cls is None:
        raise CommandFormatError(f"Unknown command type '{type_name}'", command_type=type_name)
    try:
        return _decode_dataclass(cls, data)
    except CommandFormatError:
        raise
    except (KeyError, TypeError, ValueError) as e:
        raise CommandFormatError(f"Invalid {type_name} payload: {e}", command_type=type_name, cause=e)
