from __future__ import annotations

"""Multi-column layout component.

A columns node owns one dynamic slot per column (``column-0``,
``column-1``, ...) and a parallel ``columnSizes`` list of relative widths.
Columns are added and removed at the end only.
"""

from dataclasses import dataclass, field
import logging
from typing import Any, ClassVar, Dict, List, Optional

from blockdoc_toolkit.core.models.commands import (
    Command,
    CommandResult,
    SlotRestore,
    register_command,
)
from blockdoc_toolkit.core.models.document import Document, Slot, collect_slot_contents
from blockdoc_toolkit.core.registry import ComponentDefinition, SlotTemplate
from blockdoc_toolkit.core.utils import generate_slot_id

__all__ = [
    "COLUMNS_TYPE",
    "DEFAULT_MAX_COLUMNS",
    "ColumnsProps",
    "AddColumnSlot",
    "RemoveColumnSlot",
    "ColumnsCommandHandler",
    "column_slot_name",
    "create_columns_definition",
]

logger = logging.getLogger(__name__)

COLUMNS_TYPE = "columns"
DEFAULT_MAX_COLUMNS = 6
_DEFAULT_SIZES = (1, 1)


def column_slot_name(index: int) -> str:
    return f"column-{index}"


@dataclass
class ColumnsProps:
    """Typed view over the props of a columns node."""
    column_sizes: List[float] = field(default_factory=lambda: list(_DEFAULT_SIZES))
    gap: float = 0
    extra: Dict[str, Any] = field(default_factory=dict)

    _KEYS = ("columnSizes", "gap")

    @classmethod
    def from_props(cls, props: Dict[str, Any]) -> "ColumnsProps":
        props = props or {}
        return cls(
            column_sizes=list(props.get("columnSizes") or []),
            gap=props.get("gap", 0) or 0,
            extra={k: v for k, v in props.items() if k not in cls._KEYS},
        )

    def to_props(self) -> Dict[str, Any]:
        out = dict(self.extra)
        out["columnSizes"] = list(self.column_sizes)
        out["gap"] = self.gap
        return out


@register_command
@dataclass(frozen=True)
class AddColumnSlot(Command):
    """Append a column of relative width *size*.

    ``restore`` is set only on the inverse of :class:`RemoveColumnSlot`.
    """
    type: ClassVar[str] = "AddColumnSlot"

    node_id: str
    size: float = 1
    restore: Optional[SlotRestore] = None


@register_command
@dataclass(frozen=True)
class RemoveColumnSlot(Command):
    """Remove the last column together with its content."""
    type: ClassVar[str] = "RemoveColumnSlot"

    node_id: str


class ColumnsCommandHandler:
    """Applies :class:`AddColumnSlot` and :class:`RemoveColumnSlot`."""

    command_types = (AddColumnSlot.type, RemoveColumnSlot.type)

    def __init__(self, max_columns: Optional[int] = None) -> None:
        self.max_columns = max_columns or DEFAULT_MAX_COLUMNS

    def __call__(self, doc: Document, command: Command) -> CommandResult:
        if isinstance(command, AddColumnSlot):
            return self._add(doc, command)
        if isinstance(command, RemoveColumnSlot):
            return self._remove(doc, command)
        return CommandResult.failure(f"Unsupported command '{command.type}' for columns")

    def _add(self, doc: Document, cmd: AddColumnSlot) -> CommandResult:
        node = doc.nodes.get(cmd.node_id)
        if node is None:
            return CommandResult.failure(f"Node {cmd.node_id} not found")
        if node.type != COLUMNS_TYPE:
            return CommandResult.failure("AddColumnSlot only applies to columns nodes")

        props = ColumnsProps.from_props(node.props)
        count = len(props.column_sizes)
        restore = cmd.restore
        if restore is None and count >= self.max_columns:
            return CommandResult.failure(f"Cannot add more than {self.max_columns} columns")

        if restore is not None and restore.slots:
            new_slot = restore.slots[0]
            position = restore.positions[0] if restore.positions else len(node.slots)
        else:
            new_slot = Slot(id=generate_slot_id(), node_id=node.id, name=column_slot_name(count))
            position = len(node.slots)
        if new_slot.id in doc.slots:
            return CommandResult.failure(f"Slot {new_slot.id} already exists")

        slot_ids = list(node.slots)
        slot_ids.insert(position, new_slot.id)
        new_node = node.with_slots(slot_ids).with_props(
            _with_sizes(node.props, [*props.column_sizes, cmd.size]))

        put_nodes = [new_node]
        put_slots = [new_slot]
        if restore is not None:
            put_nodes.extend(restore.nodes)
            put_slots.extend(restore.descendant_slots)

        new_doc = doc.evolve(put_nodes=put_nodes, put_slots=put_slots)
        return CommandResult.success(new_doc, RemoveColumnSlot(cmd.node_id), structure_changed=True)

    def _remove(self, doc: Document, cmd: RemoveColumnSlot) -> CommandResult:
        node = doc.nodes.get(cmd.node_id)
        if node is None:
            return CommandResult.failure(f"Node {cmd.node_id} not found")
        if node.type != COLUMNS_TYPE:
            return CommandResult.failure("RemoveColumnSlot only applies to columns nodes")

        props = ColumnsProps.from_props(node.props)
        if len(props.column_sizes) <= 1 or len(node.slots) <= 1:
            return CommandResult.failure("Cannot remove the last column")

        position = len(node.slots) - 1
        last_slot = doc.slots.get(node.slots[position])
        if last_slot is None:
            return CommandResult.failure(f"Last slot {node.slots[position]} not found")

        node_ids, slot_ids = collect_slot_contents(doc, last_slot.id)
        removed_size = props.column_sizes.pop()
        restore = SlotRestore(
            slots=(last_slot,),
            positions=(position,),
            nodes=tuple(doc.nodes[n] for n in node_ids if n in doc.nodes),
            descendant_slots=tuple(doc.slots[s] for s in slot_ids if s in doc.slots),
        )

        new_node = node.with_slots(node.slots[:position]).with_props(
            _with_sizes(node.props, props.column_sizes))
        new_doc = doc.evolve(
            put_nodes=[new_node],
            drop_nodes=node_ids,
            drop_slots=[last_slot.id, *slot_ids],
        )
        inverse = AddColumnSlot(node_id=cmd.node_id, size=removed_size, restore=restore)
        return CommandResult.success(new_doc, inverse, structure_changed=True)


def _with_sizes(props: Dict[str, Any], sizes: List[float]) -> Dict[str, Any]:
    # Only columnSizes changes; other keys keep their exact values
    out = dict(props)
    out["columnSizes"] = list(sizes)
    return out


def _initial_column_slots(node_id: str, props: Dict[str, Any]) -> List[Slot]:
    sizes = props.get("columnSizes") or _DEFAULT_SIZES
    return [
        Slot(id=generate_slot_id(), node_id=node_id, name=column_slot_name(i))
        for i in range(len(sizes))
    ]


def create_columns_definition(max_columns: Optional[int] = None) -> ComponentDefinition:
    """Create the columns component definition."""
    handler = ColumnsCommandHandler(max_columns=max_columns)
    return ComponentDefinition(
        type=COLUMNS_TYPE,
        label="Columns",
        category="layout",
        slots=(SlotTemplate("column-{i}", dynamic=True),),
        default_props={"columnSizes": list(_DEFAULT_SIZES), "gap": 0},
        create_initial_slots=_initial_column_slots,
        props_type=ColumnsProps,
        command_types=handler.command_types,
        command_handler=handler,
    )
