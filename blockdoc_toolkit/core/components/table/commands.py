from __future__ import annotations

"""Structural table commands and their inverses.

Each command validates its preconditions, returns a failed
:class:`CommandResult` without touching the document when they do not
hold, and otherwise returns the new document together with the command
that undoes it exactly.

Removing a row or column deletes the cell slots and everything beneath
them; the inverse carries all of it in a :class:`SlotRestore` so undo
brings back the original node and slot ids rather than fresh copies.

Cell slots are renamed in a fixed order to keep names unique at every
step: insertions process indices from the far end down to the insertion
point, removals from just after the removed index up to the far end.
"""

from dataclasses import dataclass
import logging
from typing import Any, ClassVar, Dict, List, Optional, Sequence, Tuple

from blockdoc_toolkit.core.models.commands import (
    Command,
    CommandResult,
    SlotRestore,
    register_command,
)
from blockdoc_toolkit.core.models.document import (
    Document,
    Node,
    Slot,
    collect_slot_contents,
    slots_by_name,
)
from blockdoc_toolkit.core.components.table.grid import (
    DEFAULT_COLUMN_WIDTH,
    TABLE_TYPE,
    CellMerge,
    CellSelection,
    TableProps,
    absorb_merges,
    can_merge,
    cell_slot_name,
    merges_to_props,
    normalize_selection,
    shift_merges_for_col_insert,
    shift_merges_for_col_remove,
    shift_merges_for_row_insert,
    shift_merges_for_row_remove,
)
from blockdoc_toolkit.core.utils import copy_props, generate_slot_id

__all__ = [
    "AddTableRow",
    "RemoveTableRow",
    "AddTableColumn",
    "RemoveTableColumn",
    "MergeTableCells",
    "UnmergeTableCells",
    "SetTableHeaderRows",
    "TABLE_COMMAND_TYPES",
    "TableCommandHandler",
]

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Command types
# ---------------------------------------------------------------------------

@register_command
@dataclass(frozen=True)
class AddTableRow(Command):
    """Insert an empty row at *position* (``0 <= position <= rows``)."""
    type: ClassVar[str] = "AddTableRow"

    node_id: str
    position: int
    restore: Optional[SlotRestore] = None


@register_command
@dataclass(frozen=True)
class RemoveTableRow(Command):
    """Remove the row at *position* and its content.

    ``restore_header_rows`` is set only on the inverse of
    :class:`AddTableRow` and replaces the usual header-row adjustment.
    """
    type: ClassVar[str] = "RemoveTableRow"

    node_id: str
    position: int
    restore_header_rows: Optional[int] = None


@register_command
@dataclass(frozen=True)
class AddTableColumn(Command):
    """Insert an empty column of *width* at *position*."""
    type: ClassVar[str] = "AddTableColumn"

    node_id: str
    position: int
    width: Optional[float] = None
    restore: Optional[SlotRestore] = None


@register_command
@dataclass(frozen=True)
class RemoveTableColumn(Command):
    type: ClassVar[str] = "RemoveTableColumn"

    node_id: str
    position: int


@register_command
@dataclass(frozen=True)
class MergeTableCells(Command):
    """Merge the rectangle between two corner cells.

    ``merge_index`` is set only on the inverse of
    :class:`UnmergeTableCells` and puts the merge back at its old position
    in the merge list.
    """
    type: ClassVar[str] = "MergeTableCells"

    node_id: str
    start_row: int
    start_col: int
    end_row: int
    end_col: int
    merge_index: Optional[int] = None


@register_command
@dataclass(frozen=True)
class UnmergeTableCells(Command):
    """Remove the merge anchored at ``(row, col)``.

    Content gathered in the anchor stays there. On the inverse of
    :class:`MergeTableCells`, ``restore_merges`` and ``restore_children``
    put back the merge list and the slot contents the merge changed. An
    inverse with ``restore_children`` but no ``restore_merges`` drops the
    ``merges`` key the merge introduced.
    """
    type: ClassVar[str] = "UnmergeTableCells"

    node_id: str
    row: int
    col: int
    restore_merges: Optional[Tuple[Dict[str, int], ...]] = None
    restore_children: Optional[Dict[str, Tuple[str, ...]]] = None


@register_command
@dataclass(frozen=True)
class SetTableHeaderRows(Command):
    """Set how many leading rows are header rows.

    ``None`` removes the ``headerRows`` key, which reads as zero.
    """
    type: ClassVar[str] = "SetTableHeaderRows"

    node_id: str
    header_rows: Optional[int] = None


TABLE_COMMAND_TYPES: Tuple[str, ...] = (
    AddTableRow.type,
    RemoveTableRow.type,
    AddTableColumn.type,
    RemoveTableColumn.type,
    MergeTableCells.type,
    UnmergeTableCells.type,
    SetTableHeaderRows.type,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _put(props: Dict[str, Any], key: str, value: Any, default: Any) -> None:
    # Keys a document never had stay absent while they hold their default
    if key in props or value != default:
        props[key] = value


def _capture_merges(props: Dict[str, Any]) -> Optional[Tuple[Dict[str, int], ...]]:
    if "merges" not in props:
        return None
    return tuple(dict(m) for m in props["merges"] or ())


def _restore_key(props: Dict[str, Any], key: str, value: Any) -> None:
    if value is None:
        props.pop(key, None)
    else:
        props[key] = value


def _capture_cells(
    doc: Document,
    node: Node,
    cells: Sequence[Slot],
) -> Tuple[SlotRestore, List[str], List[str]]:
    """Build the restore payload for removing *cells* from a table node.

    Returns the payload plus the ids of every node and slot to drop.
    """
    positioned = sorted(((node.slots.index(s.id), s) for s in cells), key=lambda p: p[0])
    node_ids: List[str] = []
    slot_ids: List[str] = []
    for _, slot in positioned:
        n_ids, s_ids = collect_slot_contents(doc, slot.id)
        node_ids.extend(n_ids)
        slot_ids.extend(s_ids)
    restore = SlotRestore(
        slots=tuple(s for _, s in positioned),
        positions=tuple(p for p, _ in positioned),
        nodes=tuple(doc.nodes[n] for n in node_ids if n in doc.nodes),
        descendant_slots=tuple(doc.slots[s] for s in slot_ids if s in doc.slots),
        merges=_capture_merges(node.props),
        header_rows=node.props.get("headerRows"),
    )
    return restore, node_ids, [*(s.id for _, s in positioned), *slot_ids]


def _insert_restored(slot_ids: List[str], restore: SlotRestore) -> None:
    # Ascending positions rebuild the original order one slot at a time
    for position, slot in sorted(zip(restore.positions, restore.slots), key=lambda p: p[0]):
        slot_ids.insert(min(position, len(slot_ids)), slot.id)


def _restore_clash(doc: Document, restore: SlotRestore) -> Optional[str]:
    for slot in (*restore.slots, *restore.descendant_slots):
        if slot.id in doc.slots:
            return f"Slot {slot.id} already exists"
    for node in restore.nodes:
        if node.id in doc.nodes:
            return f"Node {node.id} already exists"
    if len(restore.positions) != len(restore.slots):
        return "Restore payload positions do not match its slots"
    return None


# ---------------------------------------------------------------------------
# Handler
# ---------------------------------------------------------------------------

class TableCommandHandler:
    """Applies the table command vocabulary.

    Args:
        default_column_width: Width used by ``AddTableColumn`` when the
            command does not name one
    """

    command_types = TABLE_COMMAND_TYPES

    def __init__(self, default_column_width: Optional[float] = None) -> None:
        self.default_column_width = default_column_width or DEFAULT_COLUMN_WIDTH

    def __call__(self, doc: Document, command: Command) -> CommandResult:
        node_id = getattr(command, "node_id", None)
        node = doc.nodes.get(node_id) if isinstance(node_id, str) else None
        if node is None:
            return CommandResult.failure(f"Node {node_id} not found")
        if node.type != TABLE_TYPE:
            return CommandResult.failure(f"{command.type} only applies to table nodes")

        if isinstance(command, AddTableRow):
            return self._add_row(doc, node, command)
        if isinstance(command, RemoveTableRow):
            return self._remove_row(doc, node, command)
        if isinstance(command, AddTableColumn):
            return self._add_column(doc, node, command)
        if isinstance(command, RemoveTableColumn):
            return self._remove_column(doc, node, command)
        if isinstance(command, MergeTableCells):
            return self._merge(doc, node, command)
        if isinstance(command, UnmergeTableCells):
            return self._unmerge(doc, node, command)
        if isinstance(command, SetTableHeaderRows):
            return self._set_header_rows(doc, node, command)
        return CommandResult.failure(f"Unsupported command '{command.type}' for tables")

    # -------------------------------------------------------------------------
    # Rows
    # -------------------------------------------------------------------------

    def _add_row(self, doc: Document, node: Node, cmd: AddTableRow) -> CommandResult:
        tp = TableProps.from_props(node.props)
        if cmd.position < 0 or cmd.position > tp.rows:
            return CommandResult.failure(f"Invalid row position {cmd.position}")
        if cmd.restore is not None:
            clash = _restore_clash(doc, cmd.restore)
            if clash:
                return CommandResult.failure(clash)

        by_name = slots_by_name(doc, node)
        put_slots: List[Slot] = []

        # Highest row first so every target name is already free
        for r in range(tp.rows - 1, cmd.position - 1, -1):
            for c in range(tp.columns):
                slot = by_name.get(cell_slot_name(r, c))
                if slot is not None:
                    put_slots.append(slot.renamed(cell_slot_name(r + 1, c)))

        slot_ids = list(node.slots)
        props = dict(node.props)
        put_nodes: List[Node] = []
        if cmd.restore is not None:
            _insert_restored(slot_ids, cmd.restore)
            put_slots.extend(cmd.restore.slots)
            put_slots.extend(cmd.restore.descendant_slots)
            put_nodes.extend(cmd.restore.nodes)
            _restore_key(props, "merges", None if cmd.restore.merges is None
                         else [dict(m) for m in cmd.restore.merges])
            _restore_key(props, "headerRows", cmd.restore.header_rows)
        else:
            for c in range(tp.columns):
                slot = Slot(id=generate_slot_id(), node_id=node.id, name=cell_slot_name(cmd.position, c))
                slot_ids.append(slot.id)
                put_slots.append(slot)
            _put(props, "merges", merges_to_props(shift_merges_for_row_insert(tp.merges, cmd.position)), [])
        props["rows"] = tp.rows + 1

        put_nodes.append(node.with_slots(slot_ids).with_props(props))
        new_doc = doc.evolve(put_nodes=put_nodes, put_slots=put_slots)
        inverse = RemoveTableRow(
            node_id=node.id,
            position=cmd.position,
            restore_header_rows=node.props.get("headerRows", 0),
        )
        return CommandResult.success(new_doc, inverse, structure_changed=True)

    def _remove_row(self, doc: Document, node: Node, cmd: RemoveTableRow) -> CommandResult:
        tp = TableProps.from_props(node.props)
        if tp.rows <= 1:
            return CommandResult.failure("Cannot remove the last row")
        if cmd.position < 0 or cmd.position >= tp.rows:
            return CommandResult.failure(f"Invalid row position {cmd.position}")

        by_name = slots_by_name(doc, node)
        cells: List[Slot] = []
        for c in range(tp.columns):
            slot = by_name.get(cell_slot_name(cmd.position, c))
            if slot is None:
                return CommandResult.failure(f"Missing cell slot {cell_slot_name(cmd.position, c)}")
            cells.append(slot)

        restore, drop_nodes, drop_slots = _capture_cells(doc, node, cells)

        # Row after the removed one first so every target name is already free
        put_slots: List[Slot] = []
        for r in range(cmd.position + 1, tp.rows):
            for c in range(tp.columns):
                slot = by_name.get(cell_slot_name(r, c))
                if slot is not None:
                    put_slots.append(slot.renamed(cell_slot_name(r - 1, c)))

        if cmd.restore_header_rows is not None:
            header_rows = cmd.restore_header_rows
        elif cmd.position < tp.header_rows:
            header_rows = tp.header_rows - 1
        else:
            header_rows = tp.header_rows

        removed = set(drop_slots)
        props = dict(node.props)
        props["rows"] = tp.rows - 1
        _put(props, "merges", merges_to_props(shift_merges_for_row_remove(tp.merges, cmd.position)), [])
        _put(props, "headerRows", header_rows, 0)
        new_node = node.with_slots(s for s in node.slots if s not in removed).with_props(props)

        new_doc = doc.evolve(
            put_nodes=[new_node],
            put_slots=put_slots,
            drop_nodes=drop_nodes,
            drop_slots=drop_slots,
        )
        inverse = AddTableRow(node_id=node.id, position=cmd.position, restore=restore)
        return CommandResult.success(new_doc, inverse, structure_changed=True)

    # -------------------------------------------------------------------------
    # Columns
    # -------------------------------------------------------------------------

    def _add_column(self, doc: Document, node: Node, cmd: AddTableColumn) -> CommandResult:
        tp = TableProps.from_props(node.props)
        if cmd.position < 0 or cmd.position > tp.columns:
            return CommandResult.failure(f"Invalid column position {cmd.position}")
        if cmd.restore is not None:
            clash = _restore_clash(doc, cmd.restore)
            if clash:
                return CommandResult.failure(clash)
        width = cmd.width if cmd.width is not None else self.default_column_width

        by_name = slots_by_name(doc, node)
        put_slots: List[Slot] = []

        # Rightmost column first so every target name is already free
        for c in range(tp.columns - 1, cmd.position - 1, -1):
            for r in range(tp.rows):
                slot = by_name.get(cell_slot_name(r, c))
                if slot is not None:
                    put_slots.append(slot.renamed(cell_slot_name(r, c + 1)))

        slot_ids = list(node.slots)
        props = dict(node.props)
        put_nodes: List[Node] = []
        if cmd.restore is not None:
            _insert_restored(slot_ids, cmd.restore)
            put_slots.extend(cmd.restore.slots)
            put_slots.extend(cmd.restore.descendant_slots)
            put_nodes.extend(cmd.restore.nodes)
            _restore_key(props, "merges", None if cmd.restore.merges is None
                         else [dict(m) for m in cmd.restore.merges])
        else:
            for r in range(tp.rows):
                slot = Slot(id=generate_slot_id(), node_id=node.id, name=cell_slot_name(r, cmd.position))
                slot_ids.append(slot.id)
                put_slots.append(slot)
            _put(props, "merges", merges_to_props(shift_merges_for_col_insert(tp.merges, cmd.position)), [])

        widths = list(tp.column_widths)
        widths.insert(min(cmd.position, len(widths)), width)
        props["columns"] = tp.columns + 1
        props["columnWidths"] = widths

        put_nodes.append(node.with_slots(slot_ids).with_props(props))
        new_doc = doc.evolve(put_nodes=put_nodes, put_slots=put_slots)
        inverse = RemoveTableColumn(node_id=node.id, position=cmd.position)
        return CommandResult.success(new_doc, inverse, structure_changed=True)

    def _remove_column(self, doc: Document, node: Node, cmd: RemoveTableColumn) -> CommandResult:
        tp = TableProps.from_props(node.props)
        if tp.columns <= 1:
            return CommandResult.failure("Cannot remove the last column")
        if cmd.position < 0 or cmd.position >= tp.columns:
            return CommandResult.failure(f"Invalid column position {cmd.position}")

        by_name = slots_by_name(doc, node)
        cells: List[Slot] = []
        for r in range(tp.rows):
            slot = by_name.get(cell_slot_name(r, cmd.position))
            if slot is None:
                return CommandResult.failure(f"Missing cell slot {cell_slot_name(r, cmd.position)}")
            cells.append(slot)

        restore, drop_nodes, drop_slots = _capture_cells(doc, node, cells)

        # Column after the removed one first so every target name is already free
        put_slots: List[Slot] = []
        for c in range(cmd.position + 1, tp.columns):
            for r in range(tp.rows):
                slot = by_name.get(cell_slot_name(r, c))
                if slot is not None:
                    put_slots.append(slot.renamed(cell_slot_name(r, c - 1)))

        widths = list(tp.column_widths)
        removed_width = widths.pop(cmd.position) if cmd.position < len(widths) else self.default_column_width

        removed = set(drop_slots)
        props = dict(node.props)
        props["columns"] = tp.columns - 1
        props["columnWidths"] = widths
        _put(props, "merges", merges_to_props(shift_merges_for_col_remove(tp.merges, cmd.position)), [])
        new_node = node.with_slots(s for s in node.slots if s not in removed).with_props(props)

        new_doc = doc.evolve(
            put_nodes=[new_node],
            put_slots=put_slots,
            drop_nodes=drop_nodes,
            drop_slots=drop_slots,
        )
        inverse = AddTableColumn(node_id=node.id, position=cmd.position, width=removed_width, restore=restore)
        return CommandResult.success(new_doc, inverse, structure_changed=True)

    # -------------------------------------------------------------------------
    # Merging
    # -------------------------------------------------------------------------

    def _merge(self, doc: Document, node: Node, cmd: MergeTableCells) -> CommandResult:
        tp = TableProps.from_props(node.props)
        sel = normalize_selection(CellSelection(cmd.start_row, cmd.start_col, cmd.end_row, cmd.end_col))
        if sel.row_span == 1 and sel.col_span == 1:
            return CommandResult.failure("Cannot merge a single cell")
        if sel.start_row < 0 or sel.start_col < 0 or sel.end_row >= tp.rows or sel.end_col >= tp.columns:
            return CommandResult.failure("Merge selection is outside the table")
        if not can_merge(sel, tp.merges):
            return CommandResult.failure("Selection partially overlaps an existing merge")

        by_name = slots_by_name(doc, node)
        anchor = by_name.get(cell_slot_name(sel.start_row, sel.start_col))
        if anchor is None:
            return CommandResult.failure(f"Missing cell slot {cell_slot_name(sel.start_row, sel.start_col)}")

        new_merge = CellMerge(sel.start_row, sel.start_col, sel.row_span, sel.col_span)
        merges = absorb_merges(sel, tp.merges)
        if cmd.merge_index is None or cmd.merge_index < 0 or cmd.merge_index > len(merges):
            merges.append(new_merge)
        else:
            merges.insert(cmd.merge_index, new_merge)

        # Covered cells hand their children to the anchor in row-major order
        previous: Dict[str, Tuple[str, ...]] = {}
        gathered: List[str] = []
        put_slots: List[Slot] = []
        for r, c in new_merge.cells():
            if (r, c) == (new_merge.row, new_merge.col):
                continue
            covered = by_name.get(cell_slot_name(r, c))
            if covered is None or not covered.children:
                continue
            previous[covered.id] = covered.children
            gathered.extend(covered.children)
            put_slots.append(covered.with_children(()))
        if gathered:
            previous[anchor.id] = anchor.children
            put_slots.append(anchor.with_children((*anchor.children, *gathered)))

        props = dict(node.props)
        props["merges"] = merges_to_props(merges)
        new_doc = doc.evolve(put_nodes=[node.with_props(props)], put_slots=put_slots)
        inverse = UnmergeTableCells(
            node_id=node.id,
            row=new_merge.row,
            col=new_merge.col,
            restore_merges=_capture_merges(node.props),
            restore_children=previous,
        )
        return CommandResult.success(new_doc, inverse, structure_changed=False)

    def _unmerge(self, doc: Document, node: Node, cmd: UnmergeTableCells) -> CommandResult:
        tp = TableProps.from_props(node.props)
        index = next((i for i, m in enumerate(tp.merges) if (m.row, m.col) == (cmd.row, cmd.col)), -1)
        if index < 0:
            return CommandResult.failure(f"No merge at ({cmd.row}, {cmd.col})")
        removed = tp.merges[index]

        put_slots: List[Slot] = []
        for slot_id, children in (cmd.restore_children or {}).items():
            slot = doc.slots.get(slot_id)
            if slot is None or slot.node_id != node.id:
                return CommandResult.failure(f"Cell slot {slot_id} not found in table {node.id}")
            missing = [c for c in children if c not in doc.nodes]
            if missing:
                return CommandResult.failure(f"Node {missing[0]} not found")
            put_slots.append(slot.with_children(children))

        props = dict(node.props)
        if cmd.restore_merges is not None:
            props["merges"] = [dict(m) for m in cmd.restore_merges]
        elif cmd.restore_children is not None:
            # Undoing a merge on a table that never had a merge list
            props.pop("merges", None)
        else:
            props["merges"] = merges_to_props(m for i, m in enumerate(tp.merges) if i != index)

        new_doc = doc.evolve(put_nodes=[node.with_props(props)], put_slots=put_slots)
        inverse = MergeTableCells(
            node_id=node.id,
            start_row=removed.row,
            start_col=removed.col,
            end_row=removed.end_row,
            end_col=removed.end_col,
            merge_index=index,
        )
        return CommandResult.success(new_doc, inverse, structure_changed=False)

    # -------------------------------------------------------------------------
    # Header rows
    # -------------------------------------------------------------------------

    def _set_header_rows(self, doc: Document, node: Node, cmd: SetTableHeaderRows) -> CommandResult:
        tp = TableProps.from_props(node.props)
        if cmd.header_rows is not None and (cmd.header_rows < 0 or cmd.header_rows > tp.rows):
            return CommandResult.failure(f"Invalid header row count {cmd.header_rows}")

        props = copy_props(node.props)
        _restore_key(props, "headerRows", cmd.header_rows)
        new_doc = doc.evolve(put_nodes=[node.with_props(props)])
        inverse = SetTableHeaderRows(node_id=node.id, header_rows=node.props.get("headerRows"))
        return CommandResult.success(new_doc, inverse, structure_changed=False)
