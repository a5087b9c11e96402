from __future__ import annotations

"""Table grid algebra: cell addressing, merge regions and merge shifting.

Cells of a table node are slots named ``cell-{row}-{col}``. Merged regions
are stored in the node's ``merges`` prop as a list of
``{"row", "col", "rowSpan", "colSpan"}`` mappings anchored at their top-left
cell. Everything in this module is a pure function over plain values; the
table commands build on it.

Terminology
-----------
anchor
    Top-left cell of a merge region; the only cell that renders and holds
    content.
covered
    Any other cell inside a merge region; skipped when walking the grid.
"""

from dataclasses import dataclass, field
import re
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from blockdoc_toolkit.core.models.document import Document, Node, slots_by_name

__all__ = [
    "TABLE_TYPE",
    "DEFAULT_COLUMN_WIDTH",
    "TABLE_DEFAULT_PROPS",
    "CellMerge",
    "CellSelection",
    "TableProps",
    "merges_from_props",
    "merges_to_props",
    "normalize_table_props",
    "cell_slot_name",
    "parse_cell_name",
    "find_merge_at",
    "is_cell_covered",
    "normalize_selection",
    "can_merge",
    "expand_selection_for_merges",
    "absorb_merges",
    "shift_merges_for_row_insert",
    "shift_merges_for_row_remove",
    "shift_merges_for_col_insert",
    "shift_merges_for_col_remove",
    "iter_visible_cells",
    "table_problems",
]

TABLE_TYPE = "table"
DEFAULT_COLUMN_WIDTH = 50

TABLE_DEFAULT_PROPS: Dict[str, Any] = {
    "rows": 2,
    "columns": 2,
    "columnWidths": [DEFAULT_COLUMN_WIDTH, DEFAULT_COLUMN_WIDTH],
    "borderStyle": "all",
    "headerRows": 0,
    "merges": [],
}

# No leading zeros, so parsing is the exact inverse of cell_slot_name
_CELL_NAME = re.compile(r"^cell-(0|[1-9]\d*)-(0|[1-9]\d*)$")


# ---------------------------------------------------------------------------
# Value types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CellMerge:
    """Rectangular merge region anchored at ``(row, col)``."""
    row: int
    col: int
    row_span: int
    col_span: int

    @property
    def end_row(self) -> int:
        return self.row + self.row_span - 1

    @property
    def end_col(self) -> int:
        return self.col + self.col_span - 1

    def contains(self, row: int, col: int) -> bool:
        return self.row <= row <= self.end_row and self.col <= col <= self.end_col

    def cells(self) -> Iterator[Tuple[int, int]]:
        """Yield every cell of the region in row-major order."""
        for r in range(self.row, self.row + self.row_span):
            for c in range(self.col, self.col + self.col_span):
                yield r, c

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CellMerge":
        return cls(int(data["row"]), int(data["col"]), int(data["rowSpan"]), int(data["colSpan"]))

    def to_dict(self) -> Dict[str, int]:
        return {"row": self.row, "col": self.col, "rowSpan": self.row_span, "colSpan": self.col_span}


@dataclass(frozen=True)
class CellSelection:
    """User-drawn rectangle; start and end may be given in any order."""
    start_row: int
    start_col: int
    end_row: int
    end_col: int

    @property
    def row_span(self) -> int:
        return abs(self.end_row - self.start_row) + 1

    @property
    def col_span(self) -> int:
        return abs(self.end_col - self.start_col) + 1


def merges_from_props(value: Any) -> List[CellMerge]:
    return [CellMerge.from_dict(m) for m in value or ()]


def merges_to_props(merges: Iterable[CellMerge]) -> List[Dict[str, int]]:
    return [m.to_dict() for m in merges]


@dataclass
class TableProps:
    """Typed view over the props of a table node.

    Unknown keys are kept in ``extra`` and written back by :meth:`to_props`.
    """
    rows: int = 2
    columns: int = 2
    column_widths: List[float] = field(default_factory=lambda: [DEFAULT_COLUMN_WIDTH] * 2)
    merges: List[CellMerge] = field(default_factory=list)
    header_rows: int = 0
    border_style: str = "all"
    extra: Dict[str, Any] = field(default_factory=dict)

    _KEYS = ("rows", "columns", "columnWidths", "merges", "headerRows", "borderStyle")

    @classmethod
    def from_props(cls, props: Dict[str, Any]) -> "TableProps":
        props = props or {}
        return cls(
            rows=int(props.get("rows", 0) or 0),
            columns=int(props.get("columns", 0) or 0),
            column_widths=list(props.get("columnWidths") or []),
            merges=merges_from_props(props.get("merges")),
            header_rows=int(props.get("headerRows", 0) or 0),
            border_style=props.get("borderStyle") or "all",
            extra={k: v for k, v in props.items() if k not in cls._KEYS},
        )

    def to_props(self) -> Dict[str, Any]:
        out = dict(self.extra)
        out.update({
            "rows": self.rows,
            "columns": self.columns,
            "columnWidths": list(self.column_widths),
            "merges": merges_to_props(self.merges),
            "headerRows": self.header_rows,
            "borderStyle": self.border_style,
        })
        return out


def normalize_table_props(props: Dict[str, Any]) -> Dict[str, Any]:
    """Complete the props of a new table so ``columnWidths`` matches ``columns``."""
    out = dict(props)
    columns = int(out.get("columns", TABLE_DEFAULT_PROPS["columns"]))
    widths = list(out.get("columnWidths") or [])
    if len(widths) < columns:
        widths.extend([DEFAULT_COLUMN_WIDTH] * (columns - len(widths)))
    out["columnWidths"] = widths[:columns]
    return out


# ---------------------------------------------------------------------------
# Addressing
# ---------------------------------------------------------------------------

def cell_slot_name(row: int, col: int) -> str:
    return f"cell-{row}-{col}"


def parse_cell_name(name: str) -> Optional[Tuple[int, int]]:
    """Parse ``cell-{row}-{col}``; returns None for any other name.

    Examples:
        >>> parse_cell_name("cell-2-10")
        (2, 10)
        >>> parse_cell_name("column-0") is None
        True
    """
    match = _CELL_NAME.match(name)
    if match is None:
        return None
    return int(match.group(1)), int(match.group(2))


# ---------------------------------------------------------------------------
# Merge algebra
# ---------------------------------------------------------------------------

def find_merge_at(row: int, col: int, merges: Sequence[CellMerge]) -> Optional[CellMerge]:
    """Return the merge whose region contains the cell, if any."""
    for merge in merges:
        if merge.contains(row, col):
            return merge
    return None


def is_cell_covered(row: int, col: int, merges: Sequence[CellMerge]) -> bool:
    """True iff the cell lies inside a merge but is not its anchor."""
    merge = find_merge_at(row, col, merges)
    return merge is not None and (merge.row, merge.col) != (row, col)


def normalize_selection(selection: CellSelection) -> CellSelection:
    """Return the selection with start at the top-left and end at the bottom-right."""
    return CellSelection(
        start_row=min(selection.start_row, selection.end_row),
        start_col=min(selection.start_col, selection.end_col),
        end_row=max(selection.start_row, selection.end_row),
        end_col=max(selection.start_col, selection.end_col),
    )


def _overlaps(sel: CellSelection, merge: CellMerge) -> bool:
    return not (
        merge.end_row < sel.start_row or merge.row > sel.end_row
        or merge.end_col < sel.start_col or merge.col > sel.end_col
    )


def _contains(sel: CellSelection, merge: CellMerge) -> bool:
    return (
        merge.row >= sel.start_row and merge.end_row <= sel.end_row
        and merge.col >= sel.start_col and merge.end_col <= sel.end_col
    )


def can_merge(selection: CellSelection, merges: Sequence[CellMerge]) -> bool:
    """Return True if the selection may become a new merge region.

    A single cell cannot be merged. Existing merges fully inside the
    selection are fine (they are absorbed); any merge that overlaps the
    selection without being fully inside it blocks the merge.
    """
    sel = normalize_selection(selection)
    if sel.row_span == 1 and sel.col_span == 1:
        return False
    for merge in merges:
        if _overlaps(sel, merge) and not _contains(sel, merge):
            return False
    return True


def expand_selection_for_merges(selection: CellSelection, merges: Sequence[CellMerge]) -> CellSelection:
    """Grow a selection until it fully encloses every merge it touches.

    Growing can bring new merges into contact, so the union is repeated
    until the rectangle stops changing.
    """
    sel = normalize_selection(selection)
    changed = True
    while changed:
        changed = False
        for merge in merges:
            if not _overlaps(sel, merge) or _contains(sel, merge):
                continue
            sel = CellSelection(
                start_row=min(sel.start_row, merge.row),
                start_col=min(sel.start_col, merge.col),
                end_row=max(sel.end_row, merge.end_row),
                end_col=max(sel.end_col, merge.end_col),
            )
            changed = True
    return sel


def absorb_merges(selection: CellSelection, merges: Sequence[CellMerge]) -> List[CellMerge]:
    """Return *merges* without those fully inside the selection."""
    sel = normalize_selection(selection)
    return [m for m in merges if not _contains(sel, m)]


# ---------------------------------------------------------------------------
# Merge shifting
# ---------------------------------------------------------------------------

def shift_merges_for_row_insert(merges: Sequence[CellMerge], position: int) -> List[CellMerge]:
    """Adjust merges for a row inserted at *position*.

    Merges starting at or after the position move down one row; merges
    spanning across it grow by one row.
    """
    out: List[CellMerge] = []
    for m in merges:
        if m.row >= position:
            out.append(CellMerge(m.row + 1, m.col, m.row_span, m.col_span))
        elif m.row + m.row_span > position:
            out.append(CellMerge(m.row, m.col, m.row_span + 1, m.col_span))
        else:
            out.append(m)
    return out


def shift_merges_for_row_remove(merges: Sequence[CellMerge], position: int) -> List[CellMerge]:
    """Adjust merges for the row at *position* being removed.

    Merges below the row move up; merges ending above it are unchanged; a
    merge that is exactly the removed row is dropped; any other merge
    crossing the row shrinks by one row and is dropped if nothing is left.
    """
    out: List[CellMerge] = []
    for m in merges:
        if m.row > position:
            out.append(CellMerge(m.row - 1, m.col, m.row_span, m.col_span))
        elif m.end_row < position:
            out.append(m)
        elif m.row == position and m.row_span == 1:
            continue
        elif m.row_span - 1 > 0:
            out.append(CellMerge(m.row, m.col, m.row_span - 1, m.col_span))
    return out


def shift_merges_for_col_insert(merges: Sequence[CellMerge], position: int) -> List[CellMerge]:
    """Column counterpart of :func:`shift_merges_for_row_insert`."""
    out: List[CellMerge] = []
    for m in merges:
        if m.col >= position:
            out.append(CellMerge(m.row, m.col + 1, m.row_span, m.col_span))
        elif m.col + m.col_span > position:
            out.append(CellMerge(m.row, m.col, m.row_span, m.col_span + 1))
        else:
            out.append(m)
    return out


def shift_merges_for_col_remove(merges: Sequence[CellMerge], position: int) -> List[CellMerge]:
    """Column counterpart of :func:`shift_merges_for_row_remove`."""
    out: List[CellMerge] = []
    for m in merges:
        if m.col > position:
            out.append(CellMerge(m.row, m.col - 1, m.row_span, m.col_span))
        elif m.end_col < position:
            out.append(m)
        elif m.col == position and m.col_span == 1:
            continue
        elif m.col_span - 1 > 0:
            out.append(CellMerge(m.row, m.col, m.row_span, m.col_span - 1))
    return out


# ---------------------------------------------------------------------------
# Walking and checking
# ---------------------------------------------------------------------------

def iter_visible_cells(props: TableProps) -> Iterator[Tuple[int, int, Optional[CellMerge]]]:
    """Yield ``(row, col, merge)`` for every rendered cell in row-major order.

    Covered cells are skipped; ``merge`` is the region anchored at the cell,
    or None for a plain cell.
    """
    for r in range(props.rows):
        for c in range(props.columns):
            merge = find_merge_at(r, c, props.merges)
            if merge is None:
                yield r, c, None
            elif (merge.row, merge.col) == (r, c):
                yield r, c, merge


def table_problems(doc: Document, node: Node) -> List[str]:
    """Check the grid invariants of one table node.

    Reports missing or extra cell slots, a ``columnWidths`` length that
    differs from ``columns``, merges out of bounds or partially
    overlapping each other, covered cells anchoring a merge and covered
    cells holding content.
    """
    problems: List[str] = []
    tp = TableProps.from_props(node.props)
    by_name = slots_by_name(doc, node)

    expected = {cell_slot_name(r, c) for r in range(tp.rows) for c in range(tp.columns)}
    actual = set(by_name)
    for name in sorted(expected - actual):
        problems.append(f"Missing cell slot {name}")
    for name in sorted(actual - expected):
        problems.append(f"Unexpected slot {name}")
    if len(node.slots) != len(by_name):
        problems.append("Duplicate slot names")
    if len(tp.column_widths) != tp.columns:
        problems.append(f"columnWidths has {len(tp.column_widths)} entries for {tp.columns} columns")

    for i, m in enumerate(tp.merges):
        if m.row < 0 or m.col < 0 or m.row_span < 1 or m.col_span < 1 \
                or m.end_row >= tp.rows or m.end_col >= tp.columns:
            problems.append(f"Merge {m.to_dict()} is out of bounds")
        region = CellSelection(m.row, m.col, m.end_row, m.end_col)
        for j, other in enumerate(tp.merges):
            if i != j and _overlaps(region, other) and not _contains(region, other) \
                    and not _contains(CellSelection(other.row, other.col, other.end_row, other.end_col), m):
                problems.append(f"Merges {m.to_dict()} and {other.to_dict()} partially overlap")

    anchors = {(m.row, m.col) for m in tp.merges}
    for m in tp.merges:
        for r, c in m.cells():
            if (r, c) == (m.row, m.col):
                continue
            if (r, c) in anchors:
                problems.append(f"Covered cell ({r}, {c}) anchors a merge")
            slot = by_name.get(cell_slot_name(r, c))
            if slot is not None and slot.children:
                problems.append(f"Covered cell ({r}, {c}) holds content")
    return problems
