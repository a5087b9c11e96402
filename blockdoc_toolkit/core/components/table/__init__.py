"""Grid table component: cell addressing, merges and structural commands."""

from blockdoc_toolkit.core.components.table.grid import (
    TABLE_DEFAULT_PROPS,
    TABLE_TYPE,
    CellMerge,
    CellSelection,
    TableProps,
    can_merge,
    cell_slot_name,
    expand_selection_for_merges,
    find_merge_at,
    is_cell_covered,
    iter_visible_cells,
    normalize_selection,
    parse_cell_name,
    table_problems,
)
from blockdoc_toolkit.core.components.table.commands import (
    AddTableColumn,
    AddTableRow,
    MergeTableCells,
    RemoveTableColumn,
    RemoveTableRow,
    SetTableHeaderRows,
    TableCommandHandler,
    UnmergeTableCells,
)
from blockdoc_toolkit.core.components.table.registration import create_table_definition

__all__ = [
    "TABLE_DEFAULT_PROPS",
    "TABLE_TYPE",
    "CellMerge",
    "CellSelection",
    "TableProps",
    "can_merge",
    "cell_slot_name",
    "expand_selection_for_merges",
    "find_merge_at",
    "is_cell_covered",
    "iter_visible_cells",
    "normalize_selection",
    "parse_cell_name",
    "table_problems",
    "AddTableColumn",
    "AddTableRow",
    "MergeTableCells",
    "RemoveTableColumn",
    "RemoveTableRow",
    "SetTableHeaderRows",
    "TableCommandHandler",
    "UnmergeTableCells",
    "create_table_definition",
]
