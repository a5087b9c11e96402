from __future__ import annotations

"""Table component definition for the component registry."""

from typing import Any, Dict, List, Optional

from blockdoc_toolkit.core.models.document import Slot
from blockdoc_toolkit.core.registry import ComponentDefinition, SlotTemplate
from blockdoc_toolkit.core.components.table.commands import TableCommandHandler
from blockdoc_toolkit.core.components.table.grid import (
    TABLE_DEFAULT_PROPS,
    TABLE_TYPE,
    TableProps,
    cell_slot_name,
    normalize_table_props,
)
from blockdoc_toolkit.core.utils import copy_props, generate_slot_id

__all__ = ["create_table_definition", "initial_table_slots"]


def initial_table_slots(node_id: str, props: Dict[str, Any]) -> List[Slot]:
    """Create one empty ``cell-{r}-{c}`` slot per grid position, row-major."""
    rows = int(props.get("rows", TABLE_DEFAULT_PROPS["rows"]))
    columns = int(props.get("columns", TABLE_DEFAULT_PROPS["columns"]))
    return [
        Slot(id=generate_slot_id(), node_id=node_id, name=cell_slot_name(r, c))
        for r in range(rows)
        for c in range(columns)
    ]


def create_table_definition(default_column_width: Optional[float] = None) -> ComponentDefinition:
    """Create the table component definition.

    Args:
        default_column_width: Width for columns added without an explicit one
    """
    handler = TableCommandHandler(default_column_width=default_column_width)
    return ComponentDefinition(
        type=TABLE_TYPE,
        label="Table",
        category="layout",
        slots=(SlotTemplate("cell-{r}-{c}", dynamic=True),),
        default_props=copy_props(TABLE_DEFAULT_PROPS),
        create_initial_slots=initial_table_slots,
        normalize_props=normalize_table_props,
        props_type=TableProps,
        command_types=handler.command_types,
        command_handler=handler,
    )
