from __future__ import annotations

"""Data table component: one row per item of an array expression.

A ``datatable`` node owns a single ``columns`` slot holding
``datatable-column`` children. Each column carries its header text and
relative width and a ``body`` slot with the per-row template content.
Columns are created together with the table and afterwards added or
removed with the generic ``InsertNode`` and ``RemoveNode`` commands.
"""

import logging
from typing import Any, Dict, List, Tuple

from blockdoc_toolkit.core.models.commands import InsertNode
from blockdoc_toolkit.core.models.document import Document, Node, Slot
from blockdoc_toolkit.core.registry import (
    AllowedChildren,
    ComponentDefinition,
    SlotTemplate,
    Subtree,
    static_slots,
)
from blockdoc_toolkit.core.utils import generate_node_id, generate_slot_id

__all__ = [
    "DATATABLE_TYPE",
    "DATATABLE_COLUMN_TYPE",
    "DEFAULT_DATATABLE_COLUMNS",
    "MAX_DATATABLE_COLUMNS",
    "create_datatable_definition",
    "create_datatable_column_definition",
    "datatable_subtree",
    "new_datatable_column",
    "add_datatable_column",
]

logger = logging.getLogger(__name__)

DATATABLE_TYPE = "datatable"
DATATABLE_COLUMN_TYPE = "datatable-column"
DEFAULT_DATATABLE_COLUMNS = 3
MAX_DATATABLE_COLUMNS = 20

# Creation option read by the subtree factory and never stored
COLUMN_COUNT_OPTION = "_columnCount"


def _even_width(count: int) -> int:
    # Halves round up
    return int(100 / count + 0.5)


def new_datatable_column(header: str, width: int) -> Tuple[Node, Slot]:
    """Create a column node and its empty ``body`` slot.

    Returns:
        ``(node, body_slot)``
    """
    node_id = generate_node_id()
    body = Slot(id=generate_slot_id(), node_id=node_id, name="body")
    node = Node(
        id=node_id,
        type=DATATABLE_COLUMN_TYPE,
        slots=(body.id,),
        props={"header": header, "width": width},
    )
    return node, body


def datatable_subtree(node_id: str, props: Dict[str, Any]) -> Subtree:
    """Build the ``columns`` slot and ``_columnCount`` evenly sized columns.

    The count defaults to three and is clamped to
    ``1..MAX_DATATABLE_COLUMNS``.
    """
    count = props.get(COLUMN_COUNT_OPTION)
    if count is None:
        count = DEFAULT_DATATABLE_COLUMNS
    count = max(1, min(int(count), MAX_DATATABLE_COLUMNS))

    columns: List[Node] = []
    bodies: List[Slot] = []
    for i in range(count):
        column, body = new_datatable_column(f"Column {i + 1}", _even_width(count))
        columns.append(column)
        bodies.append(body)

    columns_slot = Slot(
        id=generate_slot_id(),
        node_id=node_id,
        name="columns",
        children=tuple(c.id for c in columns),
    )
    return Subtree(slots=(columns_slot,), extra_nodes=tuple(columns), extra_slots=tuple(bodies))


def add_datatable_column(doc: Document, node_id: str) -> InsertNode:
    """Return the command appending a column to the data table *node_id*.

    The new column is titled after its position and sized as an even share
    of the widened table; existing columns keep their widths.

    Raises:
        ValueError: If *node_id* is not a data table with a columns slot, or
            it already has ``MAX_DATATABLE_COLUMNS`` columns
    """
    node = doc.nodes.get(node_id)
    if node is None or node.type != DATATABLE_TYPE or not node.slots:
        raise ValueError(f"{node_id} is not a data table")
    columns_slot = doc.slots.get(node.slots[0])
    if columns_slot is None:
        raise ValueError(f"Data table {node_id} has no columns slot")
    count = len(columns_slot.children)
    if count >= MAX_DATATABLE_COLUMNS:
        raise ValueError(f"Data table {node_id} already has {count} columns")

    logger.debug("Appending column %d to data table %s", count + 1, node_id)
    column, body = new_datatable_column(f"Column {count + 1}", _even_width(count + 1))
    return InsertNode(node=column, slots=(body,), target_slot_id=columns_slot.id, index=-1)


def create_datatable_definition() -> ComponentDefinition:
    return ComponentDefinition(
        type=DATATABLE_TYPE,
        label="Data Table",
        category="logic",
        slots=(SlotTemplate("columns"),),
        allowed_children=AllowedChildren("allowlist", (DATATABLE_COLUMN_TYPE,)),
        default_props={
            "expression": {"raw": "", "language": "jsonata"},
            "itemAlias": "item",
            "indexAlias": None,
            "borderStyle": "all",
            "headerEnabled": True,
        },
        create_subtree=datatable_subtree,
    )


def create_datatable_column_definition() -> ComponentDefinition:
    """Column of a data table; only created through its parent."""
    return ComponentDefinition(
        type=DATATABLE_COLUMN_TYPE,
        label="Data Table Column",
        category="logic",
        slots=(SlotTemplate("body"),),
        default_props={"header": "", "width": 33},
        create_initial_slots=static_slots("body"),
        hidden=True,
    )
