import json

import pytest

from blockdoc_toolkit.core.components.columns import AddColumnSlot, RemoveColumnSlot
from blockdoc_toolkit.core.components.table import (
    AddTableColumn,
    AddTableRow,
    MergeTableCells,
    RemoveTableColumn,
    RemoveTableRow,
    SetTableHeaderRows,
    UnmergeTableCells,
)
from blockdoc_toolkit.core.exceptions import CommandFormatError
from blockdoc_toolkit.core.models import (
    InsertNode,
    MoveNode,
    Node,
    RemoveNode,
    Slot,
    SlotRestore,
    UpdateNodeProps,
    command_from_dict,
    command_to_dict,
)
from blockdoc_toolkit.core.models.commands import registered_command_types


def test_wire_keys_are_camel_case_and_none_is_omitted():
    data = command_to_dict(MoveNode(node_id="n-1", target_slot_id="s-2", index=0))
    assert data == {"type": "MoveNode", "nodeId": "n-1", "targetSlotId": "s-2", "index": 0}

    data = command_to_dict(AddTableColumn(node_id="n-t", position=1))
    assert "width" not in data and "restore" not in data


def test_vocabulary_is_registered():
    types = set(registered_command_types())
    assert {
        "InsertNode", "RemoveNode", "MoveNode", "UpdateNodeProps",
        "AddTableRow", "RemoveTableRow", "AddTableColumn", "RemoveTableColumn",
        "MergeTableCells", "UnmergeTableCells", "SetTableHeaderRows",
        "AddColumnSlot", "RemoveColumnSlot",
    } <= types


def test_inverse_payloads_survive_json():
    node = Node(id="n-1", type="container", slots=("s-1",), props={"a": [1, {"b": None}]})
    child = Node(id="n-2", type="text", props={"content": "hi"})
    slot = Slot(id="s-1", node_id="n-1", name="children", children=("n-2",))
    insert = InsertNode(node=node, slots=(slot,), target_slot_id="s-root", index=2, restore_nodes=(child,))

    restore = SlotRestore(
        slots=(Slot(id="s-c", node_id="n-t", name="cell-1-0", children=("n-2",)),),
        positions=(2,),
        nodes=(child,),
        merges=({"row": 0, "col": 0, "rowSpan": 1, "colSpan": 2},),
        header_rows=1,
    )
    add_row = AddTableRow(node_id="n-t", position=1, restore=restore)
    unmerge = UnmergeTableCells(
        node_id="n-t", row=0, col=0,
        restore_merges=(),
        restore_children={"s-a": ("n-2",), "s-b": ()},
    )

    for command in (insert, add_row, unmerge):
        wire = json.loads(json.dumps(command_to_dict(command)))
        assert command_from_dict(wire) == command


@pytest.mark.parametrize(
    "command",
    [
        RemoveNode("n-1"),
        UpdateNodeProps("n-1", {"x": 1}),
        RemoveTableRow("n-t", 0, restore_header_rows=0),
        RemoveTableColumn("n-t", 2),
        MergeTableCells("n-t", 0, 0, 1, 1, merge_index=3),
        SetTableHeaderRows("n-t", 2),
        SetTableHeaderRows("n-t"),
        AddColumnSlot("n-c", size=2),
        RemoveColumnSlot("n-c"),
    ],
)
def test_simple_commands_decode_to_equal_values(command):
    assert command_from_dict(command_to_dict(command)) == command


class TestMalformedCommands:
    """Decoding failures raise CommandFormatError."""

    def test_unknown_type(self):
        with pytest.raises(CommandFormatError):
            command_from_dict({"type": "Explode"})

    def test_unknown_field(self):
        with pytest.raises(CommandFormatError) as info:
            command_from_dict({"type": "RemoveNode", "nodeId": "n", "extra": 1})
        assert info.value.command_type == "RemoveNode"

    def test_missing_field(self):
        with pytest.raises(CommandFormatError):
            command_from_dict({"type": "RemoveNode"})

    def test_not_a_mapping(self):
        with pytest.raises(CommandFormatError):
            command_from_dict(["RemoveNode"])
