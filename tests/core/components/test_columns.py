import pytest

from blockdoc_toolkit.core.components.columns import (
    AddColumnSlot,
    RemoveColumnSlot,
    column_slot_name,
)
from blockdoc_toolkit.core.models import InsertNode, validate_document
from blockdoc_toolkit.core.registry import create_default_registry
from blockdoc_toolkit.core.services.command_service import dispatch


@pytest.fixture
def columns_doc(empty_doc, root_slot, insert):
    doc, node = insert(empty_doc, "columns", root_slot)
    return doc, node.id


def _column_names(doc, node_id):
    return [doc.slots[s].name for s in doc.nodes[node_id].slots]


def test_default_columns_node_has_two_slots(columns_doc):
    doc, node_id = columns_doc
    assert _column_names(doc, node_id) == ["column-0", "column-1"]
    assert doc.nodes[node_id].props["columnSizes"] == [1, 1]


def test_add_column_appends_slot_and_size(columns_doc, registry):
    doc, node_id = columns_doc
    result = dispatch(doc, AddColumnSlot(node_id, size=2), registry)

    assert result.ok
    assert _column_names(result.doc, node_id)[-1] == column_slot_name(2)
    assert result.doc.nodes[node_id].props == {"columnSizes": [1, 1, 2], "gap": 0}
    assert result.inverse == RemoveColumnSlot(node_id)
    assert validate_document(result.doc) == []


def test_add_beyond_maximum_fails(columns_doc, registry):
    doc, node_id = columns_doc
    for _ in range(4):
        result = dispatch(doc, AddColumnSlot(node_id), registry)
        assert result.ok
        doc = result.doc
    assert len(doc.nodes[node_id].slots) == 6

    result = dispatch(doc, AddColumnSlot(node_id), registry)
    assert not result.ok
    assert "6" in result.error


def test_maximum_is_configurable(empty_doc, root_slot):
    class FakeConfig:
        def get_editor_config(self):
            return {"columns": {"max_columns": 2}}

    registry = create_default_registry(FakeConfig())
    node, slots = registry.create_node("columns")
    doc = dispatch(empty_doc, InsertNode(node=node, slots=tuple(slots), target_slot_id=root_slot), registry).doc
    assert not dispatch(doc, AddColumnSlot(node.id), registry).ok


def test_last_column_cannot_be_removed(columns_doc, registry):
    doc, node_id = columns_doc
    doc = dispatch(doc, RemoveColumnSlot(node_id), registry).doc
    result = dispatch(doc, RemoveColumnSlot(node_id), registry)
    assert not result.ok
    assert result.error == "Cannot remove the last column"


def test_remove_then_undo_restores_content(columns_doc, registry, insert, slot_of):
    doc, node_id = columns_doc
    doc, text = insert(doc, "text", slot_of(doc, node_id, "column-1"), content="right")
    doc = doc.evolve(put_nodes=[doc.nodes[node_id].with_props({"columnSizes": [1, 3], "gap": 8, "tone": "dark"})])

    removed = dispatch(doc, RemoveColumnSlot(node_id), registry)
    assert removed.ok
    assert text.id not in removed.doc.nodes
    assert removed.doc.nodes[node_id].props == {"columnSizes": [1], "gap": 8, "tone": "dark"}
    assert removed.inverse.size == 3

    restored = dispatch(removed.doc, removed.inverse, registry)
    assert restored.ok
    assert restored.doc == doc
    assert restored.doc.slots[slot_of(doc, node_id, "column-1")].children == (text.id,)


def test_commands_reject_other_node_types(empty_doc, root_slot, insert, registry):
    doc, box = insert(empty_doc, "container", root_slot)
    assert not dispatch(doc, AddColumnSlot(box.id), registry).ok
    assert not dispatch(doc, RemoveColumnSlot(box.id), registry).ok
