import pytest

from blockdoc_toolkit.core.models import (
    Command,
    InsertNode,
    MoveNode,
    Node,
    RemoveNode,
    UpdateNodeProps,
    build_indexes,
    validate_document,
)
from blockdoc_toolkit.core.registry import ComponentDefinition
from blockdoc_toolkit.core.services.command_service import dispatch


@pytest.fixture
def populated(empty_doc, root_slot, insert, slot_of):
    """root > [container(c) > [text(a), text(b)], text(z)]"""
    doc, container = insert(empty_doc, "container", root_slot)
    inner = slot_of(doc, container.id, "children")
    doc, a = insert(doc, "text", inner, content="a")
    doc, b = insert(doc, "text", inner, content="b")
    doc, z = insert(doc, "text", root_slot, content="z")
    return doc, {"c": container.id, "a": a.id, "b": b.id, "z": z.id, "inner": inner}


def _roundtrip(doc, command, registry):
    """Apply *command*, then its inverse; return (forward result, restored doc)."""
    forward = dispatch(doc, command, registry)
    assert forward.ok, forward.error
    backward = dispatch(forward.doc, forward.inverse, registry)
    assert backward.ok, backward.error
    return forward, backward.doc


class TestInsertNode:
    def test_insert_at_index(self, populated, registry):
        doc, ids = populated
        node, slots = registry.create_node("text", {"content": "new"})
        result = dispatch(doc, InsertNode(node=node, slots=tuple(slots), target_slot_id=ids["inner"], index=1), registry)

        assert result.ok
        assert result.doc.slots[ids["inner"]].children == (ids["a"], node.id, ids["b"])
        assert result.inverse == RemoveNode(node.id)
        assert result.structure_changed is True
        assert validate_document(result.doc) == []

    def test_negative_index_appends(self, populated, registry):
        doc, ids = populated
        node, _ = registry.create_node("text")
        result = dispatch(doc, InsertNode(node=node, slots=(), target_slot_id=ids["inner"], index=-1), registry)
        assert result.doc.slots[ids["inner"]].children[-1] == node.id

    def test_disallowed_child_is_rejected(self, populated, registry, root_slot):
        doc, _ = populated
        result = dispatch(doc, InsertNode(node=Node(id="n-r2", type="root"), slots=(), target_slot_id=root_slot), registry)
        assert not result.ok
        assert "cannot be placed" in result.error

    def test_unknown_type_is_rejected(self, populated, registry):
        doc, ids = populated
        result = dispatch(doc, InsertNode(node=Node(id="n-x", type="video"), slots=(), target_slot_id=ids["inner"]), registry)
        assert not result.ok
        assert "video" in result.error

    def test_missing_slot_is_rejected(self, populated, registry):
        doc, _ = populated
        node, _ = registry.create_node("text")
        result = dispatch(doc, InsertNode(node=node, slots=(), target_slot_id="s-nowhere"), registry)
        assert not result.ok

    def test_duplicate_id_is_rejected(self, populated, registry):
        doc, ids = populated
        result = dispatch(doc, InsertNode(node=doc.nodes[ids["a"]], slots=(), target_slot_id=ids["inner"]), registry)
        assert not result.ok
        assert "already exists" in result.error

    def test_slot_list_mismatch_is_rejected(self, populated, registry):
        doc, ids = populated
        parent, _ = registry.create_node("container")
        result = dispatch(doc, InsertNode(node=parent, slots=(), target_slot_id=ids["inner"]), registry)
        assert not result.ok

    def test_children_must_travel_with_the_node(self, populated, registry):
        doc, ids = populated
        created = registry.create_tree("datatable", {"_columnCount": 2})

        bare = InsertNode(node=created.node, slots=created.slots, target_slot_id=ids["inner"])
        result = dispatch(doc, bare, registry)
        assert not result.ok
        assert "not inserted" in result.error

        orphan_slot = InsertNode(
            node=created.node, slots=created.slots, target_slot_id=ids["inner"],
            restore_nodes=created.extra_nodes,
            restore_slots=(*created.extra_slots, doc.slots[ids["inner"]].renamed("stray")),
        )
        assert not dispatch(doc, orphan_slot, registry).ok

        whole = dispatch(doc, created.insert_command(ids["inner"]), registry)
        assert whole.ok, whole.error
        assert validate_document(whole.doc) == []


class TestRemoveNode:
    def test_remove_subtree_and_restore_identity(self, populated, registry):
        doc, ids = populated
        forward, restored = _roundtrip(doc, RemoveNode(ids["c"]), registry)

        assert ids["a"] not in forward.doc.nodes
        assert ids["inner"] not in forward.doc.slots
        assert validate_document(forward.doc) == []
        assert restored == doc

    def test_inverse_reinserts_at_original_index(self, populated, registry, root_slot):
        doc, ids = populated
        forward = dispatch(doc, RemoveNode(ids["c"]), registry)
        assert forward.inverse.index == 0
        assert forward.inverse.target_slot_id == root_slot

    def test_cannot_remove_root(self, populated, registry):
        doc, _ = populated
        result = dispatch(doc, RemoveNode(doc.root_node_id), registry)
        assert not result.ok
        assert "root" in result.error.lower()

    def test_missing_node(self, populated, registry):
        doc, _ = populated
        assert not dispatch(doc, RemoveNode("n-ghost"), registry).ok


class TestMoveNode:
    def test_move_between_slots_and_back(self, populated, registry, root_slot):
        doc, ids = populated
        forward, restored = _roundtrip(doc, MoveNode(ids["a"], root_slot, 0), registry)

        assert forward.doc.slots[root_slot].children[0] == ids["a"]
        assert ids["a"] not in forward.doc.slots[ids["inner"]].children
        assert restored == doc

    def test_same_slot_index_counts_after_detach(self, populated, registry):
        doc, ids = populated
        forward, restored = _roundtrip(doc, MoveNode(ids["a"], ids["inner"], 1), registry)
        assert forward.doc.slots[ids["inner"]].children == (ids["b"], ids["a"])
        assert restored == doc

    def test_cannot_move_into_own_subtree(self, populated, registry):
        doc, ids = populated
        result = dispatch(doc, MoveNode(ids["c"], ids["inner"]), registry)
        assert not result.ok

    def test_cannot_move_root(self, populated, registry, root_slot):
        doc, _ = populated
        assert not dispatch(doc, MoveNode(doc.root_node_id, root_slot), registry).ok

    def test_move_into_table_cell(self, populated, registry, slot_of, insert):
        doc, ids = populated
        doc, table = insert(doc, "table", slot_of(doc, doc.root_node_id, "children"))
        cell = slot_of(doc, table.id, "cell-0-0")
        assert dispatch(doc, MoveNode(ids["a"], cell), registry).ok


class TestUpdateNodeProps:
    def test_props_replaced_and_inverse_restores(self, populated, registry):
        doc, ids = populated
        forward, restored = _roundtrip(doc, UpdateNodeProps(ids["a"], {"content": "changed"}), registry)

        assert forward.doc.nodes[ids["a"]].props == {"content": "changed"}
        assert forward.structure_changed is False
        assert forward.inverse == UpdateNodeProps(ids["a"], {"content": "a"})
        assert restored == doc

    def test_props_are_copied(self, populated, registry):
        doc, ids = populated
        props = {"content": {"ops": [1]}}
        result = dispatch(doc, UpdateNodeProps(ids["a"], props), registry)
        props["content"]["ops"].append(2)
        assert result.doc.nodes[ids["a"]].props == {"content": {"ops": [1]}}


def test_input_document_is_never_mutated(populated, registry):
    doc, ids = populated
    snapshot = (dict(doc.nodes), dict(doc.slots))
    dispatch(doc, RemoveNode(ids["c"]), registry)
    dispatch(doc, MoveNode(ids["z"], ids["inner"], 0), registry)
    assert (doc.nodes, doc.slots) == snapshot


def test_unknown_command_type_fails(populated, registry):
    class Frobnicate(Command):
        type = "Frobnicate"

    doc, _ = populated
    result = dispatch(doc, Frobnicate(), registry)
    assert not result.ok
    assert "Frobnicate" in result.error


def test_component_handler_exceptions_become_failures(populated, registry):
    from dataclasses import dataclass
    from typing import ClassVar

    @dataclass(frozen=True)
    class Explode(Command):
        type: ClassVar[str] = "Explode"
        node_id: str = ""

    def handler(doc, command):
        raise RuntimeError("kaboom")

    registry.register(ComponentDefinition(
        type="bomb", label="Bomb", command_types=("Explode",), command_handler=handler,
    ))
    doc, _ = populated
    result = dispatch(doc, Explode(), registry)

    assert not result.ok
    assert "kaboom" in result.error


def test_indexes_may_be_passed_in(populated, registry):
    doc, ids = populated
    result = dispatch(doc, RemoveNode(ids["b"]), registry, build_indexes(doc))
    assert result.ok
