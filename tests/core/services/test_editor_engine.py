import pytest

from blockdoc_toolkit.core.components.table import AddTableRow, MergeTableCells
from blockdoc_toolkit.core.models import InsertNode, RemoveNode, UpdateNodeProps
from blockdoc_toolkit.core.models.edit_journal import EditJournal
from blockdoc_toolkit.core.services.editor_engine import (
    DOC_CHANGE,
    HISTORY_CHANGE,
    SELECTION_CHANGE,
    EditorEngine,
)
from blockdoc_toolkit.core.services.undo_service import CommandBatch


@pytest.fixture
def engine(empty_doc, registry):
    return EditorEngine(empty_doc, registry)


@pytest.fixture
def recorder(engine):
    """Collect ``(event, payload)`` pairs for every engine event."""
    seen = []
    for event in (DOC_CHANGE, SELECTION_CHANGE, HISTORY_CHANGE):
        engine.events.on(event, lambda payload, event=event: seen.append((event, payload)))
    return seen


@pytest.fixture
def add(engine, registry, root_slot):
    """Insert a node of the given type under the root through the engine."""

    def _add(node_type, slot_id=None, **props):
        node, slots = registry.create_node(node_type, props or None)
        result = engine.dispatch(InsertNode(node=node, slots=tuple(slots), target_slot_id=slot_id or root_slot))
        assert result.ok, result.error
        return node

    return _add


class TestDispatch:
    def test_success_updates_state_and_emits(self, engine, add, recorder):
        node = add("text", content="hi")

        assert node.id in engine.doc.nodes
        assert engine.indexes.parent_node(node.id) == engine.doc.root_node_id
        assert engine.can_undo and not engine.can_redo
        assert (HISTORY_CHANGE, {"can_undo": True, "can_redo": False}) in recorder
        doc_events = [p for e, p in recorder if e == DOC_CHANGE]
        assert doc_events == [{"doc": engine.doc, "structure_changed": True}]

    def test_failure_changes_nothing(self, engine, recorder):
        before = engine.doc
        result = engine.dispatch(RemoveNode("n-ghost"))

        assert not result.ok
        assert engine.doc is before
        assert not engine.can_undo
        assert recorder == []

    def test_props_update_reports_no_structure_change(self, engine, add, recorder):
        node = add("text")
        recorder.clear()
        engine.dispatch(UpdateNodeProps(node.id, {"content": "x"}))
        assert recorder[-1] == (DOC_CHANGE, {"doc": engine.doc, "structure_changed": False})

    def test_skip_undo(self, engine, registry, root_slot):
        node, _ = registry.create_node("text")
        engine.dispatch(InsertNode(node=node, slots=(), target_slot_id=root_slot), skip_undo=True)
        assert node.id in engine.doc.nodes
        assert not engine.can_undo


class TestUndoRedo:
    def test_undo_then_redo(self, engine, add, slot_of):
        start = engine.doc
        table = add("table", rows=2, columns=2)
        text = add("text", slot_of(engine.doc, table.id, "cell-1-1"))
        engine.dispatch(AddTableRow(table.id, 0))
        edited = engine.doc

        assert engine.undo()
        assert engine.doc.nodes[table.id].props["rows"] == 2
        assert engine.can_redo

        assert engine.redo()
        assert engine.doc == edited

        while engine.can_undo:
            assert engine.undo()
        assert engine.doc == start
        assert text.id not in engine.doc.nodes

    def test_new_dispatch_clears_redo(self, engine, add):
        add("text")
        engine.undo()
        add("container")
        assert not engine.can_redo

    def test_nothing_to_undo(self, engine):
        assert engine.undo() is False
        assert engine.redo() is False

    def test_failing_entry_leaves_history(self, engine):
        engine.history.push(RemoveNode("n-ghost"))
        before = engine.doc

        assert engine.undo() is False
        assert engine.doc is before
        assert engine.can_undo

    def test_depth_from_argument_and_config(self, empty_doc, registry):
        class FakeConfig:
            def get_editor_config(self):
                return {"undo": {"max_depth": 2}}

        assert EditorEngine(empty_doc, registry, config=FakeConfig()).history.max_depth == 2
        assert EditorEngine(empty_doc, registry, undo_depth=5, config=FakeConfig()).history.max_depth == 5
        assert EditorEngine(empty_doc, registry).history.max_depth == 100

    def test_depth_limit_drops_oldest(self, empty_doc, registry, root_slot):
        engine = EditorEngine(empty_doc, registry, undo_depth=2)
        for _ in range(3):
            node, _ = registry.create_node("text")
            engine.dispatch(InsertNode(node=node, slots=(), target_slot_id=root_slot))

        assert engine.undo() and engine.undo()
        assert not engine.undo()
        assert len(engine.doc.slots[root_slot].children) == 1


class TestBatch:
    def test_batch_is_one_entry_and_one_event(self, engine, add, recorder, slot_of):
        start = engine.doc
        recorder.clear()
        with engine.batch():
            table = add("table", rows=2, columns=2)
            add("text", slot_of(engine.doc, table.id, "cell-0-1"))
            engine.dispatch(MergeTableCells(table.id, 0, 0, 0, 1))
        edited = engine.doc

        assert [e for e, _ in recorder].count(DOC_CHANGE) == 1
        assert (DOC_CHANGE, {"doc": edited, "structure_changed": True}) in recorder
        assert engine.history.undo_count == 1
        assert isinstance(engine.history.peek_undo(), CommandBatch)

        assert engine.undo()
        assert engine.doc == start
        assert engine.redo()
        assert engine.doc == edited

    def test_nested_batches_collapse(self, engine, add):
        with engine.batch():
            add("text")
            with engine.batch():
                add("text")
        assert engine.history.undo_count == 1

    def test_single_command_batch_is_unwrapped(self, engine, add):
        with engine.batch():
            add("text")
        assert isinstance(engine.history.peek_undo(), RemoveNode)

    def test_empty_batch_emits_nothing(self, engine, recorder):
        with engine.batch():
            pass
        assert recorder == []
        assert not engine.can_undo


class TestSelection:
    def test_select_and_clear_on_removal(self, engine, add, recorder):
        node = add("text")
        engine.select_node(node.id)
        engine.select_node(node.id)
        assert engine.selected_node_id == node.id

        engine.dispatch(RemoveNode(node.id))
        assert engine.selected_node_id is None
        assert [p for e, p in recorder if e == SELECTION_CHANGE] == [node.id, None]

    def test_unknown_ids_are_ignored(self, engine):
        engine.select_node("n-ghost")
        assert engine.selected_node_id is None


class TestSessionState:
    def test_dirty_tracking(self, engine, add):
        assert not engine.is_dirty
        add("text")
        assert engine.is_dirty
        engine.undo()
        assert not engine.is_dirty

        add("text")
        engine.mark_saved()
        assert not engine.is_dirty

    def test_replace_document(self, engine, add, empty_doc, recorder):
        node = add("text")
        engine.select_node(node.id)
        engine.replace_document(empty_doc)

        assert engine.doc is empty_doc
        assert not engine.can_undo
        assert engine.selected_node_id is None
        assert not engine.is_dirty
        assert recorder[-1] == (DOC_CHANGE, {"doc": empty_doc, "structure_changed": True})

    def test_journal_records_dispatched_commands(self, empty_doc, registry, root_slot):
        journal = EditJournal()
        engine = EditorEngine(empty_doc, registry, journal=journal)
        node, _ = registry.create_node("text")
        engine.dispatch(InsertNode(node=node, slots=(), target_slot_id=root_slot))
        engine.dispatch(RemoveNode("n-ghost"))

        assert engine.journal is journal
        assert [e.command_type for e in journal.entries] == ["InsertNode"]

    def test_engines_do_not_share_events(self, empty_doc, registry, add):
        other = EditorEngine(empty_doc, registry)
        seen = []
        other.events.on(DOC_CHANGE, seen.append)
        add("text")
        assert seen == []
