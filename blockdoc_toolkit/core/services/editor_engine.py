from __future__ import annotations

"""Editor engine: owns the current document, its history and its events.

The engine is the stateful shell around the pure command layer. It keeps
the current :class:`Document`, records the inverse of every dispatched
command in a :class:`CommandHistory`, tracks the selected node and the
saved baseline, and publishes changes through its own
:class:`EventEmitter`. There is no module-level state; every engine is
independent.

Events
------
``doc:change``
    ``{"doc": Document, "structure_changed": bool}`` after every change.
``selection:change``
    The selected node id, or None.
``history:change``
    ``{"can_undo": bool, "can_redo": bool}`` when availability changes.
"""

from contextlib import contextmanager
import logging
from typing import Any, Dict, Iterator, List, Optional, TYPE_CHECKING

from blockdoc_toolkit.core.events import EventEmitter
from blockdoc_toolkit.core.models.commands import Command, CommandResult
from blockdoc_toolkit.core.models.document import Document, DocumentIndexes, build_indexes
from blockdoc_toolkit.core.models.edit_journal import EditJournal
from blockdoc_toolkit.core.services.command_service import dispatch as dispatch_command
from blockdoc_toolkit.core.services.undo_service import (
    DEFAULT_MAX_DEPTH,
    HISTORY_CHANGE,
    CommandBatch,
    CommandHistory,
)

if TYPE_CHECKING:
    from blockdoc_toolkit.config.manager import ConfigManager
    from blockdoc_toolkit.core.registry import ComponentRegistry

__all__ = ["EditorEngine", "DOC_CHANGE", "SELECTION_CHANGE", "HISTORY_CHANGE"]

logger = logging.getLogger(__name__)

DOC_CHANGE = "doc:change"
SELECTION_CHANGE = "selection:change"


class EditorEngine:
    """Stateful editing session over an immutable document.

    Args:
        doc: Initial document
        registry: Component registry used for dispatch
        undo_depth: Maximum undo entries; falls back to the ``undo.max_depth``
            editor setting, then to 100
        config: Optional configuration manager
        journal: Optional journal that records every dispatched command
    """

    def __init__(
        self,
        doc: Document,
        registry: "ComponentRegistry",
        undo_depth: Optional[int] = None,
        config: Optional["ConfigManager"] = None,
        journal: Optional[EditJournal] = None,
    ) -> None:
        self._registry = registry
        self._doc = doc
        self._indexes: DocumentIndexes = build_indexes(doc)
        self._saved_doc = doc
        self._selected: Optional[str] = None
        self._journal = journal
        self._batch_depth = 0
        self._batch_inverses: List[Command] = []
        self._batch_structure_changed = False
        self._batch_changed = False

        self.events = EventEmitter()
        self._history = CommandHistory(self._resolve_depth(undo_depth, config))
        self._history.events.on(HISTORY_CHANGE, lambda payload: self.events.emit(HISTORY_CHANGE, payload))

    @staticmethod
    def _resolve_depth(undo_depth: Optional[int], config: Optional["ConfigManager"]) -> int:
        if undo_depth is not None:
            return undo_depth
        if config is not None:
            undo_cfg: Dict[str, Any] = config.get_editor_config().get("undo", {}) or {}
            depth = undo_cfg.get("max_depth")
            if isinstance(depth, int) and depth > 0:
                return depth
        return DEFAULT_MAX_DEPTH

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def doc(self) -> Document:
        return self._doc

    @property
    def indexes(self) -> DocumentIndexes:
        return self._indexes

    @property
    def registry(self) -> "ComponentRegistry":
        return self._registry

    @property
    def history(self) -> CommandHistory:
        return self._history

    @property
    def journal(self) -> Optional[EditJournal]:
        return self._journal

    @property
    def can_undo(self) -> bool:
        return self._history.can_undo

    @property
    def can_redo(self) -> bool:
        return self._history.can_redo

    @property
    def selected_node_id(self) -> Optional[str]:
        return self._selected

    @property
    def is_dirty(self) -> bool:
        """True when the document differs from the last saved baseline."""
        return self._doc is not self._saved_doc and self._doc != self._saved_doc

    def mark_saved(self) -> None:
        """Take the current document as the saved baseline."""
        self._saved_doc = self._doc

    # -------------------------------------------------------------------------
    # Editing
    # -------------------------------------------------------------------------

    def dispatch(self, command: Command, skip_undo: bool = False) -> CommandResult:
        """Apply *command* to the current document.

        On success the document is replaced, the inverse is recorded (unless
        *skip_undo*) and ``doc:change`` is emitted. Failures leave every
        piece of state untouched.
        """
        result = dispatch_command(self._doc, command, self._registry, self._indexes)
        if not result.ok or result.doc is None:
            return result

        if self._journal is not None:
            self._journal.record(command)
        if not skip_undo and result.inverse is not None:
            if self._batch_depth:
                self._batch_inverses.append(result.inverse)
            else:
                self._history.push(result.inverse)
        self._set_doc(result.doc, result.structure_changed)
        return result

    def undo(self) -> bool:
        """Undo the most recent entry. Returns False when nothing was undone."""
        entry = self._history.peek_undo()
        if entry is None:
            return False
        applied = self._apply_entry(entry)
        if applied is None:
            logger.warning("Undo of %s failed; history left unchanged", entry.type)
            return False
        doc, inverse, structure_changed = applied
        with self._history.quiet():
            self._history.pop_undo()
            self._history.push_redo(inverse)
        self._set_doc(doc, structure_changed)
        return True

    def redo(self) -> bool:
        """Redo the most recently undone entry. Returns False when nothing was redone."""
        entry = self._history.peek_redo()
        if entry is None:
            return False
        applied = self._apply_entry(entry)
        if applied is None:
            logger.warning("Redo of %s failed; history left unchanged", entry.type)
            return False
        doc, inverse, structure_changed = applied
        with self._history.quiet():
            self._history.pop_redo()
            self._history.push_undo(inverse)
        self._set_doc(doc, structure_changed)
        return True

    @contextmanager
    def batch(self) -> Iterator[None]:
        """Group every dispatch inside the block into one undo entry.

        A single ``doc:change`` is emitted when the outermost batch exits.
        A failing command does not roll back the commands before it.
        """
        self._batch_depth += 1
        try:
            yield
        finally:
            self._batch_depth -= 1
            if self._batch_depth == 0:
                self._finish_batch()

    def replace_document(self, doc: Document) -> None:
        """Swap in a new document; clears history, selection and dirty state."""
        self._doc = doc
        self._indexes = build_indexes(doc)
        self._saved_doc = doc
        self._history.clear()
        self._set_selection(None)
        self.events.emit(DOC_CHANGE, {"doc": doc, "structure_changed": True})

    def select_node(self, node_id: Optional[str]) -> None:
        """Select a node (or clear the selection with None). Unknown ids are ignored."""
        if node_id is not None and node_id not in self._doc.nodes:
            logger.debug("Ignoring selection of unknown node %s", node_id)
            return
        self._set_selection(node_id)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _apply_entry(self, entry: Command):
        # Applies a history entry without touching the history; None on failure
        commands = entry.commands if isinstance(entry, CommandBatch) else (entry,)
        doc = self._doc
        indexes: Optional[DocumentIndexes] = self._indexes
        inverses: List[Command] = []
        structure_changed = False
        for command in commands:
            result = dispatch_command(doc, command, self._registry, indexes)
            if not result.ok or result.doc is None or result.inverse is None:
                return None
            doc = result.doc
            indexes = None
            inverses.append(result.inverse)
            structure_changed = structure_changed or result.structure_changed

        if isinstance(entry, CommandBatch):
            inverse: Command = CommandBatch(tuple(reversed(inverses)))
        else:
            inverse = inverses[0]
        return doc, inverse, structure_changed

    def _finish_batch(self) -> None:
        inverses, self._batch_inverses = self._batch_inverses, []
        if len(inverses) == 1:
            self._history.push(inverses[0])
        elif inverses:
            self._history.push(CommandBatch(tuple(reversed(inverses))))
        if self._batch_changed:
            structure_changed = self._batch_structure_changed
            self._batch_changed = False
            self._batch_structure_changed = False
            self.events.emit(DOC_CHANGE, {"doc": self._doc, "structure_changed": structure_changed})

    def _set_doc(self, doc: Document, structure_changed: bool) -> None:
        self._doc = doc
        self._indexes = build_indexes(doc)
        if self._selected is not None and self._selected not in doc.nodes:
            self._set_selection(None)
        if self._batch_depth:
            self._batch_changed = True
            self._batch_structure_changed = self._batch_structure_changed or structure_changed
            return
        self.events.emit(DOC_CHANGE, {"doc": doc, "structure_changed": structure_changed})

    def _set_selection(self, node_id: Optional[str]) -> None:
        if node_id == self._selected:
            return
        self._selected = node_id
        self.events.emit(SELECTION_CHANGE, node_id)
