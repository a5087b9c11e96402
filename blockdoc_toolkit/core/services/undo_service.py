from __future__ import annotations

"""Undo/redo history for documents.

Two histories are provided, both UI-agnostic and purely in-memory:

- :class:`CommandHistory` stores inverse commands. Memory grows with the
  size of each edit, and undo restores the identities of removed
  substructures. This is what :class:`EditorEngine` uses.
- :class:`UndoService` stores whole :class:`Document` values. Documents
  are immutable and share unchanged entries, so a snapshot is a reference,
  not a copy or a serialized blob.

Design principles
-----------------
- No UI imports and no I/O (filesystem/console).
- Redo history is cleared on every new push (standard undo/redo behavior).
- Memory usage controlled by a max depth policy (trim oldest).
- Availability changes are published as ``history:change`` events carrying
  ``{"can_undo": bool, "can_redo": bool}``.
"""

from contextlib import contextmanager
from dataclasses import dataclass
import logging
from typing import ClassVar, Generic, Iterator, List, Optional, Tuple, TypeVar

from blockdoc_toolkit.core.events import EventEmitter
from blockdoc_toolkit.core.models.commands import Command
from blockdoc_toolkit.core.models.document import Document

__all__ = [
    "HISTORY_CHANGE",
    "DEFAULT_MAX_DEPTH",
    "DEFAULT_MAX_HISTORY",
    "CommandBatch",
    "CommandHistory",
    "UndoService",
]

logger = logging.getLogger(__name__)

HISTORY_CHANGE = "history:change"
DEFAULT_MAX_DEPTH = 100
DEFAULT_MAX_HISTORY = 50

T = TypeVar("T")


@dataclass(frozen=True)
class CommandBatch(Command):
    """Several inverse commands recorded as one history entry.

    ``commands`` are applied in order; for a batch of forward commands
    ``c1..cn`` this is ``inv(cn)..inv(c1)``.
    """
    type: ClassVar[str] = "CommandBatch"

    commands: Tuple[Command, ...]


class _TwoStackHistory(Generic[T]):
    """Bounded past/future stacks with availability notifications."""

    def __init__(self, max_depth: int) -> None:
        self._max_depth: int = max(1, int(max_depth))
        self._undo_stack: List[T] = []
        self._redo_stack: List[T] = []
        self._last_state: Tuple[bool, bool] = (False, False)
        self._suspended = 0
        self.events = EventEmitter()

    @property
    def max_depth(self) -> int:
        return self._max_depth

    @property
    def can_undo(self) -> bool:
        return len(self._undo_stack) > 0

    @property
    def can_redo(self) -> bool:
        return len(self._redo_stack) > 0

    @property
    def undo_count(self) -> int:
        return len(self._undo_stack)

    @property
    def redo_count(self) -> int:
        return len(self._redo_stack)

    def clear(self) -> None:
        """Clear both undo and redo histories."""
        self._undo_stack.clear()
        self._redo_stack.clear()
        self._notify()

    # --------------------------------------------------------------- Internals

    def _append_undo(self, entry: T) -> None:
        self._undo_stack.append(entry)
        overflow = len(self._undo_stack) - self._max_depth
        if overflow > 0:
            # Trim oldest
            del self._undo_stack[0:overflow]

    def _append_redo(self, entry: T) -> None:
        self._redo_stack.append(entry)
        overflow = len(self._redo_stack) - self._max_depth
        if overflow > 0:
            del self._redo_stack[0:overflow]

    def _notify(self, force: bool = False) -> None:
        if self._suspended:
            return
        state = (self.can_undo, self.can_redo)
        if force or state != self._last_state:
            self._last_state = state
            self.events.emit(HISTORY_CHANGE, {"can_undo": state[0], "can_redo": state[1]})


class CommandHistory(_TwoStackHistory[Command]):
    """Two stacks of inverse commands.

    Parameters
    ----------
    max_depth : int, default=100
        Maximum number of undo entries to keep. Oldest entries are
        discarded when the capacity is exceeded. Coerced to at least 1.

    Notes
    -----
    The history only stores commands; applying them is the caller's job
    (see :class:`~blockdoc_toolkit.core.services.editor_engine.EditorEngine`).
    """

    def __init__(self, max_depth: int = DEFAULT_MAX_DEPTH) -> None:
        super().__init__(max_depth)

    def push(self, inverse: Command) -> None:
        """Record the inverse of a newly applied command; clears redo."""
        self._append_undo(inverse)
        self._redo_stack.clear()
        self._notify()

    def push_undo(self, entry: Command) -> None:
        """Push onto the undo stack without clearing redo (used by redo)."""
        self._append_undo(entry)
        self._notify()

    def push_redo(self, entry: Command) -> None:
        """Push onto the redo stack (used by undo)."""
        self._append_redo(entry)
        self._notify()

    def pop_undo(self) -> Optional[Command]:
        if not self._undo_stack:
            return None
        entry = self._undo_stack.pop()
        self._notify()
        return entry

    def pop_redo(self) -> Optional[Command]:
        if not self._redo_stack:
            return None
        entry = self._redo_stack.pop()
        self._notify()
        return entry

    def peek_undo(self) -> Optional[Command]:
        return self._undo_stack[-1] if self._undo_stack else None

    def peek_redo(self) -> Optional[Command]:
        return self._redo_stack[-1] if self._redo_stack else None

    @contextmanager
    def quiet(self) -> Iterator[None]:
        """Suspend notifications; one is sent on exit if availability changed."""
        self._suspended += 1
        try:
            yield
        finally:
            self._suspended -= 1
            self._notify()


class UndoService(_TwoStackHistory[Document]):
    """Manage undo/redo stacks of whole :class:`Document` values.

    Callers push the current document BEFORE mutating it. Undo returns the
    previous document and remembers the current one for redo.

    Parameters
    ----------
    max_history : int, default=50
        Maximum number of undo snapshots to keep. Oldest entries are
        discarded when the capacity is exceeded. Must be >= 1; if passed
        lower, it will be coerced to 1.

    Examples
    --------
    >>> svc = UndoService(max_history=10)
    >>> svc.push(doc)                 # before the edit
    >>> doc = apply_edit(doc)
    >>> previous = svc.undo(doc)      # the document before the edit
    >>> again = svc.redo(previous)    # the edited document
    """

    def __init__(self, max_history: int = DEFAULT_MAX_HISTORY) -> None:
        super().__init__(max_history)
        self._batch_depth = 0
        self._batch_pushed = False

    @property
    def in_batch(self) -> bool:
        return self._batch_depth > 0

    def push(self, state: Document) -> None:
        """Capture *state* as the undo target of the next mutation.

        Inside :meth:`batch` only the first push is kept, so the whole
        batch undoes in one step.
        """
        if self._batch_depth:
            if self._batch_pushed:
                return
            self._batch_pushed = True
        self._append_undo(state)
        self._redo_stack.clear()
        self._notify()

    def undo(self, current: Document) -> Optional[Document]:
        """Return the previous document, or None when there is nothing to undo."""
        if not self._undo_stack:
            return None
        self._append_redo(current)
        previous = self._undo_stack.pop()
        self._notify()
        return previous

    def redo(self, current: Document) -> Optional[Document]:
        """Return the next document, or None when there is nothing to redo."""
        if not self._redo_stack:
            return None
        self._append_undo(current)
        following = self._redo_stack.pop()
        self._notify()
        return following

    @contextmanager
    def batch(self) -> Iterator[None]:
        """Collapse every push inside the block into one history entry.

        A single ``history:change`` notification is sent when the outermost
        batch exits. Batches nest.
        """
        if self._batch_depth == 0:
            self._batch_pushed = False
        self._batch_depth += 1
        self._suspended += 1
        try:
            yield
        finally:
            self._batch_depth -= 1
            self._suspended -= 1
            if self._batch_depth == 0:
                self._batch_pushed = False
                self._notify()
