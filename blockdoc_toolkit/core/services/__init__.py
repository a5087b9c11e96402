from __future__ import annotations

"""Editing services: command dispatch, history, engine and ports.

Services are instantiated directly; the only shared dependency is the
component registry passed in by the caller.
"""

from .command_service import dispatch  # noqa: F401
from .undo_service import CommandBatch, CommandHistory, UndoService  # noqa: F401
from .editor_engine import EditorEngine  # noqa: F401
from .drag_drop_service import DragDropPort, DragDropService, DropZone  # noqa: F401
from .expression_service import ExpressionService  # noqa: F401

__all__: list[str] = [
    "dispatch",
    "CommandBatch",
    "CommandHistory",
    "UndoService",
    "EditorEngine",
    "DragDropPort",
    "DragDropService",
    "DropZone",
    "ExpressionService",
]
