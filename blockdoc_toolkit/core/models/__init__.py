from __future__ import annotations

"""Shared data structures used across the document core.

This package exposes the immutable document value, the command vocabulary
and the edit journal. It is intentionally free of UI / I/O code so that the
contained objects can be reused in any context (unit-tests, hosts, tools).
"""

from blockdoc_toolkit.core.models.document import (
    DOCUMENT_VERSION,
    Document,
    DocumentIndexes,
    Node,
    Slot,
    build_indexes,
    collect_slot_contents,
    collect_subtree,
    find_node,
    find_slot,
    find_slot_by_name,
    is_ancestor,
    slots_by_name,
    validate_document,
)
from blockdoc_toolkit.core.models.commands import (
    Command,
    CommandResult,
    InsertNode,
    MoveNode,
    RemoveNode,
    SlotRestore,
    UpdateNodeProps,
    command_from_dict,
    command_to_dict,
    register_command,
)
from blockdoc_toolkit.core.models.edit_journal import EditJournal, JournalEntry

__all__ = [
    "DOCUMENT_VERSION",
    "Document",
    "DocumentIndexes",
    "Node",
    "Slot",
    "build_indexes",
    "collect_slot_contents",
    "collect_subtree",
    "find_node",
    "find_slot",
    "find_slot_by_name",
    "is_ancestor",
    "slots_by_name",
    "validate_document",
    "Command",
    "CommandResult",
    "InsertNode",
    "MoveNode",
    "RemoveNode",
    "SlotRestore",
    "UpdateNodeProps",
    "command_from_dict",
    "command_to_dict",
    "register_command",
    "EditJournal",
    "JournalEntry",
]
