from __future__ import annotations

"""Edit journaling model for structural edits.

This module defines a minimal, UI-agnostic, in-memory journal of commands
that can be recorded during a session and later replayed against a fresh
or reloaded document.

Scope:
- Pure core model (no I/O, no UI).
- Conservative and robust: failures during replay are collected, not raised.
- JSON-serializable serialization format for persistence by callers.

Entries store the wire form of each command (see
:func:`~blockdoc_toolkit.core.models.commands.command_to_dict`), so a journal
written by one session can be read back by another.
"""

from dataclasses import dataclass
import logging
from typing import Any, Dict, List, Tuple
from typing import TYPE_CHECKING

import time

from blockdoc_toolkit.core.exceptions import CommandFormatError
from blockdoc_toolkit.core.models.commands import Command, command_from_dict, command_to_dict
from blockdoc_toolkit.core.models.document import Document

if TYPE_CHECKING:
    from blockdoc_toolkit.core.registry import ComponentRegistry

__all__ = ["JournalEntry", "EditJournal"]

logger = logging.getLogger(__name__)


@dataclass
class JournalEntry:
    """Single journal entry representing one dispatched command.

    Attributes
    ----------
    command_type
        Discriminator of the recorded command, e.g. ``"AddTableRow"``.
    details
        Wire form of the command. JSON-serializable.
    timestamp
        Unix epoch seconds when the entry was recorded.
    """
    command_type: str
    details: Dict[str, Any]
    timestamp: float


class EditJournal:
    """In-memory journal of commands with record/replay capabilities.

    Notes
    -----
    - This class does not perform any persistence or I/O. Callers are responsible
      for saving/loading serialized data.
    - Replay is resilient: routine errors are collected in a report.
    """

    def __init__(self) -> None:
        self._entries: List[JournalEntry] = []

    @property
    def entries(self) -> List[JournalEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def record(self, command: Command) -> None:
        """Record *command* with the current timestamp."""
        details = command_to_dict(command)
        self._entries.append(JournalEntry(command.type, details, time.time()))

    def replay(self, doc: Document, registry: "ComponentRegistry") -> Tuple[Document, Dict[str, Any]]:
        """Replay all recorded commands against *doc*.

        Parameters
        ----------
        doc
            Starting document.
        registry
            Registry used to route component-specific commands.

        Returns
        -------
        tuple[Document, dict]
            The resulting document and a structured report::

                {
                  "applied": int,   # number of commands successfully applied
                  "skipped": int,   # number of commands that failed to decode or apply
                  "errors": List[str],
                }

        Behavior
        --------
        - Iterates entries in order; a failed entry leaves the document as it was
          and replay continues with the next one.
        """
        from blockdoc_toolkit.core.services.command_service import dispatch

        applied = 0
        skipped = 0
        errors: List[str] = []
        current = doc

        for idx, entry in enumerate(self._entries):
            try:
                command = command_from_dict(entry.details)
            except CommandFormatError as exc:
                skipped += 1
                errors.append(f"[{idx}] {entry.command_type}: invalid payload ({exc})")
                continue

            result = dispatch(current, command, registry)
            if result.ok and result.doc is not None:
                current = result.doc
                applied += 1
            else:
                skipped += 1
                errors.append(f"[{idx}] {entry.command_type} failed: {result.error}")

        logger.info("Journal replay: applied=%d skipped=%d", applied, skipped)
        return current, {"applied": applied, "skipped": skipped, "errors": errors}

    def clear(self) -> None:
        """Remove all entries from the journal."""
        self._entries.clear()

    def serialize(self) -> List[Dict[str, Any]]:
        """Serialize journal entries to a JSON-compatible list of dicts."""
        return [
            {"commandType": e.command_type, "details": e.details, "timestamp": e.timestamp}
            for e in self._entries
        ]

    @classmethod
    def deserialize(cls, data: List[Dict[str, Any]]) -> "EditJournal":
        """Create an EditJournal from serialized data.

        Entries with the wrong shape are dropped; input that is not a list
        yields an empty journal. Command payloads are validated only at replay.
        """
        journal = cls()
        if not isinstance(data, list):
            return journal
        for item in data:
            if not isinstance(item, dict):
                continue
            command_type = item.get("commandType")
            details = item.get("details")
            ts = item.get("timestamp")
            if not isinstance(command_type, str) or not isinstance(details, dict) or not isinstance(ts, (int, float)):
                continue
            journal._entries.append(JournalEntry(command_type, dict(details), float(ts)))
        return journal
