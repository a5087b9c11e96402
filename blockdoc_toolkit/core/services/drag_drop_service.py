from __future__ import annotations

"""Drag-and-drop predicates over the current document of an engine.

Only the decision "may this node be dropped there" lives here. Visual
feedback and gesture handling belong to a UI adapter, which consumes the
four callables returned by :meth:`DragDropService.get_port`.

Positions
---------
``inside``
    Into the first slot of the target node (``None`` targets the root).
``before`` / ``after``
    Next to the target inside the target's parent slot.
"""

from dataclasses import dataclass
import logging
from typing import Callable, List, NamedTuple, Optional, Tuple, TYPE_CHECKING

from blockdoc_toolkit.core.models.commands import CommandResult, MoveNode
from blockdoc_toolkit.core.models.document import is_ancestor

if TYPE_CHECKING:
    from blockdoc_toolkit.core.services.editor_engine import EditorEngine

__all__ = ["DROP_POSITIONS", "DropZone", "DragDropPort", "DragDropService"]

logger = logging.getLogger(__name__)

DROP_POSITIONS = ("before", "after", "inside")


@dataclass(frozen=True)
class DropZone:
    """A valid drop location, for UI hints. ``target_id`` None is the root."""
    target_id: Optional[str]
    position: str
    target_type: Optional[str]


class DragDropPort(NamedTuple):
    can_drag: Callable[[str], bool]
    can_drop: Callable[[str, Optional[str], str], bool]
    get_drop_zones: Callable[[str], List[DropZone]]
    drop: Callable[..., CommandResult]


class DragDropService:
    """Answers drag-and-drop questions against ``engine.doc``.

    Parameters
    ----------
    engine : EditorEngine
        Engine whose current document and registry are consulted, and
        through which :meth:`drop` dispatches the resulting move.
    """

    def __init__(self, engine: "EditorEngine") -> None:
        self._engine = engine

    # ---------------------------------------------------------------- Queries

    def can_drag(self, node_id: str) -> bool:
        doc = self._engine.doc
        node = doc.nodes.get(node_id)
        if node is None or node_id == doc.root_node_id:
            return False
        definition = self._engine.registry.get(node.type)
        return definition is not None and definition.can_be_dragged

    def can_drop(self, dragged_id: str, target_id: Optional[str], position: str) -> bool:
        return self._resolve(dragged_id, target_id, position) is not None

    def get_drop_zones(self, dragged_id: str) -> List[DropZone]:
        """Every valid (target, position) pair for *dragged_id*, in document order."""
        doc = self._engine.doc
        zones: List[DropZone] = []
        if not self.can_drag(dragged_id):
            return zones
        if self.can_drop(dragged_id, None, "inside"):
            zones.append(DropZone(None, "inside", None))

        root = doc.root
        if root is None:
            return zones
        for node_id in self._walk(root.id):
            node = doc.nodes[node_id]
            for position in ("inside", "before", "after"):
                if node_id == root.id and position == "inside":
                    continue
                if self.can_drop(dragged_id, node_id, position):
                    zones.append(DropZone(node_id, position, node.type))
        return zones

    # ---------------------------------------------------------------- Actions

    def drop(
        self,
        dragged_id: str,
        target_id: Optional[str],
        index: int = -1,
        position: str = "inside",
    ) -> CommandResult:
        """Move *dragged_id* to the drop location through the engine.

        For ``inside`` drops *index* is the position within the target slot;
        for ``before``/``after`` it is derived from the target's position.
        """
        resolved = self._resolve(dragged_id, target_id, position)
        if resolved is None:
            logger.info("Drop rejected: %s -> %s (%s)", dragged_id, target_id, position)
            return CommandResult.failure("Invalid drop target")
        slot_id, computed_index = resolved
        if position == "inside":
            computed_index = index
        return self._engine.dispatch(MoveNode(node_id=dragged_id, target_slot_id=slot_id, index=computed_index))

    def get_port(self) -> DragDropPort:
        return DragDropPort(
            can_drag=self.can_drag,
            can_drop=self.can_drop,
            get_drop_zones=self.get_drop_zones,
            drop=self.drop,
        )

    # -------------------------------------------------------------- Internals

    def _resolve(self, dragged_id: str, target_id: Optional[str], position: str) -> Optional[Tuple[str, int]]:
        # (slot id, index) for a valid drop, None otherwise
        if position not in DROP_POSITIONS:
            return None
        if not self.can_drag(dragged_id):
            return None
        doc = self._engine.doc
        indexes = self._engine.indexes
        registry = self._engine.registry
        dragged = doc.nodes[dragged_id]

        if target_id is None:
            if position != "inside":
                return None
            target_id = doc.root_node_id
        if target_id == dragged_id:
            return None
        target = doc.nodes.get(target_id)
        if target is None:
            return None

        if position == "inside":
            if not target.slots or is_ancestor(indexes, dragged_id, target_id):
                return None
            if not registry.can_contain(target.type, dragged.type):
                return None
            return target.slots[0], -1

        slot_id = indexes.parent_slot(target_id)
        parent_id = indexes.parent_node(target_id)
        if slot_id is None or parent_id is None:
            return None
        if parent_id == dragged_id or is_ancestor(indexes, dragged_id, parent_id):
            return None
        parent = doc.nodes.get(parent_id)
        if parent is None or not registry.can_contain(parent.type, dragged.type):
            return None

        # Index in the slot as it will look once the dragged node is detached
        siblings = [c for c in doc.slots[slot_id].children if c != dragged_id]
        index = siblings.index(target_id)
        return slot_id, index + 1 if position == "after" else index

    def _walk(self, node_id: str) -> List[str]:
        doc = self._engine.doc
        out: List[str] = []
        stack = [node_id]
        while stack:
            current = stack.pop()
            out.append(current)
            node = doc.nodes.get(current)
            if node is None:
                continue
            children: List[str] = []
            for slot_id in node.slots:
                slot = doc.slots.get(slot_id)
                if slot is not None:
                    children.extend(slot.children)
            stack.extend(reversed(children))
        return out
