from __future__ import annotations

"""Node/slot document model and its pure query primitives.

A :class:`Document` is an immutable value: a map of nodes, a map of slots and
the id of the root node. Nodes own an ordered list of slots; slots hold an
ordered list of child node ids. Every edit produces a new ``Document`` that
shares all untouched :class:`Node` and :class:`Slot` objects with its
predecessor (structural sharing), so keeping many versions in an undo history
costs only the changed entries.

Nothing in this module mutates its input. Lookups report absence with
``None``; deciding whether absence is an error is left to the command layer.
"""

from dataclasses import dataclass, field, replace
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from blockdoc_toolkit.core.utils import copy_props

__all__ = [
    "DOCUMENT_VERSION",
    "Node",
    "Slot",
    "Document",
    "DocumentIndexes",
    "build_indexes",
    "find_node",
    "find_slot",
    "find_slot_by_name",
    "slots_by_name",
    "collect_subtree",
    "collect_slot_contents",
    "is_ancestor",
    "validate_document",
    "node_to_dict",
    "node_from_dict",
    "slot_to_dict",
    "slot_from_dict",
]

logger = logging.getLogger(__name__)

DOCUMENT_VERSION = 1


@dataclass(frozen=True)
class Node:
    """A typed entity in the document graph.

    Attributes
    ----------
    id
        Globally unique, stable identity.
    type
        Component type name resolved through the registry.
    slots
        Ordered ids of the slots this node owns.
    props
        JSON-like structural metadata. Treated as immutable: edits always
        install a new mapping instead of changing this one.
    """
    id: str
    type: str
    slots: Tuple[str, ...] = ()
    props: Dict[str, Any] = field(default_factory=dict)

    def with_slots(self, slots: Iterable[str]) -> "Node":
        return replace(self, slots=tuple(slots))

    def with_props(self, props: Mapping[str, Any]) -> "Node":
        return replace(self, props=dict(props))


@dataclass(frozen=True)
class Slot:
    """A named, ordered child container owned by exactly one node.

    Attributes
    ----------
    id
        Globally unique, stable identity.
    node_id
        Id of the owning node; the owner lists this slot in ``Node.slots``.
    name
        Static (``"children"``) or parametrized (``"cell-0-1"``) name.
    children
        Ordered ids of the child nodes.
    """
    id: str
    node_id: str
    name: str
    children: Tuple[str, ...] = ()

    def with_children(self, children: Iterable[str]) -> "Slot":
        return replace(self, children=tuple(children))

    def renamed(self, name: str) -> "Slot":
        return replace(self, name=name)


@dataclass(frozen=True)
class Document:
    """Immutable document value: a single tree rooted at ``root_node_id``."""
    root_node_id: str
    nodes: Dict[str, Node] = field(default_factory=dict)
    slots: Dict[str, Slot] = field(default_factory=dict)
    version: int = DOCUMENT_VERSION

    @property
    def root(self) -> Optional[Node]:
        return self.nodes.get(self.root_node_id)

    def evolve(
        self,
        put_nodes: Iterable[Node] = (),
        put_slots: Iterable[Slot] = (),
        drop_nodes: Iterable[str] = (),
        drop_slots: Iterable[str] = (),
    ) -> "Document":
        """Return a new document with the given entries replaced or removed.

        Drops are applied before puts. Only the two top-level maps are
        copied; every entry that is not named keeps its identity.
        """
        nodes = dict(self.nodes)
        slots = dict(self.slots)
        for node_id in drop_nodes:
            nodes.pop(node_id, None)
        for slot_id in drop_slots:
            slots.pop(slot_id, None)
        for node in put_nodes:
            nodes[node.id] = node
        for slot in put_slots:
            slots[slot.id] = slot
        return Document(
            root_node_id=self.root_node_id,
            nodes=nodes,
            slots=slots,
            version=self.version,
        )


@dataclass(frozen=True)
class DocumentIndexes:
    """Derived reverse lookups for a document.

    Built in one pass by :func:`build_indexes`; never stored inside the
    document so the document value stays the single source of truth.
    """
    parent_slot_by_node_id: Dict[str, str]
    parent_node_by_node_id: Dict[str, str]
    node_by_slot_id: Dict[str, str]
    depth_by_node_id: Dict[str, int]

    def parent_slot(self, node_id: str) -> Optional[str]:
        return self.parent_slot_by_node_id.get(node_id)

    def parent_node(self, node_id: str) -> Optional[str]:
        return self.parent_node_by_node_id.get(node_id)

    def depth(self, node_id: str) -> Optional[int]:
        return self.depth_by_node_id.get(node_id)


def build_indexes(doc: Document) -> DocumentIndexes:
    """Compute parent and depth lookups by walking the tree from the root."""
    parent_slot: Dict[str, str] = {}
    parent_node: Dict[str, str] = {}
    node_by_slot: Dict[str, str] = {}
    depth: Dict[str, int] = {}

    if doc.root_node_id not in doc.nodes:
        return DocumentIndexes(parent_slot, parent_node, node_by_slot, depth)

    depth[doc.root_node_id] = 0
    stack: List[str] = [doc.root_node_id]
    while stack:
        node_id = stack.pop()
        node = doc.nodes.get(node_id)
        if node is None:
            continue
        for slot_id in node.slots:
            node_by_slot[slot_id] = node_id
            slot = doc.slots.get(slot_id)
            if slot is None:
                continue
            for child_id in slot.children:
                # A malformed document could reach a node twice; keep the first parent
                if child_id in depth:
                    continue
                parent_slot[child_id] = slot_id
                parent_node[child_id] = node_id
                depth[child_id] = depth[node_id] + 1
                stack.append(child_id)

    return DocumentIndexes(parent_slot, parent_node, node_by_slot, depth)


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

def find_node(doc: Document, node_id: str) -> Optional[Node]:
    return doc.nodes.get(node_id)


def find_slot(doc: Document, slot_id: str) -> Optional[Slot]:
    return doc.slots.get(slot_id)


def find_slot_by_name(doc: Document, node: Node, name: str) -> Optional[Slot]:
    """Return the slot of *node* called *name*, or None."""
    for slot_id in node.slots:
        slot = doc.slots.get(slot_id)
        if slot is not None and slot.name == name:
            return slot
    return None


def slots_by_name(doc: Document, node: Node) -> Dict[str, Slot]:
    """Map slot name -> slot for every slot *node* owns."""
    out: Dict[str, Slot] = {}
    for slot_id in node.slots:
        slot = doc.slots.get(slot_id)
        if slot is not None:
            out[slot.name] = slot
    return out


def collect_subtree(doc: Document, node_id: str) -> Tuple[List[str], List[str]]:
    """Collect the transitive closure of everything owned by a node.

    Parameters
    ----------
    doc
        Document to walk.
    node_id
        Root of the subtree; included in the returned node ids.

    Returns
    -------
    tuple[list[str], list[str]]
        ``(node_ids, slot_ids)`` in depth-first pre-order. Missing nodes or
        slots are skipped rather than reported.
    """
    node_ids: List[str] = []
    slot_ids: List[str] = []
    _collect(doc, node_id, node_ids, slot_ids)
    return node_ids, slot_ids


def collect_slot_contents(doc: Document, slot_id: str) -> Tuple[List[str], List[str]]:
    """Collect every node and slot beneath a slot, excluding the slot itself."""
    node_ids: List[str] = []
    slot_ids: List[str] = []
    slot = doc.slots.get(slot_id)
    if slot is not None:
        for child_id in slot.children:
            _collect(doc, child_id, node_ids, slot_ids)
    return node_ids, slot_ids


def _collect(doc: Document, root_id: str, node_ids: List[str], slot_ids: List[str]) -> None:
    # Iterative pre-order; reversed pushes keep document order
    stack: List[str] = [root_id]
    seen = set(node_ids)
    while stack:
        node_id = stack.pop()
        if node_id in seen:
            continue
        seen.add(node_id)
        node = doc.nodes.get(node_id)
        if node is None:
            continue
        node_ids.append(node_id)
        pending: List[str] = []
        for slot_id in node.slots:
            slot_ids.append(slot_id)
            slot = doc.slots.get(slot_id)
            if slot is not None:
                pending.extend(slot.children)
        stack.extend(reversed(pending))


def is_ancestor(
    doc_or_indexes: Union[Document, DocumentIndexes],
    ancestor_id: str,
    node_id: str,
) -> bool:
    """Return True if *ancestor_id* is a strict ancestor of *node_id*."""
    if isinstance(doc_or_indexes, Document):
        indexes = build_indexes(doc_or_indexes)
    else:
        indexes = doc_or_indexes
    current = indexes.parent_node(node_id)
    while current is not None:
        if current == ancestor_id:
            return True
        current = indexes.parent_node(current)
    return False


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def validate_document(doc: Document) -> List[str]:
    """Check the graph-level invariants of a document.

    Returns
    -------
    list[str]
        One message per problem found; empty when the document is valid.
        Checked: root presence, key/id agreement, slot ownership (each slot
        listed by exactly one node, which is its owner), dangling child
        references, nodes with more than one parent, cycles and nodes not
        reachable from the root.
    """
    problems: List[str] = []

    if doc.root_node_id not in doc.nodes:
        problems.append(f"Root node {doc.root_node_id} not found")

    for key, node in doc.nodes.items():
        if node.id != key:
            problems.append(f"Node key {key} does not match node id {node.id}")
    for key, slot in doc.slots.items():
        if slot.id != key:
            problems.append(f"Slot key {key} does not match slot id {slot.id}")

    listed_by: Dict[str, List[str]] = {}
    for node in doc.nodes.values():
        for slot_id in node.slots:
            listed_by.setdefault(slot_id, []).append(node.id)
            if slot_id not in doc.slots:
                problems.append(f"Node {node.id} lists missing slot {slot_id}")

    for slot in doc.slots.values():
        owners = listed_by.get(slot.id, [])
        if len(owners) != 1:
            problems.append(f"Slot {slot.id} is listed by {len(owners)} nodes")
        elif owners[0] != slot.node_id:
            problems.append(
                f"Slot {slot.id} names owner {slot.node_id} but is listed by {owners[0]}"
            )

    parent_of: Dict[str, str] = {}
    for slot in doc.slots.values():
        for child_id in slot.children:
            if child_id not in doc.nodes:
                problems.append(f"Slot {slot.id} references missing node {child_id}")
                continue
            if child_id == doc.root_node_id:
                problems.append(f"Root node is a child of slot {slot.id}")
            if child_id in parent_of:
                problems.append(f"Node {child_id} has more than one parent slot")
                continue
            parent_of[child_id] = slot.id

    # Cycle detection follows parent links upward from every node
    for node_id in doc.nodes:
        seen = {node_id}
        current = node_id
        while current in parent_of:
            owner = doc.slots[parent_of[current]].node_id
            if owner in seen:
                problems.append(f"Node {node_id} is part of a cycle")
                break
            seen.add(owner)
            current = owner

    if doc.root_node_id in doc.nodes:
        reachable = set(collect_subtree(doc, doc.root_node_id)[0])
        for node_id in doc.nodes:
            if node_id not in reachable:
                problems.append(f"Node {node_id} is not reachable from the root")

    if problems:
        logger.debug("Document validation found %d problem(s)", len(problems))
    return problems


# ---------------------------------------------------------------------------
# Wire form of single entries
# ---------------------------------------------------------------------------

def node_to_dict(node: Node) -> Dict[str, Any]:
    return {
        "id": node.id,
        "type": node.type,
        "slots": list(node.slots),
        "props": copy_props(node.props),
    }


def node_from_dict(data: Mapping[str, Any]) -> Node:
    """Decode a node from its wire form. Raises KeyError/TypeError on bad input."""
    return Node(
        id=str(data["id"]),
        type=str(data["type"]),
        slots=tuple(str(s) for s in data.get("slots") or ()),
        props=copy_props(data.get("props")),
    )


def slot_to_dict(slot: Slot) -> Dict[str, Any]:
    return {
        "id": slot.id,
        "nodeId": slot.node_id,
        "name": slot.name,
        "children": list(slot.children),
    }


def slot_from_dict(data: Mapping[str, Any]) -> Slot:
    """Decode a slot from its wire form. Raises KeyError/TypeError on bad input."""
    return Slot(
        id=str(data["id"]),
        node_id=str(data["nodeId"]),
        name=str(data["name"]),
        children=tuple(str(c) for c in data.get("children") or ()),
    )
