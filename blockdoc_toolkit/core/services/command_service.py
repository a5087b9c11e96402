from __future__ import annotations

"""Command dispatch for structural edits on the document model.

This module is the single entry point for applying a command to a document.
Generic commands (insert, remove, move, update props) are handled here;
every other command type is routed to the component that registered it.

Scope and guarantees:
- Operates purely in-memory on immutable :class:`Document` values, no I/O.
- Never mutates the input document; unchanged nodes and slots are shared
  between the old and the new value.
- Invalid operations return ``CommandResult.failure(...)`` with a clear
  message and never raise. A component handler that raises is treated the
  same way after the exception is logged.
- Every successful result carries an inverse that restores the previous
  document exactly, including node and slot identities.

Examples
--------
Basic usage:

    result = dispatch(doc, RemoveNode(node_id), registry)
    if not result.ok:
        print(result.error)
"""

import logging
from typing import List, Optional, TYPE_CHECKING

from blockdoc_toolkit.core.models.commands import (
    Command,
    CommandResult,
    InsertNode,
    MoveNode,
    RemoveNode,
    UpdateNodeProps,
)
from blockdoc_toolkit.core.models.document import (
    Document,
    DocumentIndexes,
    build_indexes,
    collect_subtree,
    is_ancestor,
)
from blockdoc_toolkit.core.utils import copy_props, insert_at

if TYPE_CHECKING:
    from blockdoc_toolkit.core.registry import ComponentRegistry


__all__ = ["CommandResult", "dispatch"]

logger = logging.getLogger(__name__)


# -------------------------------------------------------------------------
# Public API
# -------------------------------------------------------------------------

def dispatch(
    doc: Document,
    command: Command,
    registry: "ComponentRegistry",
    indexes: Optional[DocumentIndexes] = None,
) -> CommandResult:
    """Validate and apply *command* against *doc*.

    Parameters
    ----------
    doc
        Current document value. Never mutated.
    command
        Command to apply.
    registry
        Component registry used for containment rules and to route
        component-specific command types.
    indexes
        Precomputed indexes for *doc*; built on demand when omitted.

    Returns
    -------
    CommandResult
        On success: the new document, its inverse and the change kind.
        On failure: ``ok=False`` and an error message; *doc* is untouched.
    """
    logger.debug("Edit: %s", command.type)

    if isinstance(command, InsertNode):
        result = _apply_insert_node(doc, command, registry)
    elif isinstance(command, RemoveNode):
        result = _apply_remove_node(doc, command, indexes or build_indexes(doc))
    elif isinstance(command, MoveNode):
        result = _apply_move_node(doc, command, registry, indexes or build_indexes(doc))
    elif isinstance(command, UpdateNodeProps):
        result = _apply_update_node_props(doc, command)
    else:
        result = _dispatch_to_component(doc, command, registry)

    if result.ok:
        logger.debug("Edit OK: %s structure_changed=%s", command.type, result.structure_changed)
    else:
        logger.info("Edit FAIL: %s %s", command.type, result.error)
    return result


# -------------------------------------------------------------------------
# Component routing
# -------------------------------------------------------------------------

def _dispatch_to_component(doc: Document, command: Command, registry: "ComponentRegistry") -> CommandResult:
    definition = registry.handler_for(command.type)
    if definition is None or definition.command_handler is None:
        return CommandResult.failure(f"Unknown command type '{command.type}'")

    node_id = getattr(command, "node_id", None)
    if isinstance(node_id, str):
        node = doc.nodes.get(node_id)
        if node is not None and not registry.has(node.type):
            return CommandResult.failure(f"Unknown component type '{node.type}' for node {node_id}")

    try:
        return definition.command_handler(doc, command)
    except Exception as e:
        logger.exception("Command handler for %s (component '%s') failed", command.type, definition.type)
        return CommandResult.failure(f"{command.type} failed: {e}")


# -------------------------------------------------------------------------
# Generic commands
# -------------------------------------------------------------------------

def _apply_insert_node(doc: Document, cmd: InsertNode, registry: "ComponentRegistry") -> CommandResult:
    target_slot = doc.slots.get(cmd.target_slot_id)
    if target_slot is None:
        return CommandResult.failure(f"Target slot {cmd.target_slot_id} not found")

    parent = doc.nodes.get(target_slot.node_id)
    if parent is None:
        return CommandResult.failure(f"Parent node {target_slot.node_id} not found")

    for type_name in (parent.type, cmd.node.type):
        if not registry.has(type_name):
            return CommandResult.failure(f"Unknown component type '{type_name}'")

    if not registry.can_contain(parent.type, cmd.node.type):
        return CommandResult.failure(f"Node type '{cmd.node.type}' cannot be placed in '{parent.type}'")

    if cmd.node.id in doc.nodes:
        return CommandResult.failure(f"Node {cmd.node.id} already exists")

    own_slot_ids = set(cmd.node.slots)
    for slot in cmd.slots:
        if slot.node_id != cmd.node.id or slot.id not in own_slot_ids:
            return CommandResult.failure(f"Slot {slot.id} does not belong to node {cmd.node.id}")
    if own_slot_ids != {s.id for s in cmd.slots}:
        return CommandResult.failure(f"Slots of node {cmd.node.id} do not match its slot list")

    # Descendants travel in restore_nodes/restore_slots and must be complete
    inserted = {n.id for n in cmd.restore_nodes}
    for slot in cmd.restore_slots:
        if slot.node_id not in inserted:
            return CommandResult.failure(f"Slot {slot.id} does not belong to an inserted node")
    for slot in (*cmd.slots, *cmd.restore_slots):
        missing = [c for c in slot.children if c not in inserted]
        if missing:
            return CommandResult.failure(f"Slot {slot.id} references node {missing[0]} that is not inserted")

    clash = _first_existing(doc, cmd)
    if clash is not None:
        return CommandResult.failure(f"{clash} already exists")

    new_target = target_slot.with_children(insert_at(target_slot.children, cmd.index, cmd.node.id))
    new_doc = doc.evolve(
        put_nodes=[cmd.node, *cmd.restore_nodes],
        put_slots=[*cmd.slots, *cmd.restore_slots, new_target],
    )
    return CommandResult.success(new_doc, RemoveNode(cmd.node.id), structure_changed=True)


def _first_existing(doc: Document, cmd: InsertNode) -> Optional[str]:
    for slot in (*cmd.slots, *cmd.restore_slots):
        if slot.id in doc.slots:
            return f"Slot {slot.id}"
    for node in cmd.restore_nodes:
        if node.id in doc.nodes:
            return f"Node {node.id}"
    return None


def _apply_remove_node(doc: Document, cmd: RemoveNode, indexes: DocumentIndexes) -> CommandResult:
    node = doc.nodes.get(cmd.node_id)
    if node is None:
        return CommandResult.failure(f"Node {cmd.node_id} not found")
    if cmd.node_id == doc.root_node_id:
        return CommandResult.failure("Cannot remove root node")

    parent_slot_id = indexes.parent_slot(cmd.node_id)
    if parent_slot_id is None:
        return CommandResult.failure(f"Node {cmd.node_id} has no parent slot")
    parent_slot = doc.slots.get(parent_slot_id)
    if parent_slot is None:
        return CommandResult.failure(f"Parent slot {parent_slot_id} not found")

    node_ids, slot_ids = collect_subtree(doc, cmd.node_id)
    own_slots = set(node.slots)
    index = parent_slot.children.index(cmd.node_id)

    inverse = InsertNode(
        node=node,
        slots=tuple(doc.slots[sid] for sid in node.slots if sid in doc.slots),
        target_slot_id=parent_slot_id,
        index=index,
        restore_nodes=tuple(doc.nodes[nid] for nid in node_ids[1:] if nid in doc.nodes),
        restore_slots=tuple(doc.slots[sid] for sid in slot_ids if sid not in own_slots and sid in doc.slots),
    )

    new_parent = parent_slot.with_children(c for c in parent_slot.children if c != cmd.node_id)
    new_doc = doc.evolve(put_slots=[new_parent], drop_nodes=node_ids, drop_slots=slot_ids)
    return CommandResult.success(new_doc, inverse, structure_changed=True)


def _apply_move_node(
    doc: Document,
    cmd: MoveNode,
    registry: "ComponentRegistry",
    indexes: DocumentIndexes,
) -> CommandResult:
    node = doc.nodes.get(cmd.node_id)
    if node is None:
        return CommandResult.failure(f"Node {cmd.node_id} not found")
    if cmd.node_id == doc.root_node_id:
        return CommandResult.failure("Cannot move root node")

    target_slot = doc.slots.get(cmd.target_slot_id)
    if target_slot is None:
        return CommandResult.failure(f"Target slot {cmd.target_slot_id} not found")
    target_owner = doc.nodes.get(target_slot.node_id)
    if target_owner is None:
        return CommandResult.failure(f"Parent node {target_slot.node_id} not found")

    if target_owner.id == cmd.node_id or is_ancestor(indexes, cmd.node_id, target_owner.id):
        return CommandResult.failure("Cannot move a node into itself or its descendants")

    if not registry.has(target_owner.type):
        return CommandResult.failure(f"Unknown component type '{target_owner.type}'")
    if not registry.can_contain(target_owner.type, node.type):
        return CommandResult.failure(f"Node type '{node.type}' cannot be placed in '{target_owner.type}'")

    source_slot_id = indexes.parent_slot(cmd.node_id)
    source_slot = doc.slots.get(source_slot_id) if source_slot_id else None
    if source_slot is None:
        return CommandResult.failure(f"Node {cmd.node_id} has no parent slot")
    source_index = source_slot.children.index(cmd.node_id)

    detached: List[str] = [c for c in source_slot.children if c != cmd.node_id]
    if source_slot.id == target_slot.id:
        changed = [source_slot.with_children(insert_at(detached, cmd.index, cmd.node_id))]
    else:
        changed = [
            source_slot.with_children(detached),
            target_slot.with_children(insert_at(target_slot.children, cmd.index, cmd.node_id)),
        ]

    inverse = MoveNode(node_id=cmd.node_id, target_slot_id=source_slot.id, index=source_index)
    return CommandResult.success(doc.evolve(put_slots=changed), inverse, structure_changed=True)


def _apply_update_node_props(doc: Document, cmd: UpdateNodeProps) -> CommandResult:
    node = doc.nodes.get(cmd.node_id)
    if node is None:
        return CommandResult.failure(f"Node {cmd.node_id} not found")

    inverse = UpdateNodeProps(node_id=cmd.node_id, props=copy_props(node.props))
    new_node = node.with_props(copy_props(cmd.props))
    return CommandResult.success(doc.evolve(put_nodes=[new_node]), inverse, structure_changed=False)

