"""Shared fixtures for the document core tests.

Documents are built through the public command layer so that every fixture
document satisfies the same invariants real sessions do.
"""

import logging
import sys
from pathlib import Path
from typing import Any, Callable, Dict, Tuple

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from blockdoc_toolkit.core.components.builtin import ROOT_TYPE
from blockdoc_toolkit.core.models import Document, Node, find_slot_by_name
from blockdoc_toolkit.core.registry import ComponentRegistry, create_default_registry
from blockdoc_toolkit.core.services.command_service import dispatch

# Configure test logging
logging.basicConfig(
    level=logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


InsertFn = Callable[..., Tuple[Document, Node]]


@pytest.fixture
def registry() -> ComponentRegistry:
    """Fresh registry with every built-in component."""
    return create_default_registry()


@pytest.fixture
def empty_doc(registry) -> Document:
    """Document holding only a root node with an empty ``children`` slot."""
    root, slots = registry.create_node(ROOT_TYPE)
    return Document(
        root_node_id=root.id,
        nodes={root.id: root},
        slots={s.id: s for s in slots},
    )


@pytest.fixture
def insert(registry) -> InsertFn:
    """Return ``insert(doc, node_type, slot_id, index=-1, **props) -> (doc, node)``."""

    def _insert(doc: Document, node_type: str, slot_id: str, index: int = -1, **props: Any) -> Tuple[Document, Node]:
        created = registry.create_tree(node_type, props or None)
        result = dispatch(doc, created.insert_command(slot_id, index), registry)
        assert result.ok, result.error
        return result.doc, created.node

    return _insert


@pytest.fixture
def slot_of() -> Callable[[Document, str, str], str]:
    """Return ``slot_of(doc, node_id, name) -> slot id``."""

    def _slot_of(doc: Document, node_id: str, name: str) -> str:
        slot = find_slot_by_name(doc, doc.nodes[node_id], name)
        assert slot is not None, f"{node_id} has no slot {name}"
        return slot.id

    return _slot_of


@pytest.fixture
def root_slot(empty_doc, slot_of) -> str:
    return slot_of(empty_doc, empty_doc.root_node_id, "children")


@pytest.fixture
def table_doc(empty_doc, root_slot, insert) -> Tuple[Document, str]:
    """A 3x3 table under the root; returns ``(doc, table_id)``."""
    doc, table = insert(empty_doc, "table", root_slot, rows=3, columns=3)
    return doc, table.id


@pytest.fixture
def props_of() -> Callable[[Document, str], Dict[str, Any]]:
    def _props_of(doc: Document, node_id: str) -> Dict[str, Any]:
        return doc.nodes[node_id].props

    return _props_of
