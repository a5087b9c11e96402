from __future__ import annotations

"""Persisted forms of a :class:`Document`.

Two representations are supported:

- A JSON-compatible dict::

    {"version": 1, "root": "<node id>",
     "nodes": {"<id>": {"id", "type", "slots", "props"}},
     "slots": {"<id>": {"id", "nodeId", "name", "children"}}}

- An XML document (via lxml) for hosts that exchange XML. Node props are
  stored as JSON text so arbitrary values survive the trip unchanged.

Both decoders raise :class:`DocumentFormatError` on malformed input; with
``validate=True`` (the default) the decoded graph is also checked with
:func:`validate_document`, and every table node against its grid rules.
"""

import json
import logging
from typing import Any, Dict, Mapping, Optional, TYPE_CHECKING, Union

from lxml import etree as ET

from blockdoc_toolkit.core.components.builtin import ROOT_TYPE
from blockdoc_toolkit.core.components.table.grid import TABLE_TYPE, table_problems
from blockdoc_toolkit.core.exceptions import DocumentFormatError
from blockdoc_toolkit.core.models.document import (
    DOCUMENT_VERSION,
    Document,
    Node,
    Slot,
    node_from_dict,
    node_to_dict,
    slot_from_dict,
    slot_to_dict,
    validate_document,
)

if TYPE_CHECKING:
    from blockdoc_toolkit.core.registry import ComponentRegistry

__all__ = [
    "document_to_dict",
    "document_from_dict",
    "document_to_xml",
    "document_from_xml",
    "document_to_json",
    "document_from_json",
    "new_document",
]

logger = logging.getLogger(__name__)

ROOT_TAG = "document"


# ---------------------------------------------------------------------------
# Dict / JSON
# ---------------------------------------------------------------------------

def document_to_dict(doc: Document) -> Dict[str, Any]:
    return {
        "version": doc.version,
        "root": doc.root_node_id,
        "nodes": {key: node_to_dict(node) for key, node in doc.nodes.items()},
        "slots": {key: slot_to_dict(slot) for key, slot in doc.slots.items()},
    }


def document_from_dict(data: Mapping[str, Any], validate: bool = True) -> Document:
    """Decode a document from its dict form.

    Raises
    ------
    DocumentFormatError
        If *data* is not shaped like a document, declares a newer version
        than this library writes, or (with *validate*) violates a graph
        invariant.

    Notes
    -----
    ``rootNodeId`` and ``modelVersion`` are accepted as aliases of ``root``
    and ``version``.
    """
    if not isinstance(data, Mapping):
        raise DocumentFormatError("Document data must be a mapping")

    version = data.get("version", data.get("modelVersion", DOCUMENT_VERSION))
    if not isinstance(version, int) or version < 1:
        raise DocumentFormatError(f"Invalid document version: {version!r}")
    if version > DOCUMENT_VERSION:
        raise DocumentFormatError(f"Unsupported document version {version} (newest is {DOCUMENT_VERSION})")

    root = data.get("root", data.get("rootNodeId"))
    nodes_data = data.get("nodes")
    slots_data = data.get("slots")
    if not isinstance(root, str):
        raise DocumentFormatError("Document has no root node id")
    if not isinstance(nodes_data, Mapping) or not isinstance(slots_data, Mapping):
        raise DocumentFormatError("Document 'nodes' and 'slots' must be mappings")

    try:
        nodes = {str(key): node_from_dict(value) for key, value in nodes_data.items()}
        slots = {str(key): slot_from_dict(value) for key, value in slots_data.items()}
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise DocumentFormatError(f"Malformed document entry: {exc}", cause=exc) from exc

    doc = Document(root_node_id=root, nodes=nodes, slots=slots, version=version)
    if validate:
        _check(doc)
    return doc


def document_to_json(doc: Document, indent: Optional[int] = 2) -> str:
    return json.dumps(document_to_dict(doc), indent=indent, ensure_ascii=False)


def document_from_json(text: str, validate: bool = True) -> Document:
    try:
        data = json.loads(text)
    except ValueError as exc:
        raise DocumentFormatError(f"Invalid JSON: {exc}", cause=exc) from exc
    return document_from_dict(data, validate=validate)


# ---------------------------------------------------------------------------
# XML
# ---------------------------------------------------------------------------

def document_to_xml(doc: Document, pretty_print: bool = True) -> bytes:
    """Serialize *doc* to UTF-8 XML bytes.

    Layout::

        <document version="1" root="n-...">
          <node id="n-..." type="table">
            <slot-ref id="s-..."/>
            <props>{"rows": 2, ...}</props>
          </node>
          <slot id="s-..." nodeId="n-..." name="cell-0-0">
            <child id="n-..."/>
          </slot>
        </document>
    """
    root_el = ET.Element(ROOT_TAG, version=str(doc.version), root=doc.root_node_id)
    for node in doc.nodes.values():
        node_el = ET.SubElement(root_el, "node", id=node.id, type=node.type)
        for slot_id in node.slots:
            ET.SubElement(node_el, "slot-ref", id=slot_id)
        props_el = ET.SubElement(node_el, "props")
        props_el.text = json.dumps(node.props, ensure_ascii=False, sort_keys=True)
    for slot in doc.slots.values():
        slot_el = ET.SubElement(root_el, "slot", id=slot.id, nodeId=slot.node_id, name=slot.name)
        for child_id in slot.children:
            ET.SubElement(slot_el, "child", id=child_id)
    return ET.tostring(root_el, xml_declaration=True, encoding="UTF-8", pretty_print=pretty_print)


def document_from_xml(data: Union[bytes, str], validate: bool = True) -> Document:
    """Parse XML produced by :func:`document_to_xml`."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    parser = ET.XMLParser(remove_blank_text=True, resolve_entities=False, no_network=True)
    try:
        root_el = ET.fromstring(data, parser=parser)
    except ET.XMLSyntaxError as exc:
        raise DocumentFormatError(f"Invalid XML: {exc}", cause=exc) from exc

    if root_el.tag != ROOT_TAG:
        raise DocumentFormatError(f"Expected <{ROOT_TAG}> root element, found <{root_el.tag}>")

    try:
        version = int(root_el.get("version", DOCUMENT_VERSION))
        root_id = root_el.get("root")
        nodes: Dict[str, Node] = {}
        slots: Dict[str, Slot] = {}
        for node_el in root_el.iterfind("node"):
            props_el = node_el.find("props")
            props_text = props_el.text if props_el is not None else None
            node = node_from_dict({
                "id": node_el.attrib["id"],
                "type": node_el.attrib["type"],
                "slots": [ref.attrib["id"] for ref in node_el.iterfind("slot-ref")],
                "props": json.loads(props_text) if props_text else {},
            })
            nodes[node.id] = node
        for slot_el in root_el.iterfind("slot"):
            slot = slot_from_dict({
                "id": slot_el.attrib["id"],
                "nodeId": slot_el.attrib["nodeId"],
                "name": slot_el.attrib["name"],
                "children": [child.attrib["id"] for child in slot_el.iterfind("child")],
            })
            slots[slot.id] = slot
    except (KeyError, TypeError, ValueError) as exc:
        raise DocumentFormatError(f"Malformed XML document: {exc}", cause=exc) from exc

    if root_id is None:
        raise DocumentFormatError("Document has no root node id")
    if version > DOCUMENT_VERSION:
        raise DocumentFormatError(f"Unsupported document version {version} (newest is {DOCUMENT_VERSION})")

    doc = Document(root_node_id=root_id, nodes=nodes, slots=slots, version=version)
    if validate:
        _check(doc)
    return doc


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

def new_document(registry: "ComponentRegistry") -> Document:
    """Return an empty document holding a single root node."""
    root, root_slots = registry.create_node(ROOT_TYPE)
    return Document(
        root_node_id=root.id,
        nodes={root.id: root},
        slots={slot.id: slot for slot in root_slots},
    )


def _check(doc: Document) -> None:
    problems = validate_document(doc)
    if not problems:
        # Grid checks assume every referenced slot resolves
        for node in doc.nodes.values():
            if node.type != TABLE_TYPE:
                continue
            try:
                problems.extend(f"Table {node.id}: {p}" for p in table_problems(doc, node))
            except (KeyError, TypeError, ValueError) as e:
                problems.append(f"Table {node.id}: unreadable props ({e})")
    if problems:
        logger.warning("Rejected document with %d problem(s)", len(problems))
        raise DocumentFormatError("Document failed validation", problems=problems)
