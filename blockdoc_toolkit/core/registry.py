from __future__ import annotations

"""Component registry: the extension point for structural node kinds.

Each node type is described by a :class:`ComponentDefinition`: its slot
template, which child types it accepts, its default properties, how to
create its initial slots (or a whole subtree of descendant nodes), and
optionally a command handler for the command types it owns. The generic command engine consults the registry for
containment rules and to route component-specific commands, so adding a
new kind of node never requires touching the engine.
"""

from dataclasses import dataclass, field
import logging
from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple, TYPE_CHECKING

from blockdoc_toolkit.core.exceptions import ComponentRegistrationError, UnknownComponentError
from blockdoc_toolkit.core.models.commands import Command, CommandResult, InsertNode
from blockdoc_toolkit.core.models.document import Document, Node, Slot
from blockdoc_toolkit.core.utils import copy_props, generate_node_id, generate_slot_id

if TYPE_CHECKING:
    from blockdoc_toolkit.config.manager import ConfigManager

__all__ = [
    "AllowedChildren",
    "SlotTemplate",
    "ComponentDefinition",
    "ComponentRegistry",
    "TypedProps",
    "CommandHandler",
    "SlotFactory",
    "SubtreeFactory",
    "Subtree",
    "CreatedNode",
    "static_slots",
    "create_default_registry",
]

logger = logging.getLogger(__name__)

CommandHandler = Callable[[Document, Command], CommandResult]
SlotFactory = Callable[[str, Dict[str, Any]], List[Slot]]
SubtreeFactory = Callable[[str, Dict[str, Any]], "Subtree"]

CATEGORIES = ("content", "layout", "logic", "page")


class TypedProps(Protocol):
    """Typed view over a node's props for one component type."""

    @classmethod
    def from_props(cls, props: Dict[str, Any]) -> "TypedProps":
        ...

    def to_props(self) -> Dict[str, Any]:
        ...


@dataclass(frozen=True)
class AllowedChildren:
    """Containment rule for a component's slots.

    ``mode`` is one of ``all``, ``none``, ``allowlist`` or ``denylist``;
    ``types`` is the list the last two modes refer to.
    """
    mode: str = "all"
    types: Tuple[str, ...] = ()

    def allows(self, child_type: str) -> bool:
        if self.mode == "all":
            return True
        if self.mode == "none":
            return False
        if self.mode == "allowlist":
            return child_type in self.types
        if self.mode == "denylist":
            return child_type not in self.types
        return False


@dataclass(frozen=True)
class SlotTemplate:
    """Declared slot shape. Dynamic names are patterns such as ``column-{i}``."""
    name: str
    dynamic: bool = False


def static_slots(*names: str) -> SlotFactory:
    """Return a slot factory creating one empty slot per static name."""

    def _factory(node_id: str, props: Dict[str, Any]) -> List[Slot]:
        return [Slot(id=generate_slot_id(), node_id=node_id, name=name) for name in names]

    return _factory


def _no_slots(node_id: str, props: Dict[str, Any]) -> List[Slot]:
    return []


@dataclass(frozen=True)
class Subtree:
    """What a subtree factory creates for a new node.

    ``slots`` are the new node's own slots, already listing their children;
    ``extra_nodes`` and ``extra_slots`` are every descendant beneath them.
    """
    slots: Tuple[Slot, ...]
    extra_nodes: Tuple[Node, ...] = ()
    extra_slots: Tuple[Slot, ...] = ()


@dataclass(frozen=True)
class CreatedNode:
    """A freshly created node together with everything created beneath it."""
    node: Node
    slots: Tuple[Slot, ...]
    extra_nodes: Tuple[Node, ...] = ()
    extra_slots: Tuple[Slot, ...] = ()

    def insert_command(self, target_slot_id: str, index: int = -1) -> InsertNode:
        """Return the :class:`InsertNode` that places the whole subtree."""
        return InsertNode(
            node=self.node,
            slots=self.slots,
            target_slot_id=target_slot_id,
            index=index,
            restore_nodes=self.extra_nodes,
            restore_slots=self.extra_slots,
        )


@dataclass(frozen=True)
class ComponentDefinition:
    """Registration record for one node type.

    Attributes:
        type: Node type name, unique within a registry
        label: Human-readable name for palettes
        category: One of ``content``, ``layout``, ``logic``, ``page``
        slots: Slot template
        allowed_children: Which child types the slots accept
        default_props: Props a freshly created node starts with
        create_initial_slots: Factory for the slots of a new node
        create_subtree: Factory for slots plus descendant nodes; replaces
            ``create_initial_slots`` when set
        normalize_props: Completes merged props before slots are created
        props_type: Optional typed view over the props
        command_types: Command types routed to ``command_handler``
        command_handler: Applies this component's commands
        can_be_dragged: Whether drag-and-drop may pick the node up
        hidden: Excluded from ``insertable()`` (e.g. the root)
    """
    type: str
    label: str
    category: str = "content"
    slots: Tuple[SlotTemplate, ...] = ()
    allowed_children: AllowedChildren = field(default_factory=AllowedChildren)
    default_props: Dict[str, Any] = field(default_factory=dict)
    create_initial_slots: SlotFactory = _no_slots
    create_subtree: Optional[SubtreeFactory] = None
    normalize_props: Optional[Callable[[Dict[str, Any]], Dict[str, Any]]] = None
    props_type: Optional[type] = None
    command_types: Tuple[str, ...] = ()
    command_handler: Optional[CommandHandler] = None
    can_be_dragged: bool = True
    hidden: bool = False


class ComponentRegistry:
    """Registry of component definitions keyed by node type.

    Registration errors are programming errors and raise
    :class:`ComponentRegistrationError`; lookups used during dispatch
    report absence with ``None``/``False`` instead.
    """

    def __init__(self) -> None:
        self._definitions: Dict[str, ComponentDefinition] = {}
        self._command_owners: Dict[str, str] = {}  # command type -> node type
        self._logger = logging.getLogger(f"{__name__}.ComponentRegistry")

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    def register(self, definition: ComponentDefinition) -> None:
        """Register a component definition.

        Raises:
            ComponentRegistrationError: If the type is already registered, a
                command type is claimed by another component, or command types
                are declared without a handler
        """
        if not definition.type:
            raise ComponentRegistrationError("Component definition has no type")
        if definition.type in self._definitions:
            raise ComponentRegistrationError(
                f"Component type '{definition.type}' is already registered",
                node_type=definition.type,
            )
        if definition.category not in CATEGORIES:
            raise ComponentRegistrationError(
                f"Unknown category '{definition.category}'",
                node_type=definition.type,
            )
        if definition.command_types and definition.command_handler is None:
            raise ComponentRegistrationError(
                "Command types declared without a command handler",
                node_type=definition.type,
            )
        for command_type in definition.command_types:
            owner = self._command_owners.get(command_type)
            if owner is not None:
                raise ComponentRegistrationError(
                    f"Command type '{command_type}' is already handled by '{owner}'",
                    node_type=definition.type,
                    command_type=command_type,
                )

        self._definitions[definition.type] = definition
        for command_type in definition.command_types:
            self._command_owners[command_type] = definition.type
        self._logger.debug("Registered component '%s' (commands: %s)",
                           definition.type, list(definition.command_types))

    def unregister(self, node_type: str) -> bool:
        """Remove a component definition. Returns True if it was registered."""
        definition = self._definitions.pop(node_type, None)
        if definition is None:
            return False
        for command_type in definition.command_types:
            self._command_owners.pop(command_type, None)
        self._logger.debug("Unregistered component '%s'", node_type)
        return True

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def get(self, node_type: str) -> Optional[ComponentDefinition]:
        return self._definitions.get(node_type)

    def get_or_raise(self, node_type: str) -> ComponentDefinition:
        definition = self._definitions.get(node_type)
        if definition is None:
            raise UnknownComponentError(node_type, sorted(self._definitions))
        return definition

    def has(self, node_type: str) -> bool:
        return node_type in self._definitions

    def all(self) -> List[ComponentDefinition]:
        return list(self._definitions.values())

    def insertable(self) -> List[ComponentDefinition]:
        """Definitions offered to users for insertion (non-hidden)."""
        return [d for d in self._definitions.values() if not d.hidden]

    def can_contain(self, parent_type: str, child_type: str) -> bool:
        """Return True if a node of *parent_type* accepts a *child_type* child.

        Unknown types on either side never match.
        """
        parent = self._definitions.get(parent_type)
        if parent is None or child_type not in self._definitions:
            return False
        return parent.allowed_children.allows(child_type)

    def handler_for(self, command_type: str) -> Optional[ComponentDefinition]:
        owner = self._command_owners.get(command_type)
        return self._definitions.get(owner) if owner is not None else None

    def typed_props(self, node: Node) -> Any:
        """Return the typed props object for *node*.

        Falls back to a copy of the raw props mapping when the node's type has
        no typed props class (or is not registered).
        """
        definition = self._definitions.get(node.type)
        if definition is None or definition.props_type is None:
            return copy_props(node.props)
        return definition.props_type.from_props(node.props)

    # -------------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------------

    def create_node(
        self,
        node_type: str,
        override_props: Optional[Dict[str, Any]] = None,
    ) -> Tuple[Node, List[Slot]]:
        """Create a fresh node of *node_type* with its initial slots.

        Components that create descendant nodes need :meth:`create_tree`;
        the slots returned here would reference nodes the caller never sees.

        Args:
            node_type: Registered component type
            override_props: Props merged over the component defaults

        Returns:
            The new node and its slots, all with newly generated ids

        Raises:
            UnknownComponentError: If *node_type* is not registered
        """
        created = self.create_tree(node_type, override_props)
        return created.node, list(created.slots)

    def create_tree(
        self,
        node_type: str,
        override_props: Optional[Dict[str, Any]] = None,
    ) -> CreatedNode:
        """Create a fresh node of *node_type* plus any subtree it starts with.

        Override keys starting with ``_`` are creation options: the slot or
        subtree factory sees them, the stored props do not keep them.

        Raises:
            UnknownComponentError: If *node_type* is not registered
        """
        definition = self.get_or_raise(node_type)
        props = copy_props(definition.default_props)
        props.update(copy_props(override_props))
        if definition.normalize_props is not None:
            props = definition.normalize_props(props)
        node_id = generate_node_id()

        if definition.create_subtree is not None:
            subtree = definition.create_subtree(node_id, props)
        else:
            subtree = Subtree(slots=tuple(definition.create_initial_slots(node_id, props)))

        stored = {k: v for k, v in props.items() if not k.startswith("_")}
        node = Node(id=node_id, type=node_type, slots=tuple(s.id for s in subtree.slots), props=stored)
        return CreatedNode(
            node=node,
            slots=tuple(subtree.slots),
            extra_nodes=tuple(subtree.extra_nodes),
            extra_slots=tuple(subtree.extra_slots),
        )


def create_default_registry(config: Optional["ConfigManager"] = None) -> ComponentRegistry:
    """Create a registry holding every built-in component.

    Args:
        config: Optional configuration manager supplying editor defaults
            (table column width, maximum column count)
    """
    from blockdoc_toolkit.core.components.builtin import builtin_definitions
    from blockdoc_toolkit.core.components.columns import create_columns_definition
    from blockdoc_toolkit.core.components.datatable import (
        create_datatable_column_definition,
        create_datatable_definition,
    )
    from blockdoc_toolkit.core.components.table import create_table_definition

    editor_config: Dict[str, Any] = config.get_editor_config() if config is not None else {}
    table_config = editor_config.get("table", {}) or {}
    columns_config = editor_config.get("columns", {}) or {}

    registry = ComponentRegistry()
    for definition in builtin_definitions():
        registry.register(definition)
    registry.register(create_columns_definition(
        max_columns=columns_config.get("max_columns"),
    ))
    registry.register(create_table_definition(
        default_column_width=table_config.get("default_column_width"),
    ))
    registry.register(create_datatable_definition())
    registry.register(create_datatable_column_definition())
    return registry
