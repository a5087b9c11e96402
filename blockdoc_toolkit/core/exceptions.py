from __future__ import annotations

"""Exception classes for the document core.

Command dispatch never raises for expected failures (missing nodes, wrong
node types, out-of-range indices); those surface as failed
:class:`~blockdoc_toolkit.core.models.commands.CommandResult`
values. The exceptions below cover programming and configuration errors at
setup time (registering components) and malformed input at the
serialization boundary.
"""

from typing import List, Optional


class BlockDocError(Exception):
    """Base exception for all document-core errors.

    All core exceptions inherit from this base class to enable
    comprehensive error handling and logging.
    """

    def __init__(self, message: str, node_type: Optional[str] = None,
                 cause: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.node_type = node_type
        self.cause = cause

    def __str__(self) -> str:
        if self.node_type:
            return f"[Component: {self.node_type}] {super().__str__()}"
        return super().__str__()


class ComponentRegistrationError(BlockDocError):
    """Raised when a component definition cannot be registered.

    This includes duplicate node types and command types that are already
    claimed by another component's handler.
    """

    def __init__(self, message: str, node_type: Optional[str] = None,
                 command_type: Optional[str] = None,
                 cause: Optional[Exception] = None) -> None:
        super().__init__(message, node_type, cause)
        self.command_type = command_type


class UnknownComponentError(BlockDocError):
    """Raised when a node type has no registered component definition."""

    def __init__(self, node_type: str, available_types: Optional[List[str]] = None) -> None:
        self.available_types = available_types or []
        if self.available_types:
            message = f"Unknown component type '{node_type}'. Registered: {', '.join(self.available_types)}"
        else:
            message = f"Unknown component type '{node_type}'. No components are registered."
        super().__init__(message, node_type=node_type)


class DocumentFormatError(BlockDocError):
    """Raised when a serialized document cannot be decoded or is inconsistent.

    ``problems`` lists every violated invariant found during validation.
    """

    def __init__(self, message: str, problems: Optional[List[str]] = None,
                 cause: Optional[Exception] = None) -> None:
        super().__init__(message, cause=cause)
        self.problems = problems or []


class CommandFormatError(BlockDocError):
    """Raised when a serialized command has an unknown type or bad payload."""

    def __init__(self, message: str, command_type: Optional[str] = None,
                 cause: Optional[Exception] = None) -> None:
        super().__init__(message, cause=cause)
        self.command_type = command_type
