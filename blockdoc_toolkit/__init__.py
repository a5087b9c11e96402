"""Top-level package for BlockDoc Toolkit, a headless structured-document editor core.

Hosts (UI adapters, CLIs, services) should only depend on the public API
exposed here rather than importing internal modules directly.
"""

from .core.models import Document  # re-export for convenience
from .core.registry import ComponentRegistry, create_default_registry
from .core.serialization import document_from_dict, document_to_dict, new_document
from .core.services.editor_engine import EditorEngine
from .version import get_app_version

__all__: list[str] = [
    "Document",
    "ComponentRegistry",
    "create_default_registry",
    "document_from_dict",
    "document_to_dict",
    "new_document",
    "EditorEngine",
    "get_app_version",
]
