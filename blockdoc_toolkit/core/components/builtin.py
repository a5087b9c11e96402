from __future__ import annotations

"""Built-in component definitions without type-specific commands.

Columns, tables and data tables carry their own handlers or subtree
factories and live in their own modules; everything here is fully
described by its slot template and containment rule.
"""

from typing import List

from blockdoc_toolkit.core.registry import (
    AllowedChildren,
    ComponentDefinition,
    SlotTemplate,
    static_slots,
)

__all__ = ["ROOT_TYPE", "builtin_definitions"]

ROOT_TYPE = "root"


def builtin_definitions() -> List[ComponentDefinition]:
    """Return fresh definitions for the components defined in this module."""
    children = (SlotTemplate("children"),)
    body = (SlotTemplate("body"),)
    return [
        ComponentDefinition(
            type=ROOT_TYPE,
            label="Document Root",
            category="layout",
            slots=children,
            allowed_children=AllowedChildren("denylist", (ROOT_TYPE,)),
            create_initial_slots=static_slots("children"),
            can_be_dragged=False,
            hidden=True,
        ),
        ComponentDefinition(
            type="text",
            label="Text",
            category="content",
            allowed_children=AllowedChildren("none"),
            default_props={"content": None},
        ),
        ComponentDefinition(
            type="image",
            label="Image",
            category="content",
            allowed_children=AllowedChildren("none"),
            default_props={
                "assetId": None,
                "alt": "",
                "objectFit": "contain",
                "width": "",
                "height": "",
            },
        ),
        ComponentDefinition(
            type="container",
            label="Container",
            category="layout",
            slots=children,
            create_initial_slots=static_slots("children"),
        ),
        ComponentDefinition(
            type="conditional",
            label="Conditional",
            category="logic",
            slots=body,
            create_initial_slots=static_slots("body"),
            default_props={
                "condition": {"raw": "", "language": "jsonata"},
                "inverse": False,
            },
        ),
        ComponentDefinition(
            type="loop",
            label="Loop",
            category="logic",
            slots=body,
            create_initial_slots=static_slots("body"),
            default_props={
                "expression": {"raw": "", "language": "jsonata"},
                "itemAlias": "item",
                "indexAlias": None,
            },
        ),
        ComponentDefinition(
            type="pagebreak",
            label="Page Break",
            category="page",
            allowed_children=AllowedChildren("none"),
        ),
        ComponentDefinition(
            type="pageheader",
            label="Page Header",
            category="page",
            slots=children,
            create_initial_slots=static_slots("children"),
        ),
        ComponentDefinition(
            type="pagefooter",
            label="Page Footer",
            category="page",
            slots=children,
            create_initial_slots=static_slots("children"),
        ),
    ]
