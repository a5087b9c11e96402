import pytest

from blockdoc_toolkit.core.utils import (
    camel_to_snake,
    clamp_insert_index,
    copy_props,
    generate_node_id,
    generate_slot_id,
    insert_at,
    snake_to_camel,
)


class TestIds:
    """Generated ids are prefixed and unique."""

    def test_prefixes(self):
        assert generate_node_id().startswith("n-")
        assert generate_slot_id().startswith("s-")

    def test_unique(self):
        ids = {generate_node_id() for _ in range(200)}
        assert len(ids) == 200


@pytest.mark.parametrize(
    "index, length, expected",
    [(-1, 3, 3), (0, 3, 0), (2, 3, 2), (3, 3, 3), (99, 3, 3), (0, 0, 0)],
)
def test_clamp_insert_index(index, length, expected):
    assert clamp_insert_index(index, length) == expected


def test_insert_at_returns_new_tuple():
    items = ("a", "b")
    assert insert_at(items, 1, "x") == ("a", "x", "b")
    assert insert_at(items, -1, "x") == ("a", "b", "x")
    assert items == ("a", "b")


def test_copy_props_is_deep():
    original = {"merges": [{"row": 0}]}
    copied = copy_props(original)
    copied["merges"][0]["row"] = 5
    assert original["merges"][0]["row"] == 0
    assert copy_props(None) == {}


def test_case_conversion():
    assert camel_to_snake("targetSlotId") == "target_slot_id"
    assert camel_to_snake("nodeId") == "node_id"
    assert snake_to_camel("restore_header_rows") == "restoreHeaderRows"
    assert snake_to_camel("position") == "position"
