"""
Tests for food and wine selection parsing.
"""

import pytest

from reservation_engine.domain.selections import FoodSelection, WineSelection, dump_selections, parse_selections


def test_parses_tagged_selections():
    selections = parse_selections([
        {"kind": "salad", "item_id": 1},
        {"kind": "entree", "item_id": 7, "quantity": 2, "guest_index": 0},
        {"kind": "wine", "item_id": 31, "serving": "glass"},
    ])

    assert isinstance(selections[0], FoodSelection)
    assert selections[1].quantity == 2
    assert isinstance(selections[2], WineSelection)
    assert selections[2].serving == "glass"


def test_none_is_empty():
    assert parse_selections(None) == []


@pytest.mark.parametrize("raw", [
    [{"kind": "appetizer", "item_id": 1}],
    [{"kind": "entree", "item_id": 1, "quantity": 0}],
    [{"item_id": 1}],
])
def test_rejects_malformed_selections(raw):
    with pytest.raises(ValueError):
        parse_selections(raw)


def test_dump_keeps_kind():
    dumped = dump_selections(parse_selections([{"kind": "dessert", "item_id": 4}]))
    assert dumped == [{"kind": "dessert", "item_id": 4, "quantity": 1, "guest_index": None}]
