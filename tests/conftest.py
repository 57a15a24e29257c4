from __future__ import annotations

import pytest

from collection_filters import FilterStateStore, MemoryStorage


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def store(storage):
    return FilterStateStore(storage)


@pytest.fixture
def items():
    return [
        {"id": "1", "type": "CARD", "name": "Red Dragon", "year": 2020, "country": "US",
         "attributes": {"rarity": "Rare", "finish": ["holo", "foil"]}},
        {"id": "2", "type": "CARD", "name": "Blue Wyvern", "year": 2021, "country": "JP",
         "attributes": {"rarity": "Common", "finish": ["matte"]}},
        {"id": "3", "type": "COLLECTION", "name": "Dragon Box", "year": 2020, "country": "US",
         "attributes": {}},
        {"id": "4", "type": "CARD", "name": "Iron Knight", "year": None, "country": "US",
         "attributes": {"rarity": "Common"}},
    ]


@pytest.fixture
def ancestors():
    return [
        {"id": "series", "name": "Legends Series", "attributes": {"item_ids": ["1", "2", "3", "4"]}},
        {"id": "set-a", "name": "Set A", "attributes": {"item_ids": ["1", "3"]}},
    ]
