"""
Sample catalog for the collection-filters test app.
A small trading-card catalog: one series containing two sets, each set holding cards.
"""

ANCESTOR_COLLECTIONS = {
    "series-legends": {
        "id": "series-legends",
        "name": "Legends Series",
        "type": "COLLECTION",
        "attributes": {"item_ids": ["set-2020", "set-2021", "card-1", "card-2", "card-3", "card-4",
                                    "card-5", "card-6", "card-7", "card-8"]},
    },
    "set-2020": {
        "id": "set-2020",
        "name": "Legends 2020",
        "type": "COLLECTION",
        "attributes": {"item_ids": ["card-1", "card-2", "card-3", "card-4"]},
    },
    "set-2021": {
        "id": "set-2021",
        "name": "Legends 2021",
        "type": "COLLECTION",
        "attributes": {"item_ids": ["card-5", "card-6", "card-7", "card-8"]},
    },
}

CARDS = [
    {"id": "card-1", "type": "CARD", "name": "Red Dragon",     "year": 2020, "country": "US", "attributes": {"rarity": "Rare",     "finish": ["holo", "foil"]}},
    {"id": "card-2", "type": "CARD", "name": "Blue Wyvern",    "year": 2020, "country": "JP", "attributes": {"rarity": "Common",   "finish": ["matte"]}},
    {"id": "card-3", "type": "CARD", "name": "Golden Griffin", "year": 2020, "country": "US", "attributes": {"rarity": "Legendary"}},
    {"id": "card-4", "type": "CARD", "name": "Stone Golem",    "year": 2020, "country": "GB", "attributes": {"rarity": "Common",   "finish": ["matte"]}},
    {"id": "card-5", "type": "CARD", "name": "Dragon Egg",     "year": 2021, "country": "US", "attributes": {"rarity": "Rare",     "finish": ["foil"]}},
    {"id": "card-6", "type": "CARD", "name": "Shadow Cat",     "year": 2021, "country": "JP", "attributes": {"rarity": "Uncommon"}},
    {"id": "card-7", "type": "CARD", "name": "Sea Serpent",    "year": 2021, "country": "JP", "attributes": {"rarity": "Rare",     "finish": ["holo"]}},
    {"id": "card-8", "type": "CARD", "name": "Iron Knight",    "year": None, "country": "US", "attributes": {"rarity": "Common"}},
]

COLLECTION_ITEMS = {
    "root": [ANCESTOR_COLLECTIONS["series-legends"]],
    "series-legends": [ANCESTOR_COLLECTIONS["set-2020"], ANCESTOR_COLLECTIONS["set-2021"]],
    "set-2020": [c for c in CARDS if c["id"] in ANCESTOR_COLLECTIONS["set-2020"]["attributes"]["item_ids"]],
    "set-2021": [c for c in CARDS if c["id"] in ANCESTOR_COLLECTIONS["set-2021"]["attributes"]["item_ids"]],
}

# Ancestors of each collection, outermost first
ANCESTOR_CHAINS = {
    "root": [],
    "series-legends": [],
    "set-2020": ["series-legends"],
    "set-2021": ["series-legends"],
}

FIELD_METADATA = {
    "series-legends": [
        {"field": "year", "label": "Year", "type": "multiselect", "values": ["2020", "2021"], "count": 2, "priority": 20},
    ],
    "set-2020": [
        {"field": "attributes.rarity", "label": "Rarity", "type": "multiselect", "values": ["Common", "Legendary", "Rare"], "count": 3, "priority": 10},
        {"field": "country", "label": "Country", "type": "multiselect", "values": ["GB", "JP", "US"], "count": 3, "priority": 5},
    ],
    "set-2021": [
        {"field": "attributes.rarity", "label": "Rarity", "type": "multiselect", "values": ["Common", "Rare", "Uncommon"], "count": 3, "priority": 10},
        {"field": "country", "label": "Country", "type": "multiselect", "values": ["JP", "US"], "count": 2, "priority": 5},
    ],
}

OWNED_ITEM_IDS = {"card-1", "card-4", "card-6"}
