"""Tests for the persisted, inheritance-aware filter store."""

from __future__ import annotations

import json

import pytest

from collection_filters import FileStorage, FilterStateStore, FilterStoreError, MemoryStorage
from collection_filters.filter_state_store import STORAGE_KEY


def test_update_field_with_empty_values_removes_field(store):
    store.update_field("col", "year", ["2020"])
    store.update_field("col", "country", ["US"])
    store.update_field("col", "year", [])
    assert store.get_filters("col", include_inherited=False) == {"country": ["US"]}

    store.update_field("col", "country", None)
    assert store.get_filters("col", include_inherited=False) == {}
    assert not store.has_own_filters("col")


def test_blank_text_search_is_removed(store):
    store.update_field("col", "_text_search", "dragon")
    assert store.get_filters("col") == {"_text_search": "dragon"}
    store.update_field("col", "_text_search", "   ")
    assert store.get_filters("col") == {}


def test_clear_field(store):
    store.set_filters("col", {"year": ["2020"], "country": ["US"]})
    store.clear_field("col", "year")
    assert store.get_filters("col", include_inherited=False) == {"country": ["US"]}


def test_inherited_filters_merge_outermost_first(store):
    store.set_filters("A", {"country": ["US"]})
    store.set_filters("B", {"year": ["2020"]})
    store.set_filters("C", {"attributes.rarity": ["Rare"]})
    store.set_active_collection("C", ["A", "B"])

    assert store.get_filters("C", include_inherited=True) == {
        "country": ["US"],
        "year": ["2020"],
        "attributes.rarity": ["Rare"],
    }


def test_own_field_overrides_ancestor_without_union(store):
    store.set_filters("A", {"country": ["US"]})
    store.set_filters("B", {"year": ["2020"]})
    store.set_filters("C", {"attributes.rarity": ["Rare"], "year": ["2021"]})
    store.set_active_collection("C", ["A", "B"])

    assert store.get_filters("C")["year"] == ["2021"]


def test_later_ancestor_replaces_earlier_one(store):
    store.set_filters("A", {"country": ["US", "JP"]})
    store.set_filters("B", {"country": ["GB"]})
    store.set_active_collection("C", ["A", "B"])
    assert store.get_filters("C") == {"country": ["GB"]}


def test_ancestor_read_only_inherits_from_its_own_ancestors(store):
    store.set_filters("A", {"country": ["US"]})
    store.set_filters("B", {"year": ["2020"]})
    store.set_active_collection("C", ["A", "B"])
    assert store.get_filters("B") == {"country": ["US"], "year": ["2020"]}
    assert store.get_filters("A") == {"country": ["US"]}


def test_without_inheritance_only_own_filters(store):
    store.set_filters("A", {"country": ["US"]})
    store.set_active_collection("C", ["A"])
    assert store.get_filters("C", include_inherited=False) == {}
    assert not store.has_own_filters("C")
    assert store.has_effective_filters("C")


def test_set_active_collection_does_not_touch_filters(store, storage):
    store.set_filters("A", {"country": ["US"]})
    before = storage.get(STORAGE_KEY)
    store.set_active_collection("C", ["A"])
    assert storage.get(STORAGE_KEY) == before
    assert store.active_collection_id == "C"
    assert store.ancestor_chain == ["A"]


def test_none_collection_is_total(store):
    assert store.get_filters(None) == {}
    assert not store.has_own_filters(None)
    assert not store.has_effective_filters(None)
    store.set_filters(None, {"year": ["2020"]})
    store.update_field(None, "year", ["2020"])
    store.clear_all_for_collection(None)
    assert store.all_filters() == {}


def test_round_trip(store):
    filters = {"year": ["2020", "2021"], "attributes.rarity": ["Rare"], "_text_search": "dragon"}
    store.set_filters("col", filters)
    assert store.get_filters("col", include_inherited=False) == filters


def test_clear_all_removes_entry(store, storage):
    store.set_filters("col", {"year": ["2020"], "country": ["US"]})
    store.clear_all_for_collection("col")
    assert store.get_filters("col", include_inherited=False) == {}
    assert "col" not in json.loads(storage.get(STORAGE_KEY))


def test_values_are_stored_as_strings(store):
    store.update_field("col", "year", [2020, 2020.0, True])
    assert store.get_filters("col") == {"year": ["2020", "true"]}


def test_returned_filters_are_copies(store):
    store.set_filters("col", {"year": ["2020"]})
    store.get_filters("col")["year"].append("2021")
    assert store.get_filters("col") == {"year": ["2020"]}


def test_every_mutation_writes_whole_blob(store, storage):
    store.update_field("a", "year", ["2020"])
    store.update_field("b", "country", ["US"])
    assert json.loads(storage.get(STORAGE_KEY)) == {"a": {"year": ["2020"]}, "b": {"country": ["US"]}}


def test_store_is_loaded_at_construction(storage):
    FilterStateStore(storage).set_filters("col", {"year": ["2020"]})
    assert FilterStateStore(storage).get_filters("col") == {"year": ["2020"]}


@pytest.mark.parametrize("raw", ["{not json", "[1, 2, 3]", "42", '"text"'])
def test_corrupt_blob_loads_as_empty(raw):
    store = FilterStateStore(MemoryStorage({STORAGE_KEY: raw}))
    assert store.all_filters() == {}
    store.update_field("col", "year", ["2020"])
    assert store.get_filters("col") == {"year": ["2020"]}


def test_malformed_entries_are_dropped():
    raw = json.dumps({"good": {"year": ["2020"], "country": []}, "bad": ["x"]})
    store = FilterStateStore(MemoryStorage({STORAGE_KEY: raw}))
    assert store.all_filters() == {"good": {"year": ["2020"]}}


class FailingStorage(MemoryStorage):
    def set(self, key, value):
        raise OSError("disk full")


def test_failed_write_keeps_previous_state():
    storage = FailingStorage({STORAGE_KEY: json.dumps({"col": {"year": ["2020"]}})})
    store = FilterStateStore(storage)
    with pytest.raises(FilterStoreError):
        store.update_field("col", "year", ["2021"])
    assert store.get_filters("col") == {"year": ["2020"]}


def test_subscribers_are_notified(store):
    seen = []
    unsubscribe = store.subscribe(lambda cid, filters: seen.append((cid, filters)))
    store.update_field("col", "year", ["2020"])
    store.clear_all_for_collection("col")
    unsubscribe()
    store.update_field("col", "year", ["2021"])
    assert seen == [("col", {"year": ["2020"]}), ("col", {})]


def test_failing_subscriber_does_not_break_store(store):
    def boom(cid, filters):
        raise RuntimeError("boom")

    seen = []
    store.subscribe(boom)
    store.subscribe(lambda cid, filters: seen.append(cid))
    store.update_field("col", "year", ["2020"])
    assert store.get_filters("col") == {"year": ["2020"]}
    assert seen == ["col"]


def test_file_storage_persists_across_stores(tmp_path):
    FilterStateStore(FileStorage(tmp_path)).set_filters("col", {"country": ["JP"]})
    assert (tmp_path / f"{STORAGE_KEY}.json").exists()
    assert not list(tmp_path.glob("*.tmp"))
    assert FilterStateStore(FileStorage(tmp_path)).get_filters("col") == {"country": ["JP"]}


def test_file_storage_corrupt_file(tmp_path):
    (tmp_path / f"{STORAGE_KEY}.json").write_text("{oops", encoding="utf-8")
    assert FilterStateStore(FileStorage(tmp_path)).all_filters() == {}


def test_file_storage_directory_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("COLLECTION_FILTERS_DIR", str(tmp_path / "filters"))
    storage = FileStorage()
    FilterStateStore(storage).update_field("col", "year", ["2020"])
    assert (tmp_path / "filters" / f"{STORAGE_KEY}.json").exists()
