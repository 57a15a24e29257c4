"""Tests for the natural-language FilterBot (Claude calls are stubbed)."""

from __future__ import annotations

import pytest

from collection_filters import FilterBot, build_field_catalog, clean_json_string
from collection_filters.filter_bot import describe_fields


@pytest.fixture
def bot(monkeypatch):
    monkeypatch.setenv("ANTHROPIC_API_KEY", "test-key")
    return FilterBot()


@pytest.fixture
def fields(items, ancestors):
    return build_field_catalog(items, ancestor_collections=ancestors,
                               is_authenticated=True, ownership_set={"1"})


def test_requires_api_key(monkeypatch):
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    with pytest.raises(ValueError):
        FilterBot()


def test_interpret_filter_parses_fenced_reply(bot, fields, monkeypatch):
    prompts = []

    def fake_call(system_prompt, messages):
        prompts.append(messages[0]["content"])
        return ('```json\n{"filters": {"rarity": ["Rare"], "ownership": ["missing"],},'
                ' "description": "Missing rares"}\n```')

    monkeypatch.setattr(bot, "call_api", fake_call)
    spec = bot.interpret_filter("rare ones I still need", fields, {"finish": ["holo"]})

    assert spec == {"filters": {"rarity": ["Rare"], "ownership": ["missing"]}, "description": "Missing rares"}
    assert "rarity (Rarity)" in prompts[0]
    assert '"finish": ["holo"]' in prompts[0]
    assert bot.validate_filter(spec, fields) == (True, "")


def test_interpret_filter_bad_json(bot, fields, monkeypatch):
    monkeypatch.setattr(bot, "call_api", lambda system_prompt, messages: "not json at all")
    spec = bot.interpret_filter("anything", fields)
    assert spec["description"] is None
    assert spec["error"].startswith("Failed to parse filter")


def test_interpret_filter_api_error(bot, fields, monkeypatch):
    def failing(system_prompt, messages):
        raise RuntimeError("Claude API error: overloaded")

    monkeypatch.setattr(bot, "call_api", failing)
    spec = bot.interpret_filter("anything", fields)
    assert "overloaded" in spec["error"]
    assert bot.validate_filter(spec, fields)[0] is False


def test_interpret_filter_missing_filters(bot, fields, monkeypatch):
    monkeypatch.setattr(bot, "call_api", lambda system_prompt, messages: '{"description": "x"}')
    assert bot.interpret_filter("anything", fields)["error"] == "Response missing 'filters' object"


@pytest.mark.parametrize("filters, message", [
    ({"colour": ["red"]}, "Unknown field: colour"),
    ({"rarity": ["Mythic"]}, "Unknown value(s) for rarity: Mythic"),
    ({"rarity": "Rare"}, "Values for rarity must be a list"),
    ({"_text_search": ["dragon"]}, "_text_search must be a string"),
])
def test_validate_filter_rejects(bot, fields, filters, message):
    assert bot.validate_filter({"filters": filters, "description": "x"}, fields) == (False, message)


def test_validate_filter_accepts_text_search_and_parents(bot, fields):
    spec = {"filters": {"_text_search": "dragon", "parent_collections": ["set-a"]}, "description": "x"}
    assert bot.validate_filter(spec, fields) == (True, "")


def test_describe_fields_truncates_and_names_parents(fields):
    text = describe_fields(fields, max_values=1)
    assert '- ownership (Ownership): "owned", ... (1 more)' in text
    assert '"set-a": "Set A"' in text


def test_clean_json_string():
    assert clean_json_string('{"a": [1, 2,]} // note') == '{"a": [1, 2]}'
