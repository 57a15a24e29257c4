"""
Filter evaluation - decides which items belong in a filtered view.

Works with any list of item dicts. A FilterSet maps field paths to selected
values; an item is kept when it matches every field (AND) and, within a
field, any selected value (OR).
"""

from typing import Dict, List, Optional, Set

from .utils import (
    MISSING, OWNED, OWNERSHIP_FIELD, PARENT_COLLECTIONS_FIELD, TEXT_SEARCH_FIELD,
    is_collection_type, is_scalar, resolve_field, to_filter_value,
)


def member_index(ancestor_collections: Optional[List[Dict]]) -> Dict[str, Set[str]]:
    """Map each ancestor collection ID to the set of its member item IDs."""
    index = {}
    for collection in ancestor_collections or []:
        if not isinstance(collection, dict) or collection.get('id') is None:
            continue
        attributes = collection.get('attributes') or {}
        item_ids = attributes.get('item_ids') if isinstance(attributes, dict) else None
        index[str(collection['id'])] = {str(i) for i in (item_ids or [])}
    return index


def _active_fields(filter_set) -> List:
    if not isinstance(filter_set, dict):
        return []
    active = []
    for field, selected in filter_set.items():
        if selected is None:
            continue
        if isinstance(selected, str):
            if not selected.strip():
                continue
        elif isinstance(selected, (list, tuple, set)):
            if not selected:
                continue
        active.append((field, selected))
    return active


def _selected_strings(selected) -> Set[str]:
    if isinstance(selected, (list, tuple, set)):
        return {to_filter_value(v) for v in selected if v is not None}
    return {to_filter_value(selected)}


def _match_text_search(item: Dict, query) -> bool:
    if not isinstance(query, str) or not query.strip():
        return True
    name = item.get('name') if isinstance(item, dict) else None
    return query.strip().lower() in (name or '').lower() if isinstance(name, str) else False


def _match_ownership(item: Dict, selected: Set[str], ownership_set) -> bool:
    item_id = item.get('id') if isinstance(item, dict) else None
    owned = ownership_set is not None and item_id is not None and item_id in ownership_set
    if OWNED in selected and owned:
        return True
    return MISSING in selected and not owned


def _match_parent_collections(item: Dict, selected: Set[str], members: Dict[str, Set[str]]) -> bool:
    item_id = item.get('id') if isinstance(item, dict) else None
    if item_id is None:
        return False
    item_id = str(item_id)
    return any(item_id in members.get(collection_id, ()) for collection_id in selected)


def _match_field(item: Dict, field: str, selected: Set[str]) -> bool:
    value = resolve_field(item, field)

    # Containers stay visible when they lack the field: their children may match.
    if value is None:
        return is_collection_type(item)

    if isinstance(value, list):
        return any(to_filter_value(v) in selected for v in value if is_scalar(v))
    if is_scalar(value):
        return to_filter_value(value) in selected
    return False


def _matches(item: Dict, active_fields: List, ownership_set, members: Dict[str, Set[str]]) -> bool:
    for field, selected in active_fields:
        if field == TEXT_SEARCH_FIELD:
            ok = _match_text_search(item, selected)
        elif field == OWNERSHIP_FIELD:
            ok = _match_ownership(item, _selected_strings(selected), ownership_set)
        elif field == PARENT_COLLECTIONS_FIELD:
            ok = _match_parent_collections(item, _selected_strings(selected), members)
        else:
            ok = _match_field(item, field, _selected_strings(selected))
        if not ok:
            return False
    return True


def matches(item: Dict, filter_set: Dict, ownership_set=None,
            ancestor_collections: Optional[List[Dict]] = None) -> bool:
    """
    Check whether one item matches a FilterSet.

    Args:
        item: Item dict ({'id', 'type', 'name', 'attributes'})
        filter_set: {field_path: [values], '_text_search': str}
        ownership_set: Item IDs the user owns (for the 'ownership' field)
        ancestor_collections: Ancestor collection dicts (for 'parent_collections')

    Returns:
        True if the item belongs in the filtered view. Never raises.
    """
    return _matches(item, _active_fields(filter_set), ownership_set,
                    member_index(ancestor_collections))


def apply_filters(items: List[Dict], filter_set: Dict, ownership_set=None,
                  ancestor_collections: Optional[List[Dict]] = None) -> List[Dict]:
    """
    Apply a FilterSet to a list of items.

    An empty FilterSet returns every item.
    """
    items = list(items or [])
    active_fields = _active_fields(filter_set)
    if not active_fields:
        return items
    members = member_index(ancestor_collections)
    return [item for item in items if _matches(item, active_fields, ownership_set, members)]
