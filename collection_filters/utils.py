"""
Utility functions for collection-filters.

Path resolution, value coercion and display formatting shared by the
catalog builder, the predicate evaluator and the facet counter.
"""

from typing import Any, Dict, List

TEXT_SEARCH_FIELD = '_text_search'
OWNERSHIP_FIELD = 'ownership'
PARENT_COLLECTIONS_FIELD = 'parent_collections'

OWNED = 'owned'
MISSING = 'missing'


def get_nested_value(obj: Any, path: str) -> Any:
    """
    Get a value from nested dicts using dot notation.

    Returns None as soon as a segment can't be walked (missing key, or a
    non-dict in the middle of the path).

    Example:
        get_nested_value(item, 'attributes.rarity')
    """
    if not path or not isinstance(path, str):
        return None
    value = obj
    for part in path.split('.'):
        if isinstance(value, dict):
            value = value.get(part)
        else:
            return None
    return value


def resolve_field(item: Any, path: str) -> Any:
    """
    Resolve a field path on an item.

    The path is walked from the item itself first; if that yields nothing,
    it is walked again inside item['attributes']. This lets fields inferred
    from attribute keys ('rarity') and fully qualified paths
    ('attributes.rarity') both resolve.
    """
    value = get_nested_value(item, path)
    if value is None and isinstance(item, dict):
        value = get_nested_value(item.get('attributes'), path)
    return value


def is_scalar(value: Any) -> bool:
    return isinstance(value, (str, int, float, bool))


def to_filter_value(value: Any) -> str:
    """
    Coerce a scalar to the string form stored in filter sets.

    Booleans become 'true'/'false' and integral floats lose their
    fractional part, so 2020.0 and 2020 select the same checkbox.
    """
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def is_collection_type(item: Any) -> bool:
    """True when the item is a container (its type mentions 'collection')."""
    if not isinstance(item, dict):
        return False
    item_type = item.get('type')
    return isinstance(item_type, str) and 'collection' in item_type.lower()


def get_field_values(items: List[Dict], field: str) -> List[str]:
    """
    Return the sorted distinct values of a field across items.

    Empty strings and None are skipped; list values contribute each element.
    """
    values = set()
    for item in items or []:
        value = resolve_field(item, field)
        if value is None or value == '':
            continue
        if isinstance(value, list):
            values.update(to_filter_value(v) for v in value
                          if v is not None and v != '' and is_scalar(v))
        elif is_scalar(value):
            values.add(to_filter_value(value))
    return sorted(values)


def format_filter_value(value: Any) -> str:
    """
    Format a filter value for display.

    'LIMITED_EDITION' -> 'Limited Edition', 'first_print' -> 'First Print'
    """
    if value is None:
        return ''
    words = str(value).replace('_', ' ').split(' ')
    return ' '.join(w[:1].upper() + w[1:].lower() for w in words)


def format_facet_label(descriptor: Dict, value: str) -> str:
    """Label shown next to a checkbox for one value of a field."""
    field = (descriptor or {}).get('field')
    if field == OWNERSHIP_FIELD:
        return 'Owned' if value == OWNED else 'Missing'
    if field == PARENT_COLLECTIONS_FIELD:
        labels = descriptor.get('value_labels') or {}
        return labels.get(value, value)
    return format_filter_value(value)
