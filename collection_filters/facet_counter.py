"""
Facet counts - how many visible items carry each value of a field.
"""

from typing import Dict, List, Optional

import pandas as pd

from .filter_engine import member_index
from .utils import (
    MISSING, OWNED, OWNERSHIP_FIELD, PARENT_COLLECTIONS_FIELD,
    is_scalar, resolve_field, to_filter_value,
)


def _distinct_values(value) -> Optional[List[str]]:
    if isinstance(value, list):
        return list(dict.fromkeys(to_filter_value(v) for v in value if is_scalar(v)))
    if is_scalar(value):
        return [to_filter_value(value)]
    return None


def count_values(items: List[Dict], field: Optional[str], ownership_set=None,
                 ancestor_collections: Optional[List[Dict]] = None) -> Dict[str, int]:
    """
    Count items per value of a field.

    Scalars count once per item; list values count each distinct element
    once per item. Items without the field contribute nothing.

    Returns:
        {value: count}
    """
    items = list(items or [])
    if not field:
        return {}

    if field == OWNERSHIP_FIELD:
        owned = sum(1 for item in items
                    if ownership_set is not None and isinstance(item, dict)
                    and item.get('id') in ownership_set)
        return {OWNED: owned, MISSING: len(items) - owned}

    if field == PARENT_COLLECTIONS_FIELD:
        visible_ids = {str(item['id']) for item in items
                       if isinstance(item, dict) and item.get('id') is not None}
        return {collection_id: len(member_ids & visible_ids)
                for collection_id, member_ids in member_index(ancestor_collections).items()}

    values = pd.Series([_distinct_values(resolve_field(item, field)) for item in items], dtype=object)
    exploded = values.explode().dropna()
    if exploded.empty:
        return {}
    return {str(value): int(count) for value, count in exploded.value_counts(sort=False).items()}


def count_all(items: List[Dict], fields: List[Dict], ownership_set=None) -> Dict[str, Dict[str, int]]:
    """
    Count every field of a catalog at once.

    Parent-collection descriptors carry their ancestor collections, which are
    used for that field's counts.
    """
    counts = {}
    for descriptor in fields or []:
        field = descriptor.get('field')
        if not field:
            continue
        counts[field] = count_values(
            items, field,
            ownership_set=ownership_set,
            ancestor_collections=descriptor.get('collections'),
        )
    return counts
