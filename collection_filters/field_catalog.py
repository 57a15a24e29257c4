"""
Field catalog - the ordered list of fields a user can filter a collection on.

Descriptors come from three places: field metadata supplied by the catalog
service, inference over the visible items when no service applies (the root
view), and the synthetic ownership / parent-collection fields.
"""

import logging
import re
from typing import Dict, List, Optional

from .utils import (
    MISSING, OWNED, OWNERSHIP_FIELD, PARENT_COLLECTIONS_FIELD,
    get_field_values, is_scalar, to_filter_value,
)

logger = logging.getLogger(__name__)

OWNERSHIP_PRIORITY = 110
PARENT_COLLECTIONS_PRIORITY = 100
MAX_DISCOVERED_VALUES = 100


def _attribute_label(key: str) -> str:
    text = key.replace('_', ' ')
    return text[:1].upper() + text[1:]


def infer_fields(items: List[Dict]) -> List[Dict]:
    """
    Infer multiselect fields from the items' attribute mappings.

    One descriptor per attribute key holding a scalar or a list of scalars,
    in the order keys are first seen. Nested mappings are skipped.
    """
    values_by_key: Dict[str, set] = {}
    for item in items or []:
        attributes = item.get('attributes') if isinstance(item, dict) else None
        if not isinstance(attributes, dict):
            continue
        for key, value in attributes.items():
            if value is None or value == '':
                continue
            if isinstance(value, list):
                if not all(is_scalar(v) or v is None for v in value):
                    continue
                collected = [to_filter_value(v) for v in value if v is not None and v != '']
            elif is_scalar(value):
                collected = [to_filter_value(value)]
            else:
                continue
            values_by_key.setdefault(key, set()).update(collected)

    return [
        {
            'field': key,
            'label': _attribute_label(key),
            'type': 'multiselect',
            'values': sorted(values),
            'priority': 0,
        }
        for key, values in values_by_key.items()
    ]


def _from_metadata(remote_metadata: List[Dict]) -> List[Dict]:
    fields = []
    for entry in remote_metadata:
        if not isinstance(entry, dict) or not entry.get('field'):
            logger.debug("Skipping malformed field metadata entry: %r", entry)
            continue
        descriptor = dict(entry)
        descriptor['label'] = entry.get('label') or entry['field']
        descriptor['type'] = entry.get('type') or 'multiselect'
        descriptor['values'] = [to_filter_value(v) for v in (entry.get('values') or []) if v is not None]
        descriptor['priority'] = entry.get('priority') or 0
        fields.append(descriptor)
    return fields


def build_field_catalog(items: List[Dict],
                        remote_metadata: Optional[List[Dict]] = None,
                        ancestor_collections: Optional[List[Dict]] = None,
                        is_authenticated: bool = False,
                        ownership_set=None) -> List[Dict]:
    """
    Build the ordered field descriptors for the current view.

    Args:
        items: Items visible in the current view
        remote_metadata: Field metadata from the catalog service. None means
            no service applies (root view) and fields are inferred from items;
            a list, even an empty one, is used as-is.
        ancestor_collections: [{'id', 'name', 'attributes': {'item_ids'}}]
        is_authenticated: Whether the current user is signed in
        ownership_set: Set of item IDs the user owns

    Returns:
        Descriptors sorted by descending priority; ties keep discovery order.
    """
    if remote_metadata is None:
        metadata_fields = infer_fields(items)
    else:
        metadata_fields = _from_metadata(remote_metadata)

    special_fields = []

    if is_authenticated and ownership_set is not None:
        special_fields.append({
            'field': OWNERSHIP_FIELD,
            'label': 'Ownership',
            'type': 'multiselect',
            'values': [OWNED, MISSING],
            'priority': OWNERSHIP_PRIORITY,
            'special': OWNERSHIP_FIELD,
        })

    collections = [c for c in (ancestor_collections or []) if isinstance(c, dict) and c.get('id') is not None]
    if collections:
        special_fields.append({
            'field': PARENT_COLLECTIONS_FIELD,
            'label': 'Collection(s)',
            'type': 'multiselect',
            'values': [str(c['id']) for c in collections],
            'priority': PARENT_COLLECTIONS_PRIORITY,
            'special': PARENT_COLLECTIONS_FIELD,
            'collections': collections,
            'value_labels': {str(c['id']): c.get('name') or str(c['id']) for c in collections},
        })

    return sorted(special_fields + metadata_fields, key=lambda f: -(f.get('priority') or 0))


# ── Deeper discovery ─────────────────────────────────────────────────────────

def _collect_paths(obj: Dict, prefix: str, paths: List[str], max_depth: int, depth: int):
    if depth > max_depth or not isinstance(obj, dict):
        return
    for key, value in obj.items():
        path = f"{prefix}.{key}"
        if value is None:
            continue
        if isinstance(value, list):
            if value and is_scalar(value[0]) and path not in paths:
                paths.append(path)
        elif isinstance(value, dict):
            _collect_paths(value, path, paths, max_depth, depth + 1)
        elif path not in paths:
            paths.append(path)


def format_attribute_label(path: str) -> str:
    """'attributes.printRun.first_edition' -> 'Print Run > First Edition'"""
    parts = re.sub(r'^attributes\.', '', path).split('.')
    formatted = []
    for part in parts:
        words = re.sub(r'([A-Z])', r' \1', part).replace('_', ' ').split()
        formatted.append(' '.join(w[:1].upper() + w[1:].lower() for w in words))
    return ' > '.join(formatted)


def discover_filterable_fields(items: List[Dict], max_depth: int = 3) -> List[Dict]:
    """
    Discover 'attributes.*' fields down to max_depth levels of nesting.

    Fields with more than MAX_DISCOVERED_VALUES distinct values are left
    out; they make poor checkbox lists.
    """
    paths: List[str] = []
    for item in items or []:
        attributes = item.get('attributes') if isinstance(item, dict) else None
        if isinstance(attributes, dict):
            _collect_paths(attributes, 'attributes', paths, max_depth, 1)

    fields = []
    for path in paths:
        values = get_field_values(items, path)
        if 0 < len(values) <= MAX_DISCOVERED_VALUES:
            fields.append({
                'field': path,
                'label': format_attribute_label(path),
                'type': 'multiselect',
                'values': values,
                'priority': 0,
                'count': len(values),
            })
    return sorted(fields, key=lambda f: f['label'])


class RemoteFieldTracker:
    """
    Holds field metadata responses for the active collection only.

    A metadata fetch may still be in flight when the user navigates away.
    Responses tagged with any collection other than the active one are
    dropped so the drawer never shows another collection's fields.

    Usage:
        tracker = RemoteFieldTracker()
        tracker.set_active('set-1999')
        ...
        tracker.accept(response_collection_id, response_fields)
        remote = tracker.fields_for('set-1999')
    """

    def __init__(self):
        self.active_collection_id: Optional[str] = None
        self._fields: Dict[str, List[Dict]] = {}

    def set_active(self, collection_id: Optional[str]):
        self.active_collection_id = collection_id

    def accept(self, collection_id: Optional[str], fields: Optional[List[Dict]]) -> bool:
        """Store a metadata response. Returns False when it was stale and discarded."""
        if collection_id is None or collection_id != self.active_collection_id:
            logger.debug("Discarding field metadata for %r, active collection is %r",
                         collection_id, self.active_collection_id)
            return False
        self._fields[collection_id] = list(fields or [])
        return True

    def fields_for(self, collection_id: Optional[str]) -> Optional[List[Dict]]:
        return self._fields.get(collection_id)
