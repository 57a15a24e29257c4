"""
CollectionFilterEngine - ties the filter store to catalog building, evaluation and counting.

Wraps a FilterStateStore and adds view(), which produces everything a filter
drawer needs for one collection in a single call.
"""

from typing import Dict, List, Optional

from .facet_counter import count_all
from .field_catalog import RemoteFieldTracker, build_field_catalog, discover_filterable_fields
from .filter_engine import apply_filters
from .filter_state_store import FilterStateStore


class CollectionFilterEngine:
    """
    Filter engine for hierarchical collections. Composes the FilterStateStore
    for selection state and the pure catalog/evaluation/count functions.

    The engine doesn't own items, ancestor collections or ownership; they
    are passed in at view time.

    Usage:
        engine = CollectionFilterEngine(FilterStateStore(FileStorage()))
        engine.set_active_collection('set-1999', ['root', 'series-a'])
        engine.update_field('set-1999', 'attributes.rarity', ['Rare'])
        state = engine.view('set-1999', items, ancestor_collections=ancestors)
    """

    def __init__(self, store: Optional[FilterStateStore] = None):
        self.store = store if store is not None else FilterStateStore()
        self.remote_fields = RemoteFieldTracker()

    def set_active_collection(self, collection_id: Optional[str],
                              ancestor_chain: Optional[List[str]] = None):
        """Switch the active collection; pending metadata for others becomes stale."""
        self.store.set_active_collection(collection_id, ancestor_chain)
        self.remote_fields.set_active(collection_id)

    def receive_field_metadata(self, collection_id: Optional[str], fields: Optional[List[Dict]]) -> bool:
        """Hand a field metadata response to the engine. Returns False if it was stale."""
        return self.remote_fields.accept(collection_id, fields)

    def get_filters(self, collection_id: Optional[str], include_inherited: bool = True,
                    ancestor_chain: Optional[List[str]] = None) -> Dict:
        return self.store.get_filters(collection_id, include_inherited, ancestor_chain)

    def set_filters(self, collection_id: Optional[str], filter_set: Dict):
        self.store.set_filters(collection_id, filter_set)

    def update_field(self, collection_id: Optional[str], field: Optional[str], values=None):
        self.store.update_field(collection_id, field, values)

    def clear_field(self, collection_id: Optional[str], field: Optional[str]):
        self.store.clear_field(collection_id, field)

    def clear_all_for_collection(self, collection_id: Optional[str]):
        self.store.clear_all_for_collection(collection_id)

    def has_own_filters(self, collection_id: Optional[str]) -> bool:
        return self.store.has_own_filters(collection_id)

    def has_effective_filters(self, collection_id: Optional[str]) -> bool:
        return self.store.has_effective_filters(collection_id)

    def view(self, collection_id: Optional[str], items: List[Dict],
             ancestor_collections: Optional[List[Dict]] = None,
             ownership_set=None,
             is_authenticated: bool = False,
             remote_metadata: Optional[List[Dict]] = None,
             ancestor_chain: Optional[List[str]] = None,
             is_root: bool = False,
             deep_root_fields: bool = False) -> Dict:
        """
        Filter items for a collection and describe the available facets.

        Args:
            collection_id: Collection being viewed
            items: Every item in the collection (unfiltered)
            ancestor_collections: Ancestor collection dicts with attributes.item_ids
            ownership_set: Item IDs the user owns, or None when signed out
            is_authenticated: Whether the user is signed in
            remote_metadata: Field metadata; defaults to the last accepted
                response for this collection
            ancestor_chain: IDs of the viewed collection's ancestors, outermost
                first. Defaults to the active chain when viewing the active
                collection, and to no inheritance otherwise.
            is_root: The view has no metadata service; fields are inferred
                from the items instead
            deep_root_fields: At the root, discover nested 'attributes.*'
                paths instead of top-level attribute keys

        Returns:
            {'items', 'total', 'filtered', 'filters', 'fields', 'counts'}
            with counts taken over the filtered items
        """
        items = list(items or [])
        if is_root:
            remote_metadata = discover_filterable_fields(items) if deep_root_fields else None
        elif remote_metadata is None:
            remote_metadata = self.remote_fields.fields_for(collection_id) or []

        if ancestor_chain is None:
            active = collection_id is not None and collection_id == self.store.active_collection_id
            ancestor_chain = self.store.ancestor_chain if active else []

        filters = self.store.get_filters(collection_id, include_inherited=True,
                                         ancestor_chain=ancestor_chain)
        filtered = apply_filters(items, filters, ownership_set, ancestor_collections)
        fields = build_field_catalog(
            items,
            remote_metadata=remote_metadata,
            ancestor_collections=ancestor_collections,
            is_authenticated=is_authenticated,
            ownership_set=ownership_set,
        )
        return {
            'items': filtered,
            'total': len(items),
            'filtered': len(filtered),
            'filters': filters,
            'fields': fields,
            'counts': count_all(filtered, fields, ownership_set),
        }
