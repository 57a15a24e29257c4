"""
FilterStateStore - persisted, hierarchy-aware store of filter selections.

One FilterSet per collection, kept in a single JSON blob:

    {
      "collection-123": {
        "year": ["2020", "2021"],
        "attributes.rarity": ["Rare"],
        "_text_search": "dragon"
      }
    }

Reads can inherit selections from an ancestor chain; writes always go to the
collection's own FilterSet and rewrite the whole blob.
"""

import copy
import json
import logging
import os
import threading
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from .utils import TEXT_SEARCH_FIELD, to_filter_value

logger = logging.getLogger(__name__)

STORAGE_KEY = 'collection-filters'
DEFAULT_STORE_DIR = '.collection_filters'


class FilterStoreError(Exception):
    pass


class MemoryStorage:
    """Dict-backed key/value storage. Nothing survives the process."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str):
        self._data[key] = value


class FileStorage:
    """
    Key/value storage with one JSON file per key under a directory.

    Writes go to a temp file that is renamed over the target, so a reader
    never sees a half-written blob.
    """

    def __init__(self, directory: Union[str, Path, None] = None):
        if directory is None:
            directory = os.getenv('COLLECTION_FILTERS_DIR', DEFAULT_STORE_DIR)
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding='utf-8')

    def set(self, key: str, value: str):
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        tmp = path.with_suffix(path.suffix + '.tmp')
        tmp.write_text(value, encoding='utf-8')
        os.replace(tmp, path)


def _is_empty(values) -> bool:
    if values is None:
        return True
    if isinstance(values, str):
        return values.strip() == ''
    if isinstance(values, (list, tuple, set)):
        return len(values) == 0
    return not values


def _normalize_values(field: str, values):
    """Coerce a selection to its stored shape: str for text search, list of str otherwise."""
    if field == TEXT_SEARCH_FIELD:
        if isinstance(values, (list, tuple)):
            return ' '.join(str(v) for v in values)
        return str(values)
    if isinstance(values, (list, tuple, set)):
        out = []
        for v in values:
            if v is None:
                continue
            s = to_filter_value(v)
            if s not in out:
                out.append(s)
        return out
    return [to_filter_value(values)]


def normalize_filter_set(filter_set) -> Dict:
    """Return a clean copy of a FilterSet with empty selections removed."""
    if not isinstance(filter_set, dict):
        return {}
    result = {}
    for field, values in filter_set.items():
        if not isinstance(field, str) or not field or _is_empty(values):
            continue
        normalized = _normalize_values(field, values)
        if not _is_empty(normalized):
            result[field] = normalized
    return result


class FilterStateStore:
    """
    Source of truth for per-collection filter selections.

    The whole store is loaded once at construction and rewritten through the
    storage backend on every mutation. A mutation builds the new store as a
    copy, writes it, and only then swaps it in, so a failed write leaves the
    previous state in place.

    Usage:
        store = FilterStateStore(FileStorage('/var/lib/myapp'))
        store.set_active_collection('set-1999', ['root', 'series-a'])
        store.update_field('set-1999', 'attributes.rarity', ['Rare'])
        effective = store.get_filters('set-1999')
    """

    def __init__(self, storage=None, storage_key: str = STORAGE_KEY):
        self.storage = storage if storage is not None else MemoryStorage()
        self.storage_key = storage_key
        self.active_collection_id: Optional[str] = None
        self.ancestor_chain: List[str] = []
        self._lock = threading.Lock()
        self._subscribers: List[Callable] = []
        self._filters: Dict[str, Dict] = self._load()

    # ── Persistence ───────────────────────────────────────────────────────────

    def _load(self) -> Dict[str, Dict]:
        try:
            raw = self.storage.get(self.storage_key)
        except Exception:
            logger.exception("Failed to read collection filters from storage")
            return {}
        if not raw:
            return {}

        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            logger.exception("Failed to parse collection filters, starting empty")
            return {}

        if not isinstance(data, dict):
            logger.warning("Stored collection filters are not an object (%s), starting empty",
                           type(data).__name__)
            return {}

        filters = {}
        for collection_id, filter_set in data.items():
            if not isinstance(filter_set, dict):
                logger.warning("Dropping malformed filter entry for collection %r", collection_id)
                continue
            cleaned = normalize_filter_set(filter_set)
            if cleaned:
                filters[collection_id] = cleaned
        return filters

    def _commit(self, collection_id: str, mutate: Callable[[Dict], None]):
        with self._lock:
            updated = copy.deepcopy(self._filters)
            mutate(updated)
            try:
                self.storage.set(self.storage_key, json.dumps(updated))
            except Exception as e:
                logger.exception("Failed to persist collection filters")
                raise FilterStoreError(f"Failed to persist collection filters: {e}") from e
            self._filters = updated
            own = copy.deepcopy(updated.get(collection_id, {}))
        self._notify(collection_id, own)

    def _notify(self, collection_id: str, own_filters: Dict):
        for callback in list(self._subscribers):
            try:
                callback(collection_id, copy.deepcopy(own_filters))
            except Exception:
                logger.exception("Filter store subscriber %r failed", callback)

    def subscribe(self, callback: Callable[[str, Dict], None]) -> Callable[[], None]:
        """
        Register a callback run after every persisted mutation.

        Returns:
            A function that removes the callback again
        """
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    # ── Active collection ─────────────────────────────────────────────────────

    def set_active_collection(self, collection_id: Optional[str],
                              ancestor_chain: Optional[List[str]] = None):
        """Record the current collection and its ancestors, outermost first."""
        self.active_collection_id = collection_id
        self.ancestor_chain = [c for c in (ancestor_chain or []) if c is not None]

    # ── Reads ─────────────────────────────────────────────────────────────────

    def get_filters(self, collection_id: Optional[str], include_inherited: bool = True,
                    ancestor_chain: Optional[List[str]] = None) -> Dict:
        """
        Get the FilterSet for a collection.

        With include_inherited, each ancestor's own FilterSet is merged from
        the outermost ancestor inwards (a later entry for a field replaces
        an earlier one outright) and the collection's own set is merged last.
        ancestor_chain overrides the active collection's chain for this read.
        """
        if collection_id is None:
            return {}

        if ancestor_chain is None:
            ancestor_chain = self.ancestor_chain

        result = {}
        if include_inherited and ancestor_chain:
            chain = [c for c in ancestor_chain if c is not None]
            if collection_id in chain:
                chain = chain[:chain.index(collection_id)]
            for ancestor_id in chain:
                result.update(self._filters.get(ancestor_id, {}))
        result.update(self._filters.get(collection_id, {}))
        return copy.deepcopy(result)

    def has_own_filters(self, collection_id: Optional[str]) -> bool:
        return bool(self._filters.get(collection_id)) if collection_id is not None else False

    def has_effective_filters(self, collection_id: Optional[str]) -> bool:
        return bool(self.get_filters(collection_id, include_inherited=True))

    def all_filters(self) -> Dict[str, Dict]:
        """Return a copy of the whole store."""
        return copy.deepcopy(self._filters)

    # ── Mutations ─────────────────────────────────────────────────────────────

    def set_filters(self, collection_id: Optional[str], filter_set: Dict):
        """Replace a collection's own FilterSet."""
        if collection_id is None:
            logger.debug("Ignoring set_filters without a collection id")
            return
        cleaned = normalize_filter_set(filter_set)

        def mutate(store):
            if cleaned:
                store[collection_id] = cleaned
            else:
                store.pop(collection_id, None)

        self._commit(collection_id, mutate)

    def update_field(self, collection_id: Optional[str], field: Optional[str], values=None):
        """
        Set one field of a collection's FilterSet.

        Empty values (None, [], blank string) delete the field instead.
        """
        if collection_id is None or not field:
            logger.debug("Ignoring update_field for collection=%r field=%r", collection_id, field)
            return

        normalized = None if _is_empty(values) else _normalize_values(field, values)

        def mutate(store):
            own = store.get(collection_id, {})
            if _is_empty(normalized):
                own.pop(field, None)
            else:
                own[field] = normalized
            if own:
                store[collection_id] = own
            else:
                store.pop(collection_id, None)

        self._commit(collection_id, mutate)

    def clear_field(self, collection_id: Optional[str], field: Optional[str]):
        self.update_field(collection_id, field, [])

    def clear_all_for_collection(self, collection_id: Optional[str]):
        """Remove every filter a collection owns."""
        if collection_id is None:
            return
        self._commit(collection_id, lambda store: store.pop(collection_id, None))
