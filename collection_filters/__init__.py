from .base import LLMBaseAgent, clean_json_string
from .utils import (
    format_facet_label,
    format_filter_value,
    get_field_values,
    get_nested_value,
    resolve_field,
)
from .filter_state_store import (
    FileStorage,
    FilterStateStore,
    FilterStoreError,
    MemoryStorage,
)
from .field_catalog import (
    RemoteFieldTracker,
    build_field_catalog,
    discover_filterable_fields,
    infer_fields,
)
from .filter_engine import apply_filters, matches
from .facet_counter import count_all, count_values
from .collection_filter_engine import CollectionFilterEngine
from .filter_bot import FilterBot

__all__ = [
    "LLMBaseAgent",
    "clean_json_string",
    "FilterStateStore",
    "FilterStoreError",
    "MemoryStorage",
    "FileStorage",
    "RemoteFieldTracker",
    "build_field_catalog",
    "discover_filterable_fields",
    "infer_fields",
    "matches",
    "apply_filters",
    "count_values",
    "count_all",
    "CollectionFilterEngine",
    "FilterBot",
    "format_facet_label",
    "format_filter_value",
    "get_field_values",
    "get_nested_value",
    "resolve_field",
]
