"""
FilterBot - translates natural language into a FilterSet for a collection.

The bot only ever picks among the fields and values of the collection's
field catalog, so its output can go straight into FilterStateStore.
"""

import json
import logging
from typing import Dict, List, Optional, Tuple

from .base import LLMBaseAgent, DEFAULT_MODEL
from .utils import TEXT_SEARCH_FIELD

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You turn requests about a personal collection into checkbox filter selections.

You are given the filterable fields of the collection currently on screen. Each field has
a path, a label and the exact list of values that can be selected.

CRITICAL: Return ONLY valid JSON. No markdown, no explanations, ONLY the JSON object.

Return format:
{
  "filters": {"<field path>": ["<value>", ...], "_text_search": "<text>"},
  "description": "Human-readable description of the selection"
}

Rules:
- Use only field paths from the list, and only values listed for that field, spelled exactly
- Several values for one field mean "any of these"; several fields mean "all of these"
- "ownership" takes "owned" and/or "missing"
- Put free text about item names in "_text_search" (a plain string, not a list)
- Leave out fields the request does not mention

Examples:

"rare cards I still need" →
{"filters": {"attributes.rarity": ["Rare"], "ownership": ["missing"]}, "description": "Missing rare cards"}

"anything with dragon in the name from 2020 or 2021" →
{"filters": {"_text_search": "dragon", "year": ["2020", "2021"]}, "description": "Items named like 'dragon' from 2020-2021"}
"""


def describe_fields(fields: List[Dict], max_values: int = 50) -> str:
    """Render catalog descriptors as prompt text."""
    lines = []
    for descriptor in fields:
        values = list(descriptor.get('values') or [])
        shown = ', '.join(json.dumps(v) for v in values[:max_values])
        if len(values) > max_values:
            shown += f", ... ({len(values) - max_values} more)"
        line = f"- {descriptor['field']} ({descriptor.get('label', descriptor['field'])}): {shown}"
        labels = descriptor.get('value_labels')
        if labels:
            line += f"  [names: {json.dumps(labels)}]"
        lines.append(line)
    return '\n'.join(lines)


class FilterBot(LLMBaseAgent):
    """
    Interprets natural language into a FilterSet restricted to a field catalog.

    Usage:
        bot = FilterBot()
        fields = build_field_catalog(items, remote_metadata=metadata)
        spec = bot.interpret_filter("rare ones I'm missing", fields)
        ok, err = bot.validate_filter(spec, fields)
        if ok:
            store.set_filters(collection_id, {**current, **spec['filters']})
    """

    def __init__(self, model=DEFAULT_MODEL):
        super().__init__(model=model, max_tokens=1000)
        self.system_prompt = SYSTEM_PROMPT

    def interpret_filter(self, user_query: str, fields: List[Dict],
                         existing_filters: Optional[Dict] = None) -> Dict:
        """
        Interpret a natural language filter request.

        Args:
            user_query: What the user typed
            fields: Field catalog descriptors for the current view
            existing_filters: The collection's current FilterSet, for context

        Returns:
            {'filters': {...}, 'description': str}, or
            {'error': str, 'description': None} when the reply can't be used
        """
        content = f"Filterable fields:\n{describe_fields(fields)}\n"
        if existing_filters:
            content += f"\nCurrently selected:\n{json.dumps(existing_filters)}\n"
        content += f"\nRequest: {user_query}"

        try:
            response_text = self.call_api(self.system_prompt, [{"role": "user", "content": content}])
            spec = self.parse_json_response(response_text)
        except ValueError as e:
            logger.warning("Could not parse filter reply for %r: %s", user_query, e)
            return {"error": f"Failed to parse filter: {e}", "description": None}
        except RuntimeError as e:
            return {"error": f"Error interpreting filter: {e}", "description": None}

        if not isinstance(spec, dict) or not isinstance(spec.get('filters'), dict):
            return {"error": "Response missing 'filters' object", "description": None}
        spec.setdefault('description', user_query)
        return spec

    def validate_filter(self, spec: Dict, fields: List[Dict]) -> Tuple[bool, str]:
        """
        Check a spec against the catalog before it is stored.

        Returns:
            (is_valid: bool, error_message: str)
        """
        if spec.get('error'):
            return False, spec['error']

        filters = spec.get('filters')
        if not isinstance(filters, dict):
            return False, "Missing required field: filters"

        catalog = {d['field']: set(d.get('values') or []) for d in fields if d.get('field')}
        for field, values in filters.items():
            if field == TEXT_SEARCH_FIELD:
                if not isinstance(values, str):
                    return False, "_text_search must be a string"
                continue
            if field not in catalog:
                return False, f"Unknown field: {field}"
            if not isinstance(values, list):
                return False, f"Values for {field} must be a list"
            unknown = [v for v in values if str(v) not in catalog[field]]
            if unknown:
                return False, f"Unknown value(s) for {field}: {', '.join(map(str, unknown))}"

        return True, ""
