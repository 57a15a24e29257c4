"""
Claude client wrapper used by the natural-language filter interpreter.
"""

import json
import logging
import os
import re

import anthropic

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-6"


def clean_json_string(json_str):
    """
    Tidy a model reply before json.loads: drop // and /* */ comments and
    trailing commas.
    """
    json_str = re.sub(r'//.*?$', '', json_str, flags=re.MULTILINE)
    json_str = re.sub(r'/\*.*?\*/', '', json_str, flags=re.DOTALL)
    json_str = re.sub(r',(\s*[}\]])', r'\1', json_str)
    return json_str.strip()


def strip_code_fence(text):
    """Return the body of the first ``` fenced block, or the text unchanged."""
    match = re.search(r'```(?:json)?\s*(.*?)```', text, flags=re.DOTALL)
    return match.group(1).strip() if match else text


class LLMBaseAgent:
    """Base class for Claude-backed helpers."""

    def __init__(self, model=DEFAULT_MODEL, max_tokens=1000):
        api_key = os.getenv('ANTHROPIC_API_KEY')
        if not api_key or api_key == 'your_api_key_here':
            raise ValueError(
                "ANTHROPIC_API_KEY environment variable not set. "
                "Get your key at https://console.anthropic.com/settings/keys"
            )
        self.client = anthropic.Anthropic(api_key=api_key)
        self.model = model
        self.max_tokens = max_tokens

    def call_api(self, system_prompt, messages):
        """
        Send one request to Claude and return the reply text.

        Raises:
            RuntimeError: if the API call fails
        """
        try:
            response = self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                system=system_prompt,
                messages=messages
            )
        except anthropic.APIError as e:
            logger.warning("Claude API call failed: %s", e)
            raise RuntimeError(f"Claude API error: {e}") from e
        return response.content[0].text

    def parse_json_response(self, response_text):
        """Parse a JSON object out of a reply, tolerating code fences and comments."""
        cleaned = clean_json_string(strip_code_fence(response_text))
        try:
            return json.loads(cleaned)
        except json.JSONDecodeError as e:
            raise ValueError(f"Failed to parse JSON response: {e}") from e
