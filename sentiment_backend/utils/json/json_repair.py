"""
JSON repair utilities for fixing malformed JSON from LLM responses.

Gemini is asked for JSON with a response schema, but replies still arrive
wrapped in markdown fences, followed by commentary, or cut off when the output
budget runs out. These helpers recover a parseable document where possible.
"""

import json
import re
import logging
from typing import Any, Dict

logger = logging.getLogger(__name__)

MARKDOWN_JSON_PATTERN = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")


def _close_open_structures(json_str: str) -> str:
    """Close strings, arrays and objects left open by a truncated reply."""
    stack = []
    in_string = False
    in_escape = False

    for char in json_str:
        if in_escape:
            in_escape = False
        elif char == "\\":
            in_escape = True
        elif char == '"':
            in_string = not in_string
        elif in_string:
            continue
        elif char in "{[":
            stack.append("}" if char == "{" else "]")
        elif char in "}]" and stack:
            stack.pop()

    if in_string:
        json_str += '"'
    if stack:
        logger.warning(f"Detected truncated JSON. Closing {len(stack)} open structure(s).")
        # A dangling key or comma cannot be completed, drop it
        json_str = re.sub(r',\s*"[^"]*"\s*:?\s*$', "", json_str)
        json_str = re.sub(r"[,:]\s*$", "", json_str)
        json_str += "".join(reversed(stack))
    return json_str


def repair_json(json_str: str) -> str:
    """
    Repair common JSON formatting issues in LLM responses.

    Args:
        json_str: The potentially malformed JSON string

    Returns:
        A repaired JSON string that should be parseable
    """
    if not json_str or not isinstance(json_str, str):
        return "{}"

    logger.debug(f"Attempting to repair JSON (first 100 chars): {json_str[:100]}...")

    # Step 1: Remove markdown code block markers
    match = MARKDOWN_JSON_PATTERN.search(json_str)
    if match:
        json_str = match.group(1)

    # Step 2: Drop any prose before the first brace
    start = json_str.find("{")
    if start == -1:
        return "{}"
    json_str = json_str[start:]

    # Step 3: Drop any prose after the last closing brace of a complete object
    end = json_str.rfind("}")
    if end != -1:
        candidate = json_str[: end + 1]
        try:
            json.loads(candidate)
            return candidate
        except json.JSONDecodeError:
            pass

    # Step 4: Close truncated structures
    json_str = _close_open_structures(json_str.rstrip())

    # Step 5: Fix trailing commas in objects and arrays
    json_str = re.sub(r",\s*}", "}", json_str)
    json_str = re.sub(r",\s*\]", "]", json_str)

    # Step 6: Python literals instead of JSON ones
    json_str = re.sub(r":\s*True\s*([,}])", r":true\1", json_str)
    json_str = re.sub(r":\s*False\s*([,}])", r":false\1", json_str)
    json_str = re.sub(r":\s*None\s*([,}])", r":null\1", json_str)

    return json_str


def parse_json_object(text: str) -> Dict[str, Any]:
    """
    Parse a JSON object from an LLM reply, repairing it if needed.

    Raises:
        ValueError: If no JSON object can be recovered from ``text``
    """
    if not text or not text.strip():
        raise ValueError("Empty response")
    if "{" not in text:
        raise ValueError("No JSON object found in response")

    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as e:
        logger.warning(f"Initial JSON parsing failed: {e}. Attempting repair.")
        try:
            parsed = json.loads(repair_json(text))
        except json.JSONDecodeError as e2:
            raise ValueError(f"Failed to parse JSON even after repair: {e2}") from e2

    # Some replies wrap the object in a single element array
    if isinstance(parsed, list) and len(parsed) == 1 and isinstance(parsed[0], dict):
        parsed = parsed[0]

    if not isinstance(parsed, dict):
        raise ValueError(f"Expected a JSON object but got {type(parsed).__name__}")

    return parsed
