"""Parsing of strict-JSON completion output."""

from __future__ import annotations

import json
from typing import Any, List, Optional

from nutricoach.domain.shared.errors import ExtractionError


def strip_fences(text: str) -> str:
    """Remove a surrounding ```json ... ``` fence if present."""
    text = text.strip()
    if text.startswith("```"):
        text = text.strip("` \n")
        if text.lower().startswith("json"):
            text = text[4:].lstrip()
    return text


def parse_json_payload(content: Optional[str]) -> Any:
    """
    Parse completion text as JSON.

    Raises:
        ExtractionError: If the content is empty or not JSON
    """
    if not content or not content.strip():
        raise ExtractionError("Completion returned no content")
    try:
        return json.loads(strip_fences(content))
    except json.JSONDecodeError as e:
        raise ExtractionError(f"Completion is not valid JSON: {e}") from e


def parse_json_list(content: Optional[str], root_keys: tuple = ()) -> List[Any]:
    """
    Parse completion text as a JSON array.

    Accepts a bare array, or an object wrapping the array under one of
    ``root_keys`` (some completions wrap the array in an object).

    Raises:
        ExtractionError: If the content is not JSON or not list-shaped
    """
    data = parse_json_payload(content)
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in root_keys:
            if isinstance(data.get(key), list):
                return data[key]
    raise ExtractionError(f"Expected a JSON array, got {type(data).__name__}")
