"""JSON parsing helpers."""

from __future__ import annotations

import json
from typing import Any


def extract_first_json_value(text: str) -> str:
    """
    Extract the first top-level JSON object or array from text.
    This is a fallback for models that wrap JSON in extra text.
    """
    starts = [pos for pos in (text.find("{"), text.find("[")) if pos != -1]
    if not starts:
        raise ValueError("No JSON value found in model output.")
    start = min(starts)
    closing = {"{": "}", "[": "]"}

    stack: list[str] = []
    in_string = False
    escape = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == "\"":
                in_string = False
        else:
            if ch == "\"":
                in_string = True
            elif ch in closing:
                stack.append(closing[ch])
            elif stack and ch == stack[-1]:
                stack.pop()
                if not stack:
                    return text[start : i + 1]

    raise ValueError("Unbalanced JSON value in model output.")


def parse_json_response(content: str) -> Any:
    """
    Parses a JSON reply. Models asked for `{"data": [...]}` get the payload
    under `data` unwrapped.
    """
    try:
        parsed = json.loads(content)
    except json.JSONDecodeError:
        parsed = json.loads(extract_first_json_value(content))
    if isinstance(parsed, dict) and "data" in parsed and parsed["data"] is not None:
        return parsed["data"]
    return parsed
