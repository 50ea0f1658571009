"""Helpers for callers that expect structured JSON back from a model."""

from __future__ import annotations

import json
import re
from typing import Any

from .errors import ResponseParseError

_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)


def strip_code_fences(content: str) -> str:
    """Remove markdown ``` / ```json fences models like to wrap JSON in."""
    return _FENCE.sub("", content).strip()


def parse_json_content(content: str) -> Any:
    """Decode model output as JSON, tolerating markdown fences.

    Raises ResponseParseError when the text is empty or not valid JSON.
    """
    text = strip_code_fences(content or "")
    if not text:
        raise ResponseParseError("Model returned empty content", content=content or "")
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise ResponseParseError(
            f"Model output is not valid JSON: {exc.msg}", content=content, cause=exc
        ) from exc
