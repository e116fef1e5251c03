"""
Recovering JSON from vision model replies.

Models wrap JSON in markdown fences or explanatory prose often enough that a
plain json.loads is not enough. Each strategy below takes the raw reply and
returns the parsed value or None; parse_model_json tries them in order and the
first one that yields any JSON value decides the outcome. A reply that is a
complete JSON value of the wrong shape is rejected rather than mined for a
nested object.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

ParseStrategy = Callable[[str, bool], Optional[Any]]

FENCE_OPEN = re.compile(r"^```[a-zA-Z]*\s*")
FENCE_CLOSE = re.compile(r"\s*```$")
OBJECT_PATTERN = re.compile(r"\{.*\}", re.DOTALL)
ARRAY_PATTERN = re.compile(r"\[.*\]", re.DOTALL)


def _loads(text: str) -> Optional[Any]:
    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return None


def parse_direct(text: str, allow_array: bool = False) -> Optional[Any]:
    """Parse the trimmed reply as-is."""
    return _loads(text.strip())


def parse_fenced(text: str, allow_array: bool = False) -> Optional[Any]:
    """Strip ```json ... ``` markers, then parse."""
    cleaned = text.strip()
    if not cleaned.startswith("```"):
        return None
    cleaned = FENCE_OPEN.sub("", cleaned)
    cleaned = FENCE_CLOSE.sub("", cleaned)
    return _loads(cleaned.strip())


def parse_embedded(text: str, allow_array: bool = False) -> Optional[Any]:
    """Pull the first brace-delimited block (or array) out of surrounding prose."""
    patterns = (OBJECT_PATTERN, ARRAY_PATTERN) if allow_array else (OBJECT_PATTERN,)
    found = []
    for pattern in patterns:
        match = pattern.search(text)
        if not match:
            continue
        value = _loads(match.group(0))
        if value is not None:
            found.append((match.start(), value))
    if not found:
        return None
    # Earliest block wins when both an object and an array parse
    return min(found, key=lambda item: item[0])[1]


JSON_STRATEGIES: tuple[ParseStrategy, ...] = (parse_direct, parse_fenced, parse_embedded)


def _acceptable(value: Any, allow_array: bool) -> bool:
    if isinstance(value, dict):
        return True
    return allow_array and isinstance(value, list)


def parse_model_json(
    text: Optional[str],
    allow_array: bool = False,
    strategies: tuple[ParseStrategy, ...] = JSON_STRATEGIES,
) -> Optional[Any]:
    """
    Run the recovery ladder over a model reply.

    Args:
        text: Raw reply text
        allow_array: Accept a top-level JSON array as well as an object
        strategies: Ordered strategies to try

    Returns:
        The parsed object/array, or None if every strategy failed or the
        first JSON value found has the wrong shape
    """
    if not text or not text.strip():
        return None

    for strategy in strategies:
        value = strategy(text, allow_array)
        if value is None:
            continue
        if not _acceptable(value, allow_array):
            logger.warning(f"Model reply is {type(value).__name__} JSON, expected an object: {text[:200]!r}")
            return None
        if strategy is not strategies[0]:
            logger.debug(f"Recovered JSON with {strategy.__name__}")
        return value

    logger.warning(f"No JSON found in model reply: {text[:200]!r}")
    return None
