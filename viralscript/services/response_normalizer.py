"""
Response Normalizer - pull a JSON value out of raw model text.

The model is asked for pure JSON but may wrap it in a code fence, surround it
with prose, or get cut off. Strategies are tried in order and the first
success wins:

1. FENCED:  the interior of a ```json ... ``` (or bare ```) block
2. DIRECT:  the whole trimmed text
3. BRACES:  the substring from the first '{' to the last '}'

If all three fail, MalformedResponse is raised. An empty or unparseable
response is never turned into an empty object.
"""

import enum
import json
import logging
import re
from typing import Any, Optional, Tuple

from ..core.exceptions import MalformedResponse

logger = logging.getLogger(__name__)

_FENCE_PATTERN = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)


class ParseStrategy(str, enum.Enum):
    FENCED = "fenced"
    DIRECT = "direct"
    BRACES = "braces"


def _try_parse(text: str) -> Tuple[bool, Any]:
    try:
        return True, json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return False, None


def _fenced_interior(text: str) -> Optional[str]:
    match = _FENCE_PATTERN.search(text)
    return match.group(1).strip() if match else None


def extract_json_with_strategy(text: Optional[str]) -> Tuple[Any, ParseStrategy]:
    """
    Parse model output, reporting which strategy succeeded.

    Args:
        text: Raw model output

    Returns:
        Tuple of (parsed value, strategy used)

    Raises:
        MalformedResponse: If no strategy produces valid JSON
    """
    raw = text or ""
    if not raw.strip():
        raise MalformedResponse(raw, reason="The AI returned an empty response")

    fenced = _fenced_interior(raw)
    if fenced is not None:
        ok, value = _try_parse(fenced)
        if ok:
            return value, ParseStrategy.FENCED

    ok, value = _try_parse(raw.strip())
    if ok:
        return value, ParseStrategy.DIRECT

    first_brace = raw.find("{")
    last_brace = raw.rfind("}")
    if first_brace != -1 and last_brace > first_brace:
        ok, value = _try_parse(raw[first_brace:last_brace + 1])
        if ok:
            logger.debug("Recovered JSON object from surrounding prose")
            return value, ParseStrategy.BRACES
        logger.warning("Failed to parse extracted JSON substring")

    logger.error(f"JSON parse error. Raw text length: {len(raw)}, start: {raw[:100]!r}")
    raise MalformedResponse(raw)


def extract_json(text: Optional[str]) -> Any:
    """Parse model output into a JSON value. See module docstring for the fallback chain."""
    value, _ = extract_json_with_strategy(text)
    return value
