"""Active-listening rating and caller-side parsing of the score output.

The prompt pipeline treats the score stage output as opaque text. Callers
that want the categorical value use parse_rating().
"""

import json
import re
from enum import Enum

from agent_metrics.utils.errors import RatingParseError

RATING_KEY = "activeListening"

_OBJECT_PATTERN = re.compile(r"\{[^{}]*\}", re.DOTALL)
_PAIR_PATTERN = re.compile(
    r"""["']?activeListening["']?\s*:\s*["']?(\w+)["']?""", re.IGNORECASE
)


class Rating(str, Enum):
    EXCELLENT = "Excellent"
    GOOD = "Good"
    FAIR = "Fair"
    POOR = "Poor"


def parse_rating(text: str) -> Rating:
    """Read the activeListening rating from score output.

    Accepts strict JSON or the single-quoted pseudo-JSON models often
    return, embedded anywhere in the text.

    Raises:
        RatingParseError: If no rating object is present or the value is
            not one of the four levels.
    """
    match = _OBJECT_PATTERN.search(text)
    if match is None:
        raise RatingParseError("No rating object in score output", detail=text[:200])

    candidate = match.group(0)
    try:
        value = json.loads(candidate).get(RATING_KEY)
    except (json.JSONDecodeError, AttributeError):
        pair = _PAIR_PATTERN.search(candidate)
        value = pair.group(1) if pair else None

    if not isinstance(value, str):
        raise RatingParseError(
            f"Score output has no '{RATING_KEY}' value", detail=candidate
        )

    for rating in Rating:
        if rating.value.lower() == value.strip().lower():
            return rating
    raise RatingParseError(f"Unknown rating '{value}'", detail=candidate)
