"""
Extracts place recommendations from a free-text LLM reply.

The model is asked for a fenced ```json block, but replies drift: prose
around the block, a bare array, trailing commentary, or broken JSON. The
parser takes whatever array it can find, keeps the entries that carry the
required fields and drops the rest one by one. It never raises.
"""
import json
import logging
import math
import re
from numbers import Real
from typing import Any, Dict, List, Optional

from mapsy.models.chat import PlaceRecommendation

logger = logging.getLogger("recommendation_parser")

FENCED_JSON_RE = re.compile(r"```json\s*([\s\S]*?)\s*```", re.IGNORECASE)

REQUIRED_FIELDS = ("name", "type", "description")


def find_json_candidate(text: str) -> Optional[str]:
    """Fenced json block first, then the first balanced top-level array."""
    match = FENCED_JSON_RE.search(text)
    if match:
        return match.group(1)
    return _first_bracketed_array(text)


def _first_bracketed_array(text: str) -> Optional[str]:
    start = text.find("[")
    while start != -1:
        end = _matching_bracket(text, start)
        if end is not None:
            return text[start:end + 1]
        start = text.find("[", start + 1)
    return None


def _matching_bracket(text: str, start: int) -> Optional[int]:
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "[":
            depth += 1
        elif ch == "]":
            depth -= 1
            if depth == 0:
                return i
    return None


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool) and math.isfinite(value)


def _non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _clean_entry(entry: Any) -> Optional[PlaceRecommendation]:
    if not isinstance(entry, dict):
        return None
    if not all(_non_empty_str(entry.get(field)) for field in REQUIRED_FIELDS):
        return None

    fields: Dict[str, Any] = {field: entry[field].strip() for field in REQUIRED_FIELDS}

    distance = entry.get("distance")
    if _is_number(distance) and distance >= 0:
        fields["distance"] = distance

    rating = entry.get("rating")
    if _is_number(rating) and 0 <= rating <= 5:
        fields["rating"] = rating

    coordinates = entry.get("coordinates")
    if (
        isinstance(coordinates, dict)
        and _is_number(coordinates.get("lat"))
        and _is_number(coordinates.get("lng"))
    ):
        fields["coordinates"] = {"lat": coordinates["lat"], "lng": coordinates["lng"]}

    if _non_empty_str(entry.get("imageUrl")):
        fields["image_url"] = entry["imageUrl"].strip()
    if _non_empty_str(entry.get("openingHours")):
        fields["opening_hours"] = entry["openingHours"].strip()

    return PlaceRecommendation(**fields)


def parse_recommendations(text: Optional[str]) -> List[PlaceRecommendation]:
    if not text:
        return []

    candidate = find_json_candidate(text)
    if candidate is None:
        logger.warning("No JSON found in recommendations response")
        return []

    try:
        parsed = json.loads(candidate)
    except ValueError as e:
        logger.warning(f"Could not decode recommendations JSON: {e}")
        return []

    if not isinstance(parsed, list):
        logger.warning(f"Recommendations JSON is a {type(parsed).__name__}, expected a list")
        return []

    recommendations = []
    for entry in parsed:
        cleaned = _clean_entry(entry)
        if cleaned is None:
            logger.debug(f"Dropping malformed recommendation entry: {entry!r}")
            continue
        recommendations.append(cleaned)
    return recommendations
