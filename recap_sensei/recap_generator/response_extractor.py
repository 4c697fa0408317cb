"""
Turn free-text model output into recap records and blurbs.

Providers are free-text generators and are not trusted to return valid JSON.
extract_recap() always returns a valid RecapRecord.
"""

import json
from typing import Any, Dict, List, Optional

from ..utils.llm_utils import clean_llm_text_response, extract_structured, find_first_json_span
from ..utils.logger_utils import setup_logging
from .models.recap_models import (
    CharacterAction,
    RecapRecord,
    PLACEHOLDER_CHARACTER_ACTION,
    PLACEHOLDER_CHARACTER_NAME,
    PLACEHOLDER_KEY_MOMENT,
)

logger = setup_logging(__name__)

FALLBACK_TITLE = "Episode Recap"
EMPTY_RESPONSE_SUMMARY = "No recap could be generated."
BLURB_KEYS = ("tweet", "blurb", "text", "post")


def fallback_recap(raw_text: Optional[str], excerpt_length: int = 200) -> RecapRecord:
    """Minimal valid record built from the raw response."""
    excerpt = (raw_text or "").strip()[:excerpt_length]
    return RecapRecord(
        title=FALLBACK_TITLE,
        summary=f"{excerpt}..." if excerpt else EMPTY_RESPONSE_SUMMARY,
        key_moments=[PLACEHOLDER_KEY_MOMENT],
        characters=[CharacterAction(name=PLACEHOLDER_CHARACTER_NAME, action=PLACEHOLDER_CHARACTER_ACTION)],
        plot_progress="Unable to analyze plot progression",
        cliffhanger="None",
    )


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = value if isinstance(value, str) else str(value)
    text = text.strip()
    return text or None


def _key_moments(value: Any) -> List[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return [PLACEHOLDER_KEY_MOMENT]

    moments = [text for text in (_optional_text(item) for item in value) if text]
    return moments or [PLACEHOLDER_KEY_MOMENT]


def _characters(value: Any) -> List[CharacterAction]:
    if isinstance(value, (str, dict)):
        value = [value]
    if not isinstance(value, list):
        value = []

    characters = []
    for item in value:
        if isinstance(item, dict):
            name = _optional_text(item.get("name"))
            action = _optional_text(item.get("action") or item.get("role") or item.get("description"))
        else:
            name = _optional_text(item)
            action = None
        if not name:
            continue
        characters.append(CharacterAction(name=name, action=action or PLACEHOLDER_CHARACTER_ACTION))

    return characters or [CharacterAction(name=PLACEHOLDER_CHARACTER_NAME, action=PLACEHOLDER_CHARACTER_ACTION)]


def _recap_from_dict(data: Dict[str, Any]) -> RecapRecord:
    return RecapRecord(
        title=_optional_text(data.get("episodeTitle") or data.get("title")),
        summary=_optional_text(data.get("summary")),
        key_moments=_key_moments(data.get("keyMoments", data.get("key_moments"))),
        characters=_characters(data.get("characters")),
        plot_progress=_optional_text(data.get("plotProgress", data.get("plot_progress"))),
        cliffhanger=_optional_text(data.get("cliffhanger")),
    )


def extract_recap(raw_text: Optional[str], excerpt_length: int = 200) -> RecapRecord:
    """
    Extract a RecapRecord from a model response.

    Args:
        raw_text: The raw response, expected to contain the recap JSON.
        excerpt_length: How much raw text the fallback summary keeps.

    Returns:
        RecapRecord: Parsed record, or the fallback record when the response
        is unusable. Never raises.
    """
    def _fallback(text: str) -> RecapRecord:
        return fallback_recap(text, excerpt_length)

    extracted = extract_structured(raw_text, _fallback, required_fields=("summary",))
    if isinstance(extracted, RecapRecord):
        return extracted

    try:
        return _recap_from_dict(extracted)
    except ValueError as e:
        # Validation errors from the model are ValueErrors
        logger.warning(f"Recap JSON did not validate, using fallback record: {e}")
        return _fallback(raw_text if isinstance(raw_text, str) else "")


def clean_blurb_text(raw_text: Optional[str]) -> str:
    """
    Clean a blurb returned by a writer or prompt model.

    Strips code fences and wrapping quotes. If the model wrapped the post in
    a JSON object, the post text is taken out of it. The text is never
    truncated.
    """
    text = clean_llm_text_response(raw_text or "")

    if text.startswith("{"):
        span = find_first_json_span(text)
        if span is not None:
            try:
                data = json.loads(span)
            except (ValueError, RecursionError):
                data = None
            if isinstance(data, dict):
                candidates = [data.get(key) for key in BLURB_KEYS]
                candidates += list(data.values())
                for candidate in candidates:
                    if isinstance(candidate, str) and candidate.strip():
                        text = candidate.strip()
                        break

    if len(text) >= 2 and text[0] == text[-1] and text[0] in ('"', "'"):
        text = text[1:-1].strip()
    return text
