from typing import Any, Callable, Dict, Iterable, Optional, TypeVar, Union
import re
import json
from .logger_utils import setup_logging

logger = setup_logging(__name__)

T = TypeVar("T")


def find_first_json_span(text: str) -> Optional[str]:
    """
    Return the first balanced brace-delimited span of ``text``.

    A single pass from the first ``{`` keeps a stack of open-brace positions.
    Braces that appear inside JSON string literals are ignored, honouring
    backslash escapes. An opening brace that never closes is skipped, so the
    result is the span of the earliest ``{`` that has a matching ``}``. Stray
    closing braces are ignored.

    Args:
        text (str): Raw text that may contain a JSON object.

    Returns:
        Optional[str]: The span including its outer braces, or None.
    """
    if not text:
        return None

    first = text.find("{")
    if first == -1:
        return None

    open_positions = []
    best: Optional[tuple] = None
    in_string = False
    escaped = False
    for index in range(first, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char == "{":
            open_positions.append(index)
        elif char == "}" and open_positions:
            start = open_positions.pop()
            if not open_positions:
                # Nothing earlier is still open, so no earlier span can close
                return text[start:index + 1]
            if best is None or start < best[0]:
                best = (start, index)

    if best is None:
        return None
    return text[best[0]:best[1] + 1]


def _parse_json(candidate: str) -> Union[Dict[str, Any], None]:
    """Parse a JSON candidate, returning a dict or None. A list yields its first object."""
    try:
        parsed = json.loads(candidate)
    except (ValueError, RecursionError) as e:
        logger.debug(f"JSON candidate did not parse: {e}")
        return None

    if isinstance(parsed, list):
        parsed = next((item for item in parsed if isinstance(item, dict)), None)
    if isinstance(parsed, dict):
        return parsed
    return None


def _has_required_fields(data: Dict[str, Any], required_fields: Iterable[str]) -> bool:
    for field in required_fields:
        value = data.get(field)
        if value is None:
            return False
        if isinstance(value, str) and not value.strip():
            return False
    return True


def extract_structured(
    raw_text: Optional[str],
    fallback_factory: Callable[[str], T],
    required_fields: Iterable[str] = (),
) -> Union[Dict[str, Any], T]:
    """
    Recover a structured record from free-text LLM output.

    1. Parse the first balanced ``{...}`` span, if there is one.
    2. Otherwise strip Markdown fences and parse the whole text.
    3. If parsing fails, or a required field is missing or blank, return
       ``fallback_factory(raw_text)``.

    This function never raises for string input.

    Args:
        raw_text (Optional[str]): The raw response from the LLM.
        fallback_factory (Callable[[str], T]): Builds a minimal valid record from the raw text.
        required_fields (Iterable[str]): Keys that must be present and non-blank.

    Returns:
        The parsed dictionary, or whatever the fallback factory returns.
    """
    text = raw_text if isinstance(raw_text, str) else ""
    required_fields = tuple(required_fields)

    span = find_first_json_span(text)
    if span is not None:
        parsed = _parse_json(span)
    else:
        parsed = _parse_json(re.sub(r"```(json|plaintext|markdown)?", "", text).strip())

    if parsed is None:
        logger.warning("Could not parse structured LLM response, using fallback record")
        logger.debug(f"Full response: {text[:500]}")
        return fallback_factory(text)

    if not _has_required_fields(parsed, required_fields):
        logger.warning(f"LLM response is missing required fields {list(required_fields)}, using fallback record")
        return fallback_factory(text)

    return parsed


def clean_llm_text_response(response: str) -> str:
    """
    Clean and extract meaningful text from a markdown or plaintext LLM response.

    Args:
        response (str): The raw response from the LLM, expected to be plaintext or markdown.

    Returns:
        str: A cleaned version of the text.
    """
    if not response:
        return ""

    # Remove any formatting indicators like ```plaintext, ```markdown, and ```
    response_cleaned = re.sub(r"```(plaintext|markdown|html|text)?", "", response)
    response_cleaned = re.sub(r"```", "", response_cleaned)
    response_cleaned = re.sub(r"â€™", "'", response_cleaned)
    return response_cleaned.strip()
