"""
Tests for recovering recap records and blurbs from free-text model output.
"""

import json
import time

import pytest

from recap_sensei.recap_generator.models.recap_models import (
    PLACEHOLDER_CHARACTER_ACTION,
    PLACEHOLDER_CHARACTER_NAME,
    PLACEHOLDER_KEY_MOMENT,
    RecapRecord,
)
from recap_sensei.recap_generator.response_extractor import (
    EMPTY_RESPONSE_SUMMARY,
    FALLBACK_TITLE,
    clean_blurb_text,
    extract_recap,
    fallback_recap,
)
from recap_sensei.utils.llm_utils import (
    clean_llm_text_response,
    extract_structured,
    find_first_json_span,
)

from conftest import RECAP_JSON


# ---------------------------------------------------------------------------
# find_first_json_span
# ---------------------------------------------------------------------------

def test_span_handles_nested_objects():
    text = 'prefix {"a": {"b": {"c": 1}}} suffix'
    assert find_first_json_span(text) == '{"a": {"b": {"c": 1}}}'


def test_span_returns_first_of_several_objects():
    text = '{"first": 1} and then {"second": 2}'
    assert find_first_json_span(text) == '{"first": 1}'


def test_span_ignores_braces_inside_strings():
    text = '{"summary": "a } inside and a { too", "n": 1}'
    assert find_first_json_span(text) == text


def test_span_none_without_braces():
    assert find_first_json_span("no json here at all") is None
    assert find_first_json_span("") is None


def test_span_skips_unclosed_brace():
    text = 'broken { start, then {"ok": true}'
    assert find_first_json_span(text) == '{"ok": true}'


def test_span_skips_unclosed_outer_brace_around_object():
    text = '{ never closed {"ok": true} trailing'
    assert find_first_json_span(text) == '{"ok": true}'


def test_span_scan_is_linear_on_unbalanced_braces():
    text = "{" * 20000 + '{"ok": 1}' + "{" * 20000

    started = time.perf_counter()
    span = find_first_json_span(text)
    elapsed = time.perf_counter() - started

    assert span == '{"ok": 1}'
    assert elapsed < 1.0


def test_extract_recap_is_fast_on_unbalanced_braces():
    started = time.perf_counter()
    record = extract_recap("{" * 20000)
    elapsed = time.perf_counter() - started

    assert record.title == FALLBACK_TITLE
    assert elapsed < 2.0


# ---------------------------------------------------------------------------
# extract_structured
# ---------------------------------------------------------------------------

def test_extract_structured_parses_fenced_json():
    raw = "```json\n" + json.dumps({"summary": "x"}) + "\n```"
    assert extract_structured(raw, lambda text: "fallback") == {"summary": "x"}


def test_extract_structured_takes_first_object_from_list():
    raw = '[{"summary": "first"}, {"summary": "second"}]'
    assert extract_structured(raw, lambda text: "fallback") == {"summary": "first"}


def test_extract_structured_uses_fallback_on_missing_field():
    raw = '{"title": "only a title"}'
    assert extract_structured(raw, lambda text: "fallback", required_fields=("summary",)) == "fallback"


def test_extract_structured_uses_fallback_on_blank_field():
    raw = '{"summary": "   "}'
    assert extract_structured(raw, lambda text: "fallback", required_fields=("summary",)) == "fallback"


# ---------------------------------------------------------------------------
# extract_recap totality
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("raw", [
    "",
    "The episode was great, lots happened.",
    "{ this is not json",
    '{"summary": ',
    "}{",
    '{"summary": "unterminated}',
    "[1, 2, 3]",
    "null",
    "{" * 500,
])
def test_extract_recap_never_raises(raw):
    record = extract_recap(raw)

    assert isinstance(record, RecapRecord)
    assert record.summary.strip()
    assert len(record.key_moments) >= 1
    assert len(record.characters) >= 1


def test_extract_recap_parses_wrapped_json():
    raw = "Sure! Here is your recap:\n" + json.dumps(RECAP_JSON) + "\nEnjoy!"
    record = extract_recap(raw)

    assert record.title == "The Hero's Farewell"
    assert record.summary == RECAP_JSON["summary"]
    assert record.key_moments == RECAP_JSON["keyMoments"]
    assert record.characters[0].name == "Frieren"
    assert record.plot_progress == "The journey to Aureole begins."
    assert record.cliffhanger == RECAP_JSON["cliffhanger"]


def test_extract_recap_fills_placeholders_for_empty_lists():
    raw = json.dumps({"summary": "Something happened.", "keyMoments": [], "characters": []})
    record = extract_recap(raw)

    assert record.key_moments == [PLACEHOLDER_KEY_MOMENT]
    assert record.characters[0].name == PLACEHOLDER_CHARACTER_NAME
    assert record.characters[0].action == PLACEHOLDER_CHARACTER_ACTION


def test_extract_recap_accepts_plain_character_names():
    raw = json.dumps({"summary": "s", "characters": ["Fern", {"name": "Stark", "role": "Warrior"}]})
    record = extract_recap(raw)

    assert [c.name for c in record.characters] == ["Fern", "Stark"]
    assert record.characters[0].action == PLACEHOLDER_CHARACTER_ACTION
    assert record.characters[1].action == "Warrior"


def test_extract_recap_without_summary_falls_back_to_excerpt():
    raw = json.dumps({"episodeTitle": "No summary here"})
    record = extract_recap(raw)

    assert record.title == FALLBACK_TITLE
    assert record.summary.endswith("...")


def test_fallback_recap_truncates_to_excerpt_length():
    raw = "x" * 1000
    record = fallback_recap(raw, excerpt_length=200)

    assert record.summary == "x" * 200 + "..."
    assert record.title == FALLBACK_TITLE
    assert record.plot_progress == "Unable to analyze plot progression"
    assert record.cliffhanger == "None"


def test_fallback_recap_for_empty_response():
    assert fallback_recap("").summary == EMPTY_RESPONSE_SUMMARY
    assert fallback_recap(None).summary == EMPTY_RESPONSE_SUMMARY


# ---------------------------------------------------------------------------
# Blurb cleanup
# ---------------------------------------------------------------------------

def test_clean_blurb_strips_quotes_and_fences():
    assert clean_blurb_text('```\n"Watch this episode! 🔥"\n```') == "Watch this episode! 🔥"


def test_clean_blurb_unwraps_json():
    assert clean_blurb_text('{"tweet": "Hype episode! ✨"}') == "Hype episode! ✨"


def test_clean_blurb_never_truncates():
    long_blurb = "a" * 400
    assert clean_blurb_text(long_blurb) == long_blurb


def test_clean_llm_text_response_removes_markdown_fences():
    assert clean_llm_text_response("```markdown\nhello\n```") == "hello"
    assert clean_llm_text_response("") == ""
