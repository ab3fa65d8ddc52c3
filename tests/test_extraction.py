# /tests/test_extraction.py

import pytest

from assessor.core.errors import ExtractionError
from assessor.services import extraction


# --- find_json / extract_json ---

def test_find_json_in_code_fence():
    text = '```json\n{"score": 8, "feedback": "Good job."}\n```'
    assert extraction.find_json(text) == {"score": 8, "feedback": "Good job."}


def test_find_json_surrounded_by_prose():
    text = 'Sure! Here is the evaluation:\n{"results": [{"score": 7, "feedback": "Fine."}]}\nHope this helps.'
    assert extraction.find_json(text) == {"results": [{"score": 7, "feedback": "Fine."}]}


def test_find_json_top_level_array():
    assert extraction.find_json('Questions: [{"challenge": "Q1"}]') == [{"challenge": "Q1"}]


def test_find_json_nested_object_is_kept_whole():
    text = 'Result -> {"score": 9, "meta": {"tone": 8}, "feedback": "ok"} <- end'
    assert extraction.find_json(text) == {"score": 9, "meta": {"tone": 8}, "feedback": "ok"}


def test_find_json_skips_bracketed_prose_before_object():
    text = 'Evaluation [scale 0-10]:\n{"score": 8, "feedback": "Good job."}'
    assert extraction.find_json(text) == {"score": 8, "feedback": "Good job."}


def test_find_json_keeps_fences_inside_string_values():
    text = '{"score": 8, "feedback": "Use ```code``` blocks."}'
    assert extraction.find_json(text)["feedback"] == "Use ```code``` blocks."


def test_find_json_fenced_reply_keeps_inner_fences():
    text = '```json\n{"challenge": "Explain ```print()``` output."}\n```'
    assert extraction.find_json(text) == {"challenge": "Explain ```print()``` output."}


def test_strip_fences_only_touches_the_ends():
    assert extraction.strip_fences('```json\n{"a": "x```y"}\n```') == '{"a": "x```y"}'


@pytest.mark.parametrize("text", ["", None, "no json here at all", "score: 8/10"])
def test_find_json_returns_none_without_braces(text):
    assert extraction.find_json(text) is None


def test_find_json_returns_none_for_broken_json():
    assert extraction.find_json('{"score": 8, "feedback": }') is None


def test_extract_json_raises_typed_error():
    """
    GIVEN: A model reply with no JSON.
    WHEN:  extract_json is called.
    THEN:  It raises ExtractionError, never a raw JSON/Type error.
    """
    with pytest.raises(ExtractionError):
        extraction.extract_json("I cannot help with that.")


def test_extract_json_rejects_unexpected_type():
    with pytest.raises(ExtractionError):
        extraction.extract_json("[1, 2, 3]", expect=dict)


# --- scores ---

@pytest.mark.parametrize(
    "value, expected",
    [(8, 8.0), (0, 0.0), (10, 10.0), (7.25, 7.2), ("9", 9.0), ("6.5", 6.5), ("8/10", 8.0)],
)
def test_coerce_score_accepts_numbers_in_range(value, expected):
    assert extraction.coerce_score(value) == expected


@pytest.mark.parametrize("value", [11, -1, 10.5, "12/10", "eight", None, True, [8], float("nan")])
def test_coerce_score_rejects_bad_values(value):
    with pytest.raises(ExtractionError):
        extraction.coerce_score(value)


# --- payload validators ---

def test_parse_questions_multiple_choice_requires_four_options():
    payload = {"questions": [{"challenge": "2+2?", "options": ["3", "4", "5"]}]}
    with pytest.raises(ExtractionError):
        extraction.parse_questions(payload, "multiple-choice", 1)


def test_parse_questions_trims_to_count_and_keeps_keywords():
    payload = {"questions": [
        {"challenge": "Client threatens to leave.", "imageKeywords": ["office", "phone"]},
        {"challenge": "Second scenario."},
    ]}
    questions = extraction.parse_questions(payload, "adaptive", 1)
    assert questions == [{"challenge": "Client threatens to leave.", "image_keywords": "office, phone"}]


def test_parse_questions_accepts_bare_list():
    questions = extraction.parse_questions([{"challenge": "Name a prime."}], "general", 3)
    assert questions == [{"challenge": "Name a prime."}]


def test_parse_evaluation_extended_shape():
    result = extraction.parse_evaluation({"score": "8", "logic": 7, "tone": 9, "feedback": "Be more polite."})
    assert result == {"score": 8.0, "logic": 7.0, "tone": 9.0, "feedback": "Be more polite."}


def test_parse_evaluation_requires_next_scenario_when_asked():
    with pytest.raises(ExtractionError):
        extraction.parse_evaluation({"score": 5, "feedback": "ok"}, require_next=True)


def test_parse_batch_results_must_match_answer_count():
    payload = {"results": [{"score": 5, "feedback": "a"}]}
    with pytest.raises(ExtractionError):
        extraction.parse_batch_results(payload, 2)


def test_parse_batch_results_rejects_out_of_range_score():
    payload = {"results": [{"score": 5, "feedback": "a"}, {"score": 42, "feedback": "b"}]}
    with pytest.raises(ExtractionError):
        extraction.parse_batch_results(payload, 2)
