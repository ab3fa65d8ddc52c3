"""Locate, parse and validate the JSON payload inside a model reply."""
import json
import logging
import math
import re
from typing import Any

from assessor.core.errors import ExtractionError
from assessor.services.prompts import MC_OPTION_COUNT

logger = logging.getLogger(__name__)

MIN_SCORE = 0.0
MAX_SCORE = 10.0

_LEADING_FENCE_RE = re.compile(r"^```(?:json|JSON)?[ \t]*\n?")
_TRAILING_FENCE_RE = re.compile(r"\n?[ \t]*```$")
_FRACTION_RE = re.compile(r"^\s*(-?\d+(?:\.\d+)?)\s*/\s*10\s*$")

_BRACKETS = (("{", "}"), ("[", "]"))


def strip_fences(text: str) -> str:
    """Drop one leading ```json fence and one trailing fence; the body is untouched."""
    text = _LEADING_FENCE_RE.sub("", text.strip())
    return _TRAILING_FENCE_RE.sub("", text).strip()


def _spans(text: str) -> list[str]:
    """Greedy first-open to last-close spans, one per bracket kind, by start position."""
    spans = []
    for opener, closer in _BRACKETS:
        start = text.find(opener)
        end = text.rfind(closer)
        if start != -1 and end > start:
            spans.append((start, text[start:end + 1]))
    return [span for _, span in sorted(spans)]


def _loads(text: str) -> Any | None:
    try:
        return json.loads(text)
    except ValueError:
        return None


def find_json(text: str | None) -> Any | None:
    """Return the parsed payload, or None when nothing parses."""
    if not text or not text.strip():
        return None
    for candidate in (text.strip(), strip_fences(text), *_spans(text)):
        value = _loads(candidate)
        if value is not None:
            return value
    return None


def extract_json(text: str | None, expect: type | tuple[type, ...] = dict) -> Any:
    """Like find_json, but a missing or mistyped payload raises ExtractionError."""
    value = find_json(text)
    if value is None:
        logger.warning("No JSON payload in model reply: %.200r", text)
        raise ExtractionError("no JSON payload found")
    if not isinstance(value, expect):
        raise ExtractionError(f"unexpected payload type {type(value).__name__}")
    return value


def coerce_score(value: Any, field: str = "score") -> float:
    """Validate a model-supplied score into [0, 10]; reject anything else."""
    if isinstance(value, bool):
        raise ExtractionError(f"{field} is not numeric: {value!r}")
    if isinstance(value, str):
        match = _FRACTION_RE.match(value)
        raw = match.group(1) if match else value.strip()
        try:
            value = float(raw)
        except ValueError:
            raise ExtractionError(f"{field} is not numeric: {value!r}") from None
    if not isinstance(value, (int, float)) or math.isnan(value):
        raise ExtractionError(f"{field} is not numeric: {value!r}")
    if not MIN_SCORE <= value <= MAX_SCORE:
        raise ExtractionError(f"{field} out of range: {value!r}")
    return round(float(value), 1)


def _optional_score(payload: dict, field: str) -> float | None:
    if payload.get(field) is None:
        return None
    return coerce_score(payload[field], field)


def _text(payload: dict, field: str) -> str:
    value = payload.get(field)
    if not isinstance(value, str) or not value.strip():
        raise ExtractionError(f"missing {field}")
    return value.strip()


def parse_questions(payload: Any, question_type: str, count: int) -> list[dict]:
    if isinstance(payload, dict):
        payload = payload.get("questions")
    if not isinstance(payload, list) or not payload:
        raise ExtractionError("no questions in payload")

    questions = []
    for item in payload[:count]:
        if not isinstance(item, dict):
            raise ExtractionError("question is not an object")
        question = {"challenge": _text(item, "challenge")}
        if question_type == "multiple-choice":
            options = item.get("options")
            if not isinstance(options, list) or len(options) != MC_OPTION_COUNT:
                raise ExtractionError(f"multiple-choice question needs {MC_OPTION_COUNT} options")
            question["options"] = [str(o) for o in options]
        keywords = item.get("imageKeywords")
        if isinstance(keywords, list):
            keywords = ", ".join(str(k) for k in keywords)
        if isinstance(keywords, str) and keywords.strip():
            question["image_keywords"] = keywords.strip()
        questions.append(question)
    return questions


def parse_evaluation(payload: Any, require_next: bool = False) -> dict:
    if not isinstance(payload, dict):
        raise ExtractionError("evaluation is not an object")
    result = {
        "score": coerce_score(payload.get("score")),
        "logic": _optional_score(payload, "logic"),
        "tone": _optional_score(payload, "tone"),
        "feedback": _text(payload, "feedback"),
    }
    if require_next:
        result["next_scenario"] = _text(payload, "nextScenario")
    return result


def parse_batch_results(payload: Any, expected: int) -> list[dict]:
    if isinstance(payload, dict):
        payload = payload.get("results")
    if not isinstance(payload, list):
        raise ExtractionError("no results in payload")
    if len(payload) != expected:
        raise ExtractionError(f"expected {expected} results, got {len(payload)}")
    results = []
    for item in payload:
        if not isinstance(item, dict):
            raise ExtractionError("result is not an object")
        results.append({"score": coerce_score(item.get("score")), "feedback": _text(item, "feedback")})
    return results
