"""Prompt construction for challenge generation and answer evaluation.

Every builder is a pure function of its inputs (plus an optional random seed for
general-knowledge prompts) and ends with a "return ONLY JSON" directive naming
the exact shape the extractor will validate. Inputs are interpolated verbatim.
"""
import json
import time
import uuid
from collections.abc import Sequence

SYSTEM_INSTRUCTION = (
    "You are an AI Assessor for a skills testing platform. "
    "You output only valid JSON, with no markdown, prose or commentary."
)

MC_OPTION_COUNT = 4

GENERATE_SHAPE = '{"questions": [{"challenge": "string"}]}'
GENERATE_MC_SHAPE = '{"questions": [{"challenge": "string", "options": ["A", "B", "C", "D"]}]}'
GENERATE_ADAPTIVE_SHAPE = '{"questions": [{"challenge": "string", "imageKeywords": "string"}]}'
EVALUATE_SHAPE = '{"score": 8, "logic": 7, "tone": 9, "feedback": "Good job, but be more polite."}'
BATCH_EVALUATE_SHAPE = '{"results": [{"score": 8, "feedback": "string"}]}'
EVALUATE_NEXT_SHAPE = (
    '{"score": 8, "tone": 7, "logic": 9, "feedback": "string", "nextScenario": "string"}'
)


def _json_directive(shape: str) -> str:
    return f"Return ONLY JSON matching exactly this shape: {shape}"


def make_seed() -> str:
    """Disambiguator that keeps the model from replaying cached trivia."""
    return f"{time.time_ns()}-{uuid.uuid4().hex[:8]}"


def is_general(question_type: str, domains: Sequence[str]) -> bool:
    return question_type == "general" or any(d.strip().lower() == "general" for d in domains)


def build_generation_prompt(
    question_type: str,
    domains: Sequence[str],
    difficulty: str,
    count: int,
    previous: Sequence[str] | None = None,
    seed: str | None = None,
) -> str:
    domain_list = ", ".join(domains) if domains else "general"
    lines = [
        f"Generate {count} unique assessment challenge(s).",
        f"Domains: {domain_list}.",
        f"Difficulty: {difficulty}.",
    ]

    if question_type == "multiple-choice":
        lines.append(
            f"Each challenge is a multiple-choice question with exactly {MC_OPTION_COUNT} options "
            "and exactly one correct option. Do not mark which option is correct."
        )
        shape = GENERATE_MC_SHAPE
    elif question_type == "adaptive":
        lines.append(
            "Each challenge is a realistic workplace scenario the candidate answers in free text. "
            "Add a few comma-separated keywords describing an illustrative image."
        )
        shape = GENERATE_ADAPTIVE_SHAPE
    else:
        lines.append("Each challenge is a short open question answered in free text.")
        shape = GENERATE_SHAPE

    if previous:
        lines.append("Do not repeat any of these earlier challenges:")
        lines.extend(f"- {p}" for p in previous)

    if is_general(question_type, domains):
        lines.append(f"Random seed: {seed or make_seed()}. Pick fresh topics for this seed.")

    lines.append(_json_directive(shape))
    return "\n".join(lines)


def build_evaluation_prompt(challenge: str, answer: str, question_type: str, difficulty: str) -> str:
    return "\n".join([
        "Evaluate the user's answer to the challenge below.",
        f"Challenge type: {question_type}. Difficulty: {difficulty}.",
        f"Challenge: {challenge}",
        f"User Answer: {answer}",
        "Give an overall score out of 10, a logic score out of 10, a tone score out of 10 "
        "and 1 sentence of feedback.",
        _json_directive(EVALUATE_SHAPE),
    ])


def build_batch_evaluation_prompt(
    answers: Sequence[dict],
    question_type: str,
    difficulty: str,
) -> str:
    """`answers` is a sequence of {"challenge", "answer"} mappings."""
    items = [
        {"index": i, "challenge": a["challenge"], "answer": a["answer"]}
        for i, a in enumerate(answers)
    ]
    return "\n".join([
        f"Evaluate each of the following {len(items)} answers independently.",
        f"Challenge type: {question_type}. Difficulty: {difficulty}.",
        "For multiple-choice challenges score 10 for the correct option and 0 otherwise.",
        json.dumps(items, ensure_ascii=False),
        f"Return exactly {len(items)} results in the same order as the input, "
        "each with a score out of 10 and 1 sentence of feedback.",
        _json_directive(BATCH_EVALUATE_SHAPE),
    ])


def build_evaluate_and_next_prompt(challenge: str, answer: str, domain: str, difficulty: str) -> str:
    return "\n".join([
        "You are assessing a candidate through a sequence of scenarios.",
        f"Domain: {domain}. Difficulty: {difficulty}.",
        f"Scenario: {challenge}",
        f"User Answer: {answer}",
        "Score the answer out of 10 overall, for tone and for logic, give 1 sentence of feedback, "
        "then write the next scenario: harder if the answer was strong, easier if it was weak.",
        _json_directive(EVALUATE_NEXT_SHAPE),
    ])
