"""Generate challenges and evaluate answers: prompt -> LLM -> extraction -> store."""
import logging
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from assessor.core.config import get_settings
from assessor.models.assessment import AssessmentRecord
from assessor.models.user import User
from assessor.schemas.assessment import (
    EvaluateAndGenerateSchema,
    EvaluateBatchSchema,
    EvaluateSchema,
    GenerateRequestSchema,
)
from assessor.services import extraction, prompts, store
from assessor.services.scoring import next_level

logger = logging.getLogger(__name__)


class TextGenerator(Protocol):
    async def generate(self, prompt: str) -> str: ...


def resolve_difficulty(difficulty: str | None) -> str:
    return (difficulty or "").strip() or get_settings().default_difficulty


def _domain_label(domains: list[str]) -> str:
    cleaned = [d.strip() for d in domains if d and d.strip()]
    return ", ".join(cleaned) if cleaned else "general"


async def generate_challenges(gateway: TextGenerator, body: GenerateRequestSchema) -> list[dict]:
    prompt = prompts.build_generation_prompt(
        body.type,
        body.domains,
        resolve_difficulty(body.difficulty),
        body.limit,
        previous=body.previous,
    )
    text = await gateway.generate(prompt)
    payload = extraction.extract_json(text, expect=(dict, list))
    questions = extraction.parse_questions(payload, body.type, body.limit)
    logger.info("Generated %d %s challenge(s) for %s", len(questions), body.type, body.domains)
    return questions


async def evaluate_batch(
    db: AsyncSession,
    gateway: TextGenerator,
    user: User,
    body: EvaluateBatchSchema,
) -> list[dict]:
    """Score every answer with a single model call and persist them as one unit."""
    if not body.answers:
        return []

    difficulty = resolve_difficulty(body.difficulty)
    prompt = prompts.build_batch_evaluation_prompt(
        [{"challenge": a.challenge, "answer": a.answer} for a in body.answers],
        body.type,
        difficulty,
    )
    text = await gateway.generate(prompt)
    results = extraction.parse_batch_results(extraction.extract_json(text, expect=(dict, list)), len(body.answers))

    default_domain = _domain_label(body.domains)
    records = [
        AssessmentRecord(
            user_id=user.id,
            domain=a.domain or default_domain,
            challenge=a.challenge,
            answer=a.answer,
            score=r["score"],
            feedback=r["feedback"],
            session_id=body.session_id,
            type=body.type,
            difficulty=difficulty,
        )
        for a, r in zip(body.answers, results)
    ]
    await store.add_records(db, user, records)
    logger.info("Stored %d evaluation(s) for user %s, session %s", len(records), user.id, body.session_id)
    return results


async def evaluate_single(
    db: AsyncSession,
    gateway: TextGenerator,
    user: User,
    body: EvaluateSchema,
) -> dict:
    difficulty = resolve_difficulty(body.difficulty)
    prompt = prompts.build_evaluation_prompt(body.challenge, body.answer, body.type, difficulty)
    result = extraction.parse_evaluation(extraction.extract_json(await gateway.generate(prompt)))

    record = AssessmentRecord(
        user_id=user.id,
        domain=body.domain,
        challenge=body.challenge,
        answer=body.answer,
        score=result["score"],
        feedback=result["feedback"],
        logic=result["logic"],
        tone=result["tone"],
        session_id=body.session_id,
        type=body.type,
        difficulty=difficulty,
    )
    await store.add_records(db, user, [record])
    return {**result, "next_level": next_level(result["score"])}


async def evaluate_and_generate(
    db: AsyncSession,
    gateway: TextGenerator,
    user: User,
    body: EvaluateAndGenerateSchema,
) -> dict:
    """Score an adaptive scenario answer and return the follow-up scenario."""
    difficulty = resolve_difficulty(body.difficulty)
    prompt = prompts.build_evaluate_and_next_prompt(body.current_scenario, body.user_answer, body.domain, difficulty)
    result = extraction.parse_evaluation(
        extraction.extract_json(await gateway.generate(prompt)),
        require_next=True,
    )

    record = AssessmentRecord(
        user_id=user.id,
        domain=body.domain,
        challenge=body.current_scenario,
        answer=body.user_answer,
        score=result["score"],
        feedback=result["feedback"],
        logic=result["logic"],
        tone=result["tone"],
        session_id=body.session_id,
        type="adaptive",
        difficulty=difficulty,
    )
    await store.add_records(db, user, [record])
    return {**result, "next_level": next_level(result["score"])}
