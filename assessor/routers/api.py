"""API routes: JSON for challenge generation, evaluation and history."""
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from assessor.core.config import get_settings
from assessor.db.session import get_db
from assessor.models.user import User
from assessor.routers.auth import ensure_same_user, get_current_user
from assessor.schemas.assessment import (
    AssessmentRecordOutSchema,
    EvaluateAndGenerateOutSchema,
    EvaluateAndGenerateSchema,
    EvaluateBatchOutSchema,
    EvaluateBatchSchema,
    EvaluateOutSchema,
    EvaluateSchema,
    GenerateOutSchema,
    GenerateRequestSchema,
)
from assessor.schemas.stats import ReportOutSchema
from assessor.services import assessment, store
from assessor.services.llm import GeminiGateway, get_llm_gateway
from assessor.services.scoring import (
    average,
    compute_level,
    domain_breakdown,
    get_focus_domains,
    session_accuracy,
)

router = APIRouter(tags=["assessment"])
settings = get_settings()


@router.post("/generate-assessment", response_model=GenerateOutSchema, response_model_exclude_none=True)
async def generate_assessment(
    body: GenerateRequestSchema,
    current_user: Annotated[User, Depends(get_current_user)],
    gateway: Annotated[GeminiGateway, Depends(get_llm_gateway)],
):
    """Generate `limit` challenges for the chosen type, domains and difficulty."""
    questions = await assessment.generate_challenges(gateway, body)
    return {"questions": questions}


@router.post("/evaluate-batch", response_model=EvaluateBatchOutSchema)
async def evaluate_batch(
    body: EvaluateBatchSchema,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
    gateway: Annotated[GeminiGateway, Depends(get_llm_gateway)],
):
    """Score all answers of a session; results align with `answers` by position."""
    ensure_same_user(current_user, body.user_id)
    results = await assessment.evaluate_batch(db, gateway, current_user, body)
    return {"results": results}


@router.post("/evaluate", response_model=EvaluateOutSchema)
async def evaluate(
    body: EvaluateSchema,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
    gateway: Annotated[GeminiGateway, Depends(get_llm_gateway)],
):
    ensure_same_user(current_user, body.user_id)
    return await assessment.evaluate_single(db, gateway, current_user, body)


@router.post("/evaluate-and-generate", response_model=EvaluateAndGenerateOutSchema)
async def evaluate_and_generate(
    body: EvaluateAndGenerateSchema,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
    gateway: Annotated[GeminiGateway, Depends(get_llm_gateway)],
):
    """Score a scenario answer and return the next, adapted scenario."""
    ensure_same_user(current_user, body.user_id)
    return await assessment.evaluate_and_generate(db, gateway, current_user, body)


@router.get("/history/{user_id}", response_model=list[AssessmentRecordOutSchema])
async def history(
    user_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
    limit: Annotated[int | None, Query(ge=1, le=500)] = None,
):
    """All records of the user, newest first."""
    ensure_same_user(current_user, user_id)
    return await store.list_for_user(db, user_id, limit or settings.history_limit)


@router.get("/history/{user_id}/report", response_model=ReportOutSchema)
async def history_report(
    user_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
    session_id: Annotated[str | None, Query(alias="sessionId")] = None,
):
    """Aggregate scores over one session, or over the recent history."""
    ensure_same_user(current_user, user_id)
    if session_id:
        records = await store.list_for_session(db, user_id, session_id)
    else:
        records = await store.list_for_user(db, user_id, settings.history_limit)

    scores = [r.score for r in records]
    breakdown = domain_breakdown(records)
    avg = average(scores)
    return ReportOutSchema(
        session_id=session_id,
        total=len(records),
        average_score=avg or 0.0,
        accuracy=session_accuracy(scores),
        level=compute_level(avg) if records else current_user.skill_level,
        by_domain=breakdown,
        focus_domains=get_focus_domains(breakdown),
    )
