"""Web routes: login, registration, challenge selection, test, report, history. Jinja2 templates.

The browser holds only a session cookie; the client state machine snapshot it
points at is loaded, validated and saved on every request.
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from assessor.core.config import BASE_DIR, get_settings
from assessor.core.errors import AssessorError
from assessor.db.session import get_db
from assessor.models.session_snapshot import SessionSnapshot
from assessor.models.user import User
from assessor.routers.auth import (
    REGISTRATION_ERRORS,
    authenticate,
    create_user,
    normalize_email,
    registration_error,
)
from assessor.schemas.assessment import (
    EvaluateAndGenerateSchema,
    EvaluateSchema,
    GenerateRequestSchema,
    normalize_type,
)
from assessor.services import assessment, session_flow, store
from assessor.services.llm import GeminiGateway, get_llm_gateway
from assessor.services.scoring import domain_breakdown

router = APIRouter(include_in_schema=False)
settings = get_settings()
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))
logger = logging.getLogger(__name__)

QUESTION_TYPES = ["general", "multiple-choice", "adaptive"]
DIFFICULTIES = ["Beginner", "Intermediate", "Advanced", "Expert"]

ERROR_MESSAGES = {
    "invalid": "Wrong email or password.",
    "generate": "Could not generate challenges. Try again.",
    "evaluate": "Could not evaluate your answer. Try again.",
    "input": "Check the form and try again.",
    **{code: f"{message}." for code, message in REGISTRATION_ERRORS.items()},
}


# ---------- helpers ----------

def get_or_create_session_id(request: Request) -> str:
    sid = request.cookies.get(settings.session_cookie_name)
    if not sid or len(sid) > 64:
        sid = str(uuid.uuid4())
    return sid


async def get_snapshot(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> SessionSnapshot:
    sid = get_or_create_session_id(request)
    result = await db.execute(select(SessionSnapshot).where(SessionSnapshot.id == sid))
    snapshot = result.scalar_one_or_none()
    if snapshot is None:
        snapshot = SessionSnapshot(id=sid, payload=session_flow.dump_snapshot(session_flow.initial_phase()))
        db.add(snapshot)
        await db.commit()
    return snapshot


async def save_state(db: AsyncSession, snapshot: SessionSnapshot, state) -> None:
    snapshot.payload = session_flow.dump_snapshot(state)
    snapshot.user_id = getattr(state, "user_id", None)
    await db.commit()


def _ensure_session_cookie(request: Request, response: Response, snapshot: SessionSnapshot) -> None:
    if request.cookies.get(settings.session_cookie_name) != snapshot.id:
        response.set_cookie(
            key=settings.session_cookie_name,
            value=snapshot.id,
            max_age=settings.session_cookie_max_age,
            httponly=True,
            samesite="lax",
            path="/",
        )


def _redirect_home(request: Request, snapshot: SessionSnapshot, error: str | None = None) -> RedirectResponse:
    url = request.url_for("home")
    if error:
        url = url.include_query_params(error=error)
    response = RedirectResponse(url, status_code=303)
    _ensure_session_cookie(request, response, snapshot)
    return response


async def _load_user(db: AsyncSession, state) -> User | None:
    user_id = getattr(state, "user_id", None)
    if user_id is None:
        return None
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


# ---------- routes ----------

@router.get("/", response_class=HTMLResponse)
async def home(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    snapshot: Annotated[SessionSnapshot, Depends(get_snapshot)],
    error: str | None = None,
):
    state = session_flow.load_snapshot(snapshot.payload)
    if not isinstance(state, session_flow.AuthPhase) and await _load_user(db, state) is None:
        state = session_flow.logout(state)
        await save_state(db, snapshot, state)

    context = {
        "request": request,
        "state": state,
        "error": ERROR_MESSAGES.get(error or ""),
        "question_types": QUESTION_TYPES,
        "difficulties": DIFFICULTIES,
        "max_questions": settings.max_questions,
    }
    if isinstance(state, session_flow.ActiveTestPhase):
        context["seconds_left"] = max(
            0, int((state.deadline - datetime.now(timezone.utc)).total_seconds())
        )
        context["timeout_answer"] = session_flow.TIMEOUT_ANSWER
    if isinstance(state, session_flow.ReportPhase):
        records = await store.list_for_session(db, state.user_id, state.session_id)
        context["records"] = list(reversed(records))
        context["by_domain"] = domain_breakdown(records)

    resp = templates.TemplateResponse(request, f"{state.phase}.html", context)
    _ensure_session_cookie(request, resp, snapshot)
    return resp


@router.post("/ui/login", response_class=RedirectResponse)
async def ui_login(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    snapshot: Annotated[SessionSnapshot, Depends(get_snapshot)],
    email: Annotated[str, Form()],
    password: Annotated[str, Form()],
):
    state = session_flow.load_snapshot(snapshot.payload)
    if not isinstance(state, session_flow.AuthPhase):
        return _redirect_home(request, snapshot)

    user = await authenticate(db, email, password)
    if user is None:
        return _redirect_home(request, snapshot, error="invalid")

    await save_state(db, snapshot, session_flow.login(state, user.id, user.display_name))
    return _redirect_home(request, snapshot)


@router.post("/ui/register", response_class=RedirectResponse)
async def ui_register(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    snapshot: Annotated[SessionSnapshot, Depends(get_snapshot)],
    username: Annotated[str, Form()],
    email: Annotated[str, Form()],
    password: Annotated[str, Form()],
):
    """Create the account and log straight in."""
    state = session_flow.load_snapshot(snapshot.payload)
    if not isinstance(state, session_flow.AuthPhase):
        return _redirect_home(request, snapshot)
    if not username.strip():
        return _redirect_home(request, snapshot, error="input")

    email_norm = normalize_email(email)
    error = await registration_error(db, email_norm, password)
    if error:
        return _redirect_home(request, snapshot, error=error)

    user = await create_user(db, username, email_norm, password)
    if user is None:
        # the rollback expired the snapshot row
        await db.refresh(snapshot)
        return _redirect_home(request, snapshot, error="exists")

    await save_state(db, snapshot, session_flow.login(state, user.id, user.display_name))
    return _redirect_home(request, snapshot)


@router.post("/ui/start", response_class=RedirectResponse)
async def ui_start(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    snapshot: Annotated[SessionSnapshot, Depends(get_snapshot)],
    gateway: Annotated[GeminiGateway, Depends(get_llm_gateway)],
    question_type: Annotated[str, Form(alias="type")] = "general",
    domains: Annotated[str, Form()] = "general",
    difficulty: Annotated[str, Form()] = "",
    limit: Annotated[int, Form()] = 1,
):
    state = session_flow.load_snapshot(snapshot.payload)
    if not isinstance(state, session_flow.SelectionPhase):
        return _redirect_home(request, snapshot)

    domain_list = [d.strip() for d in domains.split(",") if d.strip()] or ["general"]
    question_type = normalize_type(question_type)
    if question_type not in QUESTION_TYPES or not 1 <= limit <= settings.max_questions:
        return _redirect_home(request, snapshot, error="input")

    # an adaptive test opens with one scenario; evaluations supply the rest
    adaptive = question_type == "adaptive"
    body = GenerateRequestSchema(
        type=question_type,
        domains=domain_list,
        difficulty=difficulty or None,
        limit=1 if adaptive else limit,
    )
    try:
        questions = await assessment.generate_challenges(gateway, body)
    except AssessorError as e:
        logger.error("Web test start failed for user %s: %s", state.user_id, e)
        return _redirect_home(request, snapshot, error="generate")

    state = session_flow.start_test(
        state,
        questions,
        question_type,
        domain_list,
        assessment.resolve_difficulty(body.difficulty),
        settings.question_time_limit_seconds,
        planned=limit if adaptive else None,
    )
    await save_state(db, snapshot, state)
    return _redirect_home(request, snapshot)


@router.post("/ui/answer", response_class=RedirectResponse)
async def ui_answer(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    snapshot: Annotated[SessionSnapshot, Depends(get_snapshot)],
    gateway: Annotated[GeminiGateway, Depends(get_llm_gateway)],
    index: Annotated[int, Form()],
    answer: Annotated[str, Form()] = "",
    timed_out: Annotated[bool, Form()] = False,
):
    state = session_flow.load_snapshot(snapshot.payload)
    # Already answered (double click, timer racing a submit) or stale form
    if not session_flow.can_submit(state, index):
        return _redirect_home(request, snapshot)

    user = await _load_user(db, state)
    if user is None:
        await save_state(db, snapshot, session_flow.logout(state))
        return _redirect_home(request, snapshot)

    timed_out = timed_out or session_flow.is_expired(state)
    if timed_out or not answer.strip():
        answer = session_flow.TIMEOUT_ANSWER

    domain = ", ".join(state.domains)
    try:
        if state.type == "adaptive":
            result = await assessment.evaluate_and_generate(
                db,
                gateway,
                user,
                EvaluateAndGenerateSchema(
                    current_scenario=state.current.challenge,
                    user_answer=answer,
                    domain=domain,
                    session_id=state.session_id,
                    difficulty=state.difficulty,
                ),
            )
        else:
            result = await assessment.evaluate_single(
                db,
                gateway,
                user,
                EvaluateSchema(
                    challenge=state.current.challenge,
                    answer=answer,
                    domain=domain,
                    session_id=state.session_id,
                    type=state.type,
                    difficulty=state.difficulty,
                ),
            )
    except AssessorError as e:
        logger.error("Web evaluation failed for user %s: %s", state.user_id, e)
        # a failed write rolls back and expires loaded rows
        await db.refresh(snapshot)
        return _redirect_home(request, snapshot, error="evaluate")

    state = session_flow.record_result(
        state,
        index,
        answer,
        result["score"],
        result["feedback"],
        timed_out,
        logic=result["logic"],
        tone=result["tone"],
        next_scenario=result.get("next_scenario"),
    )
    await save_state(db, snapshot, state)
    return _redirect_home(request, snapshot)


@router.post("/ui/next", response_class=RedirectResponse)
async def ui_next(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    snapshot: Annotated[SessionSnapshot, Depends(get_snapshot)],
):
    state = session_flow.load_snapshot(snapshot.payload)
    try:
        state = session_flow.advance(state, settings.question_time_limit_seconds)
    except session_flow.InvalidTransition:
        return _redirect_home(request, snapshot)
    await save_state(db, snapshot, state)
    return _redirect_home(request, snapshot)


@router.post("/ui/reset", response_class=RedirectResponse)
async def ui_reset(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    snapshot: Annotated[SessionSnapshot, Depends(get_snapshot)],
):
    state = session_flow.load_snapshot(snapshot.payload)
    await save_state(db, snapshot, session_flow.reset(state))
    return _redirect_home(request, snapshot)


@router.post("/ui/logout", response_class=RedirectResponse)
async def ui_logout(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    snapshot: Annotated[SessionSnapshot, Depends(get_snapshot)],
):
    state = session_flow.load_snapshot(snapshot.payload)
    await save_state(db, snapshot, session_flow.logout(state))
    return _redirect_home(request, snapshot)


@router.get("/ui/history", response_class=HTMLResponse)
async def ui_history(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    snapshot: Annotated[SessionSnapshot, Depends(get_snapshot)],
):
    """All of the user's past answers, newest first. Leaves the current phase untouched."""
    state = session_flow.load_snapshot(snapshot.payload)
    if isinstance(state, session_flow.AuthPhase) or await _load_user(db, state) is None:
        return _redirect_home(request, snapshot)

    records = await store.list_for_user(db, state.user_id, settings.history_limit)
    context = {"request": request, "state": state, "error": None, "records": records}
    resp = templates.TemplateResponse(request, "history.html", context)
    _ensure_session_cookie(request, resp, snapshot)
    return resp
