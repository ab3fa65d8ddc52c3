"""Web client session state machine.

The client walks `auth -> selection -> test -> report`. Each phase is a pydantic
model tagged by its `phase` field, so one JSON snapshot describes the whole
client state and is validated as a unit when loaded. Transitions are pure
functions returning the next phase; they never mutate their input.

Inside `test` every question cycles through awaiting-answer, the in-flight
evaluation request, and showing-feedback (its result is set). An adaptive test
starts from one scenario and grows: each evaluation brings the follow-up
scenario, appended on `advance` until `planned` questions are answered.
"""
import uuid
from datetime import datetime, timedelta, timezone
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError, model_validator

from assessor.schemas.assessment import QuestionType
from assessor.services.scoring import session_accuracy

TIMEOUT_ANSWER = "(no answer - time expired)"


class InvalidTransition(Exception):
    """The requested step is not allowed from the current phase."""


class QuestionState(BaseModel):
    challenge: str
    options: list[str] | None = None
    image_keywords: str | None = None


class QuestionResult(BaseModel):
    answer: str
    score: float = Field(ge=0, le=10)
    feedback: str
    logic: float | None = None
    tone: float | None = None
    next_scenario: str | None = None
    timed_out: bool = False


class AuthPhase(BaseModel):
    phase: Literal["auth"] = "auth"


class SelectionPhase(BaseModel):
    phase: Literal["selection"] = "selection"
    user_id: int
    user_name: str


class ActiveTestPhase(BaseModel):
    phase: Literal["test"] = "test"
    user_id: int
    user_name: str
    session_id: str
    type: QuestionType
    domains: list[str]
    difficulty: str
    questions: list[QuestionState] = Field(min_length=1)
    planned: int = Field(ge=1)
    index: int = Field(default=0, ge=0)
    results: list[QuestionResult | None]
    deadline: datetime

    @model_validator(mode="after")
    def _aligned(self):
        if len(self.results) != len(self.questions) or self.index >= len(self.questions):
            raise ValueError("results must align with questions")
        if self.planned < len(self.questions):
            raise ValueError("more questions than planned")
        return self

    @property
    def current(self) -> QuestionState:
        return self.questions[self.index]

    @property
    def current_result(self) -> QuestionResult | None:
        return self.results[self.index]

    @property
    def step(self) -> str:
        return "showing-feedback" if self.current_result else "awaiting-answer"

    @property
    def is_last(self) -> bool:
        return self.index == self.planned - 1


class ReportPhase(BaseModel):
    phase: Literal["report"] = "report"
    user_id: int
    user_name: str
    session_id: str
    scores: list[float]
    accuracy: float


ClientPhase = Annotated[
    Union[AuthPhase, SelectionPhase, ActiveTestPhase, ReportPhase],
    Field(discriminator="phase"),
]
_phase_adapter = TypeAdapter(ClientPhase)


def initial_phase() -> AuthPhase:
    return AuthPhase()


def load_snapshot(raw: str | None):
    """Validate a stored snapshot; anything corrupt or partial restarts at auth."""
    if not raw:
        return initial_phase()
    try:
        return _phase_adapter.validate_json(raw)
    except (ValidationError, ValueError):
        return initial_phase()


def dump_snapshot(state) -> str:
    return state.model_dump_json()


def _deadline(seconds: int, now: datetime | None = None) -> datetime:
    return (now or datetime.now(timezone.utc)) + timedelta(seconds=seconds)


def login(state, user_id: int, user_name: str) -> SelectionPhase:
    if not isinstance(state, AuthPhase):
        raise InvalidTransition(f"cannot log in from {state.phase}")
    return SelectionPhase(user_id=user_id, user_name=user_name)


def start_test(
    state,
    questions: list[dict],
    question_type: str,
    domains: list[str],
    difficulty: str,
    time_limit: int,
    now: datetime | None = None,
    planned: int | None = None,
) -> ActiveTestPhase:
    """Open the first question. `planned` exceeds the question count only for adaptive chains."""
    if not isinstance(state, SelectionPhase):
        raise InvalidTransition(f"cannot start a test from {state.phase}")
    return ActiveTestPhase(
        user_id=state.user_id,
        user_name=state.user_name,
        session_id=uuid.uuid4().hex,
        type=question_type,
        domains=domains,
        difficulty=difficulty,
        questions=[QuestionState(**q) for q in questions],
        results=[None] * len(questions),
        planned=planned or len(questions),
        deadline=_deadline(time_limit, now),
    )


def can_submit(state, index: int) -> bool:
    """Only the current, unanswered question accepts a submission."""
    return isinstance(state, ActiveTestPhase) and state.index == index and state.current_result is None


def is_expired(state, now: datetime | None = None) -> bool:
    return isinstance(state, ActiveTestPhase) and (now or datetime.now(timezone.utc)) >= state.deadline


def record_result(
    state,
    index: int,
    answer: str,
    score: float,
    feedback: str,
    timed_out: bool = False,
    logic: float | None = None,
    tone: float | None = None,
    next_scenario: str | None = None,
):
    """Attach the evaluation to the current question; a repeat submission is ignored."""
    if not can_submit(state, index):
        return state
    results = list(state.results)
    results[index] = QuestionResult(
        answer=answer,
        score=score,
        feedback=feedback,
        logic=logic,
        tone=tone,
        next_scenario=next_scenario,
        timed_out=timed_out,
    )
    return state.model_copy(update={"results": results})


def advance(state, time_limit: int, now: datetime | None = None):
    """Move to the next question, or to the report after the last one."""
    if not isinstance(state, ActiveTestPhase):
        raise InvalidTransition(f"cannot advance from {state.phase}")
    if state.current_result is None:
        raise InvalidTransition("current question has not been answered")
    if state.is_last:
        return finish(state)
    update = {"index": state.index + 1, "deadline": _deadline(time_limit, now)}
    if state.index + 1 == len(state.questions):
        follow_up = state.current_result.next_scenario
        if not follow_up:
            raise InvalidTransition("no follow-up scenario to continue with")
        update["questions"] = [*state.questions, QuestionState(challenge=follow_up)]
        update["results"] = [*state.results, None]
    return state.model_copy(update=update)


def finish(state) -> ReportPhase:
    if not isinstance(state, ActiveTestPhase):
        raise InvalidTransition(f"cannot finish from {state.phase}")
    scores = [r.score for r in state.results if r is not None]
    return ReportPhase(
        user_id=state.user_id,
        user_name=state.user_name,
        session_id=state.session_id,
        scores=scores,
        accuracy=session_accuracy(scores),
    )


def reset(state):
    """Back to selection, keeping the logged-in user."""
    if isinstance(state, AuthPhase):
        return state
    return SelectionPhase(user_id=state.user_id, user_name=state.user_name)


def logout(state) -> AuthPhase:
    return initial_phase()
