import logging
import time
from contextlib import asynccontextmanager
from dataclasses import replace
from functools import lru_cache
from datetime import datetime
from typing import Annotated

from fastapi import Depends, FastAPI, HTTPException, Query
from pydantic import BaseModel

from studyflow.application.planner import StudyPlanner
from studyflow.consts import VERSION
from studyflow.domain.errors import (
    CardNotFoundError,
    InvalidOperationError,
    StudyFlowError,
    WriteConflictError,
)
from studyflow.domain.models import Card, DailySelection, Tier

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("studyflow.server")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"StudyFlow Server v{VERSION} starting up...")
    yield
    # Shutdown
    logger.info("StudyFlow Server shutting down...")


app = FastAPI(
    title="StudyFlow Server",
    description="Local API for today's cards, reminder plans and answers.",
    version=VERSION,
    lifespan=lifespan,
)

start_time = time.time()


@lru_cache
def get_study_planner() -> StudyPlanner:
    """Planner built once from the resolved config and shared by every request."""
    from studyflow.application.config import resolve_config
    from studyflow.application.factory import get_planner

    return get_planner(resolve_config())


PlannerDep = Annotated[StudyPlanner, Depends(get_study_planner)]


def _http_error(e: StudyFlowError) -> HTTPException:
    if isinstance(e, CardNotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, WriteConflictError):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, InvalidOperationError):
        return HTTPException(status_code=422, detail=str(e))
    logger.error(f"Request failed: {e}", exc_info=True)
    return HTTPException(status_code=500, detail=str(e))


# ---------- Models ----------


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float


class CardModel(BaseModel):
    id: str
    question: str
    answer: str
    tier: Tier
    correct_streak: int
    total_correct: int
    total_attempts: int
    next_due_at: datetime
    last_studied_at: datetime | None
    class_id: str | None

    @classmethod
    def from_card(cls, card: Card) -> "CardModel":
        return cls(
            id=card.id,
            question=card.question,
            answer=card.answer,
            tier=card.tier,
            correct_streak=card.correct_streak,
            total_correct=card.total_correct,
            total_attempts=card.total_attempts,
            next_due_at=card.next_due_at,
            last_studied_at=card.last_studied_at,
            class_id=card.class_id,
        )


class SelectionResponse(BaseModel):
    overdue: list[CardModel]
    due_today: list[CardModel]
    learning: list[CardModel]
    archival_candidates: list[str]
    errors: list[str]

    @classmethod
    def from_selection(cls, selection: DailySelection) -> "SelectionResponse":
        return cls(
            overdue=[CardModel.from_card(c) for c in selection.overdue],
            due_today=[CardModel.from_card(c) for c in selection.due_today],
            learning=[CardModel.from_card(c) for c in selection.learning],
            archival_candidates=[c.id for c in selection.archival_candidates],
            errors=[str(e) for e in selection.errors],
        )


class BatchModel(BaseModel):
    scheduled_at: datetime
    card_ids: list[str]


class PlanResponse(BaseModel):
    batches: list[BatchModel]
    errors: list[str]
    skipped_reason: str | None = None


class NewCardRequest(BaseModel):
    question: str
    answer: str
    class_id: str | None = None


class AnswerRequest(BaseModel):
    correct: bool
    response_time_ms: float | None = None


class AnswerResponse(BaseModel):
    card: CardModel
    promotion_eligible: bool
    next_tier: Tier | None


class PromotionResponse(BaseModel):
    eligible: bool
    next_tier: Tier | None


class PromotionRequest(BaseModel):
    target_tier: Tier | None = None
    decline: bool = False


# ---------- Routes ----------


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Simple health check to verify server is reachable.
    """
    return HealthResponse(status="ok", version=VERSION, uptime_seconds=time.time() - start_time)


@app.get("/version")
async def get_version():
    return {"version": VERSION}


@app.get("/today", response_model=SelectionResponse)
def get_today(planner: PlannerDep, budget: int | None = None):
    prefs = planner.preferences
    if budget is not None:
        prefs = replace(prefs, daily_card_budget=budget)
    try:
        selection = planner.compute_daily_selection(prefs=prefs)
    except StudyFlowError as e:
        raise _http_error(e) from e
    return SelectionResponse.from_selection(selection)


@app.get("/plan", response_model=PlanResponse)
def get_plan(planner: PlannerDep, notified: Annotated[list[str] | None, Query()] = None):
    """
    Today's reminder plan. Misconfiguration returns an empty plan with errors.
    """
    try:
        selection = planner.compute_daily_selection()
        plan = planner.compute_notification_plan(
            selection, already_notified=set(notified) if notified else None
        )
    except StudyFlowError as e:
        raise _http_error(e) from e
    return PlanResponse(
        batches=[
            BatchModel(scheduled_at=b.scheduled_at, card_ids=list(b.card_ids))
            for b in plan.batches
        ],
        errors=[str(e) for e in plan.errors],
        skipped_reason=plan.skipped_reason,
    )


@app.post("/cards", response_model=CardModel, status_code=201)
def create_card(planner: PlannerDep, req: NewCardRequest):
    from studyflow.application.card_service import add_card

    card = add_card(planner.store, req.question, req.answer, planner.now(), req.class_id)
    return CardModel.from_card(card)


@app.get("/cards/{card_id}", response_model=CardModel)
def get_card(planner: PlannerDep, card_id: str):
    try:
        return CardModel.from_card(planner.get_card(card_id))
    except StudyFlowError as e:
        raise _http_error(e) from e


@app.post("/cards/{card_id}/answer", response_model=AnswerResponse)
def submit_answer(planner: PlannerDep, card_id: str, req: AnswerRequest):
    try:
        card, evaluation = planner.submit_answer(card_id, req.correct, req.response_time_ms)
    except StudyFlowError as e:
        raise _http_error(e) from e
    return AnswerResponse(
        card=CardModel.from_card(card),
        promotion_eligible=evaluation.eligible,
        next_tier=evaluation.next_tier,
    )


@app.get("/cards/{card_id}/promotion", response_model=PromotionResponse)
def get_promotion(planner: PlannerDep, card_id: str):
    try:
        evaluation = planner.evaluate_promotion(planner.get_card(card_id))
    except StudyFlowError as e:
        raise _http_error(e) from e
    return PromotionResponse(eligible=evaluation.eligible, next_tier=evaluation.next_tier)


@app.post("/cards/{card_id}/promotion", response_model=CardModel)
def post_promotion(planner: PlannerDep, card_id: str, req: PromotionRequest):
    try:
        if req.decline:
            card = planner.decline(card_id)
        else:
            card = planner.promote(card_id, req.target_tier)
    except StudyFlowError as e:
        raise _http_error(e) from e
    return CardModel.from_card(card)
