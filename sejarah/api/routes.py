from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status

from sejarah.api.deps import get_engine, get_questions
from sejarah.api.models import (
    AnswerRequest,
    AnswerResult,
    EngineSnapshot,
    FontScalingRequest,
    ModalsRequest,
    ProfileRequest,
    QuestionIndexRequest,
    RegionSummary,
    TimerResponse,
)
from sejarah.content.registry import QuestionBank
from sejarah.content.regions import REGION_SPECS, to_region_id
from sejarah.engine import GameEngine
from sejarah.profile import validate_profile_form
from sejarah.timer import format_time, timer_color

router = APIRouter()


def _unprocessable(e: ValueError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))


@router.get("/healthcheck")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/game", response_model=EngineSnapshot)
async def get_game_route(engine: GameEngine = Depends(get_engine)) -> EngineSnapshot:
    return engine.snapshot()


@router.get("/game/timer", response_model=TimerResponse)
async def get_timer_route(engine: GameEngine = Depends(get_engine)) -> TimerResponse:
    timer = engine.game_state.state_timer
    remaining = engine.get_time_remaining()
    if timer is None or remaining is None:
        return TimerResponse(timer=None, remaining=None, expired=False)
    return TimerResponse(
        timer=timer,
        remaining=remaining,
        expired=engine.is_timer_expired(),
        display=format_time(remaining),
        color=timer_color(remaining, timer.duration),
    )


@router.get("/regions", response_model=list[RegionSummary])
async def list_regions_route(
    engine: GameEngine = Depends(get_engine),
    bank: QuestionBank = Depends(get_questions),
) -> list[RegionSummary]:
    completed = set(engine.game_state.completed_states)
    return [
        RegionSummary(
            id=spec.id,
            name=spec.name,
            timer_seconds=spec.timer_seconds,
            question_count=len(bank.questions_for(spec.id)),
            is_completed=spec.id in completed,
        )
        for spec in REGION_SPECS.values()
    ]


@router.get("/regions/{region_id}/questions")
async def list_region_questions_route(region_id: str, bank: QuestionBank = Depends(get_questions)) -> list[dict[str, Any]]:
    try:
        region = to_region_id(region_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    return [q.model_dump() for q in bank.questions_for(region)]


@router.post("/game/answer", response_model=AnswerResult)
async def answer_route(
    payload: AnswerRequest,
    engine: GameEngine = Depends(get_engine),
    bank: QuestionBank = Depends(get_questions),
) -> AnswerResult:
    try:
        question = bank.require(payload.question_id)
    except ValueError as e:
        raise _unprocessable(e) from e
    return engine.answer_question(payload.question_id, payload.answer, question)


@router.post("/game/regions/{region_id}/select", response_model=EngineSnapshot)
async def select_region_route(region_id: str, engine: GameEngine = Depends(get_engine)) -> EngineSnapshot:
    try:
        engine.set_current_state(region_id)
    except ValueError as e:
        raise _unprocessable(e) from e
    return engine.snapshot()


@router.post("/game/regions/{region_id}/complete", response_model=EngineSnapshot)
async def complete_region_route(region_id: str, engine: GameEngine = Depends(get_engine)) -> EngineSnapshot:
    try:
        engine.complete_state(region_id)
    except ValueError as e:
        raise _unprocessable(e) from e
    return engine.snapshot()


@router.post("/game/regions/{region_id}/fail", response_model=EngineSnapshot)
async def fail_region_route(region_id: str, engine: GameEngine = Depends(get_engine)) -> EngineSnapshot:
    try:
        engine.fail_state(region_id)
    except ValueError as e:
        raise _unprocessable(e) from e
    return engine.snapshot()


@router.post("/game/regions/{region_id}/clear-answers", response_model=EngineSnapshot)
async def clear_region_answers_route(region_id: str, engine: GameEngine = Depends(get_engine)) -> EngineSnapshot:
    try:
        engine.clear_state_answers(region_id)
    except ValueError as e:
        raise _unprocessable(e) from e
    return engine.snapshot()


@router.post("/game/regions/{region_id}/question-index", response_model=EngineSnapshot)
async def question_index_route(
    region_id: str,
    payload: QuestionIndexRequest,
    engine: GameEngine = Depends(get_engine),
) -> EngineSnapshot:
    try:
        engine.set_question_index_for_state(region_id, payload.index)
    except ValueError as e:
        raise _unprocessable(e) from e
    return engine.snapshot()


@router.post("/game/timer/start/{region_id}", response_model=EngineSnapshot)
async def start_timer_route(region_id: str, engine: GameEngine = Depends(get_engine)) -> EngineSnapshot:
    try:
        engine.start_state_timer(region_id)
    except ValueError as e:
        raise _unprocessable(e) from e
    return engine.snapshot()


@router.post("/game/timer/pause", response_model=EngineSnapshot)
async def pause_timer_route(engine: GameEngine = Depends(get_engine)) -> EngineSnapshot:
    engine.pause_state_timer()
    return engine.snapshot()


@router.post("/game/timer/resume", response_model=EngineSnapshot)
async def resume_timer_route(engine: GameEngine = Depends(get_engine)) -> EngineSnapshot:
    engine.resume_state_timer()
    return engine.snapshot()


@router.post("/game/timer/clear", response_model=EngineSnapshot)
async def clear_timer_route(engine: GameEngine = Depends(get_engine)) -> EngineSnapshot:
    engine.clear_state_timer()
    return engine.snapshot()


@router.post("/game/profile", response_model=EngineSnapshot)
async def profile_route(payload: ProfileRequest, engine: GameEngine = Depends(get_engine)) -> EngineSnapshot:
    form, errors = validate_profile_form(payload.name, payload.age)
    if form is None:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=errors)
    engine.set_player_profile(form.name, form.age)
    return engine.snapshot()


@router.post("/game/tutorial/complete", response_model=EngineSnapshot)
async def tutorial_complete_route(engine: GameEngine = Depends(get_engine)) -> EngineSnapshot:
    engine.mark_tutorial_complete()
    return engine.snapshot()


@router.post("/game/settings/font-scaling", response_model=EngineSnapshot)
async def font_scaling_route(payload: FontScalingRequest, engine: GameEngine = Depends(get_engine)) -> EngineSnapshot:
    engine.set_allow_font_scaling(payload.allow)
    return engine.snapshot()


@router.post("/game/modals", response_model=EngineSnapshot)
async def modals_route(payload: ModalsRequest, engine: GameEngine = Depends(get_engine)) -> EngineSnapshot:
    if payload.show_success_modal is not None:
        engine.set_show_success_modal(payload.show_success_modal)
    if payload.show_gagal_modal is not None:
        engine.set_show_gagal_modal(payload.show_gagal_modal)
    return engine.snapshot()


@router.post("/game/wrong-answers/reset", response_model=EngineSnapshot)
async def reset_wrong_answers_route(engine: GameEngine = Depends(get_engine)) -> EngineSnapshot:
    engine.reset_wrong_answer_count()
    return engine.snapshot()


@router.post("/game/reset", response_model=EngineSnapshot)
async def reset_game_route(engine: GameEngine = Depends(get_engine)) -> EngineSnapshot:
    await engine.reset_game()
    return engine.snapshot()
