from __future__ import annotations

from uuid import UUID

import redis
from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect, status

from typefall.api.deps import get_redis, get_sessions
from typefall.api.models import (
    AdvanceRequest,
    DifficultyRequest,
    DurationRequest,
    GeometryRequest,
    HighScoreResponse,
    InputRequest,
    ModeRequest,
    RestartRequest,
    SessionCreateRequest,
    SessionListResponse,
    SessionSettings,
    SessionSnapshot,
)
from typefall.core.difficulty import InvalidSettingError, parse_duration
from typefall.core.events import (
    CountdownTick,
    DifficultyChanged,
    DurationChanged,
    EngineNotice,
    Event,
    InputChanged,
    ModeChanged,
    Pause,
    QuitToMenu,
    Resize,
    Restart,
    Resume,
    SpawnTick,
    Submit,
    Tick,
)
from typefall.score_store import load_high_score
from typefall.session import GameSession, SessionRegistry
from typefall.websocket_hub import hub

router = APIRouter()


def _require_session(registry: SessionRegistry, session_id: UUID) -> GameSession:
    session = registry.get(session_id)
    if session is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
    return session


def _attach_hub(session: GameSession) -> None:
    sid = str(session.session_id)

    def _push(snap: SessionSnapshot, notices: list[EngineNotice]) -> None:
        payload: dict[str, object] = {"type": "session_updated", **snap.model_dump(mode="json")}
        if notices:
            payload["notices"] = [n.type for n in notices]
        hub.schedule_broadcast(sid, payload)

    session.listeners.append(_push)


def _apply(session: GameSession, event: Event) -> SessionSnapshot:
    result = session.dispatch(event)
    rejected = result.of_type("setting_rejected")
    if rejected:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(rejected[0].payload["reason"]))
    return session.snapshot()


@router.websocket("/ws/session/{session_id}")
async def session_updates_ws(websocket: WebSocket, session_id: UUID) -> None:
    sid = str(session_id)
    await hub.connect(sid, websocket)

    try:
        # Keep the socket open; client can optionally send pings.
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        await hub.disconnect(sid, websocket)
    except Exception:
        await hub.disconnect(sid, websocket)
        raise


@router.get("/healthcheck")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/highscore", response_model=HighScoreResponse)
async def high_score_route(r: redis.Redis = Depends(get_redis)) -> HighScoreResponse:
    return HighScoreResponse(high_score=load_high_score(r=r))


@router.post("/session", response_model=SessionSnapshot, status_code=status.HTTP_201_CREATED)
async def create_session_route(
    payload: SessionCreateRequest,
    registry: SessionRegistry = Depends(get_sessions),
) -> SessionSnapshot:
    try:
        settings = SessionSettings(
            difficulty=payload.difficulty,
            mode=payload.mode,
            duration_s=parse_duration(payload.duration_s),
            timed_miss_penalty_s=payload.timed_miss_penalty_s,
        )
    except InvalidSettingError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e

    session = registry.create(settings=settings, seed=payload.seed)
    _attach_hub(session)
    if payload.start:
        session.dispatch(Restart())
    return session.snapshot()


@router.get("/session", response_model=SessionListResponse)
async def list_sessions_route(registry: SessionRegistry = Depends(get_sessions)) -> SessionListResponse:
    return SessionListResponse(sessions=registry.ids())


@router.get("/session/{session_id}", response_model=SessionSnapshot)
async def get_session_route(session_id: UUID, registry: SessionRegistry = Depends(get_sessions)) -> SessionSnapshot:
    return _require_session(registry, session_id).snapshot()


@router.delete("/session/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session_route(session_id: UUID, registry: SessionRegistry = Depends(get_sessions)) -> None:
    if not registry.remove(session_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")


@router.post("/session/{session_id}/input", response_model=SessionSnapshot)
async def input_route(
    session_id: UUID,
    payload: InputRequest,
    registry: SessionRegistry = Depends(get_sessions),
) -> SessionSnapshot:
    return _apply(_require_session(registry, session_id), InputChanged(text=payload.text))


@router.post("/session/{session_id}/submit", response_model=SessionSnapshot)
async def submit_route(session_id: UUID, registry: SessionRegistry = Depends(get_sessions)) -> SessionSnapshot:
    return _apply(_require_session(registry, session_id), Submit())


@router.post("/session/{session_id}/pause", response_model=SessionSnapshot)
async def pause_route(session_id: UUID, registry: SessionRegistry = Depends(get_sessions)) -> SessionSnapshot:
    return _apply(_require_session(registry, session_id), Pause())


@router.post("/session/{session_id}/resume", response_model=SessionSnapshot)
async def resume_route(session_id: UUID, registry: SessionRegistry = Depends(get_sessions)) -> SessionSnapshot:
    return _apply(_require_session(registry, session_id), Resume())


@router.post("/session/{session_id}/menu", response_model=SessionSnapshot)
async def menu_route(session_id: UUID, registry: SessionRegistry = Depends(get_sessions)) -> SessionSnapshot:
    return _apply(_require_session(registry, session_id), QuitToMenu())


@router.post("/session/{session_id}/restart", response_model=SessionSnapshot)
async def restart_route(
    session_id: UUID,
    payload: RestartRequest,
    registry: SessionRegistry = Depends(get_sessions),
) -> SessionSnapshot:
    event = Restart(difficulty=payload.difficulty, duration_s=payload.duration_s, mode=payload.mode)
    return _apply(_require_session(registry, session_id), event)


@router.post("/session/{session_id}/difficulty", response_model=SessionSnapshot)
async def difficulty_route(
    session_id: UUID,
    payload: DifficultyRequest,
    registry: SessionRegistry = Depends(get_sessions),
) -> SessionSnapshot:
    return _apply(_require_session(registry, session_id), DifficultyChanged(difficulty=payload.difficulty))


@router.post("/session/{session_id}/duration", response_model=SessionSnapshot)
async def duration_route(
    session_id: UUID,
    payload: DurationRequest,
    registry: SessionRegistry = Depends(get_sessions),
) -> SessionSnapshot:
    return _apply(_require_session(registry, session_id), DurationChanged(duration_s=payload.duration_s))


@router.post("/session/{session_id}/mode", response_model=SessionSnapshot)
async def mode_route(
    session_id: UUID,
    payload: ModeRequest,
    registry: SessionRegistry = Depends(get_sessions),
) -> SessionSnapshot:
    return _apply(_require_session(registry, session_id), ModeChanged(mode=payload.mode))


@router.post("/session/{session_id}/geometry", response_model=SessionSnapshot)
async def geometry_route(
    session_id: UUID,
    payload: GeometryRequest,
    registry: SessionRegistry = Depends(get_sessions),
) -> SessionSnapshot:
    return _apply(_require_session(registry, session_id), Resize(width=payload.width, height=payload.height))


@router.post("/session/{session_id}/advance", response_model=SessionSnapshot)
async def advance_route(
    session_id: UUID,
    payload: AdvanceRequest,
    registry: SessionRegistry = Depends(get_sessions),
) -> SessionSnapshot:
    """Dev endpoint: drive the clock by hand.

    Intended for sessions created without realtime timers (tests, bots, replays).
    """

    session = _require_session(registry, session_id)
    if session.realtime:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Session runs on realtime timers")

    for _ in range(payload.steps):
        if not session.running:
            break
        session.dispatch(Tick(elapsed_ms=payload.elapsed_ms))
        session.dispatch(SpawnTick(elapsed_ms=payload.elapsed_ms))
        session.dispatch(CountdownTick(elapsed_ms=payload.elapsed_ms))
    return session.snapshot()
