from __future__ import annotations

import logging
import os
import random
import time
from collections.abc import Callable
from uuid import UUID, uuid4

import redis

from typefall.api.models import GameMode, SessionSettings, SessionSnapshot, SessionState
from typefall.assets.registry import get_assets
from typefall.core.difficulty import spawn_interval_ms
from typefall.core.engine import COUNTDOWN_STEP_MS, new_session_state, step
from typefall.core.events import CountdownTick, EngineNotice, Event, SpawnTick, StepResult, Tick
from typefall.core.words import WordSource
from typefall.fsm import SessionStage, stage_of
from typefall.score_store import load_high_score, save_high_score
from typefall.timers import Clock, PeriodicTimer, TimerSet


logger = logging.getLogger(__name__)

Listener = Callable[[SessionSnapshot, list[EngineNotice]], None]

# Shortest sleep a timer will take; keeps a lagging loop from spinning.
_MIN_DELAY_S = 0.001


def fps_from_env(default: int = 60) -> int:
    raw = os.environ.get("TYPEFALL_FPS")
    if not raw:
        return default
    try:
        fps = int(raw)
    except ValueError:
        logger.warning("TYPEFALL_FPS=%r is not an integer; using %s", raw, default)
        return default
    return min(max(fps, 1), 240)


class GameSession:
    """Owns one session's authoritative state and its real-time timers.

    All mutation goes through `dispatch`, which runs the pure reducer and then
    reconciles side effects: timers follow the playing/paused stage, a new high
    score is persisted, and listeners receive a fresh snapshot.
    """

    def __init__(
        self,
        *,
        session_id: UUID | None = None,
        state: SessionState | None = None,
        source: WordSource,
        r: redis.Redis | None = None,
        fps: int = 60,
        clock: Clock = time.monotonic,
        realtime: bool = True,
    ) -> None:
        self.session_id = session_id or uuid4()
        self.state = state or new_session_state()
        self.source = source
        self.r = r
        self.fps = fps
        self.clock = clock
        # realtime=False: no timers, the caller feeds Tick/SpawnTick/CountdownTick itself.
        self.realtime = realtime
        self.timers = TimerSet()
        self.listeners: list[Listener] = []
        self.last_active = clock()
        self._closed = False

    @property
    def running(self) -> bool:
        return stage_of(self.state) == SessionStage.playing

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot.of(self.state, session_id=self.session_id)

    def dispatch(self, event: Event) -> StepResult:
        """Apply `event`, then bring timers, listeners and the high score store in line.

        Redis errors from persisting a high score propagate, but only after the
        timers and listeners already reflect the new state.
        """

        if self._closed:
            raise ValueError("Session is closed")

        result = step(self.state, event, source=self.source)
        self.state = result.state
        self.last_active = self.clock()

        self._reconcile_timers(result)

        snap = self.snapshot()
        for listener in list(self.listeners):
            listener(snap, result.notices)

        self._apply_notices(result.notices)
        return result

    def close(self) -> None:
        self.timers.release()
        self.listeners.clear()
        self._closed = True

    def _apply_notices(self, notices: list[EngineNotice]) -> None:
        for n in notices:
            if n.type == "phase_changed":
                logger.info("session %s: %s -> %s", self.session_id, n.payload["from"], n.payload["to"])
            elif n.type == "game_over":
                logger.info(
                    "session %s: game over (%s) score=%s level=%s",
                    self.session_id,
                    n.payload["reason"],
                    n.payload["score"],
                    n.payload["level"],
                )
            elif n.type == "high_score" and self.r is not None:
                save_high_score(r=self.r, score=int(n.payload["score"]))
            elif n.type == "setting_rejected":
                logger.info("session %s: rejected setting: %s", self.session_id, n.payload["reason"])

    def _reconcile_timers(self, result: StepResult) -> None:
        stage_changed = bool(result.of_type("phase_changed"))
        if stage_changed and self.timers.active:
            self.timers.release()
        if self.realtime and self.running and not self.timers.active:
            self.timers.acquire(self._build_timers)

    def _build_timers(self, epoch: int) -> list[PeriodicTimer]:
        def fire(make: Callable[[float], Event]) -> Callable[[float], None]:
            def _fire(elapsed_ms: float) -> None:
                # A tick scheduled before the last release must not touch the new state.
                if epoch != self.timers.epoch or not self.running:
                    return
                self.dispatch(make(elapsed_ms))

            return _fire

        timers = [
            PeriodicTimer(
                name=f"fall:{self.session_id}",
                delay=lambda: 1.0 / self.fps,
                fire=fire(Tick),
                clock=self.clock,
            ),
            PeriodicTimer(
                name=f"spawn:{self.session_id}",
                delay=self._spawn_delay,
                fire=fire(SpawnTick),
                clock=self.clock,
            ),
        ]
        if self.state.settings.mode == GameMode.timed:
            timers.append(
                PeriodicTimer(
                    name=f"countdown:{self.session_id}",
                    delay=self._countdown_delay,
                    fire=fire(CountdownTick),
                    clock=self.clock,
                )
            )
        return timers

    def _spawn_delay(self) -> float:
        interval = spawn_interval_ms(self.state.settings.difficulty, self.state.level)
        return max(interval - self.state.ms_since_spawn, _MIN_DELAY_S * 1000.0) / 1000.0

    def _countdown_delay(self) -> float:
        return max(COUNTDOWN_STEP_MS - self.state.ms_since_countdown, _MIN_DELAY_S * 1000.0) / 1000.0


def idle_ttl_from_env(default: float = 900.0) -> float:
    raw = os.environ.get("TYPEFALL_SESSION_IDLE_TTL_S")
    if not raw:
        return default
    try:
        return max(float(raw), 0.0)
    except ValueError:
        logger.warning("TYPEFALL_SESSION_IDLE_TTL_S=%r is not a number; using %s", raw, default)
        return default


class SessionRegistry:
    """In-process sessions keyed by id. Sessions hold live asyncio timers, so they are not stored in Redis.

    `r` is the process-wide Redis client every session persists high scores
    through; its lifetime is the registry's, not a request's. Sessions that are
    not playing and have been idle for `idle_ttl_s` are evicted on the next `create`.
    """

    def __init__(
        self,
        *,
        realtime: bool = True,
        r: redis.Redis | None = None,
        idle_ttl_s: float | None = None,
        clock: Clock = time.monotonic,
    ) -> None:
        self._sessions: dict[UUID, GameSession] = {}
        self.realtime = realtime
        self.r = r
        self.idle_ttl_s = idle_ttl_from_env() if idle_ttl_s is None else idle_ttl_s
        self.clock = clock

    def __len__(self) -> int:
        return len(self._sessions)

    def ids(self) -> list[UUID]:
        return list(self._sessions.keys())

    def create(
        self,
        *,
        settings: SessionSettings,
        seed: int | None = None,
        realtime: bool | None = None,
    ) -> GameSession:
        self.evict_idle()

        if seed is None:
            seed = random.SystemRandom().randint(1, 2**31 - 1)
        source = WordSource(get_assets().words, rng=random.Random(seed))

        high_score = load_high_score(r=self.r) if self.r is not None else 0
        state = new_session_state(settings=settings, high_score=high_score)
        session = GameSession(
            state=state,
            source=source,
            r=self.r,
            fps=fps_from_env(),
            clock=self.clock,
            realtime=self.realtime if realtime is None else realtime,
        )
        self._sessions[session.session_id] = session
        logger.info("session %s created seed=%s settings=%s", session.session_id, seed, settings.model_dump())

        return session

    def get(self, session_id: UUID) -> GameSession | None:
        return self._sessions.get(session_id)

    def remove(self, session_id: UUID) -> bool:
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.close()
        return True

    def evict_idle(self, *, now: float | None = None) -> list[UUID]:
        """Drop sessions outside `playing` whose last dispatch is older than `idle_ttl_s`."""

        now = self.clock() if now is None else now
        stale = [
            sid
            for sid, session in self._sessions.items()
            if not session.running and now - session.last_active > self.idle_ttl_s
        ]
        for sid in stale:
            self.remove(sid)
            logger.info("session %s evicted after %.0fs idle", sid, self.idle_ttl_s)
        return stale

    def close_all(self) -> None:
        for sid in list(self._sessions):
            self.remove(sid)


sessions = SessionRegistry()
