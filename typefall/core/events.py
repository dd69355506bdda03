from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Literal

if TYPE_CHECKING:
    from typefall.api.models import SessionState


NoticeType = Literal[
    "phase_changed",
    "word_spawned",
    "word_matched",
    "word_crossed",
    "submit_missed",
    "level_up",
    "game_over",
    "high_score",
    "setting_rejected",
]


@dataclass(frozen=True, slots=True)
class EngineNotice:
    """Something the engine wants the outside world to know about (sound, persistence, logs)."""

    type: NoticeType
    payload: dict[str, Any]
    ts: datetime

    @staticmethod
    def now(*, type: NoticeType, payload: dict[str, Any] | None = None) -> "EngineNotice":
        return EngineNotice(type=type, payload=payload or {}, ts=datetime.now(timezone.utc))


# Inputs to the reducer.


@dataclass(frozen=True, slots=True)
class Tick:
    """Fall-advance tick; `elapsed_ms` since the previous fall tick."""

    elapsed_ms: float


@dataclass(frozen=True, slots=True)
class SpawnTick:
    elapsed_ms: float


@dataclass(frozen=True, slots=True)
class CountdownTick:
    elapsed_ms: float = 1000.0


@dataclass(frozen=True, slots=True)
class InputChanged:
    text: str


@dataclass(frozen=True, slots=True)
class Submit:
    # Optional: submit this text instead of the buffered input.
    text: str | None = None


@dataclass(frozen=True, slots=True)
class Pause:
    pass


@dataclass(frozen=True, slots=True)
class Resume:
    pass


@dataclass(frozen=True, slots=True)
class Restart:
    difficulty: str | None = None
    duration_s: int | None = None
    mode: str | None = None


@dataclass(frozen=True, slots=True)
class DifficultyChanged:
    difficulty: str


@dataclass(frozen=True, slots=True)
class DurationChanged:
    duration_s: int


@dataclass(frozen=True, slots=True)
class ModeChanged:
    mode: str


@dataclass(frozen=True, slots=True)
class Resize:
    width: float
    height: float


@dataclass(frozen=True, slots=True)
class QuitToMenu:
    pass


Event = (
    Tick
    | SpawnTick
    | CountdownTick
    | InputChanged
    | Submit
    | Pause
    | Resume
    | Restart
    | DifficultyChanged
    | DurationChanged
    | ModeChanged
    | Resize
    | QuitToMenu
)


@dataclass(slots=True)
class StepResult:
    state: SessionState
    notices: list[EngineNotice] = field(default_factory=list)

    def of_type(self, type: NoticeType) -> list[EngineNotice]:
        return [n for n in self.notices if n.type == type]
