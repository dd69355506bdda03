from __future__ import annotations

from enum import StrEnum
from uuid import UUID

from pydantic import BaseModel, Field


DURATION_CHOICES: tuple[int, ...] = (30, 60, 90, 120)


class Difficulty(StrEnum):
    easy = "easy"
    medium = "medium"
    hard = "hard"


class GameMode(StrEnum):
    lives = "lives"
    timed = "timed"


class GamePhase(StrEnum):
    menu = "menu"
    playing = "playing"
    game_over = "game_over"


class Word(BaseModel):
    id: int
    text: str = Field(..., min_length=1)
    x: float
    y: float
    # Pixels per 60 Hz frame; fixed when the word spawns.
    speed: float


class SessionSettings(BaseModel):
    difficulty: Difficulty = Difficulty.medium
    mode: GameMode = GameMode.lives
    duration_s: int = 60

    points_per_word: int = Field(10, ge=1)
    words_per_level: int = Field(10, ge=1)
    initial_lives: int = Field(5, ge=1)

    # Timed mode only: seconds taken off the clock for a wrong submission.
    timed_miss_penalty_s: int = Field(0, ge=0)


class SessionState(BaseModel):
    phase: GamePhase = GamePhase.menu
    paused: bool = False

    score: int = Field(0, ge=0)
    level: int = Field(1, ge=1)

    # Exactly one of these is meaningful, depending on settings.mode.
    lives: int | None = None
    time_remaining_s: int | None = None

    settings: SessionSettings = Field(default_factory=SessionSettings)

    # Insertion order == spawn order.
    active_words: list[Word] = Field(default_factory=list)
    input_buffer: str = ""
    highlighted_word_id: int | None = None

    high_score: int = Field(0, ge=0)
    next_word_id: int = 0

    # Latest play-area geometry reported by the UI; 0 means unknown.
    play_width: float = 0.0
    play_height: float = 0.0

    ms_since_spawn: float = 0.0
    ms_since_countdown: float = 0.0

    words_typed: int = 0
    words_missed: int = 0


class WordView(BaseModel):
    id: int
    text: str
    x: float
    y: float


class SessionSnapshot(BaseModel):
    """Read-only view handed to the render layer."""

    session_id: UUID | None = None
    phase: GamePhase
    paused: bool
    score: int
    level: int
    lives: int | None
    time_remaining_s: int | None
    difficulty: Difficulty
    mode: GameMode
    duration_s: int
    words: list[WordView]
    highlighted_word_id: int | None
    highlighted_text: str | None
    input: str
    high_score: int
    words_typed: int
    words_missed: int

    @staticmethod
    def of(state: SessionState, *, session_id: UUID | None = None) -> "SessionSnapshot":
        highlighted = next((w for w in state.active_words if w.id == state.highlighted_word_id), None)
        return SessionSnapshot(
            session_id=session_id,
            phase=state.phase,
            paused=state.paused,
            score=state.score,
            level=state.level,
            lives=state.lives,
            time_remaining_s=state.time_remaining_s,
            difficulty=state.settings.difficulty,
            mode=state.settings.mode,
            duration_s=state.settings.duration_s,
            words=[WordView(id=w.id, text=w.text, x=w.x, y=w.y) for w in state.active_words],
            highlighted_word_id=highlighted.id if highlighted else None,
            highlighted_text=highlighted.text if highlighted else None,
            input=state.input_buffer,
            high_score=state.high_score,
            words_typed=state.words_typed,
            words_missed=state.words_missed,
        )


class SessionCreateRequest(BaseModel):
    difficulty: Difficulty = Difficulty.medium
    mode: GameMode = GameMode.lives
    duration_s: int = 60
    timed_miss_penalty_s: int = Field(0, ge=0, le=60)
    # For reproducible runs (tests, replays).
    seed: int | None = None
    # Start straight into `playing` instead of the menu.
    start: bool = False


class InputRequest(BaseModel):
    text: str = Field("", max_length=200)


class RestartRequest(BaseModel):
    difficulty: str | None = None
    duration_s: int | None = None
    mode: str | None = None


class DifficultyRequest(BaseModel):
    difficulty: str


class DurationRequest(BaseModel):
    duration_s: int


class ModeRequest(BaseModel):
    mode: str


class GeometryRequest(BaseModel):
    width: float = Field(..., ge=0)
    height: float = Field(..., ge=0)


class SessionListResponse(BaseModel):
    sessions: list[UUID]


class HighScoreResponse(BaseModel):
    high_score: int


class AdvanceRequest(BaseModel):
    """Manual clock for headless clients and tests: each step feeds fall, spawn and countdown ticks."""

    elapsed_ms: float = Field(1000.0 / 60.0, gt=0, le=10_000)
    steps: int = Field(1, ge=1, le=10_000)
