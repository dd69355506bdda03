from __future__ import annotations

from typefall.api.models import GameMode, SessionSettings, SessionState
from typefall.core.difficulty import InvalidSettingError, parse_difficulty, parse_duration, parse_mode
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
    StepResult,
    Submit,
    Tick,
)
from typefall.core.fall import advance
from typefall.core.matching import highlight_candidate, normalize, resolve_submit
from typefall.core.progression import next_level
from typefall.core.spawner import maybe_spawn
from typefall.core.words import WordSource
from typefall.fsm import SessionFSM, SessionStage, Trigger


COUNTDOWN_STEP_MS = 1000.0


def new_session_state(*, settings: SessionSettings | None = None, high_score: int = 0) -> SessionState:
    """Fresh session sitting in the menu."""

    return SessionState(settings=settings or SessionSettings(), high_score=max(high_score, 0))


def step(state: SessionState, event: Event, *, source: WordSource) -> StepResult:
    """Apply one event and return the next state plus outward notices.

    `state` is never mutated. Ticks, input, and submissions have no effect unless
    the session is playing and not paused.
    """

    s = state.model_copy(deep=True)
    result = StepResult(state=s)
    fsm = SessionFSM(s)

    if isinstance(event, Tick):
        if fsm.is_running:
            _on_fall_tick(s, fsm, result, elapsed_ms=event.elapsed_ms)
    elif isinstance(event, SpawnTick):
        if fsm.is_running:
            word = maybe_spawn(state=s, elapsed_ms=event.elapsed_ms, source=source)
            if word is not None:
                result.notices.append(
                    EngineNotice.now(type="word_spawned", payload={"id": word.id, "text": word.text, "speed": word.speed})
                )
                _refresh_highlight(s)
    elif isinstance(event, CountdownTick):
        if fsm.is_running and s.settings.mode == GameMode.timed:
            _on_countdown(s, fsm, result, elapsed_ms=event.elapsed_ms)
    elif isinstance(event, InputChanged):
        if fsm.is_running:
            s.input_buffer = normalize(event.text)
            _refresh_highlight(s)
    elif isinstance(event, Submit):
        if fsm.is_running:
            _on_submit(s, fsm, result, text=s.input_buffer if event.text is None else event.text)
    elif isinstance(event, Pause):
        # Pausing an already paused session is a no-op.
        if fsm.allowed("pause"):
            _transition(fsm, "pause", result)
    elif isinstance(event, Resume):
        if fsm.allowed("resume"):
            _transition(fsm, "resume", result)
    elif isinstance(event, Restart):
        try:
            settings = _settings_with(
                s.settings, difficulty=event.difficulty, duration_s=event.duration_s, mode=event.mode
            )
        except InvalidSettingError as e:
            return _rejected(state, e)
        _start(s, fsm, result, settings=settings)
    elif isinstance(event, (DifficultyChanged, DurationChanged, ModeChanged)):
        try:
            settings = _settings_with(
                s.settings,
                difficulty=getattr(event, "difficulty", None),
                duration_s=getattr(event, "duration_s", None),
                mode=getattr(event, "mode", None),
            )
        except InvalidSettingError as e:
            return _rejected(state, e)
        if fsm.stage in (SessionStage.playing, SessionStage.paused):
            # Settings never change under a running game: it restarts instead.
            _start(s, fsm, result, settings=settings)
        else:
            s.settings = settings
    elif isinstance(event, Resize):
        s.play_width = max(float(event.width), 0.0)
        s.play_height = max(float(event.height), 0.0)
    elif isinstance(event, QuitToMenu):
        if fsm.allowed("to_menu"):
            _transition(fsm, "to_menu", result)
            s.active_words = []
            s.input_buffer = ""
            s.highlighted_word_id = None
    else:
        raise TypeError(f"Unsupported event: {event!r}")

    return result


def _settings_with(
    current: SessionSettings,
    *,
    difficulty: str | None,
    duration_s: int | None,
    mode: str | None,
) -> SessionSettings:
    update: dict[str, object] = {}
    if difficulty is not None:
        update["difficulty"] = parse_difficulty(difficulty)
    if duration_s is not None:
        update["duration_s"] = parse_duration(duration_s)
    if mode is not None:
        update["mode"] = parse_mode(mode)
    return current.model_copy(update=update)


def _rejected(state: SessionState, error: InvalidSettingError) -> StepResult:
    # Invalid configuration is never applied; hand back an untouched copy.
    return StepResult(
        state=state.model_copy(deep=True),
        notices=[EngineNotice.now(type="setting_rejected", payload={"reason": str(error)})],
    )


def _transition(fsm: SessionFSM, trigger: Trigger, result: StepResult) -> None:
    before = fsm.stage
    after = fsm.apply(trigger)
    result.notices.append(EngineNotice.now(type="phase_changed", payload={"from": before.value, "to": after.value}))


def _start(s: SessionState, fsm: SessionFSM, result: StepResult, *, settings: SessionSettings) -> None:
    _transition(fsm, "start", result)
    s.settings = settings
    s.score = 0
    s.level = 1
    s.active_words = []
    s.input_buffer = ""
    s.highlighted_word_id = None
    s.next_word_id = 0
    s.ms_since_spawn = 0.0
    s.ms_since_countdown = 0.0
    s.words_typed = 0
    s.words_missed = 0
    if settings.mode == GameMode.timed:
        s.lives = None
        s.time_remaining_s = settings.duration_s
    else:
        s.lives = settings.initial_lives
        s.time_remaining_s = None


def _end_game(s: SessionState, fsm: SessionFSM, result: StepResult, *, reason: str) -> None:
    _transition(fsm, "end", result)
    s.input_buffer = ""
    s.highlighted_word_id = None
    result.notices.append(
        EngineNotice.now(type="game_over", payload={"reason": reason, "score": s.score, "level": s.level})
    )
    if s.score > s.high_score:
        previous = s.high_score
        s.high_score = s.score
        result.notices.append(EngineNotice.now(type="high_score", payload={"score": s.score, "previous": previous}))


def _check_end(s: SessionState, fsm: SessionFSM, result: StepResult) -> None:
    if s.settings.mode == GameMode.lives and s.lives is not None and s.lives <= 0:
        _end_game(s, fsm, result, reason="out_of_lives")
    elif s.settings.mode == GameMode.timed and s.time_remaining_s is not None and s.time_remaining_s <= 0:
        _end_game(s, fsm, result, reason="time_up")


def _refresh_highlight(s: SessionState) -> None:
    candidate = highlight_candidate(s.active_words, s.input_buffer)
    s.highlighted_word_id = candidate.id if candidate is not None else None


def _lose_lives(s: SessionState, n: int) -> None:
    if s.lives is not None:
        s.lives = max(0, s.lives - n)


def _on_fall_tick(s: SessionState, fsm: SessionFSM, result: StepResult, *, elapsed_ms: float) -> None:
    fall = advance(words=s.active_words, elapsed_ms=elapsed_ms, play_height=s.play_height)
    s.active_words = fall.kept

    if fall.crossed:
        for w in fall.crossed:
            result.notices.append(EngineNotice.now(type="word_crossed", payload={"id": w.id, "text": w.text}))
        s.words_missed += len(fall.crossed)
        if s.settings.mode == GameMode.lives:
            _lose_lives(s, len(fall.crossed))

    _refresh_highlight(s)
    _check_end(s, fsm, result)


def _on_countdown(s: SessionState, fsm: SessionFSM, result: StepResult, *, elapsed_ms: float) -> None:
    s.ms_since_countdown += max(elapsed_ms, 0.0)
    remaining = s.time_remaining_s or 0
    while s.ms_since_countdown >= COUNTDOWN_STEP_MS and remaining > 0:
        s.ms_since_countdown -= COUNTDOWN_STEP_MS
        remaining -= 1
    s.time_remaining_s = remaining
    _check_end(s, fsm, result)


def _on_submit(s: SessionState, fsm: SessionFSM, result: StepResult, *, text: str) -> None:
    outcome = resolve_submit(s.active_words, text, play_height=s.play_height)
    if outcome.kind == "ignored":
        return

    s.input_buffer = ""

    if outcome.kind == "hit" and outcome.word is not None:
        hit = outcome.word
        s.active_words = [w for w in s.active_words if w.id != hit.id]
        s.score += s.settings.points_per_word
        s.words_typed += 1
        result.notices.append(
            EngineNotice.now(type="word_matched", payload={"id": hit.id, "text": hit.text, "score": s.score})
        )

        old_level = s.level
        s.level = next_level(current=old_level, score=s.score, settings=s.settings)
        for lvl in range(old_level + 1, s.level + 1):
            result.notices.append(EngineNotice.now(type="level_up", payload={"level": lvl}))
        _refresh_highlight(s)
        return

    result.notices.append(
        EngineNotice.now(
            type="submit_missed",
            payload={"text": outcome.text, "late": outcome.word is not None},
        )
    )
    if s.settings.mode == GameMode.lives:
        _lose_lives(s, 1)
    elif s.time_remaining_s is not None and s.settings.timed_miss_penalty_s > 0:
        s.time_remaining_s = max(0, s.time_remaining_s - s.settings.timed_miss_penalty_s)
    _refresh_highlight(s)
    _check_end(s, fsm, result)
