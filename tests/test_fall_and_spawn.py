from __future__ import annotations

import random

import pytest

from typefall.api.models import Difficulty, SessionSettings, Word
from typefall.core.difficulty import word_speed
from typefall.core.engine import step
from typefall.core.events import SpawnTick, Tick
from typefall.core.fall import FRAME_MS, advance
from typefall.core.spawner import CHAR_WIDTH_PX, SPAWN_Y, maybe_spawn
from typefall.core.words import WordSource


def test_word_crosses_bottom_and_costs_a_life(playing_state, source) -> None:
    state = playing_state(
        settings=SessionSettings(difficulty=Difficulty.medium, initial_lives=5),
        words=[Word(id=0, text="cat", x=10, y=0, speed=2.5)],
    )

    crossed_at = None
    for i in range(200):
        res = step(state, Tick(elapsed_ms=FRAME_MS), source=source)
        state = res.state
        if res.of_type("word_crossed") and crossed_at is None:
            crossed_at = i + 1

    assert crossed_at == 160
    assert state.lives == 4
    assert state.active_words == []
    assert state.words_missed == 1
    assert state.phase == "playing"


def test_fall_is_framerate_independent() -> None:
    w = Word(id=0, text="cat", x=0, y=0, speed=3.0)

    one_big = advance(words=[w], elapsed_ms=FRAME_MS * 10, play_height=1000).kept[0]

    small = [w]
    for _ in range(10):
        small = advance(words=small, elapsed_ms=FRAME_MS, play_height=1000).kept

    assert one_big.y == pytest.approx(small[0].y)
    assert w.y == 0  # inputs are not mutated


def test_y_never_decreases_over_a_seeded_run(playing_state) -> None:
    src = WordSource(["cat", "tiger", "umbrella"], rng=random.Random(7))
    state = playing_state(play_height=5000)
    last_y: dict[int, float] = {}

    for _ in range(300):
        state = step(state, SpawnTick(elapsed_ms=FRAME_MS * 8), source=src).state
        state = step(state, Tick(elapsed_ms=FRAME_MS), source=src).state
        for w in state.active_words:
            if w.id in last_y:
                assert w.y > last_y[w.id]
            last_y[w.id] = w.y

    assert len(last_y) > 5


def test_spawn_speed_is_fixed_at_spawn_time(playing_state, source) -> None:
    state = playing_state(level=3, score=200)
    state.ms_since_spawn = 10_000
    word = maybe_spawn(state=state, elapsed_ms=0, source=source)
    assert word is not None
    assert word.speed == word_speed(Difficulty.medium, 3)
    assert word.y == SPAWN_Y
    assert state.ms_since_spawn == 0

    state.level = 7
    state = step(state, Tick(elapsed_ms=FRAME_MS), source=source).state
    assert state.active_words[0].speed == word_speed(Difficulty.medium, 3)


def test_spawn_waits_for_interval(playing_state, source) -> None:
    state = playing_state()
    assert maybe_spawn(state=state, elapsed_ms=1999, source=source) is None
    assert state.active_words == []

    word = maybe_spawn(state=state, elapsed_ms=1, source=source)
    assert word is not None
    assert [w.id for w in state.active_words] == [0]
    assert state.next_word_id == 1


def test_spawn_skips_cycle_without_geometry(playing_state, source) -> None:
    state = playing_state(play_width=0, play_height=0)
    assert maybe_spawn(state=state, elapsed_ms=5000, source=source) is None
    assert state.active_words == []
    assert state.ms_since_spawn == 0
    assert state.next_word_id == 0


def test_spawn_x_clamped_for_narrow_play_area(playing_state) -> None:
    src = WordSource(["umbrella"], rng=random.Random(3))
    state = playing_state(play_width=len("umbrella") * CHAR_WIDTH_PX - 1)
    word = maybe_spawn(state=state, elapsed_ms=5000, source=src)
    assert word is not None
    assert word.x == 0


def test_spawn_x_keeps_word_inside_area(playing_state) -> None:
    src = WordSource(["tiger"], rng=random.Random(11))
    state = playing_state(play_width=300)
    for _ in range(50):
        word = maybe_spawn(state=state, elapsed_ms=5000, source=src)
        assert word is not None
        assert 0 <= word.x <= 300 - 5 * CHAR_WIDTH_PX


def test_simultaneous_crossings_clamp_lives_at_zero(playing_state, source) -> None:
    words = [Word(id=i, text="cat", x=0, y=399, speed=5) for i in range(4)]
    state = playing_state(words=words, lives=2)

    res = step(state, Tick(elapsed_ms=FRAME_MS), source=source)
    assert res.state.lives == 0
    assert res.state.phase == "game_over"
    assert len(res.of_type("word_crossed")) == 4
    assert len(res.of_type("game_over")) == 1


def test_no_crossings_without_known_height(playing_state, source) -> None:
    state = playing_state(words=[Word(id=0, text="cat", x=0, y=5000, speed=5)], play_height=0)
    res = step(state, Tick(elapsed_ms=FRAME_MS), source=source)
    assert res.state.active_words[0].y == 5005
    assert res.state.lives == 5
