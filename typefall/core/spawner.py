from __future__ import annotations

from typefall.api.models import SessionState, Word
from typefall.core.difficulty import spawn_interval_ms, word_speed
from typefall.core.words import WordSource


# Rough per-character width; only used to keep new words inside the play area.
CHAR_WIDTH_PX = 12
# Words enter slightly above the visible area.
SPAWN_Y = -20.0


def estimated_width(text: str) -> float:
    return float(len(text) * CHAR_WIDTH_PX)


def spawn_word(*, state: SessionState, source: WordSource) -> Word | None:
    """Create one word at the current level's speed, or None without usable geometry.

    Does not add the word to the state.
    """

    if state.play_width <= 0 or state.play_height <= 0:
        return None

    text = source.pick()
    span = state.play_width - estimated_width(text)
    x = source.uniform(0.0, span) if span > 0 else 0.0

    return Word(
        id=state.next_word_id,
        text=text,
        x=x,
        y=SPAWN_Y,
        speed=word_speed(state.settings.difficulty, state.level),
    )


def maybe_spawn(*, state: SessionState, elapsed_ms: float, source: WordSource) -> Word | None:
    """Advance the spawn schedule and spawn when the interval has elapsed.

    Mutates `state` (schedule, id counter, active words). At most one word per call.
    """

    state.ms_since_spawn += max(elapsed_ms, 0.0)
    if state.ms_since_spawn < spawn_interval_ms(state.settings.difficulty, state.level):
        return None

    # The cycle is consumed even when geometry is missing.
    state.ms_since_spawn = 0.0
    word = spawn_word(state=state, source=source)
    if word is None:
        return None

    state.next_word_id += 1
    state.active_words.append(word)
    return word
