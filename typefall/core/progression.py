from __future__ import annotations

from typefall.api.models import SessionSettings


def points_per_level(settings: SessionSettings) -> int:
    return settings.words_per_level * settings.points_per_word


def level_for_score(score: int, settings: SessionSettings) -> int:
    return 1 + max(score, 0) // points_per_level(settings)


def next_level(*, current: int, score: int, settings: SessionSettings) -> int:
    # Level never goes down, even if settings change under a running score.
    return max(current, level_for_score(score, settings))
