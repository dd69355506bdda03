from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from typefall.api.models import Word


# Word speeds are expressed in pixels per frame at 60 Hz.
FRAME_MS = 1000.0 / 60.0


@dataclass(frozen=True, slots=True)
class FallResult:
    kept: list[Word]
    crossed: list[Word]


def advance(*, words: Iterable[Word], elapsed_ms: float, play_height: float) -> FallResult:
    """Move every word down by `speed * elapsed_ms / FRAME_MS` and split off boundary crossers.

    Returns new Word objects; the inputs are left untouched. The simulator only
    reports crossings, it never applies lives or score.
    """

    factor = max(elapsed_ms, 0.0) / FRAME_MS
    kept: list[Word] = []
    crossed: list[Word] = []

    for w in words:
        moved = w.model_copy(update={"y": w.y + w.speed * factor})
        if play_height > 0 and moved.y >= play_height:
            crossed.append(moved)
        else:
            kept.append(moved)

    return FallResult(kept=kept, crossed=crossed)
