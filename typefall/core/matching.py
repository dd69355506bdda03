from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal

from typefall.api.models import Word


OutcomeKind = Literal["ignored", "hit", "miss"]


@dataclass(frozen=True, slots=True)
class MatchOutcome:
    """Result of resolving one submission.

    - `ignored`: empty input, nothing happens.
    - `hit`: `word` is the matched entry and should be removed.
    - `miss`: no eligible word; `word` is set if the text matched a word already past the boundary.
    """

    kind: OutcomeKind
    text: str
    word: Word | None = None


def normalize(raw: str) -> str:
    return raw.strip().lower()


def highlight_candidate(words: Sequence[Word], text: str) -> Word | None:
    prefix = normalize(text)
    if not prefix:
        return None
    return next((w for w in words if w.text.startswith(prefix)), None)


def resolve_submit(words: Sequence[Word], text: str, *, play_height: float) -> MatchOutcome:
    typed = normalize(text)
    if not typed:
        return MatchOutcome(kind="ignored", text=typed)

    matches = [w for w in words if w.text == typed]
    if not matches:
        return MatchOutcome(kind="miss", text=typed)

    # Duplicates resolve to the earliest spawned word.
    target = min(matches, key=lambda w: w.id)
    if play_height > 0 and target.y >= play_height:
        return MatchOutcome(kind="miss", text=typed, word=target)
    return MatchOutcome(kind="hit", text=typed, word=target)
