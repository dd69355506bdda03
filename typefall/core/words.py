from __future__ import annotations

import random
from collections.abc import Sequence


# Fallback dictionary, used when no word list file is available.
DEFAULT_WORDS: tuple[str, ...] = (
    "apple", "arrow", "atlas", "badge", "baker", "beach", "berry", "blaze",
    "bloom", "board", "brave", "brick", "cabin", "camel", "candy", "cargo",
    "cat", "chalk", "charm", "cider", "cloud", "coral", "crane", "crisp",
    "dance", "delta", "dog", "dream", "eagle", "earth", "ember", "fable",
    "feast", "fiber", "flame", "flute", "forest", "frost", "galaxy", "garden",
    "ghost", "giant", "glass", "globe", "grape", "gravity", "harbor", "hazel",
    "honey", "island", "ivory", "jelly", "jungle", "kayak", "kernel", "kite",
    "lemon", "light", "lunar", "magnet", "maple", "marble", "meadow", "melon",
    "metal", "mirror", "monkey", "nectar", "needle", "noble", "ocean", "olive",
    "orbit", "panda", "paper", "pearl", "pepper", "piano", "pilot", "planet",
    "plasma", "pocket", "prism", "puzzle", "quartz", "quest", "rabbit", "radar",
    "raven", "river", "rocket", "saddle", "salmon", "shadow", "signal", "silver",
    "sketch", "socket", "solar", "spark", "spice", "spiral", "stone", "storm",
    "sugar", "summit", "syntax", "tiger", "timber", "token", "torch", "tower",
    "travel", "tulip", "tunnel", "type", "umbrella", "velvet", "vector", "violet",
    "voyage", "walnut", "wander", "window", "winter", "wizard", "yellow", "zebra",
)


class WordSource:
    """Uniform random word picker over a fixed, non-empty dictionary.

    Sampling is with replacement: the same text may be on screen twice.
    """

    def __init__(self, words: Sequence[str], *, rng: random.Random | None = None) -> None:
        cleaned = [w.strip().lower() for w in words if w and w.strip()]
        if not cleaned:
            raise ValueError("Word dictionary must not be empty")
        self._words: tuple[str, ...] = tuple(cleaned)
        self.rng = rng if rng is not None else random.Random()

    @property
    def words(self) -> tuple[str, ...]:
        return self._words

    def __len__(self) -> int:
        return len(self._words)

    def pick(self) -> str:
        return self.rng.choice(self._words)

    def uniform(self, low: float, high: float) -> float:
        return self.rng.uniform(low, high)
