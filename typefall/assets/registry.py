from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path

from typefall.core.words import DEFAULT_WORDS


_WORD_RE = re.compile(r"^[a-z]+$")


class WordListLoadError(RuntimeError):
    pass


@dataclass(frozen=True, slots=True)
class GameAssets:
    words: tuple[str, ...]
    source: str


def _strict_assets_enabled() -> bool:
    return os.environ.get("TYPEFALL_STRICT_ASSETS", "").strip() in {"1", "true", "yes"}


def words_file_for(root: Path) -> Path:
    override = os.environ.get("TYPEFALL_WORDS_FILE")
    if override:
        return Path(override)
    return root / "assets" / "words.txt"


def load_word_list(path: Path) -> tuple[str, ...]:
    """Read a word list: one word per line, `#` comments and blank lines ignored.

    Words are lowercased and de-duplicated while keeping file order.
    """

    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise WordListLoadError(f"Word list not found: {path}") from e

    seen: set[str] = set()
    words: list[str] = []
    for lineno, line in enumerate(raw.splitlines(), start=1):
        text = line.split("#", 1)[0].strip().lower()
        if not text:
            continue
        if not _WORD_RE.match(text):
            raise WordListLoadError(f"{path}:{lineno}: invalid word {text!r}")
        if text in seen:
            continue
        seen.add(text)
        words.append(text)

    if not words:
        raise WordListLoadError(f"Word list is empty: {path}")
    return tuple(words)


def load_game_assets(*, root: Path) -> GameAssets:
    path = words_file_for(root)
    if path.exists() or _strict_assets_enabled():
        return GameAssets(words=load_word_list(path), source=str(path))
    return GameAssets(words=DEFAULT_WORDS, source="builtin")


_LOADED: GameAssets | None = None


def init_assets(*, project_root: Path | None = None) -> GameAssets:
    """Load the dictionary on first call; later calls reuse it.

    `project_root` defaults to the checkout containing this package
    (typefall/assets/registry.py -> two parents up).
    """

    global _LOADED
    if _LOADED is None:
        root = project_root if project_root is not None else Path(__file__).resolve().parents[2]
        _LOADED = load_game_assets(root=root)
    return _LOADED


def reset_assets_for_tests() -> None:
    global _LOADED
    _LOADED = None


def get_assets() -> GameAssets:
    if _LOADED is None:
        raise RuntimeError("Assets not initialized. Call init_assets() at startup.")
    return _LOADED
