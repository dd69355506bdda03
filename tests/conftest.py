from __future__ import annotations

import os
import random
from collections.abc import Generator
from pathlib import Path

import pytest

from typefall.api.models import GamePhase, SessionSettings, SessionState, Word
from typefall.core.words import WordSource


@pytest.fixture(scope="session", autouse=True)
def _init_assets_from_test_fixtures() -> None:
    """Initialize the dictionary from `tests/assets` and forbid the built-in fallback.

    This keeps tests hermetic and independent of the repo's real word list.
    """

    os.environ["TYPEFALL_STRICT_ASSETS"] = "1"
    os.environ.pop("TYPEFALL_WORDS_FILE", None)

    from typefall.assets.registry import init_assets, reset_assets_for_tests

    reset_assets_for_tests()
    init_assets(project_root=Path(__file__).resolve().parent)


@pytest.fixture()
def source() -> WordSource:
    return WordSource(["cat"], rng=random.Random(1234))


def _make_playing_state(*, words: list[Word] | None = None, **overrides: object) -> SessionState:
    """A session already in `playing`, 800x400 play area, lives mode unless overridden."""

    settings = overrides.pop("settings", None) or SessionSettings()
    fields: dict[str, object] = {
        "phase": GamePhase.playing,
        "settings": settings,
        "lives": settings.initial_lives,
        "play_width": 800.0,
        "play_height": 400.0,
        "active_words": words or [],
        "next_word_id": max((w.id for w in words or []), default=-1) + 1,
    }
    fields.update(overrides)
    return SessionState.model_validate(fields)


@pytest.fixture()
def playing_state():
    return _make_playing_state


@pytest.fixture()
def client_and_redis():
    """FastAPI TestClient wired to fakeredis and a session registry without realtime timers.

    Tests drive the clock through the `/advance` endpoint.
    """

    import fakeredis
    from fastapi.testclient import TestClient

    from typefall.api.deps import get_redis, get_sessions
    from typefall.main import app
    from typefall.session import SessionRegistry

    r = fakeredis.FakeRedis(decode_responses=True)
    registry = SessionRegistry(realtime=False, r=r)

    def _override_redis() -> Generator[fakeredis.FakeRedis, None, None]:
        yield r

    app.dependency_overrides[get_redis] = _override_redis
    app.dependency_overrides[get_sessions] = lambda: registry
    with TestClient(app) as c:
        yield c, r
    registry.close_all()
    app.dependency_overrides.clear()
