from __future__ import annotations

import logging

import redis


logger = logging.getLogger(__name__)

HIGH_SCORE_KEY = "typefall:high_score"


def load_high_score(*, r: redis.Redis) -> int:
    """Stored high score, or 0 when nothing (or garbage) is stored."""

    raw = r.get(HIGH_SCORE_KEY)
    if not raw:
        return 0
    try:
        return max(int(raw), 0)
    except (TypeError, ValueError):
        logger.warning("ignoring unparsable high score %r", raw)
        return 0


def save_high_score(*, r: redis.Redis, score: int) -> bool:
    """Persist `score` if it beats the stored value. Returns True if written."""

    if score <= load_high_score(r=r):
        return False
    r.set(HIGH_SCORE_KEY, str(int(score)))
    logger.info("new high score %s", score)
    return True
