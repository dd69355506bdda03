from __future__ import annotations

from collections.abc import Generator

import redis

from typefall.infra.redis_client import create_redis
from typefall.session import SessionRegistry, sessions


def get_redis() -> Generator[redis.Redis, None, None]:
    client = create_redis()
    try:
        yield client
    finally:
        client.close()


def get_sessions() -> SessionRegistry:
    return sessions
