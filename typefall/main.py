import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI

from typefall.api.routes import router
from typefall.assets.registry import init_assets
from typefall.infra.redis_client import create_redis
from typefall.session import sessions


def configure_logging() -> None:
    level = os.environ.get("TYPEFALL_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(level=getattr(logging, level, logging.INFO))


configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    assets = init_assets()
    logger.info("loaded %s words from %s", len(assets.words), assets.source)
    r = create_redis()
    sessions.r = r
    try:
        yield
    finally:
        # No timer may outlive the event loop it was created on.
        sessions.close_all()
        sessions.r = None
        r.close()


app = FastAPI(title="typefall", version="0.1.0", lifespan=lifespan)
app.include_router(router)


@app.get("/info")
async def info() -> dict[str, str]:
    return {"name": "typefall", "version": "0.1.0"}
