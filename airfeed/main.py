"""
Main entry point for FastAPI application.
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI

from airfeed.routes import podcast_episodes
from airfeed.services.podcast_service import ensure_station_podcast
from airfeed.services.station_context import get_station_context
from airfeed.utils.db_async import (
    DATABASE_URL,
    SessionLocal,
    describe_database_url,
    dispose_engine,
    init_db,
)

from airfeed.logging_config import setup_logging
from airfeed.config import settings

import logging
logger = logging.getLogger(__name__)

setup_logging(level=settings.log_level, access_log=settings.access_log, debug=settings.debug)

@asynccontextmanager
async def lifespan(app: FastAPI):
    should_init_db = settings.is_dev and settings.auto_init_db

    if should_init_db:
        logger.info("Running init_db()…")
        logger.info(f"DB target: {describe_database_url(DATABASE_URL)}")
        try:
            await init_db()
            async with SessionLocal() as db:
                await ensure_station_podcast(
                    db, get_station_context(), title=settings.station_podcast_title
                )
            logger.info("DB ready.")
        except Exception:
            logger.exception("init_db failed")
            raise
    else:
        logger.info("Skipping init_db(); auto_init_db disabled or non-dev environment")

    yield

    try:
        logger.info("Disposing DB engine…")
        await dispose_engine()
        logger.info("DB engine disposed.")
    except Exception:
        logger.exception("Failed to dispose DB engine")

app = FastAPI(title = "Airfeed", lifespan=lifespan)
app.include_router(podcast_episodes.router)

@app.get("/health")
async def health_check():
    """Health Check Endpoint"""
    return {"status": "ok"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8080)
