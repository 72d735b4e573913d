import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from story_episode.config import Settings, load_settings
from story_episode.llm import HttpLLM
from story_episode.routes import router
from story_episode.routes.deps import SessionRegistry
from story_episode.storage import Storage

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI):
    yield
    llm = app.state.llm
    if isinstance(llm, HttpLLM):
        await llm.aclose()


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or load_settings()

    app = FastAPI(title="Story Episode", lifespan=_lifespan)
    app.state.settings = settings
    app.state.storage = Storage(settings.data_dir)
    app.state.sessions = SessionRegistry(settings.max_sessions)
    app.state.live_sessions = SessionRegistry(settings.max_sessions)
    # Live play stays disabled (503) until a backend URL is configured
    app.state.llm = HttpLLM.from_settings(settings) if settings.llm_url else None
    app.include_router(router, prefix="/api")

    logger.info("story episode api ready data_dir=%s max_turns=%d live=%s",
                settings.data_dir, settings.max_turns, app.state.llm is not None)
    return app
