"""Play-session endpoints: start, read, choose, replay, reward."""

import logging

from fastapi import APIRouter, Depends, HTTPException

from story_episode.config import Settings
from story_episode.errors import (
    EpisodeNotCompleted,
    InvalidChoice,
    SceneGraphError,
    SceneNotFound,
)
from story_episode.models import Reward
from story_episode.session import EpisodeSession
from story_episode.storage import Storage

from .deps import (
    SessionRegistry,
    get_registry,
    get_settings,
    get_storage,
    load_episode,
    load_session,
)
from .models import ChoiceBody, SessionView, StartSession
from .views import session_view

logger = logging.getLogger(__name__)

router = APIRouter()


def _view(session_id: str, session: EpisodeSession, locale: str | None) -> SessionView:
    return session_view(session_id, session.episode.id, session.state,
                        session.current_scene, session.settings, locale)


def _broken_content(episode_id: str, e: Exception) -> HTTPException:
    logger.error("episode %s has broken scene content: %s", episode_id, e)
    return HTTPException(500, "Episode content is broken")


@router.post("/episodes/{episode_id}/sessions")
async def start_session(
    episode_id: str,
    body: StartSession | None = None,
    locale: str | None = None,
    storage: Storage = Depends(get_storage),
    settings: Settings = Depends(get_settings),
    registry: SessionRegistry = Depends(get_registry),
) -> SessionView:
    """Start a new play session at the episode's entry scene."""
    episode = load_episode(storage, episode_id)
    affinity = body.affinity if body else 0
    try:
        session = EpisodeSession(episode, settings, affinity=affinity)
    except SceneGraphError as e:
        raise _broken_content(episode_id, e) from e
    session_id = registry.create(session)
    logger.info("session %s started for episode %s", session_id, episode_id)
    return _view(session_id, session, locale)


@router.get("/sessions/{session_id}")
async def get_session(
    session_id: str,
    locale: str | None = None,
    registry: SessionRegistry = Depends(get_registry),
) -> SessionView:
    """Current state and scene of a session."""
    return _view(session_id, load_session(registry, session_id), locale)


@router.post("/sessions/{session_id}/choices")
async def make_choice(
    session_id: str,
    body: ChoiceBody,
    locale: str | None = None,
    registry: SessionRegistry = Depends(get_registry),
) -> SessionView:
    """Apply one of the current scene's choices."""
    session = load_session(registry, session_id)
    try:
        session.choose(body.choice_id, highlight=body.highlight)
    except InvalidChoice as e:
        raise HTTPException(409, str(e)) from e
    except SceneNotFound as e:
        raise _broken_content(session.episode.id, e) from e
    return _view(session_id, session, locale)


@router.post("/sessions/{session_id}/replay")
async def replay_session(
    session_id: str,
    locale: str | None = None,
    registry: SessionRegistry = Depends(get_registry),
) -> SessionView:
    """Restart the session from the entry scene."""
    session = load_session(registry, session_id)
    session.replay()
    return _view(session_id, session, locale)


@router.post("/sessions/{session_id}/reward")
async def claim_reward(
    session_id: str,
    registry: SessionRegistry = Depends(get_registry),
    storage: Storage = Depends(get_storage),
) -> Reward:
    """Resolve the finished run's photocard and store it.

    Claiming twice returns the same record without storing it again.
    """
    session = load_session(registry, session_id)
    already_claimed = session.has_reward
    try:
        reward = session.reward()
    except EpisodeNotCompleted as e:
        raise HTTPException(409, str(e)) from e
    if not already_claimed:
        storage.append_reward(reward)
    return reward


@router.delete("/sessions/{session_id}")
async def end_session(
    session_id: str,
    registry: SessionRegistry = Depends(get_registry),
) -> dict:
    """Discard a session."""
    if not registry.discard(session_id):
        raise HTTPException(404, "Session not found")
    return {"ok": True}
