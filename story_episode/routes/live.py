"""Live play: an authored episode supplies title and premise, the model writes
each scene as the player advances.

Every endpoint answers 503 when no generation backend is configured.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from story_episode.config import Settings
from story_episode.errors import EpisodeNotCompleted, InvalidChoice
from story_episode.generation import LiveEpisode, SceneParseError
from story_episode.llm import LLM, LLMError
from story_episode.models import Reward
from story_episode.storage import Storage

from .deps import (
    SessionRegistry,
    get_live_registry,
    get_llm,
    get_settings,
    get_storage,
    load_episode,
    load_session,
)
from .models import ChoiceBody, SessionView, StartLive
from .views import session_view

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(get_llm)])


def _view(session_id: str, live: LiveEpisode, locale: str | None) -> SessionView:
    return session_view(session_id, live.episode.id, live.state,
                        live.current_scene, live.settings, locale)


def _generation_failed(episode_id: str, e: Exception) -> HTTPException:
    logger.warning("live generation failed for episode %s: %s", episode_id, e)
    return HTTPException(502, f"Scene generation failed: {e}")


@router.post("/episodes/{episode_id}/live")
async def start_live(
    episode_id: str,
    body: StartLive,
    locale: str | None = None,
    llm: LLM = Depends(get_llm),
    storage: Storage = Depends(get_storage),
    settings: Settings = Depends(get_settings),
    registry: SessionRegistry = Depends(get_live_registry),
) -> SessionView:
    """Generate the opening scene and start a live session."""
    episode = load_episode(storage, episode_id)
    live = LiveEpisode(llm, episode, character=body.character, settings=settings)
    try:
        await live.open()
    except (LLMError, SceneParseError) as e:
        raise _generation_failed(episode_id, e) from e
    session_id = registry.create(live)
    logger.info("live session %s started for episode %s", session_id, episode_id)
    return _view(session_id, live, locale)


@router.get("/live/{session_id}")
async def get_live(
    session_id: str,
    locale: str | None = None,
    registry: SessionRegistry = Depends(get_live_registry),
) -> SessionView:
    return _view(session_id, load_session(registry, session_id), locale)


@router.post("/live/{session_id}/choices")
async def make_live_choice(
    session_id: str,
    body: ChoiceBody,
    locale: str | None = None,
    registry: SessionRegistry = Depends(get_live_registry),
) -> SessionView:
    """Apply a choice, generating the scene it leads to first.

    A failed generation leaves the session where it was, so the same choice
    can be retried.
    """
    live = load_session(registry, session_id)
    try:
        await live.choose(body.choice_id, highlight=body.highlight)
    except InvalidChoice as e:
        raise HTTPException(409, str(e)) from e
    except (LLMError, SceneParseError) as e:
        raise _generation_failed(live.episode.id, e) from e
    return _view(session_id, live, locale)


@router.post("/live/{session_id}/reward")
async def claim_live_reward(
    session_id: str,
    registry: SessionRegistry = Depends(get_live_registry),
    storage: Storage = Depends(get_storage),
) -> Reward:
    """Resolve and store the finished live run's photocard, once."""
    live = load_session(registry, session_id)
    already_claimed = live.has_reward
    try:
        reward = live.reward()
    except EpisodeNotCompleted as e:
        raise HTTPException(409, str(e)) from e
    if not already_claimed:
        storage.append_reward(reward)
    return reward


@router.delete("/live/{session_id}")
async def end_live(
    session_id: str,
    registry: SessionRegistry = Depends(get_live_registry),
) -> dict:
    if not registry.discard(session_id):
        raise HTTPException(404, "Session not found")
    return {"ok": True}
