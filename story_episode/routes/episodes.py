"""Episode listing, episode detail and stored rewards."""

from fastapi import APIRouter, Depends

from story_episode.models import Episode, Reward
from story_episode.storage import Storage

from .deps import get_storage, load_episode
from .models import EpisodeSummary

router = APIRouter()


@router.get("/episodes")
async def list_episodes(storage: Storage = Depends(get_storage)) -> list[EpisodeSummary]:
    """List all authored episodes."""
    return [
        EpisodeSummary(id=e.id, title=e.title, description=e.description)
        for e in storage.list_episodes()
    ]


@router.get("/episodes/{episode_id}")
async def get_episode(episode_id: str, storage: Storage = Depends(get_storage)) -> Episode:
    """Get a single episode with its scenes."""
    return load_episode(storage, episode_id)


@router.get("/episodes/{episode_id}/rewards")
async def list_rewards(episode_id: str, storage: Storage = Depends(get_storage)) -> list[Reward]:
    """Rewards earned for an episode, oldest first."""
    load_episode(storage, episode_id)
    return storage.get_rewards(episode_id)
