"""Shared request dependencies: settings, storage and the session registries."""

from __future__ import annotations

import logging
import uuid
from collections import OrderedDict
from typing import Generic, TypeVar

from fastapi import HTTPException, Request

from story_episode.config import Settings
from story_episode.generation import LiveEpisode
from story_episode.llm import LLM
from story_episode.models import Episode
from story_episode.session import EpisodeSession
from story_episode.storage import Storage

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SessionRegistry(Generic[T]):
    """In-process map of session id -> session, capped at *capacity*.

    Reading a session marks it as recently used. When a new session would
    exceed the cap, the least recently used one is dropped.
    """

    def __init__(self, capacity: int = 1000) -> None:
        self.capacity = capacity
        self._sessions: OrderedDict[str, T] = OrderedDict()

    def create(self, session: T) -> str:
        session_id = uuid.uuid4().hex
        self._sessions[session_id] = session
        while len(self._sessions) > self.capacity:
            evicted, _ = self._sessions.popitem(last=False)
            logger.info("session %s evicted (capacity %d)", evicted, self.capacity)
        return session_id

    def get(self, session_id: str) -> T | None:
        session = self._sessions.get(session_id)
        if session is not None:
            self._sessions.move_to_end(session_id)
        return session

    def discard(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_storage(request: Request) -> Storage:
    return request.app.state.storage


def get_registry(request: Request) -> SessionRegistry[EpisodeSession]:
    return request.app.state.sessions


def get_live_registry(request: Request) -> SessionRegistry[LiveEpisode]:
    return request.app.state.live_sessions


def get_llm(request: Request) -> LLM:
    llm = request.app.state.llm
    if llm is None:
        raise HTTPException(503, "Live generation is not configured")
    return llm


def load_episode(storage: Storage, episode_id: str) -> Episode:
    episode = storage.get_episode(episode_id)
    if episode is None:
        raise HTTPException(404, "Episode not found")
    return episode


def load_session(registry: SessionRegistry[T], session_id: str) -> T:
    session = registry.get(session_id)
    if session is None:
        raise HTTPException(404, "Session not found")
    return session
