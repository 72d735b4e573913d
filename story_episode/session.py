"""Session reset/replay and a small owner object for one play session."""

from __future__ import annotations

import logging
from datetime import datetime

from story_episode.config import Settings
from story_episode.graph import SceneGraph
from story_episode.machine import apply_choice, choose, is_terminal
from story_episode.models import Choice, Episode, EpisodeState, Reward, Scene
from story_episode.rewards import CHOICE_PATH_SEPARATOR, RewardResolver

logger = logging.getLogger(__name__)


def reset(graph: SceneGraph, *, affinity: int = 0) -> EpisodeState:
    """Fresh state at the graph's entry scene.

    *affinity* carries a relationship score in from a previous run. The caller
    owns that score; nothing is remembered here between runs.
    """
    return EpisodeState(current_scene_id=graph.entry_scene().id, affinity=affinity)


class EpisodeSession:
    """Owns one graph, its current state and the reward of the finished run.

    Not thread-safe: a session belongs to the single caller that created it.
    """

    def __init__(
        self,
        episode: Episode,
        settings: Settings | None = None,
        *,
        graph: SceneGraph | None = None,
        resolver: RewardResolver | None = None,
        affinity: int = 0,
    ) -> None:
        self.episode = episode
        self.settings = settings or Settings()
        self.graph = graph or SceneGraph.from_episode(episode)
        self.resolver = resolver or RewardResolver(episode, self.settings)
        self.completed_paths: set[str] = set()
        self._start_affinity = affinity
        self._reward: Reward | None = None
        self.state = reset(self.graph, affinity=affinity)

    @property
    def current_scene(self) -> Scene:
        return self.graph.get(self.state.current_scene_id)

    @property
    def is_completed(self) -> bool:
        return is_terminal(self.state)

    def start(self, *, affinity: int | None = None) -> EpisodeState:
        if affinity is not None:
            self._start_affinity = affinity
        self.state = reset(self.graph, affinity=self._start_affinity)
        self._reward = None
        logger.debug("session started episode=%s", self.episode.id)
        return self.state

    def replay(self) -> EpisodeState:
        """Restart from the entry scene. Collect reward() first if you need it."""
        return self.start()

    def apply(self, choice: Choice, *, highlight: bool | str = False,
              now: datetime | None = None) -> EpisodeState:
        self.state = apply_choice(
            self.graph, self.state, choice,
            highlight=highlight, settings=self.settings, now=now,
        )
        self._after_turn()
        return self.state

    def choose(self, choice_id: str, *, highlight: bool | str = False,
               now: datetime | None = None) -> EpisodeState:
        self.state = choose(
            self.graph, self.state, choice_id,
            highlight=highlight, settings=self.settings, now=now,
        )
        self._after_turn()
        return self.state

    def _after_turn(self) -> None:
        if self.state.is_completed:
            self.completed_paths.add(CHOICE_PATH_SEPARATOR.join(self.state.choice_path))

    @property
    def has_reward(self) -> bool:
        return self._reward is not None

    def reward(self) -> Reward:
        """Resolve the reward once; later calls return the same record."""
        if self._reward is None:
            self._reward = self.resolver.resolve(self.state)
        return self._reward
