"""Scene graph — immutable lookup over authored scenes.

Choice targets are checked once, when the graph is built. At run time the
state machine trusts the graph; a lookup miss is reported as SceneNotFound
and means the content is broken, not that the player did something wrong.

Open-ended graphs are used for live generation: choices may point at scenes
that the content source will supply later through extend().
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

from story_episode.errors import SceneGraphError, SceneNotFound
from story_episode.models import Episode, Scene

logger = logging.getLogger(__name__)


class SceneGraph:
    def __init__(
        self,
        scenes: Iterable[Scene],
        entry_scene_id: str | None = None,
        *,
        open_ended: bool = False,
    ) -> None:
        scene_list = list(scenes)
        problems: list[str] = []

        by_id: dict[str, Scene] = {}
        for scene in scene_list:
            if scene.id in by_id:
                problems.append(f"duplicate scene id {scene.id!r}")
            by_id[scene.id] = scene

        if entry_scene_id is None and scene_list:
            entry_scene_id = scene_list[0].id

        self._scenes = by_id
        self._entry_id = entry_scene_id or ""
        self._open_ended = open_ended

        problems.extend(self._check())
        if problems:
            raise SceneGraphError(problems)
        logger.debug(
            "scene graph built scenes=%d entry=%s open_ended=%s",
            len(by_id), self._entry_id, open_ended,
        )

    @classmethod
    def from_episode(cls, episode: Episode, *, open_ended: bool = False) -> SceneGraph:
        return cls(episode.scenes, episode.entry_scene_id, open_ended=open_ended)

    def _check(self) -> list[str]:
        problems: list[str] = []
        if not self._scenes:
            return ["graph has no scenes"]

        entry = self._scenes.get(self._entry_id)
        if entry is None:
            problems.append(f"entry scene {self._entry_id!r} does not exist")
        elif not entry.choices:
            problems.append(f"entry scene {self._entry_id!r} offers no choices")

        for scene in self._scenes.values():
            seen: set[str] = set()
            for choice in scene.choices:
                if choice.id in seen:
                    problems.append(f"scene {scene.id!r} repeats choice id {choice.id!r}")
                seen.add(choice.id)
                target = choice.next_scene_id
                if target is not None and target not in self._scenes and not self._open_ended:
                    problems.append(
                        f"choice {scene.id}/{choice.id} points at missing scene {target!r}"
                    )
        return problems

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, scene_id: str) -> Scene:
        try:
            return self._scenes[scene_id]
        except KeyError:
            raise SceneNotFound(scene_id) from None

    def entry_scene(self) -> Scene:
        return self._scenes[self._entry_id]

    @property
    def entry_scene_id(self) -> str:
        return self._entry_id

    @property
    def open_ended(self) -> bool:
        return self._open_ended

    def __contains__(self, scene_id: object) -> bool:
        return scene_id in self._scenes

    def __iter__(self) -> Iterator[Scene]:
        return iter(self._scenes.values())

    def __len__(self) -> int:
        return len(self._scenes)

    # ------------------------------------------------------------------
    # Growth (live generation)
    # ------------------------------------------------------------------

    def extend(self, scenes: Iterable[Scene]) -> SceneGraph:
        """Return a new graph with *scenes* added. This graph is unchanged."""
        return SceneGraph(
            [*self._scenes.values(), *scenes],
            self._entry_id,
            open_ended=self._open_ended,
        )
