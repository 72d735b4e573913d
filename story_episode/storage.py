"""JSON file storage for authored episodes and earned rewards.

The engine never touches this module; it is the persistence collaborator
the API layer hands rewards to. Reads and writes go through plain helpers
that load and dump JSON.

Directory layout:

    {base}/
      episodes/
        {episode_id}.json     ← Episode (scenes included)
      rewards/
        {episode_id}.json     ← append-only list of Reward records
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from story_episode.models import Episode, Reward

logger = logging.getLogger(__name__)


class Storage:
    def __init__(self, base_path: Path) -> None:
        self._base = base_path
        self._episodes_root = base_path / "episodes"
        self._rewards_root = base_path / "rewards"
        self._episodes_root.mkdir(parents=True, exist_ok=True)
        self._rewards_root.mkdir(parents=True, exist_ok=True)

    @property
    def base_path(self) -> Path:
        return self._base

    # ------------------------------------------------------------------
    # Internal path helpers
    # ------------------------------------------------------------------

    def _episode_file(self, episode_id: str) -> Path:
        return self._episodes_root / f"{episode_id}.json"

    def _rewards_file(self, episode_id: str) -> Path:
        return self._rewards_root / f"{episode_id}.json"

    def _read_json(self, path: Path) -> Any:
        return json.loads(path.read_text(encoding="utf-8"))

    def _write_json(self, path: Path, data: Any) -> None:
        path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")

    # ------------------------------------------------------------------
    # Episodes
    # ------------------------------------------------------------------

    def save_episode(self, episode: Episode) -> None:
        """Upsert an episode by id."""
        self._episode_file(episode.id).write_text(
            episode.model_dump_json(indent=2), encoding="utf-8"
        )

    def get_episode(self, episode_id: str) -> Episode | None:
        path = self._episode_file(episode_id)
        if not path.is_file():
            return None
        return Episode.model_validate_json(path.read_text(encoding="utf-8"))

    def list_episodes(self) -> list[Episode]:
        return [
            Episode.model_validate_json(path.read_text(encoding="utf-8"))
            for path in sorted(self._episodes_root.glob("*.json"))
        ]

    def delete_episode(self, episode_id: str) -> bool:
        path = self._episode_file(episode_id)
        if not path.is_file():
            return False
        path.unlink()
        return True

    # ------------------------------------------------------------------
    # Rewards (append-only)
    # ------------------------------------------------------------------

    def get_rewards(self, episode_id: str) -> list[Reward]:
        path = self._rewards_file(episode_id)
        if not path.is_file():
            return []
        return [Reward.model_validate(r) for r in self._read_json(path)]

    def append_reward(self, reward: Reward) -> None:
        existing = self.get_rewards(reward.episode_id)
        existing.append(reward)
        self._write_json(
            self._rewards_file(reward.episode_id),
            [r.model_dump(mode="json") for r in existing],
        )
        logger.info("reward stored id=%s episode=%s rarity=%s",
                    reward.id, reward.episode_id, reward.rarity)
