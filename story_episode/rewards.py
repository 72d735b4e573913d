"""Reward resolver — turns a completed run into a photocard record.

Rarity (first match wins):
    affinity >= 90 and >= 3 distinct choice ids  -> SSR
    affinity >= 75 and >= 2 distinct choice ids  -> SR
    affinity >= 50                                -> R
    otherwise                                     -> N

The title is an adjective for the dominant emotion followed by the episode
title. The moment hash is a truncated SHA-256 over the ordered choice ids and
emotion events. It is a human-readable label, not a unique identifier. Pass
id_factory when rewards need ids from an external source.
"""

from __future__ import annotations

import hashlib
import json
import logging
from collections.abc import Callable, Sequence
from datetime import datetime, timezone

from story_episode.config import Settings
from story_episode.errors import EpisodeNotCompleted
from story_episode.ledger import EmotionLedger
from story_episode.models import (
    EmotionEvent,
    EmotionKind,
    Episode,
    EpisodeState,
    Rarity,
    Reward,
    TurnRecord,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
IdFactory = Callable[[str, datetime], str]

CHOICE_PATH_SEPARATOR = "-"

EMOTION_TITLES: dict[EmotionKind, dict[str, str]] = {
    EmotionKind.JOY: {"ko": "웃음이 가득한", "en": "Joyful"},
    EmotionKind.FLUTTER: {"ko": "두근거리는", "en": "Heart-fluttering"},
    EmotionKind.CALM: {"ko": "평온한", "en": "Peaceful"},
    EmotionKind.RESOLVE: {"ko": "열정적인", "en": "Passionate"},
    EmotionKind.ANXIETY: {"ko": "조심스러운", "en": "Cautious"},
}

assert set(EMOTION_TITLES) == set(EmotionKind), "EMOTION_TITLES must cover every EmotionKind"

_AFFINITY_LEVELS: tuple[tuple[int, str], ...] = (
    (80, "Very High"),
    (60, "High"),
    (40, "Medium"),
    (20, "Low"),
)


def determine_rarity(affinity: int, distinct_choices: int) -> Rarity:
    if affinity >= 90 and distinct_choices >= 3:
        return "SSR"
    if affinity >= 75 and distinct_choices >= 2:
        return "SR"
    if affinity >= 50:
        return "R"
    return "N"


def affinity_level(affinity: int) -> str:
    """Display band for an affinity score."""
    for threshold, label in _AFFINITY_LEVELS:
        if affinity >= threshold:
            return label
    return "Very Low"


def emotion_adjective(kind: EmotionKind | None, locale: str) -> str:
    if kind is None:
        return ""
    phrases = EMOTION_TITLES[kind]
    return phrases.get(locale, phrases["en"])


def moment_hash(
    choice_path: Sequence[str], emotions: Sequence[EmotionEvent], length: int = 16
) -> str:
    payload = {
        "choices": list(choice_path),
        "emotions": [[e.kind.value, e.weight] for e in emotions],
    }
    blob = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(blob.encode("utf-8")).hexdigest()[:length]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def default_reward_id(episode_id: str, earned_at: datetime) -> str:
    return f"{episode_id}-{int(earned_at.timestamp() * 1000)}"


class RewardResolver:
    """Resolves rewards for one episode.

    Args:
        episode:    The authored episode; supplies the id and title.
        settings:   Locale and hash length. Defaults to Settings().
        clock:      Returns the earned_at timestamp. Defaults to UTC now.
        id_factory: Builds the reward id from (episode_id, earned_at).
    """

    def __init__(
        self,
        episode: Episode,
        settings: Settings | None = None,
        clock: Clock = _utcnow,
        id_factory: IdFactory = default_reward_id,
    ) -> None:
        self._episode = episode
        self._settings = settings or Settings()
        self._clock = clock
        self._id_factory = id_factory

    def title(self, dominant: EmotionKind | None, locale: str | None = None) -> str:
        locale = locale or self._settings.default_locale
        adjective = emotion_adjective(dominant, locale)
        return f"{adjective} {self._episode.localized_title(locale)}".strip()

    def resolve(
        self,
        state: EpisodeState,
        history: Sequence[TurnRecord] | None = None,
        *,
        locale: str | None = None,
    ) -> Reward:
        """Build the Reward for a completed *state*.

        *history* defaults to state.history. Choice path, hash, rarity, title and
        dominant emotion all follow the history used; affinity and highlight
        moments come from *state*. Raises EpisodeNotCompleted if the run has
        not finished.
        """
        if not state.is_completed:
            raise EpisodeNotCompleted(
                f"Episode {self._episode.id!r} is not completed (turn {state.turn_count})"
            )
        if history is None:
            history = state.history

        choice_ids = [record.choice_id for record in history] or list(state.choice_path)
        emotions = [record.emotion for record in history] or list(state.emotion_history)
        dominant = EmotionLedger(emotions).dominant()
        rarity = determine_rarity(state.affinity, len(set(choice_ids)))
        earned_at = self._clock()

        reward = Reward(
            id=self._id_factory(self._episode.id, earned_at),
            episode_id=self._episode.id,
            rarity=rarity,
            title=self.title(dominant, locale),
            choice_path=CHOICE_PATH_SEPARATOR.join(choice_ids),
            moment_hash=moment_hash(choice_ids, emotions, self._settings.moment_hash_length),
            earned_at=earned_at,
            affinity=state.affinity,
            dominant_emotion=dominant,
            highlight_moments=tuple(state.highlight_moments),
        )
        logger.debug(
            "reward resolved episode=%s rarity=%s affinity=%d distinct=%d hash=%s",
            reward.episode_id, reward.rarity, state.affinity, len(set(choice_ids)), reward.moment_hash,
        )
        return reward
