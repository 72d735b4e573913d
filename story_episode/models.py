"""Core domain models.

The engine, the reward resolver and every collaborator exchange these types.
Pydantic is used for validation and serialisation at every data boundary:
authored episode JSON, API bodies and stored rewards all pass through here.

Authored content (Scene, Choice) and produced records (Reward) are frozen.
EpisodeState is replaced wholesale by the state machine on every turn.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, StrictInt

Beat = Literal["hook", "engage", "pivot", "climax", "wrap"]
BEATS: tuple[Beat, ...] = ("hook", "engage", "pivot", "climax", "wrap")

Rarity = Literal["N", "R", "SR", "SSR"]
RARITY_ORDER: tuple[Rarity, ...] = ("N", "R", "SR", "SSR")


class EmotionKind(str, Enum):
    """Closed set of emotions a choice can push the character toward."""

    JOY = "joy"
    FLUTTER = "flutter"
    CALM = "calm"
    RESOLVE = "resolve"
    ANXIETY = "anxiety"


class EpisodePhase(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class EmotionEvent(BaseModel):
    """One signed emotion push recorded in the ledger."""

    model_config = ConfigDict(frozen=True)

    kind: EmotionKind
    weight: StrictInt


class Choice(BaseModel):
    """An option offered by exactly one scene."""

    model_config = ConfigDict(frozen=True)

    id: str
    text: str
    text_localized: dict[str, str] = Field(default_factory=dict)
    emotion_impact: EmotionEvent
    affinity_bonus: int = Field(default=0, ge=0)
    next_scene_id: str | None = None  # None ends the episode after this choice

    def label(self, locale: str) -> str:
        return self.text_localized.get(locale, self.text)


class Scene(BaseModel):
    """An authored dialogue node."""

    model_config = ConfigDict(frozen=True)

    id: str
    beat: Beat
    turn_number: int = Field(default=0, ge=0)  # authoring aid only
    dialogue: dict[str, str]
    choices: tuple[Choice, ...] = ()
    is_ending: bool = False

    @property
    def is_terminal(self) -> bool:
        return self.is_ending or not self.choices

    def text(self, locale: str, fallback: str | None = None) -> str:
        """Dialogue for *locale*, then *fallback*, then whatever locale exists."""
        if locale in self.dialogue:
            return self.dialogue[locale]
        if fallback is not None and fallback in self.dialogue:
            return self.dialogue[fallback]
        return next(iter(self.dialogue.values()), "")

    def get_choice(self, choice_id: str) -> Choice | None:
        for choice in self.choices:
            if choice.id == choice_id:
                return choice
        return None


class Episode(BaseModel):
    """An authored episode: a titled bundle of scenes with one entry point."""

    id: str
    title: str
    title_localized: dict[str, str] = Field(default_factory=dict)
    description: str = ""
    scenes: list[Scene]
    entry_scene_id: str | None = None  # defaults to the first scene

    def localized_title(self, locale: str) -> str:
        return self.title_localized.get(locale, self.title)


class TurnRecord(BaseModel):
    """One applied choice, kept in order for hashing and replay review."""

    model_config = ConfigDict(frozen=True)

    turn: int
    scene_id: str
    choice_id: str
    emotion: EmotionEvent
    affinity_bonus: int
    at: datetime


class EpisodeState(BaseModel):
    """Run-time state of one play session.

    Only the state machine produces new values of this type; everything else
    reads it.
    """

    current_scene_id: str
    turn_count: int = Field(default=0, ge=0)
    affinity: int = Field(default=0, ge=0)
    emotion_history: list[EmotionEvent] = Field(default_factory=list)
    choice_path: list[str] = Field(default_factory=list)
    highlight_moments: list[str] = Field(default_factory=list)
    history: list[TurnRecord] = Field(default_factory=list)
    is_completed: bool = False


class Reward(BaseModel):
    """The photocard earned by a completed run."""

    model_config = ConfigDict(frozen=True)

    id: str
    episode_id: str
    rarity: Rarity
    title: str
    choice_path: str
    moment_hash: str
    earned_at: datetime
    affinity: int = 0
    dominant_emotion: EmotionKind | None = None
    highlight_moments: tuple[str, ...] = ()
