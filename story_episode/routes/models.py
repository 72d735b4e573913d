"""Pydantic request/response models for API endpoints."""

from pydantic import BaseModel, Field

from story_episode.models import Beat, EmotionKind, EpisodePhase, EpisodeState


class StartSession(BaseModel):
    affinity: int = Field(default=0, ge=0)


class ChoiceBody(BaseModel):
    choice_id: str
    highlight: bool = False


class EpisodeSummary(BaseModel):
    id: str
    title: str
    description: str


class ChoiceView(BaseModel):
    id: str
    text: str


class SceneView(BaseModel):
    id: str
    beat: Beat
    dialogue: str
    choices: list[ChoiceView]
    is_terminal: bool


class EmotionTotal(BaseModel):
    kind: EmotionKind
    weight: int


class SessionView(BaseModel):
    session_id: str
    episode_id: str
    phase: EpisodePhase
    affinity_level: str
    dominant_emotion: EmotionKind | None
    emotions: list[EmotionTotal]
    scene: SceneView
    state: EpisodeState


class StartLive(BaseModel):
    character: str = Field(min_length=1)
