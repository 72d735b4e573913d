"""Story episode engine: scene graph, choice state machine and photocard rewards."""

from story_episode.errors import (
    EpisodeError,
    EpisodeNotCompleted,
    InvalidChoice,
    SceneGraphError,
    SceneNotFound,
)
from story_episode.graph import SceneGraph
from story_episode.ledger import EmotionLedger
from story_episode.machine import apply_choice, choose, is_terminal, phase
from story_episode.models import (
    Choice,
    EmotionEvent,
    EmotionKind,
    Episode,
    EpisodePhase,
    EpisodeState,
    Reward,
    Scene,
    TurnRecord,
)
from story_episode.rewards import RewardResolver, affinity_level, determine_rarity
from story_episode.session import EpisodeSession, reset

__all__ = [
    "Choice",
    "EmotionEvent",
    "EmotionKind",
    "EmotionLedger",
    "Episode",
    "EpisodeError",
    "EpisodeNotCompleted",
    "EpisodePhase",
    "EpisodeSession",
    "EpisodeState",
    "InvalidChoice",
    "Reward",
    "RewardResolver",
    "Scene",
    "SceneGraph",
    "SceneGraphError",
    "SceneNotFound",
    "TurnRecord",
    "affinity_level",
    "apply_choice",
    "choose",
    "determine_rarity",
    "is_terminal",
    "phase",
    "reset",
]
