"""Builds the SessionView shared by authored and live sessions."""

from story_episode.config import Settings
from story_episode.ledger import EmotionLedger
from story_episode.machine import phase
from story_episode.models import EpisodeState, Scene
from story_episode.rewards import affinity_level

from .models import ChoiceView, EmotionTotal, SceneView, SessionView


def session_view(
    session_id: str,
    episode_id: str,
    state: EpisodeState,
    scene: Scene,
    settings: Settings,
    locale: str | None,
) -> SessionView:
    locale = locale or settings.default_locale
    ledger = EmotionLedger(state.emotion_history)
    return SessionView(
        session_id=session_id,
        episode_id=episode_id,
        phase=phase(state),
        affinity_level=affinity_level(state.affinity),
        dominant_emotion=ledger.dominant(),
        emotions=[EmotionTotal(kind=k, weight=w) for k, w in ledger.summary()],
        scene=SceneView(
            id=scene.id,
            beat=scene.beat,
            dialogue=scene.text(locale, settings.default_locale),
            choices=[ChoiceView(id=c.id, text=c.label(locale)) for c in scene.choices],
            is_terminal=scene.is_terminal,
        ),
        state=state,
    )
