"""Episode state machine: the only producer of new EpisodeState values.

Turn flow for apply_choice():
  1. Record the choice's emotion impact in the ledger.
  2. Add the choice's affinity bonus.
  3. Snapshot the current scene's dialogue as a highlight, if flagged.
  4. Advance the turn counter.
  5. Follow next_scene_id. The run completes when there is no next scene,
     the next scene is terminal, or the turn budget is spent.

States: not_started (turn 0) -> in_progress -> completed. Applying a choice
to a completed run is a contract violation.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from story_episode.config import Settings
from story_episode.errors import InvalidChoice
from story_episode.graph import SceneGraph
from story_episode.ledger import EmotionLedger
from story_episode.models import Choice, EpisodePhase, EpisodeState, TurnRecord

logger = logging.getLogger(__name__)

_DEFAULT_SETTINGS = Settings()


def is_terminal(state: EpisodeState) -> bool:
    return state.is_completed


def phase(state: EpisodeState) -> EpisodePhase:
    if state.is_completed:
        return EpisodePhase.COMPLETED
    if state.turn_count == 0:
        return EpisodePhase.NOT_STARTED
    return EpisodePhase.IN_PROGRESS


def apply_choice(
    graph: SceneGraph,
    state: EpisodeState,
    choice: Choice,
    *,
    highlight: bool | str = False,
    settings: Settings | None = None,
    now: datetime | None = None,
) -> EpisodeState:
    """Apply *choice* to *state* and return the resulting state.

    *highlight* is decided by the caller: True snapshots the current scene's
    dialogue, a string is recorded as the highlight text itself. Either way
    the snapshot is cut to settings.highlight_length characters.

    Raises InvalidChoice when the run is already complete or *choice* is not
    offered by the current scene. The input state is never modified.
    """
    settings = settings or _DEFAULT_SETTINGS

    if state.is_completed:
        raise InvalidChoice("Episode is already completed")

    scene = graph.get(state.current_scene_id)
    if choice not in scene.choices:
        raise InvalidChoice(
            f"Choice {choice.id!r} is not available in scene {scene.id!r}"
        )

    # 1. Emotion
    ledger = EmotionLedger(state.emotion_history)
    event = ledger.record(choice.emotion_impact.kind, choice.emotion_impact.weight)

    # 2. Affinity
    affinity = state.affinity + choice.affinity_bonus

    # 3. Highlight
    highlights = list(state.highlight_moments)
    if highlight:
        text = highlight if isinstance(highlight, str) else scene.text(settings.default_locale)
        highlights.append(text[: settings.highlight_length])

    # 4. Turn
    turn_count = state.turn_count + 1
    record = TurnRecord(
        turn=turn_count,
        scene_id=scene.id,
        choice_id=choice.id,
        emotion=event,
        affinity_bonus=choice.affinity_bonus,
        at=now or datetime.now(timezone.utc),
    )

    # 5. Next scene
    current_scene_id = scene.id
    completed = False
    if choice.next_scene_id is None:
        completed = True
    else:
        target = graph.get(choice.next_scene_id)
        current_scene_id = target.id
        completed = target.is_terminal
    if turn_count >= settings.max_turns:
        completed = True

    logger.debug(
        "choice applied scene=%s choice=%s turn=%d affinity=%d next=%s completed=%s",
        scene.id, choice.id, turn_count, affinity, current_scene_id, completed,
    )
    if completed:
        logger.info("episode completed turn=%d affinity=%d", turn_count, affinity)

    return state.model_copy(
        update={
            "current_scene_id": current_scene_id,
            "turn_count": turn_count,
            "affinity": affinity,
            "emotion_history": ledger.events,
            "choice_path": [*state.choice_path, choice.id],
            "highlight_moments": highlights,
            "history": [*state.history, record],
            "is_completed": completed,
        }
    )


def choose(
    graph: SceneGraph,
    state: EpisodeState,
    choice_id: str,
    *,
    highlight: bool | str = False,
    settings: Settings | None = None,
    now: datetime | None = None,
) -> EpisodeState:
    """Look *choice_id* up in the current scene and apply it."""
    if state.is_completed:
        raise InvalidChoice("Episode is already completed")
    choice = graph.get(state.current_scene_id).get_choice(choice_id)
    if choice is None:
        raise InvalidChoice(
            f"Choice {choice_id!r} is not available in scene {state.current_scene_id!r}"
        )
    return apply_choice(
        graph, state, choice, highlight=highlight, settings=settings, now=now,
    )
