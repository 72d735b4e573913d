"""Live content source: builds scenes turn by turn from generated text.

The engine only ever sees Scene objects. This module owns the free-text side:
it prompts the model, parses the reply and grows an open-ended SceneGraph so
the next choice has somewhere to go.

Expected model output:

    🎬 HIGHLIGHT:                         (optional, marks an illustratable moment)
    DIALOGUE: I'm glad you came today.
    CHOICE A [joy+2, +8]: Me too!
    CHOICE B [anxiety-1, +3]: I almost didn't.

Lines that are neither a DIALOGUE header nor a CHOICE are treated as
dialogue continuation. A CHOICE naming an unknown emotion is skipped.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence

from pydantic import BaseModel

from story_episode.config import Settings
from story_episode.errors import InvalidChoice
from story_episode.graph import SceneGraph
from story_episode.llm import LLM
from story_episode.machine import apply_choice
from story_episode.models import (
    BEATS,
    Beat,
    Choice,
    EmotionEvent,
    EmotionKind,
    Episode,
    EpisodeState,
    Reward,
    Scene,
)
from story_episode.prompts import SCENE_TEMPLATE, build_scene_context, render_prompt
from story_episode.rewards import RewardResolver
from story_episode.session import reset

logger = logging.getLogger(__name__)

HIGHLIGHT_MARKER = "🎬 HIGHLIGHT:"

_DIALOGUE_RE = re.compile(r"^DIALOGUE\s*:\s*(.*)$", re.IGNORECASE)
_CHOICE_RE = re.compile(
    r"^CHOICE\s+([A-Za-z0-9_]+)\s*"
    r"\[\s*([A-Za-z]+)\s*([+-]\s*\d+)\s*(?:,\s*\+?\s*(\d+)\s*)?\]\s*:\s*(.+)$",
    re.IGNORECASE,
)


class SceneParseError(ValueError):
    """Generated text did not contain a usable dialogue line and choices."""


class GeneratedScene(BaseModel):
    scene: Scene
    is_highlight: bool = False


def scene_id_for_turn(turn: int) -> str:
    return f"turn-{turn}"


def beat_for_turn(turn: int, max_turns: int) -> Beat:
    """Spread the five beats evenly over the turn budget."""
    index = min(len(BEATS) - 1, max(0, (turn - 1) * len(BEATS) // max_turns))
    return BEATS[index]


def parse_scene_output(
    text: str,
    *,
    scene_id: str,
    beat: Beat,
    turn_number: int,
    next_scene_id: str | None,
    locale: str,
) -> GeneratedScene:
    """Parse one generated turn into a Scene.

    Every parsed choice leads to *next_scene_id* (None ends the episode).
    Raises SceneParseError when no dialogue or no valid choice is found.
    """
    is_highlight = HIGHLIGHT_MARKER in text
    text = text.replace(HIGHLIGHT_MARKER, "")

    dialogue_lines: list[str] = []
    choices: list[Choice] = []
    seen_ids: set[str] = set()

    for line in text.split("\n"):
        stripped = line.strip()
        if not stripped:
            continue

        choice_match = _CHOICE_RE.match(stripped)
        if choice_match:
            choice_id, kind_name, weight, bonus, label = choice_match.groups()
            choice_id = choice_id.upper()
            try:
                kind = EmotionKind(kind_name.lower())
            except ValueError:
                logger.warning("Unknown emotion %r in generated choice, skipped", kind_name)
                continue
            if choice_id in seen_ids:
                logger.warning("Duplicate generated choice id %r, skipped", choice_id)
                continue
            seen_ids.add(choice_id)
            choices.append(Choice(
                id=choice_id,
                text=label.strip(),
                text_localized={locale: label.strip()},
                emotion_impact=EmotionEvent(kind=kind, weight=int(weight.replace(" ", ""))),
                affinity_bonus=int(bonus) if bonus else 0,
                next_scene_id=next_scene_id,
            ))
            continue

        if stripped.upper().startswith("CHOICE"):
            logger.warning("Unparseable generated choice line: %r", stripped)
            continue

        dialogue_match = _DIALOGUE_RE.match(stripped)
        if dialogue_match:
            stripped = dialogue_match.group(1).strip()
            if not stripped:
                continue
        dialogue_lines.append(stripped)

    dialogue = " ".join(dialogue_lines).strip()
    if not dialogue:
        raise SceneParseError(f"Generated scene {scene_id!r} has no dialogue")
    if not choices:
        raise SceneParseError(f"Generated scene {scene_id!r} has no valid choices")

    scene = Scene(
        id=scene_id,
        beat=beat,
        turn_number=turn_number,
        dialogue={locale: dialogue},
        choices=tuple(choices),
    )
    return GeneratedScene(scene=scene, is_highlight=is_highlight)


def exchanges_from_state(graph: SceneGraph, state: EpisodeState) -> list[tuple[Scene, Choice]]:
    """(scene, choice) pairs for every turn already played."""
    exchanges = []
    for record in state.history:
        scene = graph.get(record.scene_id)
        choice = scene.get_choice(record.choice_id)
        if choice is not None:
            exchanges.append((scene, choice))
    return exchanges


async def generate_scene(
    llm: LLM,
    *,
    episode: Episode,
    turn: int,
    character: str,
    settings: Settings,
    exchanges: Sequence[tuple[Scene, Choice]] = (),
    affinity: int = 0,
) -> GeneratedScene:
    """Ask the model for the scene shown at *turn* and parse it.

    Choices of the final budgeted turn end the episode; all others lead to
    the next turn's scene id.
    """
    locale = settings.default_locale
    beat = beat_for_turn(turn, settings.max_turns)
    context = build_scene_context(
        episode, exchanges,
        character=character, beat=beat, turn=turn,
        max_turns=settings.max_turns, affinity=affinity, locale=locale,
    )
    output = await llm("opening" if turn == 1 else "scene", render_prompt(SCENE_TEMPLATE, context))
    next_id = scene_id_for_turn(turn + 1) if turn < settings.max_turns else None
    return parse_scene_output(
        output,
        scene_id=scene_id_for_turn(turn),
        beat=beat,
        turn_number=turn,
        next_scene_id=next_id,
        locale=locale,
    )


class LiveEpisode:
    """Plays an episode whose scenes are generated one turn ahead.

    open() generates the first scene; each choose() generates the scene the
    choice leads to, appends it to the graph and then applies the choice.
    Scenes flagged with the highlight marker are snapshotted when the player
    answers them, as is any scene the caller flags in choose().
    """

    def __init__(
        self,
        llm: LLM,
        episode: Episode,
        *,
        character: str,
        settings: Settings | None = None,
    ) -> None:
        self.llm = llm
        self.episode = episode
        self.character = character
        self.settings = settings or Settings()
        self.resolver = RewardResolver(episode, self.settings)
        self.graph: SceneGraph | None = None
        self.state: EpisodeState | None = None
        self._highlights: set[str] = set()
        self._reward: Reward | None = None

    async def open(self) -> EpisodeState:
        generated = await generate_scene(
            self.llm, episode=self.episode, turn=1,
            character=self.character, settings=self.settings,
        )
        self.graph = SceneGraph([generated.scene], open_ended=True)
        self._highlights = {generated.scene.id} if generated.is_highlight else set()
        self.state = reset(self.graph)
        self._reward = None
        logger.debug("live episode opened episode=%s character=%s", self.episode.id, self.character)
        return self.state

    @property
    def current_scene(self) -> Scene:
        if self.graph is None or self.state is None:
            raise InvalidChoice("Live episode has not been opened")
        return self.graph.get(self.state.current_scene_id)

    async def choose(self, choice_id: str, *, highlight: bool = False) -> EpisodeState:
        scene = self.current_scene
        if self.state.is_completed:
            raise InvalidChoice("Episode is already completed")
        choice = scene.get_choice(choice_id)
        if choice is None:
            raise InvalidChoice(f"Choice {choice_id!r} is not available in scene {scene.id!r}")

        target = choice.next_scene_id
        if target is not None and target not in self.graph:
            generated = await generate_scene(
                self.llm,
                episode=self.episode,
                turn=self.state.turn_count + 2,
                character=self.character,
                settings=self.settings,
                exchanges=[*exchanges_from_state(self.graph, self.state), (scene, choice)],
                affinity=self.state.affinity + choice.affinity_bonus,
            )
            self.graph = self.graph.extend([generated.scene])
            if generated.is_highlight:
                self._highlights.add(generated.scene.id)

        self.state = apply_choice(
            self.graph, self.state, choice,
            highlight=highlight or scene.id in self._highlights, settings=self.settings,
        )
        return self.state

    @property
    def has_reward(self) -> bool:
        return self._reward is not None

    def reward(self) -> Reward:
        """Resolve the finished run once; later calls return the same record."""
        if self.state is None:
            raise InvalidChoice("Live episode has not been opened")
        if self._reward is None:
            self._reward = self.resolver.resolve(self.state)
        return self._reward
