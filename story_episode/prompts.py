"""Handlebars prompt rendering for live scene generation."""

from collections.abc import Callable, Sequence
from typing import Any

import pybars

from story_episode.models import Choice, EmotionKind, Episode, Scene

_compiler = pybars.Compiler()
_cache: dict[str, Callable] = {}


class PromptError(Exception):
    """Raised when a Handlebars template fails to compile or render."""


def _helper_last(this, options, items, count):
    """{{#last array N}}...{{/last}} — iterate over the last N items."""
    result = []
    for item in list(items)[-int(count):]:
        result.extend(options["fn"](item))
    return result


_HELPERS: dict[str, Callable] = {
    "last": _helper_last,
}


SCENE_TEMPLATE = """\
You are {{{character}}}, playing a short story episode with the player.
Episode: {{{episode.title}}}
{{#if episode.description}}{{{episode.description}}}
{{/if}}
Story beat: {{beat}} (turn {{turn}} of {{max_turns}})
Closeness so far: {{affinity}}
{{#if history}}
Story so far:
{{#last history 6}}
{{{speaker}}}: {{{dialogue}}}
Player: {{{choice}}}
{{/last}}
{{/if}}

Write the next turn in exactly this format:
DIALOGUE: <what {{{character}}} says, one or two sentences>
CHOICE A [<emotion><+N or -N>, +<closeness 0-10>]: <what the player could answer>
CHOICE B [<emotion><+N or -N>, +<closeness 0-10>]: <another answer>
Emotion is one of: {{#each emotions}}{{this}} {{/each}}
{{#if final}}This is the last turn: the answers should close the episode.
{{/if}}
Begin with "🎬 HIGHLIGHT:" only if this moment deserves an illustrated memory card.
"""


def render_prompt(template_str: str, context: dict[str, Any]) -> str:
    """Compile and render a Handlebars template with the given context.

    Templates are cached by source string to avoid recompilation.
    """
    try:
        compiled = _cache.get(template_str)
        if compiled is None:
            compiled = _compiler.compile(template_str)
            _cache[template_str] = compiled
        return str(compiled(context, helpers=_HELPERS))
    except Exception as e:
        raise PromptError(f"Template error: {e}") from e


def build_scene_context(
    episode: Episode,
    exchanges: Sequence[tuple[Scene, Choice]],
    *,
    character: str,
    beat: str,
    turn: int,
    max_turns: int,
    affinity: int,
    locale: str,
) -> dict[str, Any]:
    """Assemble template variables for the next generated scene.

    *exchanges* pairs each visited scene with the choice the player made
    there, oldest first.
    """
    history = [
        {
            "speaker": character,
            "dialogue": scene.text(locale),
            "choice": choice.label(locale),
        }
        for scene, choice in exchanges
    ]
    return {
        "character": character,
        "episode": {
            "title": episode.localized_title(locale),
            "description": episode.description,
        },
        "beat": beat,
        "turn": turn,
        "max_turns": max_turns,
        "final": turn >= max_turns,
        "affinity": affinity,
        "history": history,
        "emotions": [kind.value for kind in EmotionKind],
    }
