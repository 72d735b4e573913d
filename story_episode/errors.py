"""Engine exceptions.

Authoring problems (a malformed scene graph) and caller contract violations
(a choice that is not on offer) are the only failures the engine raises.
It does no I/O, so nothing here is retriable.
"""


class EpisodeError(Exception):
    """Base class for every error raised by the episode engine."""


class SceneNotFound(EpisodeError, KeyError):
    """A scene id does not exist in the graph. Indicates malformed content."""

    def __init__(self, scene_id: str) -> None:
        super().__init__(scene_id)
        self.scene_id = scene_id

    def __str__(self) -> str:
        return f"Scene not found: {self.scene_id!r}"


class SceneGraphError(EpisodeError, ValueError):
    """Raised at graph construction time when authored scenes are inconsistent."""

    def __init__(self, problems: list[str]) -> None:
        super().__init__("; ".join(problems))
        self.problems = problems


class InvalidChoice(EpisodeError):
    """The choice is not available in the current scene, or the run is over."""


class EpisodeNotCompleted(InvalidChoice):
    """A reward was requested before the episode reached a terminal state."""
