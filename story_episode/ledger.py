"""Emotion ledger — append-only record of emotion pushes.

The dominant emotion is the kind with the highest cumulative weight over the
whole history (no decay, no window). Ties are broken by EMOTION_PRIORITY so
the answer never depends on the order in which kinds first appeared.
"""

from __future__ import annotations

from collections.abc import Iterable

from story_episode.models import EmotionEvent, EmotionKind

EMOTION_PRIORITY: tuple[EmotionKind, ...] = (
    EmotionKind.JOY,
    EmotionKind.FLUTTER,
    EmotionKind.CALM,
    EmotionKind.RESOLVE,
    EmotionKind.ANXIETY,
)

assert set(EMOTION_PRIORITY) == set(EmotionKind), "EMOTION_PRIORITY must cover every EmotionKind"


class EmotionLedger:
    def __init__(self, events: Iterable[EmotionEvent] = ()) -> None:
        self._events: list[EmotionEvent] = list(events)

    def __len__(self) -> int:
        return len(self._events)

    @property
    def events(self) -> list[EmotionEvent]:
        return list(self._events)

    def record(self, kind: EmotionKind, weight: int) -> EmotionEvent:
        event = EmotionEvent(kind=kind, weight=weight)
        self._events.append(event)
        return event

    def totals(self) -> dict[EmotionKind, int]:
        """Cumulative weight per kind, for kinds that appear at least once."""
        totals: dict[EmotionKind, int] = {}
        for event in self._events:
            totals[event.kind] = totals.get(event.kind, 0) + event.weight
        return totals

    def dominant(self) -> EmotionKind | None:
        """Kind with the highest cumulative weight, or None when empty."""
        totals = self.totals()
        if not totals:
            return None
        return max(
            totals,
            key=lambda kind: (totals[kind], -EMOTION_PRIORITY.index(kind)),
        )

    def summary(self, limit: int = 3) -> list[tuple[EmotionKind, int]]:
        """Top *limit* kinds by cumulative weight, highest first."""
        totals = self.totals()
        ranked = sorted(
            totals.items(),
            key=lambda item: (-item[1], EMOTION_PRIORITY.index(item[0])),
        )
        return ranked[:limit]

    def recent_window(self, n: int) -> list[EmotionEvent]:
        """The last *n* events in insertion order. Display only."""
        if n <= 0:
            return []
        return self._events[-n:]
