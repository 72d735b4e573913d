"""Demo episode for development and testing.

"daily-practice-1" follows the five-beat structure: one hook, two engage
branches, a pivot, two climaxes and a closing wrap scene.
"""

from __future__ import annotations

from story_episode.models import Choice, EmotionEvent, EmotionKind, Episode, Scene
from story_episode.storage import Storage


def _choice(
    choice_id: str,
    ko: str,
    en: str,
    kind: EmotionKind,
    weight: int,
    bonus: int,
    next_scene_id: str | None = None,
) -> Choice:
    return Choice(
        id=choice_id,
        text=en,
        text_localized={"ko": ko, "en": en},
        emotion_impact=EmotionEvent(kind=kind, weight=weight),
        affinity_bonus=bonus,
        next_scene_id=next_scene_id,
    )


DAILY_PRACTICE = Episode(
    id="daily-practice-1",
    title="First Practice",
    title_localized={"ko": "첫 번째 연습", "en": "First Practice"},
    description="Practising a new song together for the first time.",
    scenes=[
        Scene(
            id="hook-1", beat="hook", turn_number=1,
            dialogue={
                "ko": "오늘 새로운 곡을 연습해볼까요? 조금 어려울 수도 있어요.",
                "en": "Shall we practice a new song today? It might be a bit challenging.",
            },
            choices=(
                _choice("A", "천천히 차근차근 해봐요", "Let's take it slow and steady",
                        EmotionKind.CALM, 1, 5, "engage-1a"),
                _choice("B", "어려워도 도전해봐요!", "Let's go for it, even if it's hard!",
                        EmotionKind.RESOLVE, 2, 8, "engage-1b"),
            ),
        ),
        Scene(
            id="engage-1a", beat="engage", turn_number=2,
            dialogue={
                "ko": "좋아요, 천천히 기본기부터 다져봐요. 당신과 함께라면 든든해요.",
                "en": "Great, let's build up the basics slowly. I feel reassured with you.",
            },
            choices=(
                _choice("A", "기본기가 정말 중요하죠", "The basics really matter",
                        EmotionKind.CALM, 1, 3, "pivot-1"),
                _choice("B", "같이 하니까 더 재미있어요", "It's more fun together",
                        EmotionKind.JOY, 2, 6, "pivot-1"),
            ),
        ),
        Scene(
            id="engage-1b", beat="engage", turn_number=2,
            dialogue={
                "ko": "그런 마음가짐이 좋아요! 함께 열심히 해봐요.",
                "en": "I love that attitude! Let's work hard together.",
            },
            choices=(
                _choice("A", "열정이 중요하죠!", "Passion is what counts!",
                        EmotionKind.RESOLVE, 1, 4, "pivot-1"),
                _choice("B", "당신의 에너지가 좋아요", "I love your energy",
                        EmotionKind.FLUTTER, 2, 7, "pivot-1"),
            ),
        ),
        Scene(
            id="pivot-1", beat="pivot", turn_number=3,
            dialogue={
                "ko": "어? 이 부분이 생각보다 어렵네요... 어떻게 해야 할까요?",
                "en": "Oh? This part is harder than I thought... What should we do?",
            },
            choices=(
                _choice("A", "잠시 쉬고 다시 해봐요", "Let's rest and try again",
                        EmotionKind.CALM, 1, 4, "climax-1a"),
                _choice("B", "포기하지 말고 계속 해봐요", "Don't give up, keep going",
                        EmotionKind.RESOLVE, 2, 6, "climax-1b"),
            ),
        ),
        Scene(
            id="climax-1a", beat="climax", turn_number=4,
            dialogue={
                "ko": "좋은 생각이에요. 마음을 차분히 하니까 더 잘 되는 것 같아요.",
                "en": "That's a good idea. It seems to work better when I calm my mind.",
            },
            choices=(
                _choice("A", "차분함이 힘이에요", "Calm is strength",
                        EmotionKind.CALM, 2, 8, "wrap-1"),
            ),
        ),
        Scene(
            id="climax-1b", beat="climax", turn_number=4,
            dialogue={
                "ko": "맞아요! 포기하지 않는 마음이 중요하죠. 드디어 해냈어요!",
                "en": "Right! The spirit of not giving up is important. We finally did it!",
            },
            choices=(
                _choice("A", "정말 대단해요!", "That was amazing!",
                        EmotionKind.JOY, 2, 10, "wrap-1"),
            ),
        ),
        Scene(
            id="wrap-1", beat="wrap", turn_number=5, is_ending=True,
            dialogue={
                "ko": "오늘 연습 정말 즐거웠어요. 당신과 함께라서 더 의미 있었던 것 같아요.",
                "en": "Today's practice was really enjoyable. "
                      "I think it was more meaningful because I was with you.",
            },
        ),
    ],
)

DEMO_EPISODES = [DAILY_PRACTICE]


def create_demo_data(storage: Storage) -> None:
    """Write the demo episodes, replacing any stored copies."""
    for episode in DEMO_EPISODES:
        storage.save_episode(episode)
