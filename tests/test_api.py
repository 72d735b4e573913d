"""HTTP tests for the /api routes using FastAPI's TestClient."""

import pytest
from fastapi.testclient import TestClient

from story_episode.app import create_app
from story_episode.config import Settings
from story_episode.demo import create_demo_data
from story_episode.models import Choice, EmotionEvent, EmotionKind, Episode, Scene
from story_episode.routes.deps import SessionRegistry
from story_episode.storage import Storage

EPISODE = "daily-practice-1"


@pytest.fixture
def client(settings: Settings) -> TestClient:
    create_demo_data(Storage(settings.data_dir))
    return TestClient(create_app(settings))


def _start(client: TestClient, **body) -> dict:
    resp = client.post(f"/api/episodes/{EPISODE}/sessions", json=body or None,
                       params={"locale": "en"})
    assert resp.status_code == 200
    return resp.json()


def _choose(client: TestClient, session_id: str, choice_id: str, **extra):
    return client.post(f"/api/sessions/{session_id}/choices",
                       json={"choice_id": choice_id, **extra}, params={"locale": "en"})


def _play_through(client: TestClient, session_id: str) -> dict:
    for choice_id in ("B", "A", "B", "A"):
        resp = _choose(client, session_id, choice_id)
        assert resp.status_code == 200
    return resp.json()


# ── Episodes ─────────────────────────────────────────────


class TestEpisodes:
    def test_list(self, client: TestClient) -> None:
        resp = client.get("/api/episodes")
        assert resp.status_code == 200
        assert [e["id"] for e in resp.json()] == [EPISODE]

    def test_detail(self, client: TestClient) -> None:
        data = client.get(f"/api/episodes/{EPISODE}").json()
        assert data["title"] == "First Practice"
        assert len(data["scenes"]) == 7

    def test_missing(self, client: TestClient) -> None:
        assert client.get("/api/episodes/nope").status_code == 404
        assert client.get("/api/episodes/nope/rewards").status_code == 404

    def test_rewards_empty(self, client: TestClient) -> None:
        assert client.get(f"/api/episodes/{EPISODE}/rewards").json() == []


# ── Sessions ─────────────────────────────────────────────


class TestSessions:
    def test_start(self, client: TestClient) -> None:
        data = _start(client)
        assert data["episode_id"] == EPISODE
        assert data["phase"] == "not_started"
        assert data["scene"]["id"] == "hook-1"
        assert data["scene"]["dialogue"].startswith("Shall we practice")
        assert [c["id"] for c in data["scene"]["choices"]] == ["A", "B"]
        assert data["state"]["affinity"] == 0
        assert data["dominant_emotion"] is None

    def test_start_with_affinity(self, client: TestClient) -> None:
        data = _start(client, affinity=40)
        assert data["state"]["affinity"] == 40
        assert data["affinity_level"] == "Medium"

    def test_start_unknown_episode(self, client: TestClient) -> None:
        assert client.post("/api/episodes/nope/sessions").status_code == 404

    def test_get(self, client: TestClient) -> None:
        session_id = _start(client)["session_id"]
        resp = client.get(f"/api/sessions/{session_id}")
        assert resp.status_code == 200
        assert resp.json()["scene"]["id"] == "hook-1"

    def test_get_unknown(self, client: TestClient) -> None:
        assert client.get("/api/sessions/missing").status_code == 404

    def test_choice_advances(self, client: TestClient) -> None:
        session_id = _start(client)["session_id"]
        data = _choose(client, session_id, "B", highlight=True).json()
        assert data["phase"] == "in_progress"
        assert data["scene"]["id"] == "engage-1b"
        assert data["state"]["turn_count"] == 1
        assert data["state"]["affinity"] == 8
        assert data["state"]["highlight_moments"] == ["오늘 새로운 곡을 연습해볼까"]
        assert data["dominant_emotion"] == "resolve"

    def test_invalid_choice_conflict(self, client: TestClient) -> None:
        session_id = _start(client)["session_id"]
        resp = _choose(client, session_id, "Z")
        assert resp.status_code == 409

    def test_play_to_completion(self, client: TestClient) -> None:
        session_id = _start(client)["session_id"]
        data = _play_through(client, session_id)
        assert data["phase"] == "completed"
        assert data["scene"]["id"] == "wrap-1"
        assert data["scene"]["is_terminal"] is True
        assert data["state"]["choice_path"] == ["B", "A", "B", "A"]
        assert data["state"]["affinity"] == 28
        assert _choose(client, session_id, "A").status_code == 409

    def test_replay(self, client: TestClient) -> None:
        session_id = _start(client, affinity=5)["session_id"]
        _choose(client, session_id, "A")
        data = client.post(f"/api/sessions/{session_id}/replay").json()
        assert data["scene"]["id"] == "hook-1"
        assert data["state"]["turn_count"] == 0
        assert data["state"]["affinity"] == 5

    def test_delete(self, client: TestClient) -> None:
        session_id = _start(client)["session_id"]
        assert client.delete(f"/api/sessions/{session_id}").json() == {"ok": True}
        assert client.delete(f"/api/sessions/{session_id}").status_code == 404
        assert client.get(f"/api/sessions/{session_id}").status_code == 404


# ── Rewards ──────────────────────────────────────────────


class TestRewards:
    def test_reward_before_completion(self, client: TestClient) -> None:
        session_id = _start(client)["session_id"]
        assert client.post(f"/api/sessions/{session_id}/reward").status_code == 409

    def test_claim_reward(self, client: TestClient) -> None:
        session_id = _start(client, affinity=40)["session_id"]
        _play_through(client, session_id)

        resp = client.post(f"/api/sessions/{session_id}/reward")
        assert resp.status_code == 200
        reward = resp.json()
        assert reward["episode_id"] == EPISODE
        assert reward["rarity"] == "R"
        assert reward["affinity"] == 68
        assert reward["choice_path"] == "B-A-B-A"
        assert reward["title"] == "열정적인 첫 번째 연습"
        assert len(reward["moment_hash"]) == 16

        again = client.post(f"/api/sessions/{session_id}/reward").json()
        assert again == reward
        stored = client.get(f"/api/episodes/{EPISODE}/rewards").json()
        assert [r["id"] for r in stored] == [reward["id"]]

    def test_same_path_same_hash(self, client: TestClient) -> None:
        hashes = []
        for _ in range(2):
            session_id = _start(client)["session_id"]
            _play_through(client, session_id)
            hashes.append(client.post(f"/api/sessions/{session_id}/reward").json()["moment_hash"])
        assert hashes[0] == hashes[1]


def test_dangling_scene_is_server_error(settings: Settings) -> None:
    go = Choice(id="A", text="Go", emotion_impact=EmotionEvent(kind=EmotionKind.JOY, weight=1),
                next_scene_id="gone")
    broken = Episode(
        id="broken",
        title="Broken",
        scenes=[Scene(id="only", beat="hook", dialogue={"ko": "..."}, choices=(go,))],
    )
    Storage(settings.data_dir).save_episode(broken)
    client = TestClient(create_app(settings))

    resp = client.post("/api/episodes/broken/sessions")
    assert resp.status_code == 500
    assert resp.json()["detail"] == "Episode content is broken"


# ── Session registry ─────────────────────────────────────


class TestSessionRegistry:
    def test_least_recently_used_evicted(self) -> None:
        registry = SessionRegistry(capacity=2)
        first = registry.create("a")
        second = registry.create("b")
        registry.get(first)
        third = registry.create("c")
        assert len(registry) == 2
        assert second not in registry
        assert first in registry and third in registry

    def test_api_caps_sessions(self, tmp_path) -> None:
        settings = Settings(data_dir=tmp_path / "data", max_sessions=2)
        create_demo_data(Storage(settings.data_dir))
        client = TestClient(create_app(settings))

        ids = [_start(client)["session_id"] for _ in range(3)]
        assert client.get(f"/api/sessions/{ids[0]}").status_code == 404
        assert client.get(f"/api/sessions/{ids[2]}").status_code == 200
        assert len(client.app.state.sessions) == 2


# ── Live sessions ────────────────────────────────────────


class ScriptedLLM:
    def __init__(self, outputs):
        self.outputs = list(outputs)
        self.stages = []

    async def __call__(self, stage: str, prompt: str) -> str:
        self.stages.append(stage)
        return self.outputs.pop(0)


def _turn(dialogue: str) -> str:
    return (
        f"DIALOGUE: {dialogue}\n"
        "CHOICE A [joy+2, +8]: Me too!\n"
        "CHOICE B [anxiety-1, +3]: I almost didn't.\n"
    )


def _live_client(tmp_path, outputs) -> TestClient:
    settings = Settings(data_dir=tmp_path / "data", max_turns=2, default_locale="en")
    create_demo_data(Storage(settings.data_dir))
    app = create_app(settings)
    app.state.llm = ScriptedLLM(outputs)
    return TestClient(app)


def _start_live(client: TestClient):
    return client.post(f"/api/episodes/{EPISODE}/live", json={"character": "Mina"})


class TestLive:
    def test_disabled_without_backend(self, client: TestClient) -> None:
        assert client.app.state.llm is None
        assert _start_live(client).status_code == 503

    def test_full_run_and_reward(self, tmp_path) -> None:
        client = _live_client(tmp_path, [_turn("Hello!"), _turn("Goodbye!")])

        data = _start_live(client).json()
        session_id = data["session_id"]
        assert data["scene"]["id"] == "turn-1"
        assert data["scene"]["dialogue"] == "Hello!"
        assert data["phase"] == "not_started"

        data = client.post(f"/api/live/{session_id}/choices", json={"choice_id": "A"}).json()
        assert data["scene"]["id"] == "turn-2"
        assert data["state"]["affinity"] == 8

        data = client.post(f"/api/live/{session_id}/choices", json={"choice_id": "B"}).json()
        assert data["phase"] == "completed"
        assert client.app.state.llm.stages == ["opening", "scene"]

        reward = client.post(f"/api/live/{session_id}/reward").json()
        assert reward["choice_path"] == "A-B"
        assert reward["affinity"] == 11
        assert reward["title"] == "Joyful First Practice"
        assert client.post(f"/api/live/{session_id}/reward").json() == reward
        stored = client.get(f"/api/episodes/{EPISODE}/rewards").json()
        assert [r["id"] for r in stored] == [reward["id"]]

    def test_reward_before_completion(self, tmp_path) -> None:
        client = _live_client(tmp_path, [_turn("Hello!")])
        session_id = _start_live(client).json()["session_id"]
        assert client.post(f"/api/live/{session_id}/reward").status_code == 409

    def test_opening_parse_failure(self, tmp_path) -> None:
        client = _live_client(tmp_path, ["no format at all"])
        resp = _start_live(client)
        assert resp.status_code == 502
        assert len(client.app.state.live_sessions) == 0

    def test_failed_turn_can_be_retried(self, tmp_path) -> None:
        client = _live_client(tmp_path, [_turn("Hello!"), "garbage", _turn("Again!")])
        session_id = _start_live(client).json()["session_id"]

        resp = client.post(f"/api/live/{session_id}/choices", json={"choice_id": "A"})
        assert resp.status_code == 502
        data = client.get(f"/api/live/{session_id}").json()
        assert data["scene"]["id"] == "turn-1"
        assert data["state"]["turn_count"] == 0

        resp = client.post(f"/api/live/{session_id}/choices", json={"choice_id": "A"})
        assert resp.status_code == 200
        assert resp.json()["scene"]["dialogue"] == "Again!"

    def test_invalid_choice_and_unknown_session(self, tmp_path) -> None:
        client = _live_client(tmp_path, [_turn("Hello!")])
        session_id = _start_live(client).json()["session_id"]
        resp = client.post(f"/api/live/{session_id}/choices", json={"choice_id": "Z"})
        assert resp.status_code == 409
        assert client.get("/api/live/missing").status_code == 404
        assert client.delete(f"/api/live/{session_id}").json() == {"ok": True}
        assert client.delete(f"/api/live/{session_id}").status_code == 404
