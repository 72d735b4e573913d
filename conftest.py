from pathlib import Path

import pytest

from story_episode.config import Settings
from story_episode.demo import DAILY_PRACTICE
from story_episode.graph import SceneGraph
from story_episode.models import Episode


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Default engine settings with data written under a per-test temp dir."""
    return Settings(data_dir=tmp_path / "data")


@pytest.fixture
def episode() -> Episode:
    return DAILY_PRACTICE


@pytest.fixture
def graph(episode: Episode) -> SceneGraph:
    return SceneGraph.from_episode(episode)
