"""Engine and service settings.

Defaults cover the engine itself (turn budget, highlight and hash lengths).
load_settings() layers a .env file and STORY_* environment variables on top,
the same way the app factory picks up its data directory.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field

ROOT = Path(__file__).parent.parent
DEFAULT_DATA_DIR = ROOT / "data"

_ENV_PREFIX = "STORY_"


class Settings(BaseModel):
    max_turns: int = Field(default=8, ge=1)
    highlight_length: int = Field(default=15, ge=1)
    moment_hash_length: int = Field(default=16, ge=4, le=64)
    default_locale: str = "ko"
    data_dir: Path = DEFAULT_DATA_DIR
    max_sessions: int = Field(default=1000, ge=1)

    # Live dialogue generation backend (optional)
    llm_url: str = ""
    llm_api_key: str = ""
    llm_format: Literal["koboldcpp", "openai"] = "koboldcpp"
    llm_model: str = ""


def load_settings(env_file: Path | None = None, **overrides: object) -> Settings:
    """Build Settings from .env, STORY_* variables and explicit overrides.

    STORY_MAX_TURNS=10 sets max_turns, STORY_DATA_DIR sets data_dir, and so on.
    Explicit keyword overrides win over the environment.
    """
    load_dotenv(env_file or ROOT / ".env")

    fields: dict[str, object] = {}
    for name in Settings.model_fields:
        value = os.getenv(f"{_ENV_PREFIX}{name.upper()}")
        if value is not None:
            fields[name] = value
    fields.update(overrides)
    return Settings.model_validate(fields)
