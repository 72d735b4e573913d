"""Story Episode — dev launcher. Seeds demo content and starts the API in watch mode."""

import argparse
import logging
import os
import subprocess
import sys
from pathlib import Path

from dotenv import load_dotenv

ROOT = Path(__file__).parent
load_dotenv(ROOT / ".env")

HOST = os.getenv("HOST", "0.0.0.0")
PORT = os.getenv("PORT", "13015")


def main():
    parser = argparse.ArgumentParser(description="Story Episode dev launcher")
    parser.add_argument("--data-dir", type=Path, default=None,
                        help="Data storage directory (default: ./data)")
    parser.add_argument("--demo", action="store_true",
                        help="Write the demo episodes into the data directory")
    parser.add_argument("--llm-url", default=None,
                        help="Generation backend URL; enables live episodes")
    parser.add_argument("--log-level", default=os.getenv("LOG_LEVEL", "INFO"),
                        help="Logging level (default: INFO)")
    args = parser.parse_args()

    logging.basicConfig(level=args.log_level.upper(),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    # Build env for the server process so it picks up the same data dir
    env = os.environ.copy()
    if args.data_dir:
        env["STORY_DATA_DIR"] = str(args.data_dir.resolve())
    if args.llm_url:
        env["STORY_LLM_URL"] = args.llm_url

    if args.demo:
        from story_episode.config import load_settings
        from story_episode.demo import create_demo_data
        from story_episode.storage import Storage

        overrides = {"data_dir": args.data_dir} if args.data_dir else {}
        settings = load_settings(**overrides)
        create_demo_data(Storage(settings.data_dir))
        print(f"Demo episodes written to {settings.data_dir}")

    print(f"Starting API on http://localhost:{PORT} ...")
    proc = subprocess.Popen(
        [sys.executable, "-m", "uvicorn", "story_episode.app:create_app", "--factory",
         "--reload", "--host", HOST, "--port", PORT, "--log-level", args.log_level.lower()],
        cwd=ROOT, env=env,
    )
    try:
        proc.wait()
    except KeyboardInterrupt:
        print("\nShutting down...")
        proc.terminate()
        proc.wait()


if __name__ == "__main__":
    main()
