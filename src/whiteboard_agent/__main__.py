"""cli entrypoint for whiteboard agent."""

import argparse
import logging
from pathlib import Path

from .core.config import AgentSettings
from .tui.app import run


def main():
    parser = argparse.ArgumentParser(
        description="whiteboard agent - natural-language commands for a shared canvas"
    )
    parser.add_argument("--room", "-r", help="room id (default: $WHITEBOARD_ROOM)")
    parser.add_argument("--data-dir", "-d", help="where room files are kept")
    parser.add_argument("--locale", "-l", help="reply language for generative backends")
    parser.add_argument(
        "--mock",
        "-m",
        action="store_true",
        help="use mock client (no api calls, for testing)",
    )
    parser.add_argument("--debug", action="store_true", help="debug logging")

    args = parser.parse_args()

    settings = AgentSettings.from_env()
    if args.room:
        settings.room = args.room
    if args.data_dir:
        settings.data_dir = Path(args.data_dir).expanduser()
    if args.locale:
        settings.locale = args.locale
    settings.mock = args.mock

    # the tui owns the terminal, so logs go to a file
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        filename=settings.data_dir / "whiteboard-agent.log",
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    run(settings)


if __name__ == "__main__":
    main()
