"""Neural Echo: launcher. Plays the story in the terminal or serves the API."""

import argparse
import asyncio
import os
import random
import textwrap
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

from neural_echo.config import configure_logging, load_config
from neural_echo.demo import create_demo_data
from neural_echo.engine import EngineContext
from neural_echo.errors import EngineError, NoNextNode
from neural_echo.models import BranchEvent, LoopEvent
from neural_echo.notifications import QueueNotifier
from neural_echo.storage import JsonStateStore

ROOT = Path(__file__).parent
load_dotenv(ROOT / ".env")


async def play(store: JsonStateStore, seed: int | None) -> None:
    config = load_config()
    notices = QueueNotifier()
    rng = random.Random(seed if seed is not None else config.random_seed)
    engine = await EngineContext.load(store, config, rng=rng, notifier=notices)
    controller = engine.controller

    while True:
        node = controller.current_node()
        storyline = engine.graph.get_storyline_for_node(node.id)
        timeline = engine.timelines.get_current_timeline()
        print(f"\n== {node.title} ==  [{storyline.name if storyline else '?'} | Timeline: {timeline.name}]")
        print(textwrap.fill(node.content, width=78))

        if node.is_ending:
            print("\nThe End.")
            return

        choices = controller.current_choices()
        if not node.is_choice_node or not choices:
            answer = input("\n[Enter] to continue, q to quit: ").strip().lower()
            if answer == "q":
                return
            try:
                await controller.advance()
            except NoNextNode:
                print("\nThe story ends here.")
                return
            continue

        print()
        for i, choice in enumerate(choices, 1):
            print(f"  {i}. {choice.text}")
        answer = input("\nChoose (q to quit): ").strip().lower()
        if answer == "q":
            return
        if not answer.isdigit() or not 1 <= int(answer) <= len(choices):
            print("Pick one of the numbers above.")
            continue

        try:
            await controller.apply_choice(choices[int(answer) - 1].id)
        except EngineError as e:
            print(f"Error: {e}")
            continue
        for event in notices.drain():
            if isinstance(event, BranchEvent):
                print(f"\n*** Timeline branch created: {event.timeline_name} ***")
            elif isinstance(event, LoopEvent):
                print("\n*** Strange temporal loop detected... ***")


def main():
    parser = argparse.ArgumentParser(description="Neural Echo: Parallel Minds")
    parser.add_argument("--data-dir", type=Path, default=None,
                        help="Save directory (default: DATA_DIR or ./data)")
    parser.add_argument("--demo", action="store_true",
                        help="Wipe the save and seed the bundled story")
    parser.add_argument("--serve", action="store_true",
                        help="Serve the HTTP API instead of playing in the terminal")
    parser.add_argument("--seed", type=int, default=None,
                        help="Seed for timeline branching rolls")
    args = parser.parse_args()

    config = load_config()
    configure_logging(config.log_level)
    data_dir = args.data_dir or config.data_dir
    store = JsonStateStore(data_dir)
    if args.demo or not (data_dir / "content.json").is_file():
        create_demo_data(store)

    if args.serve:
        os.environ["DATA_DIR"] = str(data_dir.resolve())
        if args.seed is not None:
            os.environ["RANDOM_SEED"] = str(args.seed)
        print(f"Starting API on http://localhost:{config.port} ...")
        uvicorn.run("neural_echo.app:create_app", factory=True, host=config.host, port=config.port)
        return

    asyncio.run(play(store, args.seed))


if __name__ == "__main__":
    main()
