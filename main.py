"""
main.py — Bootstrap

1. Load tuning constants
2. Open the progress store
3. Build the session world (level, guards, resources)
4. Push the stealth scene
5. Run
"""

import argparse
import random

from core import tuning
from core.app import App
from core.constants import TILE_SIZE
from core.nbt import load_level_nbt
from core.save import HighLevelStore, SAVES_DIR
from logic.level import setup_session
from scenes.stealth_scene import StealthScene


def main(argv=None):
    parser = argparse.ArgumentParser(description="Last Protocol")
    parser.add_argument("--level", type=int, default=1,
                        help="level to start on (default 1)")
    parser.add_argument("--seed", type=int, default=None,
                        help="seed the level generator")
    parser.add_argument("--load", metavar="FILE", default=None,
                        help="play a level exported with F2 (.nbt)")
    parser.add_argument("--reset-progress", action="store_true",
                        help="forget the highest level reached, then start")
    args = parser.parse_args(argv)

    tuning.load()
    if args.seed is not None:
        random.seed(args.seed)

    store = HighLevelStore(SAVES_DIR / "progress.json")
    if args.reset_progress:
        store.clear()
        print("[SAVE] Progress reset")

    level, grid, spawn_cell = args.level, None, None
    if args.load:
        snap = load_level_nbt(args.load)
        level, grid, spawn_cell = snap["level"], snap["grid"], snap["spawn"]
        print(f"[MAIN] Loaded level {level} from {args.load}")

    width = int(tuning.get("level", "width", 20)) * TILE_SIZE
    height = int(tuning.get("level", "height", 12)) * TILE_SIZE
    if grid is not None:
        width, height = grid.width * grid.tile_size, grid.height * grid.tile_size

    app = App(title="Last Protocol", width=width, height=height)
    app.world = setup_session(level=level, store=store,
                              grid=grid, spawn_cell=spawn_cell)
    app.push_scene(StealthScene())
    app.run()


if __name__ == "__main__":
    main()
