"""logic/level.py — Level lifecycle: difficulty, generation, (re)start.

``setup_session`` builds the one World that every system receives and
installs its resources:

    TileGrid, PathFinder, Difficulty, EncounterState, GameClock,
    EventBus, DevLog, HighLevelStore

``start_level`` is the only writer of the grid: it regenerates the map,
re-points the path finder, respawns the player on a random floor cell,
clears gems, and spawns ``Difficulty.max_guards`` guards far from the
player.
"""

from __future__ import annotations
import random

from core.ecs import World
from core.events import EventBus, LevelStarted
from core.grid import TileGrid, Cell
from core.save import HighLevelStore
from core.tuning import get as _tun
from components import (
    Position, Velocity, PathFollow, Player, PlayerState, Guard,
    GameClock, Difficulty, EncounterState, DevLog,
)
from components.dev_log import dev_log
from logic.entity_factory import spawn
from logic.effects import clear_gems
from logic.guards import sound_pulse_handler
from logic.mapgen import generate_grid, find_valid_spawn
from logic.pathfinding import PathFinder


# ── Difficulty ───────────────────────────────────────────────────────

def difficulty_for_level(level: int) -> Difficulty:
    """Per-level modifiers.  Speed and vision grow linearly up to a cap;
    the detection allowance shrinks to a floor."""
    n = max(1, int(level)) - 1
    speed = 1.0 + _tun("difficulty", "speed_step", 0.05) * n
    vision = 1.0 + _tun("difficulty", "vision_step", 0.02) * n
    detect = (_tun("difficulty", "base_detection_time", 1.5)
              - _tun("difficulty", "detection_time_step", 0.1) * n)
    return Difficulty(
        level=n + 1,
        max_guards=int(_tun("difficulty", "base_guards", 4)) + n // 2,
        speed_mult=min(_tun("difficulty", "speed_cap", 2.0), speed),
        vision_mult=min(_tun("difficulty", "vision_cap", 1.5), vision),
        max_detection_time=max(_tun("difficulty", "min_detection_time", 0.8), detect),
    )


# ── Generation ───────────────────────────────────────────────────────

def generate_level(level_number: int, rng=None) -> tuple[TileGrid, Cell]:
    """Generate the grid for *level_number* and a player spawn cell."""
    rng = rng or random
    w = int(_tun("level", "width", 20))
    h = int(_tun("level", "height", 12))
    grid = generate_grid(w, h, rng=rng)
    spawn_cell = find_valid_spawn(grid, rng)
    print(f"[LEVEL] Level {level_number}: {w}x{h}, "
          f"{grid.floor_count()} floor cells, spawn {spawn_cell}")
    return grid, spawn_cell


def pick_guard_cells(grid: TileGrid, player_cell: Cell, count: int,
                     rng=None) -> list[Cell]:
    """Choose up to *count* floor cells at least ``spawn_min_distance``
    Manhattan cells from the player.  A guard that finds no cell within
    ``spawn_attempts`` tries is skipped."""
    rng = rng or random
    min_d = int(_tun("encounter", "spawn_min_distance", 8))
    attempts = int(_tun("encounter", "spawn_attempts", 100))
    px, py = player_cell
    cells = []
    for _ in range(count):
        for _try in range(attempts):
            x = rng.randrange(grid.width - 2) + 1
            y = rng.randrange(grid.height - 2) + 1
            if grid.is_floor(x, y) and abs(x - px) + abs(y - py) >= min_d:
                cells.append((x, y))
                break
    return cells


# ── Session / level start ────────────────────────────────────────────

def _place_player(world: World, spawn_cell: Cell) -> int:
    grid = world.res(TileGrid)
    found = world.query_one(Player, Position, Velocity, PathFollow)
    if found is None:
        return spawn(world, "player", cell=spawn_cell)
    pid, player, pos, vel, follow = found
    pos.x, pos.y = grid.cell_center(*spawn_cell)
    vel.x = vel.y = 0.0
    follow.clear()
    player.state = PlayerState.IDLE
    player.target = None
    player.footstep_timer = 0.0
    return pid


def start_level(world: World, level: int, rng=None,
                grid: TileGrid | None = None,
                spawn_cell: Cell | None = None) -> list[int]:
    """(Re)build the level in place.  Returns the new guard eids.

    Pass *grid* / *spawn_cell* to load a fixed layout instead of
    generating one.
    """
    rng = rng or random
    if grid is None:
        grid, gen_spawn = generate_level(level, rng)
        if spawn_cell is None:
            spawn_cell = gen_spawn
    elif spawn_cell is None:
        spawn_cell = find_valid_spawn(grid, rng)

    diff = difficulty_for_level(level)
    world.set_res(diff)
    world.set_res(grid)
    finder = world.res(PathFinder)
    if finder is None:
        finder = PathFinder(grid)
        world.set_res(finder)
    else:
        finder.set_grid(grid)

    for eid, _g in list(world.all_of(Guard)):
        world.kill(eid)
    clear_gems(world)
    world.purge()

    _place_player(world, spawn_cell)

    guards = [spawn(world, "guard", cell=c, rng=rng)
              for c in pick_guard_cells(grid, spawn_cell, diff.max_guards, rng)]

    state = world.res(EncounterState)
    if state is not None:
        state.level = level
        state.detection_time = 0.0
        state.transitioning = False
        state.transition_timer = 0.0
        state.hit_stop = 0.0
        state.spawn = spawn_cell

    bus = world.res(EventBus)
    if bus is not None:
        bus.clear()
        bus.emit(LevelStarted(level=level, guards=len(guards)))
    dev_log(world, -1, "level", f"level {level} started", guards=len(guards))
    print(f"[LEVEL] Spawned {len(guards)}/{diff.max_guards} guards "
          f"(speed x{diff.speed_mult:.2f}, vision x{diff.vision_mult:.2f}, "
          f"detect {diff.max_detection_time:.2f}s)")
    return guards


def setup_session(level: int = 1, rng=None,
                  store: HighLevelStore | None = None,
                  grid: TileGrid | None = None,
                  spawn_cell: Cell | None = None,
                  deferred_paths: bool | None = None) -> World:
    """Create a World with every shared resource and start *level*."""
    world = World()
    world.set_res(GameClock())
    bus = EventBus()
    world.set_res(bus)
    world.set_res(DevLog())
    world.set_res(store if store is not None else HighLevelStore())
    world.set_res(EncounterState(level=level))
    world.set_res(PathFinder(deferred=deferred_paths))
    bus.subscribe("SoundPulse", sound_pulse_handler(world))
    start_level(world, level, rng, grid=grid, spawn_cell=spawn_cell)
    return world


def restart_session(world: World, rng=None) -> None:
    """Back to level 1 after a game over; score and detection reset."""
    state = world.res(EncounterState)
    if state is not None:
        state.score = 0
        state.game_over = False
        state.game_over_timer = 0.0
    print("[LEVEL] Restarting at level 1")
    start_level(world, 1, rng)
