"""logic/encounters.py — Detection, takedowns, clicks and level clears.

Runs once per tick *after* the player and every guard have moved and
rebuilt their vision:

1. **Detection** — if any guard sees the player the detection timer
   grows by ``dt``; reaching ``Difficulty.max_detection_time`` ends the
   session.  Otherwise it decays at ``decay_rate`` × ``dt`` (never an
   instant reset).
2. **Takedowns** — any guard within ``kill_radius`` that is *not*
   seeing the player is removed: score, ``GuardKilled``, a
   ``SoundPulse`` at the body and a gem burst.
3. **Level clear** — the first tick the roster is empty starts exactly
   one transition; ``logic.tick`` starts the next level after
   ``transition_delay``.

Clicks arrive between ticks through ``handle_click``.
"""

from __future__ import annotations
import math
import random
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from components import (
    Position, Velocity, Player, PlayerState, Guard, VisionCone, PathFollow,
    Difficulty, EncounterState,
)
from components.dev_log import dev_log
from core.events import (
    EventBus, GuardKilled, SoundPulse, GemBurst, TargetMarked, GameOver,
    LevelCleared,
)
from core.grid import TileGrid
from core.save import HighLevelStore
from core.tuning import get as _tun
from logic.effects import spawn_gem_burst
from logic.level import restart_session, start_level
from logic.movement import lunge_at, set_player_path
from logic.pathfinding import PathFinder, issue_request

if TYPE_CHECKING:
    from core.ecs import World


@dataclass
class EncounterResult:
    killed: list[int] = field(default_factory=list)
    detection_delta: float = 0.0
    detected: bool = False
    game_over: bool = False
    level_complete: bool = False


def _emit(world: "World", event) -> None:
    bus = world.res(EventBus)
    if bus is not None:
        bus.emit(event)


# ── Detection ────────────────────────────────────────────────────────

def trigger_game_over(world: "World") -> None:
    state = world.res(EncounterState)
    if state.game_over:
        return
    state.game_over = True
    state.game_over_timer = 0.0
    found = world.query_one(Player, Velocity, PathFollow)
    if found is not None:
        _pid, player, vel, follow = found
        player.state = PlayerState.DEAD
        player.target = None
        vel.x = vel.y = 0.0
        follow.clear()
    _emit(world, GameOver(level=state.level, score=state.score))
    dev_log(world, -1, "encounter", "game over", level=state.level,
            score=state.score)
    print(f"[ENCOUNTER] Detected — game over on level {state.level} "
          f"(score {state.score})")


def update_detection(world: "World", dt: float) -> tuple[bool, float]:
    """Accumulate or decay the detection timer.  Returns (detected, delta)."""
    state = world.res(EncounterState)
    diff = world.res(Difficulty) or Difficulty()
    detected = any(cone.detecting for _eid, _g, cone
                   in world.query(Guard, VisionCone))
    before = state.detection_time
    if detected:
        state.detection_time += dt
        if state.detection_time >= diff.max_detection_time:
            trigger_game_over(world)
    else:
        rate = _tun("encounter", "decay_rate", 0.5)
        state.detection_time = max(0.0, state.detection_time - dt * rate)
    return detected, state.detection_time - before


# ── Takedowns ────────────────────────────────────────────────────────

def execute_takedown(world: "World", eid: int, rng=None) -> None:
    """Remove guard *eid* and emit the kill, noise and loot events."""
    rng = rng or random
    pos = world.get(eid, Position)
    state = world.res(EncounterState)
    x, y = pos.x, pos.y
    world.kill(eid)

    score = int(_tun("encounter", "kill_score", 45))
    state.score += score
    state.hit_stop = _tun("encounter", "hit_stop", 0.05)

    gems = rng.randint(int(_tun("encounter", "gem_min", 3)),
                       int(_tun("encounter", "gem_max", 5)))
    spawn_gem_burst(world, x, y, gems, rng)

    _emit(world, GuardKilled(eid=eid, x=x, y=y, score=score))
    _emit(world, SoundPulse(x=x, y=y,
                            radius=_tun("encounter", "sound_radius", 200.0)))
    _emit(world, GemBurst(x=x, y=y, count=gems))
    dev_log(world, eid, "encounter", "takedown", x=round(x), y=round(y))
    print(f"[ENCOUNTER] Guard {eid} eliminated — score {state.score}")


def resolve_takedowns(world: "World", rng=None) -> list[int]:
    found = world.query_one(Player, Position)
    if found is None:
        return []
    _pid, player, ppos = found
    if player.state is PlayerState.DEAD:
        return []
    radius = _tun("encounter", "kill_radius", 40.0)
    killed = []
    for eid, _pos, _guard, cone, _dsq in list(world.nearby(
            ppos.x, ppos.y, radius, Position, Guard, VisionCone)):
        if cone.detecting:
            continue
        execute_takedown(world, eid, rng)
        killed.append(eid)
    return killed


# ── Level clear ──────────────────────────────────────────────────────

def begin_level_transition(world: "World") -> bool:
    """Start the one transition for a cleared level.  False if one is running."""
    state = world.res(EncounterState)
    if state.transitioning:
        return False
    cleared = state.level
    state.level = cleared + 1
    state.transitioning = True
    state.transition_timer = _tun("encounter", "transition_delay", 2.0)

    store = world.res(HighLevelStore)
    new_record = store.record(state.level) if store is not None else False
    _emit(world, LevelCleared(level=cleared, next_level=state.level,
                              new_record=new_record))
    dev_log(world, -1, "level", f"level {cleared} cleared",
            new_record=new_record)
    print(f"[ENCOUNTER] Level {cleared} cleared"
          + (" — new record" if new_record else ""))
    return True


def update_transition(world: "World", dt: float, rng=None) -> bool:
    """Count down a running transition.  True on the tick the next level starts."""
    state = world.res(EncounterState)
    if state is None or not state.transitioning:
        return False
    state.transition_timer -= dt
    if state.transition_timer > 0:
        return False
    start_level(world, state.level, rng)
    return True


# ── Per-tick entry point ─────────────────────────────────────────────

def resolve_encounters(world: "World", dt: float, rng=None) -> EncounterResult:
    state = world.res(EncounterState)
    if state.game_over:
        return EncounterResult(game_over=True)

    detected, delta = update_detection(world, dt)
    result = EncounterResult(detected=detected, detection_delta=delta,
                             game_over=state.game_over)
    if state.game_over:
        return result

    result.killed = resolve_takedowns(world, rng)
    if world.count(Guard) == 0 and not state.transitioning:
        result.level_complete = begin_level_transition(world)
    return result


# ── Clicks ───────────────────────────────────────────────────────────

def handle_click(world: "World", x: float, y: float, rng=None) -> str:
    """Turn a click at world (x, y) into an intent.

    Returns ``"restart"``, ``"lunge"``, ``"move"`` or ``"ignored"``.
    Clicks on walls or off the map do nothing.
    """
    state = world.res(EncounterState)
    if state.game_over:
        if state.game_over_timer > _tun("encounter", "restart_delay", 1.0):
            restart_session(world, rng)
            return "restart"
        return "ignored"

    found = world.query_one(Player, Position, PathFollow)
    if found is None:
        return "ignored"
    _pid, player, ppos, follow = found
    if player.state is PlayerState.DEAD:
        return "ignored"

    tol = _tun("encounter", "click_tolerance", 30.0)
    hits = sorted(world.nearby(x, y, tol, Position, Guard), key=lambda r: r[-1])
    if hits:
        geid, gpos = hits[0][0], hits[0][1]
        if math.hypot(gpos.x - ppos.x, gpos.y - ppos.y) < _tun(
                "encounter", "lunge_range", 180.0):
            lunge_at(world, geid)
            _emit(world, TargetMarked(x=gpos.x, y=gpos.y, attack=True))
            return "lunge"
        # Out of lunge range: walk to the guard instead
        x, y = gpos.x, gpos.y

    grid: TileGrid = world.res(TileGrid)
    goal = grid.cell_at(x, y)
    if not grid.is_floor(*goal):
        return "ignored"

    cx, cy = grid.cell_center(*goal)
    _emit(world, TargetMarked(x=cx, y=cy))
    finder: PathFinder = world.res(PathFinder)
    issue_request(finder, follow, grid.cell_at(ppos.x, ppos.y), goal,
                  lambda path: set_player_path(world, path))
    return "move"
