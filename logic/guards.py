"""logic/guards.py — Guard brain: IDLE / PATROL / INVESTIGATE / ALERT.

Every tick a guard first rebuilds its vision fan and tests the player
against it, *then* runs its state behaviour:

    detecting            → ALERT (from any state): halt, drop the path,
                           face the player
    lost sight in ALERT  → IDLE (never straight back to patrol)
    IDLE                 → dwell 2–3 s, then request a patrol path to a
                           random floor cell within ±5 cells
    PATROL               → follow the path; finished or failed → IDLE
    INVESTIGATE          → walk to the sound, look around for 2.5 s,
                           then IDLE

Sound pulses (``SoundPulse`` events, e.g. from a takedown) push every
non-alert guard in range into INVESTIGATE toward the origin.

State changes are written to the ``DevLog`` resource; the rising edge of
ALERT also emits ``AlertRaised`` for the audio / effects layer.
"""

from __future__ import annotations
import math
import random
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from components import (
    Position, Velocity, Facing, PathFollow, Guard, GuardState, VisionCone,
    Player,
)
from components.dev_log import dev_log
from core.events import EventBus, AlertRaised
from core.grid import TileGrid, Cell
from core.tuning import get as _tun
from logic.movement import advance_along_path
from logic.pathfinding import PathFinder, issue_request
from logic.vision import build_vision_polygon, detects

if TYPE_CHECKING:
    from core.ecs import World


@dataclass
class GuardSnapshot:
    """What a renderer needs from one guard after its tick."""
    eid: int
    x: float
    y: float
    angle: float
    state: GuardState
    polygon: list[tuple[float, float]] = field(default_factory=list)
    detecting: bool = False


# ── State changes ────────────────────────────────────────────────────

def _set_state(world: "World", eid: int, guard: Guard,
               new: GuardState, **details) -> None:
    if guard.state is new:
        return
    dev_log(world, eid, "guard", f"{guard.state.name} → {new.name}", **details)
    guard.state = new


def reset_idle(world: "World", eid: int, rng=None) -> None:
    """Drop any path and start a fresh randomised dwell."""
    rng = rng or random
    guard = world.get(eid, Guard)
    follow = world.get(eid, PathFollow)
    if guard is None:
        return
    _set_state(world, eid, guard, GuardState.IDLE)
    guard.idle_timer = 0.0
    guard.idle_duration = (_tun("guard", "idle_min", 2.0)
                           + rng.random() * _tun("guard", "idle_jitter", 1.0))
    if follow is not None:
        follow.clear()
    vel = world.get(eid, Velocity)
    if vel is not None:
        vel.x = vel.y = 0.0


def patrol_candidates(grid: TileGrid, origin: Cell, radius: int) -> list[Cell]:
    """Floor cells in the (2r+1)² box around *origin*, excluding it."""
    ox, oy = origin
    out = []
    for dy in range(-radius, radius + 1):
        for dx in range(-radius, radius + 1):
            if dx == 0 and dy == 0:
                continue
            if grid.is_floor(ox + dx, oy + dy):
                out.append((ox + dx, oy + dy))
    return out


def start_patrol(world: "World", eid: int, finder: PathFinder,
                 rng=None) -> bool:
    """Request a patrol path from IDLE.  Returns False if no target exists."""
    rng = rng or random
    guard = world.get(eid, Guard)
    pos = world.get(eid, Position)
    follow = world.get(eid, PathFollow)
    grid: TileGrid = world.res(TileGrid)

    guard.cell = grid.cell_at(pos.x, pos.y)
    radius = _tun("guard", "patrol_radius", 5)
    targets = patrol_candidates(grid, guard.cell, radius)
    if not targets:
        reset_idle(world, eid, rng)
        return False
    goal = rng.choice(targets)

    def _on_path(path):
        if guard.state is not GuardState.IDLE:
            return
        if path:
            follow.set(path)
            _set_state(world, eid, guard, GuardState.PATROL, goal=goal)
        else:
            dev_log(world, eid, "path", "patrol path failed", goal=goal)
            reset_idle(world, eid, rng)

    issue_request(finder, follow, guard.cell, goal, _on_path)
    return True


def investigate(world: "World", eid: int, x: float, y: float,
                finder: PathFinder, rng=None) -> None:
    """Send a guard to look into a noise at world point (x, y).

    A failed path request puts the guard back to IDLE; an empty path
    (already standing on the cell) starts the look-around at once.
    """
    guard = world.get(eid, Guard)
    pos = world.get(eid, Position)
    follow = world.get(eid, PathFollow)
    grid: TileGrid = world.res(TileGrid)
    if guard is None or pos is None or follow is None:
        return

    follow.clear()
    vel = world.get(eid, Velocity)
    if vel is not None:
        vel.x = vel.y = 0.0
    guard.investigate_timer = _tun("guard", "investigate_duration", 2.5)
    goal = grid.cell_at(x, y)
    _set_state(world, eid, guard, GuardState.INVESTIGATE, origin=(x, y))
    guard.cell = grid.cell_at(pos.x, pos.y)

    def _on_path(path):
        if guard.state is not GuardState.INVESTIGATE:
            return
        if path is None:
            dev_log(world, eid, "path", "investigate path failed", goal=goal)
            reset_idle(world, eid, rng)
        else:
            follow.set(path)

    issue_request(finder, follow, guard.cell, goal, _on_path)


def alert_guards_in_radius(world: "World", x: float, y: float,
                           radius: float, finder: PathFinder | None = None,
                           rng=None) -> list[int]:
    """Send every non-ALERT guard strictly within *radius* to investigate."""
    finder = finder or world.res(PathFinder)
    alerted = []
    for eid, _pos, guard, _dsq in world.nearby(x, y, radius, Position, Guard):
        if guard.state is GuardState.ALERT:
            continue
        investigate(world, eid, x, y, finder, rng)
        alerted.append(eid)
    if alerted:
        print(f"[GUARD] Sound at ({x:.0f}, {y:.0f}) r={radius:.0f} "
              f"→ {len(alerted)} guard(s) investigating")
    return alerted


def sound_pulse_handler(world: "World"):
    """Build an ``EventBus`` handler that turns ``SoundPulse`` into alerts."""
    def _on_sound(ev):
        alert_guards_in_radius(world, ev.x, ev.y, ev.radius)
    return _on_sound


# ── Per-tick update ──────────────────────────────────────────────────

def tick_guard(world: "World", eid: int, dt: float,
               finder: PathFinder | None = None, rng=None) -> GuardSnapshot | None:
    """Run one guard for one tick.  Returns ``None`` for a missing guard."""
    guard = world.get(eid, Guard)
    pos = world.get(eid, Position)
    if guard is None or pos is None or not world.alive(eid):
        return None
    vel = world.get(eid, Velocity)
    facing = world.get(eid, Facing)
    follow = world.get(eid, PathFollow)
    cone = world.get(eid, VisionCone)
    grid: TileGrid = world.res(TileGrid)
    finder = finder or world.res(PathFinder)

    # ── Perception (always before movement) ──
    cone.polygon = build_vision_polygon(
        grid, pos.x, pos.y, facing.angle,
        cone.fov, cone.view_distance, cone.ray_count)
    cone.detecting = False
    player = world.query_one(Player, Position)
    if player is not None:
        _pid, _pl, ppos = player
        cone.detecting = detects(cone.polygon, ppos.x, ppos.y)

    if cone.detecting:
        if guard.state is not GuardState.ALERT:
            _set_state(world, eid, guard, GuardState.ALERT)
            bus = world.res(EventBus)
            if bus is not None:
                bus.emit(AlertRaised(eid=eid, x=pos.x, y=pos.y))
        follow.clear()
        vel.x = vel.y = 0.0
        facing.angle = math.atan2(ppos.y - pos.y, ppos.x - pos.x)
    elif guard.state is GuardState.ALERT:
        reset_idle(world, eid, rng)

    # ── Behaviour ──
    tol = _tun("guard", "arrive_tolerance", 5.0)
    if guard.state is GuardState.IDLE:
        guard.idle_timer += dt
        if guard.idle_timer >= guard.idle_duration and not follow.pending:
            start_patrol(world, eid, finder, rng)

    elif guard.state is GuardState.PATROL:
        reached = advance_along_path(pos, vel, facing, follow, grid,
                                     guard.speed, dt, tol)
        if reached is not None:
            guard.cell = reached
        if not follow.active:
            reset_idle(world, eid, rng)

    elif guard.state is GuardState.INVESTIGATE:
        if follow.active:
            reached = advance_along_path(pos, vel, facing, follow, grid,
                                         guard.speed, dt, tol)
            if reached is not None:
                guard.cell = reached
        elif not follow.pending:
            vel.x = vel.y = 0.0
            guard.investigate_timer -= dt
            facing.angle += _tun("guard", "look_around_rate", 2.0) * dt
            if guard.investigate_timer <= 0:
                reset_idle(world, eid, rng)

    return GuardSnapshot(eid=eid, x=pos.x, y=pos.y, angle=facing.angle,
                         state=guard.state, polygon=cone.polygon,
                         detecting=cone.detecting)


def tick_guards(world: "World", dt: float, finder: PathFinder | None = None,
                rng=None) -> list[GuardSnapshot]:
    snaps = []
    for eid, _guard in list(world.all_of(Guard)):
        snap = tick_guard(world, eid, dt, finder, rng)
        if snap is not None:
            snaps.append(snap)
    return snaps
