"""logic/movement.py — Actor motion: path-following, manual steering, lunge.

Player modes (``PlayerState``)
------------------------------
MOVING         seek the next waypoint's cell centre at ``max_speed``;
               advance within ``arrive_tolerance``; IDLE when exhausted.
MANUAL_MOVE    velocity = normalised input × ``max_speed``; the X and Y
               moves are tested separately against the grid so the body
               slides along walls.
ASSASSINATING  straight dash at ``lunge_speed`` toward the locked guard,
               ignoring the grid; halts inside ``strike_distance``.  The
               kill itself is decided by ``logic.encounters``.

Manual input always pre-empts path-following.  Guards only ever
path-follow (``advance_along_path``), at their difficulty-scaled speed.
"""

from __future__ import annotations
import math
from typing import TYPE_CHECKING

from components import (
    Position, Velocity, Facing, PathFollow, Player, PlayerState,
)
from core.collision import body_hits_wall
from core.events import EventBus, FootstepRing
from core.grid import TileGrid, Cell
from core.tuning import get as _tun

if TYPE_CHECKING:
    from core.ecs import World


# ── Shared steering ──────────────────────────────────────────────────

def seek(pos: Position, vel: Velocity, tx: float, ty: float,
         speed: float, dt: float, tolerance: float) -> float | None:
    """Step *pos* toward (tx, ty) without overshooting.

    Returns the heading taken, or ``None`` if already within
    *tolerance* (arrived; nothing moved).
    """
    dx = tx - pos.x
    dy = ty - pos.y
    dist = math.hypot(dx, dy)
    if dist <= tolerance:
        return None
    angle = math.atan2(dy, dx)
    ux, uy = dx / dist, dy / dist
    step = min(speed * dt, dist)
    vel.x = ux * speed
    vel.y = uy * speed
    pos.x += ux * step
    pos.y += uy * step
    return angle


def advance_along_path(pos: Position, vel: Velocity, facing: Facing,
                       follow: PathFollow, grid: TileGrid,
                       speed: float, dt: float,
                       tolerance: float = 5.0) -> Cell | None:
    """Steer one tick along *follow*.

    Returns the waypoint cell reached this tick (the index has already
    advanced past it), else ``None``.  Check ``follow.active`` afterwards
    to see whether the path is finished.
    """
    cell = follow.current()
    if cell is None:
        vel.x = vel.y = 0.0
        return None
    tx, ty = grid.cell_center(*cell)
    angle = seek(pos, vel, tx, ty, speed, dt, tolerance)
    if angle is not None:
        facing.angle = angle
        return None
    follow.index += 1
    return cell


# ── Player ───────────────────────────────────────────────────────────

def _player_parts(world: "World"):
    return world.query_one(Player, Position, Velocity, Facing, PathFollow)


def set_player_path(world: "World", path: list[Cell] | None) -> bool:
    """Start following *path*.  ``None`` or ``[]`` leaves the player as is."""
    parts = _player_parts(world)
    if parts is None or not path:
        return False
    _eid, player, _pos, _vel, _facing, follow = parts
    if player.state == PlayerState.DEAD:
        return False
    follow.set(path)
    player.state = PlayerState.MOVING
    player.target = None
    return True


def lunge_at(world: "World", target: int) -> None:
    """Lock onto guard *target* and dash at it; any path is dropped."""
    parts = _player_parts(world)
    if parts is None:
        return
    _eid, player, _pos, _vel, _facing, follow = parts
    if player.state == PlayerState.DEAD:
        return
    player.target = target
    player.state = PlayerState.ASSASSINATING
    follow.clear()


def _lunge(world: "World", player: Player, pos: Position, vel: Velocity,
           facing: Facing, dt: float) -> None:
    tpos = world.get(player.target, Position) if player.target is not None else None
    if tpos is None or not world.alive(player.target):
        player.state = PlayerState.IDLE
        player.target = None
        vel.x = vel.y = 0.0
        return
    dx = tpos.x - pos.x
    dy = tpos.y - pos.y
    facing.angle = math.atan2(dy, dx)
    strike = _tun("player", "strike_distance", 20.0)
    if math.hypot(dx, dy) < strike:
        vel.x = vel.y = 0.0
        return
    # Short range, line assumed clear: no grid test
    seek(pos, vel, tpos.x, tpos.y, player.lunge_speed, dt, 0.0)


def _footsteps(world: "World", player: Player, pos: Position,
               vel: Velocity, dt: float) -> None:
    if player.state not in (PlayerState.MOVING, PlayerState.MANUAL_MOVE,
                            PlayerState.ASSASSINATING):
        return
    if math.hypot(vel.x, vel.y) <= _tun("player", "footstep_min_speed", 50.0):
        return
    player.footstep_timer += dt
    if player.state == PlayerState.ASSASSINATING:
        interval = _tun("player", "lunge_footstep_interval", 0.15)
    else:
        interval = _tun("player", "footstep_interval", 0.30)
    if player.footstep_timer > interval:
        player.footstep_timer = 0.0
        bus = world.res(EventBus)
        if bus is not None:
            bus.emit(FootstepRing(x=pos.x, y=pos.y))


def tick_player(world: "World", dt: float,
                move: tuple[float, float] = (0.0, 0.0)) -> Player | None:
    """Advance the player one tick.

    Parameters
    ----------
    world : World
        Must hold a ``TileGrid`` resource and one player entity.
    dt : float
        Seconds since the last tick.
    move : (float, float)
        Movement intent from the input layer, each axis in [-1, 1] and
        already normalised on diagonals.

    Returns
    -------
    Player | None
        The player component (state updated in place), or ``None`` if
        there is no player.
    """
    parts = _player_parts(world)
    if parts is None:
        return None
    _eid, player, pos, vel, facing, follow = parts
    if player.state == PlayerState.DEAD:
        vel.x = vel.y = 0.0
        return player

    grid: TileGrid = world.res(TileGrid)
    mx, my = move
    has_input = mx != 0.0 or my != 0.0

    if player.state == PlayerState.ASSASSINATING:
        _lunge(world, player, pos, vel, facing, dt)
        _footsteps(world, player, pos, vel, dt)
        return player

    if player.state == PlayerState.MOVING:
        if has_input:
            follow.clear()
            player.state = PlayerState.IDLE
        else:
            advance_along_path(pos, vel, facing, follow, grid,
                               player.max_speed, dt,
                               _tun("player", "arrive_tolerance", 5.0))
            if not follow.active:
                follow.clear()
                player.state = PlayerState.IDLE

    if player.state in (PlayerState.IDLE, PlayerState.MANUAL_MOVE):
        if has_input:
            player.state = PlayerState.MANUAL_MOVE
            vel.x = mx * player.max_speed
            vel.y = my * player.max_speed
            facing.angle = math.atan2(vel.y, vel.x)
            radius = _tun("player", "body_radius", 10.0)
            nx = pos.x + vel.x * dt
            ny = pos.y + vel.y * dt
            # Axis-separated so the body slides along walls
            if grid is None or not body_hits_wall(nx, pos.y, grid, radius):
                pos.x = nx
            if grid is None or not body_hits_wall(pos.x, ny, grid, radius):
                pos.y = ny
        else:
            vel.x = vel.y = 0.0
            player.state = PlayerState.IDLE

    _footsteps(world, player, pos, vel, dt)
    return player
